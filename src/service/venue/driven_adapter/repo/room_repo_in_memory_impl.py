from decimal import Decimal

from src.platform.exception.exceptions import NotFoundError
from src.service.venue.app.interface.i_room_repo import IRoomRepo
from src.service.venue.domain.entity.room_entity import Room
from src.service.venue.domain.enum.room_status import RoomStatus
from src.service.venue.driven_adapter.repo.in_memory_counter_store import InMemoryCounterStore


class RoomRepoInMemoryImpl(IRoomRepo):
    def __init__(self) -> None:
        self._store: InMemoryCounterStore[Room] = InMemoryCounterStore(entity_name='Room')

    def add(self, room: Room) -> Room:
        return self._store.put(room.id, room)

    async def get_by_id(self, *, room_id: str) -> Room | None:
        return self._store.get(room_id)

    async def update_status(self, *, room_id: str, status: RoomStatus) -> Room:
        room = self._store.get(room_id)
        if room is None:
            raise NotFoundError('Room not found')
        return self._store.put(room_id, room.with_status(status))

    async def add_revenue(self, *, room_id: str, amount: Decimal, idempotency_key: str) -> bool:
        return self._store.increment(
            record_id=room_id,
            deltas={'revenue': amount, 'booking_count': 1},
            idempotency_key=idempotency_key,
        )

    async def revert(self, *, idempotency_key: str) -> bool:
        return self._store.revert(idempotency_key=idempotency_key)

from decimal import Decimal

import attrs

from src.service.venue.domain.enum.room_status import RoomStatus
from src.service.venue.domain.value_object.money import ZERO


UNBOOKABLE_ROOM_STATUSES = frozenset({RoomStatus.MAINTENANCE, RoomStatus.DISABLED})


@attrs.define
class Room:
    id: str
    store_id: str
    name: str
    capacity: int
    price: Decimal  # per hour
    deposit: Decimal = ZERO
    status: RoomStatus = RoomStatus.AVAILABLE
    revenue: Decimal = ZERO
    booking_count: int = 0

    @property
    def is_available(self) -> bool:
        return self.status not in UNBOOKABLE_ROOM_STATUSES

    def with_status(self, status: RoomStatus) -> 'Room':
        return attrs.evolve(self, status=status)

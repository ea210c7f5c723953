from abc import ABC, abstractmethod
from decimal import Decimal

from src.service.venue.domain.entity.room_entity import Room
from src.service.venue.domain.enum.room_status import RoomStatus


class IRoomRepo(ABC):
    @abstractmethod
    async def get_by_id(self, *, room_id: str) -> Room | None:
        pass

    @abstractmethod
    async def update_status(self, *, room_id: str, status: RoomStatus) -> Room:
        pass

    @abstractmethod
    async def add_revenue(self, *, room_id: str, amount: Decimal, idempotency_key: str) -> bool:
        """
        Atomically add amount to revenue and 1 to booking_count

        Returns:
            True if applied, False if idempotency_key was already applied
        """
        pass

    @abstractmethod
    async def revert(self, *, idempotency_key: str) -> bool:
        """Undo a previously applied increment (no-op for unknown keys)"""
        pass

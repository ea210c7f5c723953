from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from uuid_utils import UUID

from src.service.venue.domain.entity.order_entity import Order


class IOrderQueryRepo(ABC):
    @abstractmethod
    async def get_by_id(self, *, order_id: UUID) -> Order | None:
        pass

    @abstractmethod
    async def list_room_orders_overlapping(
        self, *, room_id: str, start_time: datetime, end_time: datetime
    ) -> List[Order]:
        """Orders on the room whose [start_time, end_time) overlaps the given interval (any status)"""
        pass

    @abstractmethod
    async def list_expired_pending(self, *, now: datetime, limit: Optional[int] = None) -> List[Order]:
        """PENDING orders with expired_at < now, oldest deadline first"""
        pass

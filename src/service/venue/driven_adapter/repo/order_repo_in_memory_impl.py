from datetime import datetime
from typing import Dict, List, Optional

from uuid_utils import UUID

from src.platform.exception.exceptions import (
    ConflictError,
    NotFoundError,
    OrderVersionConflictError,
)
from src.service.venue.app.interface.i_order_command_repo import IOrderCommandRepo
from src.service.venue.app.interface.i_order_query_repo import IOrderQueryRepo
from src.service.venue.domain.entity.order_entity import Order
from src.service.venue.domain.enum.order_status import OrderStatus


class OrderRepoInMemoryImpl(IOrderCommandRepo, IOrderQueryRepo):
    """
    Command and query sides over one dict.

    update() compares the stored version with expected_version and swaps in
    the new state with no await in between, which makes it a CAS on the
    event loop.
    """

    def __init__(self) -> None:
        self._orders: Dict[UUID, Order] = {}

    async def create(self, *, order: Order) -> Order:
        if order.id in self._orders:
            raise ConflictError(f'Order {order.order_number} already exists')
        self._orders[order.id] = order
        return order

    async def get_by_id(self, *, order_id: UUID) -> Order | None:
        return self._orders.get(order_id)

    async def update(self, *, order: Order, expected_version: int) -> Order:
        stored = self._orders.get(order.id)
        if stored is None:
            raise NotFoundError('Order not found')
        if stored.version != expected_version:
            raise OrderVersionConflictError(
                f'Order {order.order_number} is at version {stored.version}, '
                f'expected {expected_version}'
            )
        self._orders[order.id] = order
        return order

    async def list_room_orders_overlapping(
        self, *, room_id: str, start_time: datetime, end_time: datetime
    ) -> List[Order]:
        return [
            order
            for order in self._orders.values()
            if order.room_id == room_id
            and order.start_time is not None
            and order.end_time is not None
            and order.start_time < end_time
            and order.end_time > start_time
        ]

    async def list_expired_pending(self, *, now: datetime, limit: Optional[int] = None) -> List[Order]:
        expired = sorted(
            (
                order
                for order in self._orders.values()
                if order.status == OrderStatus.PENDING and order.expired_at < now
            ),
            key=lambda order: order.expired_at,
        )
        return expired[:limit] if limit is not None else expired

    def all(self) -> List[Order]:
        return list(self._orders.values())

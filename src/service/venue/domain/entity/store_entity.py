from decimal import Decimal

import attrs

from src.service.venue.domain.enum.room_status import StoreStatus
from src.service.venue.domain.value_object.money import ZERO


@attrs.define
class Store:
    id: str
    name: str
    status: StoreStatus = StoreStatus.ACTIVE
    revenue: Decimal = ZERO  # paid receipts
    settled_revenue: Decimal = ZERO  # completed orders
    completed_order_count: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == StoreStatus.ACTIVE

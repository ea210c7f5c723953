from decimal import Decimal
from typing import Optional

import attrs


@attrs.define(frozen=True)
class OrderItem:
    dish_id: str
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal
    specifications: Optional[str] = None


@attrs.define(frozen=True)
class OrderItemInput:
    """Requested line before pricing"""

    dish_id: str
    name: str
    unit_price: Decimal
    quantity: int
    specifications: Optional[str] = None

from decimal import Decimal
from typing import List

import attrs

from src.service.venue.domain.value_object.order_item import OrderItem


@attrs.define(frozen=True)
class PriceBreakdown:
    """
    Priced order amounts

    total_amount == subtotal + deposit
    actual_amount == total_amount - discount
    """

    items: List[OrderItem]
    subtotal: Decimal
    deposit: Decimal
    discount: Decimal
    total_amount: Decimal
    actual_amount: Decimal

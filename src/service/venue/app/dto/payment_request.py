from decimal import Decimal
from typing import Optional

import attrs

from src.service.venue.domain.enum.order_status import PaymentMethod


@attrs.define(frozen=True)
class PaymentRequest:
    method: PaymentMethod
    transaction_id: str
    amount: Optional[Decimal] = None  # must equal actual_amount when given

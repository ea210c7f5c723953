from datetime import datetime
from decimal import Decimal
from typing import Optional

import attrs

from src.service.venue.domain.enum.order_status import PaymentMethod, RefundStatus


@attrs.define(frozen=True)
class PaymentInfo:
    method: PaymentMethod
    transaction_id: str
    paid_at: datetime
    amount: Decimal


@attrs.define(frozen=True)
class RefundInfo:
    amount: Decimal
    method: PaymentMethod
    status: RefundStatus
    requested_at: datetime
    refund_id: Optional[str] = None
    settled_at: Optional[datetime] = None

    def settle(self, *, refund_id: Optional[str], settled_at: datetime) -> 'RefundInfo':
        return attrs.evolve(
            self,
            status=RefundStatus.SUCCEEDED,
            refund_id=refund_id or self.refund_id,
            settled_at=settled_at,
        )

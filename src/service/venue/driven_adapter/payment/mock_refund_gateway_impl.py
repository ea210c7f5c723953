from decimal import Decimal
from typing import Dict

import uuid_utils as uuid
from uuid_utils import UUID

from src.platform.logging.loguru_io import Logger
from src.service.venue.app.interface.i_refund_gateway import IRefundGateway
from src.service.venue.domain.enum.order_status import PaymentMethod


class MockRefundGatewayImpl(IRefundGateway):
    """
    Stand-in payment provider for development and tests.

    Accepts every request and returns a refund id; repeated requests with the
    same idempotency key return the same id, as real providers do.
    """

    def __init__(self) -> None:
        self._refunds: Dict[str, str] = {}

    @Logger.io
    async def request_refund(
        self,
        *,
        order_id: UUID,
        order_number: str,
        amount: Decimal,
        method: PaymentMethod,
        transaction_id: str,
        idempotency_key: str,
    ) -> str:
        if idempotency_key in self._refunds:
            return self._refunds[idempotency_key]

        refund_id = f'RF{uuid.uuid7().hex[:20].upper()}'
        self._refunds[idempotency_key] = refund_id
        Logger.base.info(
            f'💳 [MOCK REFUND] {method} refund {refund_id}: {amount} for order {order_number} '
            f'(transaction={transaction_id})'
        )
        return refund_id

    @property
    def refund_count(self) -> int:
        return len(self._refunds)

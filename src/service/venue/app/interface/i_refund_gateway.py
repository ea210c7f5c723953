from abc import ABC, abstractmethod
from decimal import Decimal

from uuid_utils import UUID

from src.service.venue.domain.enum.order_status import PaymentMethod


class IRefundGateway(ABC):
    """External payment provider refund API"""

    @abstractmethod
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
        """
        Submit a refund request

        Args:
            idempotency_key: Provider-side dedupe key (out_refund_no); resubmitting
                the same key must not refund twice

        Returns:
            Provider refund id; settlement is reported back asynchronously
        """
        pass

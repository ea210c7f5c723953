from decimal import Decimal

import pytest
import uuid_utils

from src.service.venue.domain.enum.order_status import PaymentMethod
from src.service.venue.driven_adapter.payment.mock_refund_gateway_impl import (
    MockRefundGatewayImpl,
)


@pytest.mark.unit
class TestMockRefundGateway:
    @pytest.mark.asyncio
    async def test_same_idempotency_key_returns_same_refund(self) -> None:
        gateway = MockRefundGatewayImpl()
        request = {
            'order_id': uuid_utils.uuid7(),
            'order_number': '250601120000001',
            'amount': Decimal('100.00'),
            'method': PaymentMethod.ALIPAY,
            'transaction_id': 'ali-1',
        }

        first = await gateway.request_refund(**request, idempotency_key='o1:cancel:provider_refund')
        again = await gateway.request_refund(**request, idempotency_key='o1:cancel:provider_refund')
        other = await gateway.request_refund(**request, idempotency_key='o1:refund:provider_refund')

        assert first == again
        assert first != other
        assert first.startswith('RF')
        assert gateway.refund_count == 2

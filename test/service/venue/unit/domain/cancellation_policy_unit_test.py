from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import uuid_utils

from src.platform.exception.exceptions import ValidationError
from src.service.venue.domain.cancellation_policy import CancellationWindowPolicy
from src.service.venue.domain.entity.order_entity import Order
from src.service.venue.domain.enum.order_status import CancelActor, OrderType
from src.service.venue.domain.pricing_engine import PricingEngine
from src.service.venue.domain.value_object.time_slot import TimeSlot


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _booking(starts_in: timedelta) -> Order:
    return Order.create(
        id=uuid_utils.uuid7(),
        order_number='250601120000001',
        user_id='user-1',
        store_id='store-1',
        order_type=OrderType.ROOM_BOOKING,
        price=PricingEngine().price(items=[], room_deposit=Decimal('100.00')),
        contact_phone='13800138000',
        now=NOW,
        payment_timeout_minutes=15,
        room_id='room-1',
        time_slot=TimeSlot(start=NOW + starts_in, end=NOW + starts_in + timedelta(hours=2)),
    )


@pytest.mark.unit
class TestCancellationWindowPolicy:
    def test_user_cannot_cancel_inside_window(self) -> None:
        """
        Given: A booking starting in 90 minutes
        When: The customer cancels
        Then: Rejected with the 2-hour window message
        """
        policy = CancellationWindowPolicy()

        with pytest.raises(ValidationError, match='2小时内不可取消'):
            policy.ensure_cancellable(
                order=_booking(timedelta(minutes=90)),
                actor=CancelActor.USER,
                is_vip=False,
                now=NOW,
            )

    def test_vip_window_is_shorter(self) -> None:
        policy = CancellationWindowPolicy()

        policy.ensure_cancellable(
            order=_booking(timedelta(minutes=90)), actor=CancelActor.USER, is_vip=True, now=NOW
        )

        with pytest.raises(ValidationError, match='1小时内不可取消'):
            policy.ensure_cancellable(
                order=_booking(timedelta(minutes=30)),
                actor=CancelActor.USER,
                is_vip=True,
                now=NOW,
            )

    @pytest.mark.parametrize('actor', [CancelActor.MERCHANT, CancelActor.SYSTEM])
    def test_merchant_and_system_are_not_restricted(self, actor: CancelActor) -> None:
        CancellationWindowPolicy().ensure_cancellable(
            order=_booking(timedelta(minutes=10)), actor=actor, is_vip=False, now=NOW
        )

    def test_disabled_policy_allows_everything(self) -> None:
        CancellationWindowPolicy(enabled=False).ensure_cancellable(
            order=_booking(timedelta(minutes=10)), actor=CancelActor.USER, is_vip=False, now=NOW
        )

    def test_outside_window_is_allowed(self) -> None:
        CancellationWindowPolicy().ensure_cancellable(
            order=_booking(timedelta(hours=3)), actor=CancelActor.USER, is_vip=False, now=NOW
        )

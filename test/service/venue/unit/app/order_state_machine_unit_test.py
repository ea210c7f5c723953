"""
Unit tests for OrderStateMachine

Covers:
- create_order validation and pricing
- pay / confirm / start / complete with their counter side effects
- cancel and refund paths (balance settles at once, gateway refunds stay pending)
- rollback of applied side effects when a later step fails
- versioned write retry on a concurrent modification
"""

import asyncio
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import uuid_utils

from src.platform.exception.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    OrderExpiredError,
    OrderVersionConflictError,
    ValidationError,
)
from src.service.venue.app.dto.payment_request import PaymentRequest
from src.service.venue.domain.entity.store_entity import Store
from src.service.venue.domain.enum.order_status import (
    CancelActor,
    OrderStatus,
    OrderType,
    PaymentMethod,
    RefundStatus,
)
from src.service.venue.domain.enum.room_status import StoreStatus
from src.service.venue.domain.value_object.order_item import OrderItemInput


WECHAT = PaymentRequest(method=PaymentMethod.WECHAT, transaction_id='wx-1')
BALANCE = PaymentRequest(method=PaymentMethod.BALANCE, transaction_id='bal-1')


async def _paid(system, create_booking, payment: PaymentRequest = WECHAT, **kwargs):
    order = await create_booking(**kwargs)
    return await system.state_machine.pay_order(order_id=order.id, payment=payment)


@pytest.mark.unit
class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_combo_order_is_priced_and_pending(
        self, system, create_booking, beer_items
    ) -> None:
        """
        Given: A regular customer booking a room with food
        When: Creating the order
        Then: Type is COMBO, deposit charged, expires in 15 minutes
        """
        # Act
        order = await create_booking(items=beer_items)

        # Assert
        assert order.type == OrderType.COMBO
        assert order.status == OrderStatus.PENDING
        assert order.subtotal == Decimal('100.00')
        assert order.deposit == Decimal('100.00')
        assert order.actual_amount == Decimal('200.00')
        assert order.expired_at == system.clock.now() + timedelta(minutes=15)
        assert await system.state_machine.get_order(order_id=order.id) == order

    @pytest.mark.asyncio
    async def test_vip_customer_gets_discount_and_deposit_waiver(
        self, create_booking, beer_items
    ) -> None:
        order = await create_booking(user_id='user-vip', items=beer_items)

        assert order.deposit == Decimal('0.00')
        assert order.discount == Decimal('6.00')
        assert order.actual_amount == Decimal('94.00')

    @pytest.mark.asyncio
    async def test_lapsed_vip_prices_as_regular(self, system, create_booking) -> None:
        system.clock.advance(days=400)

        order = await create_booking(
            user_id='user-vip',
            start_time=system.clock.now() + timedelta(hours=5),
            end_time=system.clock.now() + timedelta(hours=7),
        )

        assert order.deposit == Decimal('100.00')

    @pytest.mark.asyncio
    async def test_food_order_without_room(self, system, beer_items) -> None:
        order = await system.state_machine.create_order(
            user_id='user-1', store_id='store-1', contact_phone='13800138000', items=beer_items
        )

        assert order.type == OrderType.FOOD_ORDER
        assert order.room_id is None
        assert order.actual_amount == Decimal('100.00')

    @pytest.mark.asyncio
    async def test_capacity_exceeded_is_validation_error(self, create_booking) -> None:
        with pytest.raises(ValidationError, match='CAPACITY_EXCEEDED'):
            await create_booking(guest_count=11)

    @pytest.mark.asyncio
    async def test_unknown_store_user_and_room(self, system, evening_slot) -> None:
        start, end = evening_slot
        base = {'contact_phone': '13800138000', 'start_time': start, 'end_time': end}

        with pytest.raises(NotFoundError, match='Store'):
            await system.state_machine.create_order(
                user_id='user-1', store_id='missing', room_id='room-1', **base
            )
        with pytest.raises(NotFoundError, match='User'):
            await system.state_machine.create_order(
                user_id='missing', store_id='store-1', room_id='room-1', **base
            )
        with pytest.raises(NotFoundError, match='Room'):
            await system.state_machine.create_order(
                user_id='user-1', store_id='store-1', room_id='missing', **base
            )

    @pytest.mark.asyncio
    async def test_inactive_store_rejects_orders(self, system, create_booking) -> None:
        system.store_repo.add(Store(id='store-1', name='星光KTV', status=StoreStatus.SUSPENDED))

        with pytest.raises(ValidationError, match='not accepting'):
            await create_booking()

    @pytest.mark.asyncio
    async def test_room_of_another_store(self, system, evening_slot) -> None:
        start, end = evening_slot
        system.store_repo.add(Store(id='store-2', name='另一家'))

        with pytest.raises(ValidationError, match='does not belong'):
            await system.state_machine.create_order(
                user_id='user-1',
                store_id='store-2',
                contact_phone='13800138000',
                room_id='room-1',
                start_time=start,
                end_time=end,
            )

    @pytest.mark.asyncio
    async def test_order_without_room_or_items(self, system) -> None:
        with pytest.raises(ValidationError, match='at least one item'):
            await system.state_machine.create_order(
                user_id='user-1', store_id='store-1', contact_phone='13800138000'
            )

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_fail_creation(
        self, system, create_booking
    ) -> None:
        system.state_machine.notifier = AsyncMock()
        system.state_machine.notifier.notify.side_effect = RuntimeError('socket gone')

        order = await create_booking()

        assert order.status == OrderStatus.PENDING
        system.state_machine.notifier.notify.assert_awaited_once()


@pytest.mark.unit
class TestPayOrder:
    @pytest.mark.asyncio
    async def test_gateway_payment_updates_receipts(self, system, create_booking) -> None:
        """
        Given: A pending order of 100.00
        When: Paid by WeChat
        Then: Status PAID, customer total_spent and store revenue grow by 100.00
        """
        # Arrange
        order = await create_booking()

        # Act
        paid = await system.state_machine.pay_order(order_id=order.id, payment=WECHAT)

        # Assert
        assert paid.status == OrderStatus.PAID
        assert paid.payment_info.transaction_id == 'wx-1'
        assert paid.payment_info.amount == Decimal('100.00')
        customer = await system.customer_repo.get_by_id(customer_id='user-1')
        store = await system.store_repo.get_by_id(store_id='store-1')
        assert customer.total_spent == Decimal('100.00')
        assert customer.balance == Decimal('1000.00')
        assert store.revenue == Decimal('100.00')

    @pytest.mark.asyncio
    async def test_balance_payment_debits_balance(self, system, create_booking) -> None:
        await _paid(system, create_booking, payment=BALANCE)

        customer = await system.customer_repo.get_by_id(customer_id='user-1')
        assert customer.balance == Decimal('900.00')

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, system, create_booking) -> None:
        order = await create_booking(
            items=[
                OrderItemInput(
                    dish_id='d1', name='黑桃A', unit_price=Decimal('2000.00'), quantity=1
                )
            ]
        )

        with pytest.raises(ValidationError, match='Insufficient balance'):
            await system.state_machine.pay_order(order_id=order.id, payment=BALANCE)

        stored = await system.state_machine.get_order(order_id=order.id)
        customer = await system.customer_repo.get_by_id(customer_id='user-1')
        assert stored.status == OrderStatus.PENDING
        assert customer.balance == Decimal('1000.00')

    @pytest.mark.asyncio
    async def test_amount_mismatch(self, system, create_booking) -> None:
        order = await create_booking()

        with pytest.raises(ValidationError, match='does not match'):
            await system.state_machine.pay_order(
                order_id=order.id,
                payment=PaymentRequest(
                    method=PaymentMethod.WECHAT, transaction_id='wx-1', amount=Decimal('99.99')
                ),
            )

    @pytest.mark.asyncio
    async def test_paying_twice_is_invalid(self, system, create_booking) -> None:
        paid = await _paid(system, create_booking)

        with pytest.raises(InvalidTransitionError):
            await system.state_machine.pay_order(order_id=paid.id, payment=WECHAT)

        customer = await system.customer_repo.get_by_id(customer_id='user-1')
        assert customer.total_spent == Decimal('100.00')

    @pytest.mark.asyncio
    async def test_payment_after_deadline_without_sweep(self, system, create_booking) -> None:
        """
        Given: The payment window passed and the sweeper has not run
        When: Paying
        Then: OrderExpiredError; the order stays PENDING
        """
        order = await create_booking()
        system.clock.advance(minutes=16)

        with pytest.raises(OrderExpiredError):
            await system.state_machine.pay_order(order_id=order.id, payment=WECHAT)

        stored = await system.state_machine.get_order(order_id=order.id)
        assert stored.status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_order(self, system) -> None:
        with pytest.raises(NotFoundError, match='Order not found'):
            await system.state_machine.pay_order(order_id=uuid_utils.uuid7(), payment=WECHAT)


@pytest.mark.unit
class TestFulfilment:
    @pytest.mark.asyncio
    async def test_complete_settles_revenue_and_awards_points(
        self, system, create_booking
    ) -> None:
        """
        Given: A paid, confirmed and started order of 100.00
        When: Completed
        Then: Store settles 100.00, room revenue/booking count grow, customer earns 5 points
        """
        # Arrange
        paid = await _paid(system, create_booking)
        await system.state_machine.confirm_order(order_id=paid.id)
        started = await system.state_machine.start_order(order_id=paid.id)

        # Act
        completed = await system.state_machine.complete_order(order_id=paid.id)

        # Assert
        assert started.status == OrderStatus.IN_PROGRESS
        assert completed.status == OrderStatus.COMPLETED
        assert completed.version == 4
        store = await system.store_repo.get_by_id(store_id='store-1')
        room = await system.room_repo.get_by_id(room_id='room-1')
        customer = await system.customer_repo.get_by_id(customer_id='user-1')
        assert store.settled_revenue == Decimal('100.00')
        assert store.completed_order_count == 1
        assert room.revenue == Decimal('100.00')
        assert room.booking_count == 1
        assert customer.points == 5

    @pytest.mark.asyncio
    async def test_vip_earns_double_points(self, system, create_booking, beer_items) -> None:
        paid = await _paid(system, create_booking, user_id='user-vip', items=beer_items)
        await system.state_machine.confirm_order(order_id=paid.id)
        await system.state_machine.start_order(order_id=paid.id)

        await system.state_machine.complete_order(order_id=paid.id)

        customer = await system.customer_repo.get_by_id(customer_id='user-vip')
        assert customer.points == 9

    @pytest.mark.asyncio
    async def test_cannot_skip_confirmation(self, system, create_booking) -> None:
        paid = await _paid(system, create_booking)

        with pytest.raises(InvalidTransitionError):
            await system.state_machine.start_order(order_id=paid.id)
        with pytest.raises(InvalidTransitionError):
            await system.state_machine.complete_order(order_id=paid.id)

    @pytest.mark.asyncio
    async def test_in_progress_order_cannot_be_cancelled(self, system, create_booking) -> None:
        paid = await _paid(system, create_booking)
        await system.state_machine.confirm_order(order_id=paid.id)
        await system.state_machine.start_order(order_id=paid.id)

        with pytest.raises(InvalidTransitionError):
            await system.state_machine.cancel_order(
                order_id=paid.id, actor=CancelActor.MERCHANT
            )


@pytest.mark.unit
class TestCancelAndRefund:
    @pytest.mark.asyncio
    async def test_cancelling_cancelled_order_is_invalid(self, system, create_booking) -> None:
        """
        Given: An order already CANCELLED
        When: Cancelling it again
        Then: InvalidTransitionError
        """
        order = await create_booking()
        await system.state_machine.cancel_order(order_id=order.id, reason='changed plans')

        with pytest.raises(InvalidTransitionError):
            await system.state_machine.cancel_order(order_id=order.id)

    @pytest.mark.asyncio
    async def test_cancel_unpaid_order_has_no_refund(self, system, create_booking) -> None:
        order = await create_booking()

        cancelled = await system.state_machine.cancel_order(order_id=order.id, reason='busy')

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.cancel_reason == 'busy'
        assert cancelled.refund_info is None
        assert system.refund_gateway.refund_count == 0

    @pytest.mark.asyncio
    async def test_cancel_balance_payment_refunds_immediately(
        self, system, create_booking
    ) -> None:
        paid = await _paid(system, create_booking, payment=BALANCE)

        refunded = await system.state_machine.cancel_order(order_id=paid.id)

        assert refunded.status == OrderStatus.REFUNDED
        assert refunded.refund_info.status == RefundStatus.SUCCEEDED
        customer = await system.customer_repo.get_by_id(customer_id='user-1')
        store = await system.store_repo.get_by_id(store_id='store-1')
        assert customer.balance == Decimal('1000.00')
        assert customer.total_spent == Decimal('0.00')
        assert store.revenue == Decimal('0.00')
        assert system.refund_gateway.refund_count == 0

    @pytest.mark.asyncio
    async def test_cancel_gateway_payment_leaves_pending_refund(
        self, system, create_booking
    ) -> None:
        """
        Given: A WeChat-paid order
        When: Cancelled, then the provider reports the refund settled
        Then: CANCELLED with a pending refund first, REFUNDED after settlement
        """
        # Arrange
        paid = await _paid(system, create_booking)

        # Act
        cancelled = await system.state_machine.cancel_order(order_id=paid.id)
        refunded = await system.state_machine.settle_refund(order_id=paid.id)

        # Assert
        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.has_pending_refund
        assert cancelled.refund_info.refund_id.startswith('RF')
        assert cancelled.refund_info.amount == Decimal('100.00')
        assert refunded.status == OrderStatus.REFUNDED
        assert refunded.refund_info.status == RefundStatus.SUCCEEDED
        assert refunded.refund_info.refund_id == cancelled.refund_info.refund_id
        assert system.refund_gateway.refund_count == 1

    @pytest.mark.asyncio
    async def test_user_cannot_cancel_close_to_start(self, system, create_booking) -> None:
        now = system.clock.now()
        paid = await _paid(
            system,
            create_booking,
            start_time=now + timedelta(minutes=90),
            end_time=now + timedelta(hours=3),
        )

        with pytest.raises(ValidationError, match='2小时内不可取消'):
            await system.state_machine.cancel_order(order_id=paid.id)

        merchant_cancelled = await system.state_machine.cancel_order(
            order_id=paid.id, actor=CancelActor.MERCHANT
        )
        assert merchant_cancelled.status == OrderStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_partial_refund_of_confirmed_order(self, system, create_booking) -> None:
        paid = await _paid(system, create_booking)
        await system.state_machine.confirm_order(order_id=paid.id)

        refunded = await system.state_machine.refund_order(
            order_id=paid.id, amount=Decimal('40.00')
        )

        assert refunded.status == OrderStatus.CANCELLED
        assert refunded.cancel_reason == 'Refunded'
        assert refunded.refund_info.amount == Decimal('40.00')
        customer = await system.customer_repo.get_by_id(customer_id='user-1')
        assert customer.total_spent == Decimal('60.00')

    @pytest.mark.asyncio
    async def test_refund_validations(self, system, create_booking) -> None:
        pending = await create_booking()
        paid = await _paid(
            system,
            create_booking,
            user_id='user-vip',
            start_time=system.clock.now() + timedelta(days=2),
            end_time=system.clock.now() + timedelta(days=2, hours=2),
            items=[
                OrderItemInput(dish_id='d1', name='果盘', unit_price=Decimal('50.00'), quantity=1)
            ],
        )

        with pytest.raises(InvalidTransitionError):
            await system.state_machine.refund_order(order_id=pending.id)
        with pytest.raises(ValidationError, match='exceeds'):
            await system.state_machine.refund_order(order_id=paid.id, amount='1000')
        with pytest.raises(ValidationError, match='positive'):
            await system.state_machine.refund_order(order_id=paid.id, amount=0)

    @pytest.mark.asyncio
    async def test_settle_without_pending_refund(self, system, create_booking) -> None:
        paid = await _paid(system, create_booking)

        with pytest.raises(InvalidTransitionError):
            await system.state_machine.settle_refund(order_id=paid.id)


@pytest.mark.unit
class TestTransitionAtomicity:
    @pytest.mark.asyncio
    async def test_gateway_failure_rolls_back_local_effects(
        self, system, create_booking
    ) -> None:
        """
        Given: A WeChat-paid order and a refund provider that is down
        When: Cancelling
        Then: The error propagates, the order stays PAID, receipts are untouched
        """
        # Arrange
        paid = await _paid(system, create_booking)
        system.state_machine.refund_gateway = AsyncMock()
        system.state_machine.refund_gateway.request_refund.side_effect = RuntimeError(
            'provider down'
        )

        # Act
        with pytest.raises(RuntimeError, match='provider down'):
            await system.state_machine.cancel_order(order_id=paid.id)

        # Assert
        stored = await system.state_machine.get_order(order_id=paid.id)
        customer = await system.customer_repo.get_by_id(customer_id='user-1')
        store = await system.store_repo.get_by_id(store_id='store-1')
        assert stored.status == OrderStatus.PAID
        assert customer.total_spent == Decimal('100.00')
        assert store.revenue == Decimal('100.00')

    @pytest.mark.asyncio
    async def test_version_conflict_is_retried_once(self, system, create_booking) -> None:
        # Arrange
        order = await create_booking()
        real_update = system.order_repo.update
        calls = []

        async def flaky_update(*, order, expected_version):
            calls.append(expected_version)
            if len(calls) == 1:
                raise OrderVersionConflictError()
            return await real_update(order=order, expected_version=expected_version)

        system.order_repo.update = flaky_update

        # Act
        paid = await system.state_machine.pay_order(order_id=order.id, payment=WECHAT)

        # Assert
        assert paid.status == OrderStatus.PAID
        assert len(calls) == 2
        customer = await system.customer_repo.get_by_id(customer_id='user-1')
        assert customer.total_spent == Decimal('100.00')

    @pytest.mark.asyncio
    async def test_second_version_conflict_surfaces_invalid_transition(
        self, system, create_booking
    ) -> None:
        order = await create_booking()
        system.order_repo.update = AsyncMock(side_effect=OrderVersionConflictError())

        with pytest.raises(InvalidTransitionError, match='modified concurrently'):
            await system.state_machine.pay_order(order_id=order.id, payment=WECHAT)

        assert system.order_repo.update.await_count == 2
        customer = await system.customer_repo.get_by_id(customer_id='user-1')
        store = await system.store_repo.get_by_id(store_id='store-1')
        assert customer.total_spent == Decimal('0.00')
        assert store.revenue == Decimal('0.00')

    @pytest.mark.asyncio
    async def test_concurrent_pay_and_cancel_serialize(self, system, create_booking) -> None:
        """
        Given: A pending order
        When: Pay and cancel race
        Then: Both are applied in some order and receipts match the final state
        """
        order = await create_booking()

        results = await asyncio.gather(
            system.state_machine.pay_order(order_id=order.id, payment=WECHAT),
            system.state_machine.cancel_order(order_id=order.id),
            return_exceptions=True,
        )

        final = await system.state_machine.get_order(order_id=order.id)
        customer = await system.customer_repo.get_by_id(customer_id='user-1')
        assert final.status == OrderStatus.CANCELLED
        assert customer.total_spent == Decimal('0.00')
        errors = [r for r in results if isinstance(r, Exception)]
        assert all(isinstance(e, (InvalidTransitionError, ConflictError)) for e in errors)

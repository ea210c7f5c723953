"""
Order State Machine

Single entry point for every order status change. A transition is applied as:

1. Load the order under the per-order lock
2. Apply the pure domain transition (raises on illegal moves)
3. Apply side effects (idempotent, revertible counter updates)
4. Submit the provider refund, if the transition refunds a non-balance payment
5. Versioned write of the new order state
6. On any failure in 3-5: revert applied effects, keep the old status, re-raise
7. After commit: hand domain events to the notifier (never fails the transition)

A versioned write that loses against a concurrent writer is retried once
against fresh state; a second loss surfaces as InvalidTransitionError.
"""

from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, Sequence

import attrs
import uuid_utils as uuid
from uuid_utils import UUID

from src.platform.exception.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    OrderExpiredError,
    OrderVersionConflictError,
    ValidationError,
)
from src.platform.logging.loguru_io import Logger
from src.platform.state.keyed_lock import KeyedLock
from src.platform.types.clock import Clock
from src.service.venue.app.command.order_side_effects import (
    OrderSideEffects,
    RefundRequest,
    SideEffect,
    SideEffectBatch,
)
from src.service.venue.app.dto.availability_check_result import UnavailableReason
from src.service.venue.app.dto.payment_request import PaymentRequest
from src.service.venue.app.interface.i_customer_repo import ICustomerRepo
from src.service.venue.app.interface.i_order_command_repo import IOrderCommandRepo
from src.service.venue.app.interface.i_order_event_notifier import IOrderEventNotifier
from src.service.venue.app.interface.i_refund_gateway import IRefundGateway
from src.service.venue.app.interface.i_store_repo import IStoreRepo
from src.service.venue.app.query.booking_availability_checker import BookingAvailabilityChecker
from src.service.venue.domain.cancellation_policy import CancellationWindowPolicy
from src.service.venue.domain.domain_event.order_domain_event import (
    LoyaltyPointsAwardedEvent,
    OrderCreatedEvent,
    OrderDomainEvent,
    OrderPaidEvent,
    OrderStatusChangedEvent,
)
from src.service.venue.domain.entity.order_entity import Order, generate_order_number
from src.service.venue.domain.enum.order_status import (
    CancelActor,
    OrderStatus,
    OrderType,
    PaymentMethod,
    RefundStatus,
)
from src.service.venue.domain.pricing_engine import LoyaltyPointsPolicy, PricingEngine
from src.service.venue.domain.value_object.money import ZERO, MoneyLike, to_money
from src.service.venue.domain.value_object.order_item import OrderItemInput
from src.service.venue.domain.value_object.payment_info import PaymentInfo, RefundInfo
from src.service.venue.domain.value_object.time_slot import TimeSlot


@attrs.define
class TransitionPlan:
    order: Order
    effects: List[SideEffect] = attrs.field(factory=list)
    events: List[OrderDomainEvent] = attrs.field(factory=list)
    refund_request: Optional[RefundRequest] = None


class OrderStateMachine:
    def __init__(
        self,
        *,
        order_command_repo: IOrderCommandRepo,
        customer_repo: ICustomerRepo,
        store_repo: IStoreRepo,
        availability_checker: BookingAvailabilityChecker,
        pricing_engine: PricingEngine,
        points_policy: LoyaltyPointsPolicy,
        cancellation_policy: CancellationWindowPolicy,
        side_effects: OrderSideEffects,
        refund_gateway: IRefundGateway,
        notifier: IOrderEventNotifier,
        clock: Clock,
        room_locks: KeyedLock,
        order_locks: KeyedLock,
        payment_timeout_minutes: int = 15,
        max_guest_count: int = 50,
    ) -> None:
        self.order_command_repo = order_command_repo
        self.customer_repo = customer_repo
        self.store_repo = store_repo
        self.availability_checker = availability_checker
        self.pricing_engine = pricing_engine
        self.points_policy = points_policy
        self.cancellation_policy = cancellation_policy
        self.side_effects = side_effects
        self.refund_gateway = refund_gateway
        self.notifier = notifier
        self.clock = clock
        self.room_locks = room_locks
        self.order_locks = order_locks
        self.payment_timeout_minutes = payment_timeout_minutes
        self.max_guest_count = max_guest_count

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @Logger.io
    async def create_order(
        self,
        *,
        user_id: str,
        store_id: str,
        contact_phone: str,
        items: Sequence[OrderItemInput] = (),
        room_id: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        guest_count: Optional[int] = None,
        order_type: Optional[OrderType] = None,
        special_requests: Optional[str] = None,
    ) -> Order:
        store = await self.store_repo.get_by_id(store_id=store_id)
        if not store:
            raise NotFoundError('Store not found')
        if not store.is_active:
            raise ValidationError('Store is not accepting orders')

        customer = await self.customer_repo.get_by_id(customer_id=user_id)
        if not customer:
            raise NotFoundError('User not found')

        order_type = order_type or self._infer_order_type(room_id=room_id, items=items)
        now = self.clock.now()
        vip_level = customer.effective_vip_level(now)

        if room_id is None:
            if start_time is not None or end_time is not None:
                raise ValidationError('start_time and end_time require a room_id')
            price = self.pricing_engine.price(items=items, vip_level=vip_level)
            order = self._build_order(
                user_id=user_id,
                store_id=store_id,
                order_type=order_type,
                price=price,
                contact_phone=contact_phone,
                guest_count=guest_count,
                special_requests=special_requests,
                now=now,
            )
            order = await self.order_command_repo.create(order=order)
        else:
            if start_time is None or end_time is None:
                raise ValidationError('start_time and end_time are required for room bookings')
            time_slot = TimeSlot(start=start_time, end=end_time)
            if time_slot.start <= now:
                raise ValidationError('start_time must be in the future')

            # Check + insert must be atomic per room
            async with self.room_locks.hold(key=f'room:{room_id}'):
                availability = await self.availability_checker.check(
                    room_id=room_id,
                    start_time=time_slot.start,
                    end_time=time_slot.end,
                    guest_count=guest_count,
                )
                room = availability.room
                if room.store_id != store_id:
                    raise ValidationError('Room does not belong to this store')
                if not availability.available:
                    if availability.reason == UnavailableReason.CAPACITY_EXCEEDED:
                        raise ValidationError(UnavailableReason.CAPACITY_EXCEEDED.value)
                    # Booking callers see one reason for both a busy slot and a closed room
                    Logger.base.info(
                        f'🚫 [ORDER] Room {room_id} rejected for user {user_id}: {availability.reason}'
                    )
                    raise ConflictError(UnavailableReason.ROOM_NOT_AVAILABLE.value)

                price = self.pricing_engine.price(
                    items=items, vip_level=vip_level, room_deposit=room.deposit
                )
                order = self._build_order(
                    user_id=user_id,
                    store_id=store_id,
                    order_type=order_type,
                    price=price,
                    contact_phone=contact_phone,
                    room_id=room_id,
                    time_slot=time_slot,
                    guest_count=guest_count,
                    special_requests=special_requests,
                    now=now,
                )
                order = await self.order_command_repo.create(order=order)

        Logger.base.info(
            f'🧾 [ORDER] Created {order.order_number} ({order.type}) for user {user_id} '
            f'at store {store_id}, actual_amount={order.actual_amount}'
        )
        await self._emit([OrderCreatedEvent(order=order)])
        return order

    @staticmethod
    def _infer_order_type(*, room_id: Optional[str], items: Sequence[OrderItemInput]) -> OrderType:
        if room_id is not None and items:
            return OrderType.COMBO
        if room_id is not None:
            return OrderType.ROOM_BOOKING
        if items:
            return OrderType.FOOD_ORDER
        raise ValidationError('An order needs a room or at least one item')

    def _build_order(self, *, now: datetime, **kwargs) -> Order:
        return Order.create(
            id=uuid.uuid7(),
            order_number=generate_order_number(now),
            now=now,
            payment_timeout_minutes=self.payment_timeout_minutes,
            max_guest_count=self.max_guest_count,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @Logger.io
    async def get_order(self, *, order_id: UUID) -> Order:
        return await self._load(order_id=order_id)

    async def _load(self, *, order_id: UUID) -> Order:
        order = await self.order_command_repo.get_by_id(order_id=order_id)
        if not order:
            raise NotFoundError('Order not found')
        return order

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @Logger.io
    async def pay_order(self, *, order_id: UUID, payment: PaymentRequest) -> Order:
        async def plan(order: Order, now: datetime) -> TransitionPlan:
            # Expiry wins over status so a swept order still reports expiry
            if order.is_payment_overdue(now):
                raise OrderExpiredError(f'Order {order.order_number} payment window has expired')

            paid = order.mark_paid(
                payment=PaymentInfo(
                    method=payment.method,
                    transaction_id=payment.transaction_id,
                    paid_at=now,
                    amount=order.actual_amount,
                ),
                now=now,
            )
            if payment.amount is not None and to_money(payment.amount) != order.actual_amount:
                raise ValidationError(
                    f'Payment amount {payment.amount} does not match order amount {order.actual_amount}'
                )
            if payment.method == PaymentMethod.BALANCE:
                customer = await self.customer_repo.get_by_id(customer_id=order.user_id)
                if not customer or customer.balance < order.actual_amount:
                    raise ValidationError('Insufficient balance')

            return TransitionPlan(
                order=paid,
                effects=self.side_effects.for_payment(order=paid),
                events=[
                    OrderStatusChangedEvent(order=paid, previous_status=order.status),
                    OrderPaidEvent(order=paid),
                ],
            )

        return await self._run_transition(order_id=order_id, plan=plan)

    @Logger.io
    async def confirm_order(self, *, order_id: UUID) -> Order:
        async def plan(order: Order, now: datetime) -> TransitionPlan:
            confirmed = order.confirm(now=now)
            return TransitionPlan(
                order=confirmed,
                events=[OrderStatusChangedEvent(order=confirmed, previous_status=order.status)],
            )

        return await self._run_transition(order_id=order_id, plan=plan)

    @Logger.io
    async def start_order(self, *, order_id: UUID) -> Order:
        async def plan(order: Order, now: datetime) -> TransitionPlan:
            started = order.start(now=now)
            return TransitionPlan(
                order=started,
                events=[OrderStatusChangedEvent(order=started, previous_status=order.status)],
            )

        return await self._run_transition(order_id=order_id, plan=plan)

    @Logger.io
    async def complete_order(self, *, order_id: UUID) -> Order:
        async def plan(order: Order, now: datetime) -> TransitionPlan:
            completed = order.complete(now=now)

            customer = await self.customer_repo.get_by_id(customer_id=order.user_id)
            is_vip = customer.is_vip(now) if customer else False
            points = (
                self.points_policy.points_for(amount=order.actual_amount, is_vip=is_vip)
                if customer
                else 0
            )

            events: List[OrderDomainEvent] = [
                OrderStatusChangedEvent(order=completed, previous_status=order.status)
            ]
            if points > 0 and customer:
                events.append(
                    LoyaltyPointsAwardedEvent(
                        user_id=order.user_id,
                        order_number=order.order_number,
                        points=points,
                        balance=customer.points + points,
                    )
                )
            return TransitionPlan(
                order=completed,
                effects=self.side_effects.for_completion(order=completed, points=points),
                events=events,
            )

        return await self._run_transition(order_id=order_id, plan=plan)

    @Logger.io
    async def cancel_order(
        self,
        *,
        order_id: UUID,
        reason: Optional[str] = None,
        actor: CancelActor = CancelActor.USER,
    ) -> Order:
        async def plan(order: Order, now: datetime) -> TransitionPlan:
            return await self._plan_cancel(order=order, now=now, reason=reason, actor=actor)

        return await self._run_transition(order_id=order_id, plan=plan)

    @Logger.io
    async def expire_order(self, *, order_id: UUID, reason: Optional[str] = None) -> Order:
        """
        System cancellation of an unpaid order past its payment deadline.

        Re-checked under the order lock: an order paid (or cancelled) after it
        was picked for expiry raises InvalidTransitionError instead of being
        cancelled and refunded.
        """

        async def plan(order: Order, now: datetime) -> TransitionPlan:
            if not order.is_expired(now):
                raise InvalidTransitionError(
                    current=order.status.value,
                    requested=OrderStatus.CANCELLED.value,
                    message=f'Order {order.order_number} is no longer an expired unpaid order',
                )
            return await self._plan_cancel(
                order=order, now=now, reason=reason, actor=CancelActor.SYSTEM
            )

        return await self._run_transition(order_id=order_id, plan=plan)

    @Logger.io
    async def refund_order(self, *, order_id: UUID, amount: Optional[MoneyLike] = None) -> Order:
        async def plan(order: Order, now: datetime) -> TransitionPlan:
            refund_amount = order.actual_amount if amount is None else to_money(amount)
            if refund_amount <= ZERO:
                raise ValidationError('Refund amount must be positive')
            if refund_amount > order.actual_amount:
                raise ValidationError(
                    f'Refund amount {refund_amount} exceeds paid amount {order.actual_amount}'
                )

            if order.status in (OrderStatus.PAID, OrderStatus.CONFIRMED):
                return await self._plan_cancel(
                    order=order,
                    now=now,
                    reason='Refunded',
                    actor=CancelActor.MERCHANT,
                    refund_amount=refund_amount,
                )

            if order.status == OrderStatus.CANCELLED and order.is_paid and order.refund_info is None:
                planned = self._plan_refund(
                    cancelled=order, now=now, amount=refund_amount, transition='refund'
                )
                planned.events.append(
                    OrderStatusChangedEvent(order=planned.order, previous_status=order.status)
                )
                return planned

            raise InvalidTransitionError(
                current=order.status.value, requested=OrderStatus.REFUNDED.value
            )

        return await self._run_transition(order_id=order_id, plan=plan)

    @Logger.io
    async def settle_refund(self, *, order_id: UUID, refund_id: Optional[str] = None) -> Order:
        """Provider callback: the pending refund of a cancelled order has been paid out"""

        async def plan(order: Order, now: datetime) -> TransitionPlan:
            if order.status != OrderStatus.CANCELLED or not order.has_pending_refund:
                raise InvalidTransitionError(
                    current=order.status.value, requested=OrderStatus.REFUNDED.value
                )
            assert order.refund_info is not None
            refunded = order.mark_refunded(
                refund=order.refund_info.settle(refund_id=refund_id, settled_at=now), now=now
            )
            return TransitionPlan(
                order=refunded,
                events=[OrderStatusChangedEvent(order=refunded, previous_status=order.status)],
            )

        return await self._run_transition(order_id=order_id, plan=plan)

    async def _plan_cancel(
        self,
        *,
        order: Order,
        now: datetime,
        reason: Optional[str],
        actor: CancelActor,
        refund_amount: Optional[Decimal] = None,
    ) -> TransitionPlan:
        if not order.can_cancel:
            raise InvalidTransitionError(
                current=order.status.value, requested=OrderStatus.CANCELLED.value
            )

        if actor == CancelActor.USER and order.start_time is not None:
            customer = await self.customer_repo.get_by_id(customer_id=order.user_id)
            self.cancellation_policy.ensure_cancellable(
                order=order,
                actor=actor,
                is_vip=customer.is_vip(now) if customer else False,
                now=now,
            )

        cancelled = order.cancel(reason=reason, now=now)
        if not order.is_paid:
            return TransitionPlan(
                order=cancelled,
                events=[OrderStatusChangedEvent(order=cancelled, previous_status=order.status)],
            )

        planned = self._plan_refund(
            cancelled=cancelled,
            now=now,
            amount=refund_amount if refund_amount is not None else order.actual_amount,
            transition='cancel',
        )
        planned.events.append(
            OrderStatusChangedEvent(order=planned.order, previous_status=order.status)
        )
        return planned

    def _plan_refund(
        self, *, cancelled: Order, now: datetime, amount: Decimal, transition: str
    ) -> TransitionPlan:
        effects, refund_request = self.side_effects.for_refund(
            order=cancelled, amount=amount, transition=transition
        )
        assert cancelled.payment_info is not None
        refund = RefundInfo(
            amount=amount,
            method=cancelled.payment_info.method,
            status=RefundStatus.PENDING,
            requested_at=now,
        )

        if refund_request is None:
            # Balance refunds settle immediately
            refunded = cancelled.mark_refunded(
                refund=refund.settle(refund_id=None, settled_at=now), now=now
            )
            return TransitionPlan(order=refunded, effects=effects)

        return TransitionPlan(
            order=cancelled.attach_refund(refund=refund, now=now),
            effects=effects,
            refund_request=refund_request,
        )

    # ------------------------------------------------------------------
    # Transition runner
    # ------------------------------------------------------------------

    async def _run_transition(
        self,
        *,
        order_id: UUID,
        plan: Callable[[Order, datetime], Awaitable[TransitionPlan]],
    ) -> Order:
        async with self.order_locks.hold(key=f'order:{order_id}'):
            for attempt in (1, 2):
                order = await self._load(order_id=order_id)
                now = self.clock.now()
                planned = await plan(order, now)

                batch = SideEffectBatch()
                try:
                    for effect in planned.effects:
                        await batch.apply(effect)
                    if planned.refund_request is not None:
                        planned.order = await self._submit_refund(
                            order=planned.order, request=planned.refund_request
                        )
                    saved = await self.order_command_repo.update(
                        order=planned.order, expected_version=order.version
                    )
                except OrderVersionConflictError:
                    await batch.rollback()
                    if attempt == 1:
                        Logger.base.warning(
                            f'🔁 [ORDER] Version conflict on {order.order_number}, retrying once'
                        )
                        continue
                    raise InvalidTransitionError(
                        current=order.status.value,
                        requested=planned.order.status.value,
                        message=f'Order {order.order_number} was modified concurrently',
                    )
                except Exception:
                    await batch.rollback()
                    raise

                Logger.base.info(
                    f'🔄 [ORDER] {saved.order_number}: {order.status} → {saved.status}'
                )
                break

        await self._emit(planned.events)
        return saved

    async def _submit_refund(self, *, order: Order, request: RefundRequest) -> Order:
        refund_id = await self.refund_gateway.request_refund(
            order_id=request.order_id,
            order_number=request.order_number,
            amount=request.amount,
            method=request.method,
            transaction_id=request.transaction_id,
            idempotency_key=request.idempotency_key,
        )
        Logger.base.info(
            f'💸 [REFUND] Requested {request.amount} refund for {request.order_number} '
            f'via {request.method} (refund_id={refund_id})'
        )
        assert order.refund_info is not None
        return attrs.evolve(order, refund_info=attrs.evolve(order.refund_info, refund_id=refund_id))

    async def _emit(self, events: Sequence[OrderDomainEvent]) -> None:
        for event in events:
            try:
                await self.notifier.notify(event=event)
            except Exception as e:
                Logger.base.exception(
                    f'❌ [ORDER] Notifier failed for {type(event).__name__}: {e}'
                )

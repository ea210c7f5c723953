from datetime import datetime, timedelta
from decimal import Decimal
import random
import re
from typing import List, Optional

import attrs
from uuid_utils import UUID

from src.platform.exception.exceptions import ValidationError
from src.platform.logging.loguru_io import Logger
from src.service.venue.domain.enum.order_status import OrderStatus, OrderType, RefundStatus
from src.service.venue.domain.order_lifecycle import (
    CANCELLABLE_STATUSES,
    SLOT_HOLDING_STATUSES,
    ensure_transition,
)
from src.service.venue.domain.value_object.order_item import OrderItem
from src.service.venue.domain.value_object.payment_info import PaymentInfo, RefundInfo
from src.service.venue.domain.value_object.price_breakdown import PriceBreakdown
from src.service.venue.domain.value_object.time_slot import TimeSlot


PHONE_PATTERN = re.compile(r'^1[3-9]\d{9}$')

STATUS_TEXT = {
    OrderStatus.PENDING: '待支付',
    OrderStatus.PAID: '已支付',
    OrderStatus.CONFIRMED: '已确认',
    OrderStatus.IN_PROGRESS: '进行中',
    OrderStatus.COMPLETED: '已完成',
    OrderStatus.CANCELLED: '已取消',
    OrderStatus.REFUNDED: '已退款',
}


def generate_order_number(now: datetime) -> str:
    """yyMMddHHmmss + 3 random digits, e.g. 250101183000042"""
    return f'{now.strftime("%y%m%d%H%M%S")}{random.randint(0, 999):03d}'


@attrs.define
class Order:
    id: UUID
    order_number: str
    user_id: str
    store_id: str
    type: OrderType
    contact_phone: str
    expired_at: datetime
    created_at: datetime
    updated_at: datetime
    subtotal: Decimal
    deposit: Decimal
    discount: Decimal
    total_amount: Decimal
    actual_amount: Decimal
    items: List[OrderItem] = attrs.field(factory=list)
    room_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    guest_count: Optional[int] = None
    status: OrderStatus = OrderStatus.PENDING
    special_requests: Optional[str] = None
    cancel_reason: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    payment_info: Optional[PaymentInfo] = None
    refund_info: Optional[RefundInfo] = None
    version: int = 0

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        id: UUID,
        order_number: str,
        user_id: str,
        store_id: str,
        order_type: OrderType,
        price: PriceBreakdown,
        contact_phone: str,
        now: datetime,
        payment_timeout_minutes: int,
        room_id: Optional[str] = None,
        time_slot: Optional[TimeSlot] = None,
        guest_count: Optional[int] = None,
        max_guest_count: int = 50,
        special_requests: Optional[str] = None,
    ) -> 'Order':
        if not PHONE_PATTERN.match(contact_phone or ''):
            raise ValidationError('contact_phone must be a valid mainland mobile number')

        if guest_count is not None and not 1 <= guest_count <= max_guest_count:
            raise ValidationError(f'guest_count must be between 1 and {max_guest_count}')

        if order_type in (OrderType.ROOM_BOOKING, OrderType.COMBO):
            if room_id is None:
                raise ValidationError(f'room_id is required for {order_type} orders')
            if time_slot is None:
                raise ValidationError('start_time and end_time are required for room bookings')
        if order_type in (OrderType.FOOD_ORDER, OrderType.COMBO) and not price.items:
            raise ValidationError(f'At least one item is required for {order_type} orders')

        if time_slot is not None and time_slot.start <= now:
            raise ValidationError('start_time must be in the future')

        return cls(
            id=id,
            order_number=order_number,
            user_id=user_id,
            store_id=store_id,
            type=order_type,
            contact_phone=contact_phone,
            room_id=room_id,
            start_time=time_slot.start if time_slot else None,
            end_time=time_slot.end if time_slot else None,
            guest_count=guest_count,
            items=list(price.items),
            subtotal=price.subtotal,
            deposit=price.deposit,
            discount=price.discount,
            total_amount=price.total_amount,
            actual_amount=price.actual_amount,
            special_requests=special_requests,
            status=OrderStatus.PENDING,
            expired_at=now + timedelta(minutes=payment_timeout_minutes),
            created_at=now,
            updated_at=now,
        )

    # Derived fields

    @property
    def time_slot(self) -> Optional[TimeSlot]:
        if self.start_time is None or self.end_time is None:
            return None
        return TimeSlot(start=self.start_time, end=self.end_time)

    @property
    def duration_hours(self) -> float:
        slot = self.time_slot
        return slot.duration_hours if slot else 0.0

    @property
    def status_text(self) -> str:
        return STATUS_TEXT.get(self.status, '未知状态')

    @property
    def can_cancel(self) -> bool:
        return self.status in CANCELLABLE_STATUSES

    @property
    def is_paid(self) -> bool:
        return self.payment_info is not None

    @property
    def has_pending_refund(self) -> bool:
        return self.refund_info is not None and self.refund_info.status == RefundStatus.PENDING

    def is_payment_overdue(self, now: datetime) -> bool:
        """expired_at only matters while the order is unpaid"""
        return not self.is_paid and now > self.expired_at

    def is_expired(self, now: datetime) -> bool:
        return self.status == OrderStatus.PENDING and self.is_payment_overdue(now)

    def holds_slot(self, now: datetime) -> bool:
        if self.status in SLOT_HOLDING_STATUSES:
            return True
        return self.status == OrderStatus.PENDING and not self.is_payment_overdue(now)

    # Transitions (pure: return a new Order with version + 1)

    def _advance(self, target: OrderStatus, *, now: datetime, internal: bool = False, **changes) -> 'Order':
        ensure_transition(self.status, target, internal=internal)
        return attrs.evolve(self, status=target, updated_at=now, version=self.version + 1, **changes)

    def mark_paid(self, *, payment: PaymentInfo, now: datetime) -> 'Order':
        return self._advance(OrderStatus.PAID, now=now, payment_info=payment)

    def confirm(self, *, now: datetime) -> 'Order':
        return self._advance(OrderStatus.CONFIRMED, now=now, confirmed_at=now)

    def start(self, *, now: datetime) -> 'Order':
        return self._advance(OrderStatus.IN_PROGRESS, now=now, started_at=now)

    def complete(self, *, now: datetime) -> 'Order':
        return self._advance(OrderStatus.COMPLETED, now=now, completed_at=now)

    def cancel(self, *, reason: Optional[str], now: datetime) -> 'Order':
        return self._advance(
            OrderStatus.CANCELLED, now=now, cancelled_at=now, cancel_reason=reason
        )

    def attach_refund(self, *, refund: RefundInfo, now: datetime) -> 'Order':
        """Record a requested refund on a cancelled order (status unchanged)"""
        return attrs.evolve(self, refund_info=refund, updated_at=now, version=self.version + 1)

    def mark_refunded(self, *, refund: RefundInfo, now: datetime) -> 'Order':
        return self._advance(
            OrderStatus.REFUNDED, now=now, internal=True, refund_info=refund, refunded_at=now
        )

"""
Order status transition table

    PENDING     → PAID | CANCELLED
    PAID        → CONFIRMED | CANCELLED
    CONFIRMED   → IN_PROGRESS | CANCELLED
    IN_PROGRESS → COMPLETED
    COMPLETED, CANCELLED, REFUNDED are terminal

CANCELLED → REFUNDED is not a client-requestable transition; it is applied
internally when a refund for a cancelled paid order settles.
"""

from typing import Dict, FrozenSet

from src.platform.exception.exceptions import InvalidTransitionError
from src.service.venue.domain.enum.order_status import OrderStatus


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

INTERNAL_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.CANCELLED: frozenset({OrderStatus.REFUNDED}),
}

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

CANCELLABLE_STATUSES: FrozenSet[OrderStatus] = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if OrderStatus.CANCELLED in targets
)

# Statuses whose time slot blocks other bookings (PENDING holds only until expired_at)
SLOT_HOLDING_STATUSES: FrozenSet[OrderStatus] = frozenset(
    {OrderStatus.PAID, OrderStatus.CONFIRMED, OrderStatus.IN_PROGRESS}
)


def can_transition(current: OrderStatus, target: OrderStatus, *, internal: bool = False) -> bool:
    if target in ALLOWED_TRANSITIONS[current]:
        return True
    return internal and target in INTERNAL_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: OrderStatus, target: OrderStatus, *, internal: bool = False) -> None:
    if not can_transition(current, target, internal=internal):
        raise InvalidTransitionError(current=current.value, requested=target.value)

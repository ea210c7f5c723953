"""
Order Domain Events

Emitted by the order state machine after a transition is committed and
consumed by the notification fan-out.
"""

from typing import Union

import attrs

from src.service.venue.domain.entity.order_entity import Order
from src.service.venue.domain.enum.order_status import OrderStatus


@attrs.define(frozen=True)
class OrderCreatedEvent:
    order: Order


@attrs.define(frozen=True)
class OrderStatusChangedEvent:
    order: Order
    previous_status: OrderStatus


@attrs.define(frozen=True)
class OrderPaidEvent:
    order: Order


@attrs.define(frozen=True)
class LoyaltyPointsAwardedEvent:
    user_id: str
    order_number: str
    points: int
    balance: int


OrderDomainEvent = Union[
    OrderCreatedEvent, OrderStatusChangedEvent, OrderPaidEvent, LoyaltyPointsAwardedEvent
]

"""
Unit test fixtures for the venue service.

Wires the real domain services against in-memory adapters and a frozen
clock, so tests exercise the full transition flow without infrastructure.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List

import attrs
import pytest

from src.platform.realtime.connection_registry import ConnectionRegistry
from src.platform.realtime.in_memory_push_channel import InMemoryPushChannelImpl
from src.platform.state.keyed_lock import KeyedLock
from src.service.venue.app.command.expiration_sweeper import ExpirationSweeper
from src.service.venue.app.command.notification_fanout import NotificationFanout
from src.service.venue.app.command.order_side_effects import OrderSideEffects
from src.service.venue.app.command.order_state_machine import OrderStateMachine
from src.service.venue.app.query.booking_availability_checker import BookingAvailabilityChecker
from src.service.venue.domain.cancellation_policy import CancellationWindowPolicy
from src.service.venue.domain.entity.customer_entity import Customer
from src.service.venue.domain.entity.room_entity import Room
from src.service.venue.domain.entity.store_entity import Store
from src.service.venue.domain.pricing_engine import LoyaltyPointsPolicy, PricingEngine
from src.service.venue.domain.value_object.order_item import OrderItemInput
from src.service.venue.driven_adapter.notification.notification_queue_in_memory_impl import (
    NotificationQueueInMemoryImpl,
)
from src.service.venue.driven_adapter.payment.mock_refund_gateway_impl import (
    MockRefundGatewayImpl,
)
from src.service.venue.driven_adapter.repo.customer_repo_in_memory_impl import (
    CustomerRepoInMemoryImpl,
)
from src.service.venue.driven_adapter.repo.order_repo_in_memory_impl import OrderRepoInMemoryImpl
from src.service.venue.driven_adapter.repo.room_repo_in_memory_impl import RoomRepoInMemoryImpl
from src.service.venue.driven_adapter.repo.store_repo_in_memory_impl import StoreRepoInMemoryImpl


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

STORE_ID = 'store-1'
ROOM_ID = 'room-1'
USER_ID = 'user-1'
VIP_USER_ID = 'user-vip'
PHONE = '13800138000'


class FrozenClock:
    """Manually advanced clock"""

    def __init__(self, now: datetime = NOW) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@attrs.define
class VenueSystem:
    clock: FrozenClock
    order_repo: OrderRepoInMemoryImpl
    room_repo: RoomRepoInMemoryImpl
    customer_repo: CustomerRepoInMemoryImpl
    store_repo: StoreRepoInMemoryImpl
    refund_gateway: MockRefundGatewayImpl
    registry: ConnectionRegistry
    push_channel: InMemoryPushChannelImpl
    notification_queue: NotificationQueueInMemoryImpl
    fanout: NotificationFanout
    checker: BookingAvailabilityChecker
    state_machine: OrderStateMachine
    sweeper: ExpirationSweeper


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def system(clock: FrozenClock) -> VenueSystem:
    order_repo = OrderRepoInMemoryImpl()
    room_repo = RoomRepoInMemoryImpl()
    customer_repo = CustomerRepoInMemoryImpl()
    store_repo = StoreRepoInMemoryImpl()
    refund_gateway = MockRefundGatewayImpl()

    store_repo.add(Store(id=STORE_ID, name='星光KTV'))
    room_repo.add(
        Room(
            id=ROOM_ID,
            store_id=STORE_ID,
            name='豪华包间A',
            capacity=10,
            price=Decimal('188.00'),
            deposit=Decimal('100.00'),
        )
    )
    customer_repo.add(Customer(id=USER_ID, phone=PHONE, balance=Decimal('1000.00')))
    customer_repo.add(
        Customer(
            id=VIP_USER_ID,
            phone='13900139000',
            vip_level=3,
            vip_expire_at=NOW + timedelta(days=365),
            balance=Decimal('1000.00'),
        )
    )

    registry = ConnectionRegistry(max_connections_per_user=5)
    push_channel = InMemoryPushChannelImpl(buffer_size=16)
    notification_queue = NotificationQueueInMemoryImpl(clock=clock, max_length=100, ttl_days=30)
    fanout = NotificationFanout(
        connection_registry=registry,
        push_channel=push_channel,
        notification_queue=notification_queue,
        clock=clock,
        write_timeout_seconds=1.0,
    )
    checker = BookingAvailabilityChecker(
        room_repo=room_repo, order_query_repo=order_repo, clock=clock
    )
    state_machine = OrderStateMachine(
        order_command_repo=order_repo,
        customer_repo=customer_repo,
        store_repo=store_repo,
        availability_checker=checker,
        pricing_engine=PricingEngine(),
        points_policy=LoyaltyPointsPolicy(),
        cancellation_policy=CancellationWindowPolicy(),
        side_effects=OrderSideEffects(
            customer_repo=customer_repo, store_repo=store_repo, room_repo=room_repo
        ),
        refund_gateway=refund_gateway,
        notifier=fanout,
        clock=clock,
        room_locks=KeyedLock(),
        order_locks=KeyedLock(),
    )
    sweeper = ExpirationSweeper(
        order_query_repo=order_repo, order_state_machine=state_machine, clock=clock
    )

    return VenueSystem(
        clock=clock,
        order_repo=order_repo,
        room_repo=room_repo,
        customer_repo=customer_repo,
        store_repo=store_repo,
        refund_gateway=refund_gateway,
        registry=registry,
        push_channel=push_channel,
        notification_queue=notification_queue,
        fanout=fanout,
        checker=checker,
        state_machine=state_machine,
        sweeper=sweeper,
    )


@pytest.fixture
def beer_items() -> List[OrderItemInput]:
    return [
        OrderItemInput(dish_id='dish-1', name='啤酒', unit_price=Decimal('30.00'), quantity=2),
        OrderItemInput(dish_id='dish-2', name='果盘', unit_price=Decimal('40.00'), quantity=1),
    ]


@pytest.fixture
def evening_slot() -> tuple[datetime, datetime]:
    """18:00-20:00 on the day after NOW"""
    start = NOW.replace(hour=18) + timedelta(days=1)
    return start, start + timedelta(hours=2)


@pytest.fixture
def create_booking(system: VenueSystem, evening_slot: tuple[datetime, datetime]):
    """Async factory for a PENDING room booking on ROOM_ID"""

    async def _create(
        *,
        user_id: str = USER_ID,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        guest_count: int | None = 4,
        items: List[OrderItemInput] | None = None,
    ):
        start, end = evening_slot
        return await system.state_machine.create_order(
            user_id=user_id,
            store_id=STORE_ID,
            contact_phone=PHONE,
            room_id=ROOM_ID,
            start_time=start_time or start,
            end_time=end_time or end,
            guest_count=guest_count,
            items=items or [],
        )

    return _create

"""
https://python-dependency-injector.ets-labs.org/index.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.platform.realtime.connection_registry import ConnectionRegistry
from src.platform.realtime.in_memory_push_channel import InMemoryPushChannelImpl
from src.platform.state.keyed_lock import KeyedLock
from src.platform.state.redis_client import redis_client
from src.platform.types.clock import SystemClock
from src.service.venue.app.command.connect_client_use_case import ConnectClientUseCase
from src.service.venue.app.command.expiration_sweeper import ExpirationSweeper
from src.service.venue.app.command.notification_fanout import NotificationFanout
from src.service.venue.app.command.order_side_effects import OrderSideEffects
from src.service.venue.app.command.order_state_machine import OrderStateMachine
from src.service.venue.app.command.update_room_status_use_case import UpdateRoomStatusUseCase
from src.service.venue.app.query.booking_availability_checker import BookingAvailabilityChecker
from src.service.venue.domain.cancellation_policy import CancellationWindowPolicy
from src.service.venue.domain.pricing_engine import LoyaltyPointsPolicy, PricingEngine
from src.service.venue.driven_adapter.notification.notification_queue_in_memory_impl import (
    NotificationQueueInMemoryImpl,
)
from src.service.venue.driven_adapter.notification.notification_queue_redis_impl import (
    NotificationQueueRedisImpl,
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


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    clock = providers.Singleton(SystemClock)

    # Infrastructure
    redis_client = providers.Object(redis_client)
    room_locks = providers.Singleton(KeyedLock)
    order_locks = providers.Singleton(KeyedLock)

    # Repositories (one in-memory order store serves both command and query sides)
    order_repo = providers.Singleton(OrderRepoInMemoryImpl)
    order_command_repo = order_repo
    order_query_repo = order_repo
    room_repo = providers.Singleton(RoomRepoInMemoryImpl)
    customer_repo = providers.Singleton(CustomerRepoInMemoryImpl)
    store_repo = providers.Singleton(StoreRepoInMemoryImpl)

    refund_gateway = providers.Singleton(MockRefundGatewayImpl)

    # Realtime
    connection_registry = providers.Singleton(
        ConnectionRegistry,
        max_connections_per_user=config_service.provided.MAX_CONNECTIONS_PER_USER,
    )
    push_channel = providers.Singleton(
        InMemoryPushChannelImpl,
        buffer_size=config_service.provided.PUSH_STREAM_BUFFER_SIZE,
    )
    notification_queue = providers.Selector(
        config_service.provided.NOTIFICATION_QUEUE_BACKEND,
        memory=providers.Singleton(
            NotificationQueueInMemoryImpl,
            clock=clock,
            max_length=config_service.provided.NOTIFICATION_QUEUE_MAX_LENGTH,
            ttl_days=config_service.provided.NOTIFICATION_TTL_DAYS,
        ),
        redis=providers.Singleton(
            NotificationQueueRedisImpl,
            client=redis_client,
            key_prefix=config_service.provided.NOTIFICATION_KEY_PREFIX,
            max_length=config_service.provided.NOTIFICATION_QUEUE_MAX_LENGTH,
            ttl_days=config_service.provided.NOTIFICATION_TTL_DAYS,
        ),
    )
    notification_fanout = providers.Singleton(
        NotificationFanout,
        connection_registry=connection_registry,
        push_channel=push_channel,
        notification_queue=notification_queue,
        clock=clock,
        write_timeout_seconds=config_service.provided.NOTIFICATION_WRITE_TIMEOUT_SECONDS,
    )

    # Domain services
    pricing_engine = providers.Singleton(
        PricingEngine,
        max_vip_level=config_service.provided.VIP_MAX_LEVEL,
        deposit_exempt_level=config_service.provided.VIP_DEPOSIT_EXEMPT_LEVEL,
        discount_rate_per_level=config_service.provided.VIP_DISCOUNT_RATE_PER_LEVEL,
        max_discount_rate=config_service.provided.VIP_MAX_DISCOUNT_RATE,
    )
    points_policy = providers.Singleton(
        LoyaltyPointsPolicy,
        order_ratio=config_service.provided.POINTS_ORDER_RATIO,
        vip_multiplier=config_service.provided.POINTS_VIP_MULTIPLIER,
    )
    cancellation_policy = providers.Singleton(
        CancellationWindowPolicy,
        enabled=config_service.provided.BOOKING_CANCEL_WINDOW_ENABLED,
        cancel_hours=config_service.provided.BOOKING_CANCEL_HOURS,
        vip_cancel_hours=config_service.provided.BOOKING_VIP_CANCEL_HOURS,
    )

    # Use cases
    availability_checker = providers.Singleton(
        BookingAvailabilityChecker,
        room_repo=room_repo,
        order_query_repo=order_query_repo,
        clock=clock,
    )
    order_side_effects = providers.Singleton(
        OrderSideEffects,
        customer_repo=customer_repo,
        store_repo=store_repo,
        room_repo=room_repo,
    )
    order_state_machine = providers.Singleton(
        OrderStateMachine,
        order_command_repo=order_command_repo,
        customer_repo=customer_repo,
        store_repo=store_repo,
        availability_checker=availability_checker,
        pricing_engine=pricing_engine,
        points_policy=points_policy,
        cancellation_policy=cancellation_policy,
        side_effects=order_side_effects,
        refund_gateway=refund_gateway,
        notifier=notification_fanout,
        clock=clock,
        room_locks=room_locks,
        order_locks=order_locks,
        payment_timeout_minutes=config_service.provided.ORDER_PAYMENT_TIMEOUT_MINUTES,
        max_guest_count=config_service.provided.MAX_GUEST_COUNT,
    )
    expiration_sweeper = providers.Singleton(
        ExpirationSweeper,
        order_query_repo=order_query_repo,
        order_state_machine=order_state_machine,
        clock=clock,
        interval_seconds=config_service.provided.EXPIRATION_SWEEP_INTERVAL_SECONDS,
    )
    connect_client_use_case = providers.Factory(
        ConnectClientUseCase,
        connection_registry=connection_registry,
        push_channel=push_channel,
        clock=clock,
    )
    update_room_status_use_case = providers.Factory(
        UpdateRoomStatusUseCase,
        room_repo=room_repo,
        notification_fanout=notification_fanout,
    )


container = Container()

from decimal import Decimal
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Venue Booking Order Engine'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Order lifecycle
    ORDER_PAYMENT_TIMEOUT_MINUTES: int = 15
    MAX_GUEST_COUNT: int = 50

    # Pricing
    VIP_MAX_LEVEL: int = 5
    VIP_DEPOSIT_EXEMPT_LEVEL: int = 3  # VIP3+ books without deposit
    VIP_DISCOUNT_RATE_PER_LEVEL: Decimal = Decimal('0.02')
    VIP_MAX_DISCOUNT_RATE: Decimal = Decimal('0.10')

    # Loyalty points
    POINTS_ORDER_RATIO: Decimal = Decimal('0.05')
    POINTS_VIP_MULTIPLIER: int = 2

    # Cancellation window (user-initiated cancellation of timed bookings)
    BOOKING_CANCEL_WINDOW_ENABLED: bool = True
    BOOKING_CANCEL_HOURS: int = 2
    BOOKING_VIP_CANCEL_HOURS: int = 1

    # Expiration sweeper
    EXPIRATION_SWEEP_INTERVAL_SECONDS: float = 60.0

    # Realtime sessions
    MAX_CONNECTIONS_PER_USER: int = 5
    PUSH_STREAM_BUFFER_SIZE: int = 32

    # Durable notification queue
    NOTIFICATION_QUEUE_BACKEND: str = 'memory'  # memory | redis
    NOTIFICATION_QUEUE_MAX_LENGTH: int = 100
    NOTIFICATION_TTL_DAYS: int = 30
    NOTIFICATION_WRITE_TIMEOUT_SECONDS: float = 2.0
    NOTIFICATION_KEY_PREFIX: str = 'notifications:'

    @field_validator('NOTIFICATION_QUEUE_BACKEND', mode='before')
    @classmethod
    def normalize_queue_backend(cls, v: str) -> str:
        backend = str(v).strip().lower()
        if backend not in ('memory', 'redis'):
            raise ValueError(f'Unsupported notification queue backend: {v}')
        return backend

    # Redis Configuration
    REDIS_HOST: str = 'localhost'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ''
    REDIS_DECODE_RESPONSES: bool = True

    # Redis Connection Pool Configuration
    REDIS_POOL_MAX_CONNECTIONS: int = 50  # Max connections in pool
    REDIS_POOL_SOCKET_TIMEOUT: int = 5  # Socket read/write timeout (seconds)
    REDIS_POOL_SOCKET_CONNECT_TIMEOUT: int = 5  # Connection timeout (seconds)
    REDIS_POOL_SOCKET_KEEPALIVE: bool = True  # Enable TCP keepalive
    REDIS_POOL_HEALTH_CHECK_INTERVAL: int = 30  # Health check interval (seconds)

    @property
    def REDIS_URL(self) -> str:
        return f'redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}'


settings = Settings()  # type: ignore

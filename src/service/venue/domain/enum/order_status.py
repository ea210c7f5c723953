from enum import StrEnum


class OrderStatus(StrEnum):
    PENDING = 'pending'
    PAID = 'paid'
    CONFIRMED = 'confirmed'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    REFUNDED = 'refunded'


class OrderType(StrEnum):
    ROOM_BOOKING = 'room_booking'
    FOOD_ORDER = 'food_order'
    COMBO = 'combo'


class PaymentMethod(StrEnum):
    WECHAT = 'wechat'
    ALIPAY = 'alipay'
    BALANCE = 'balance'


class RefundStatus(StrEnum):
    PENDING = 'pending'
    SUCCEEDED = 'succeeded'


class CancelActor(StrEnum):
    USER = 'user'
    MERCHANT = 'merchant'
    SYSTEM = 'system'

from enum import StrEnum


class PushEventType(StrEnum):
    """Wire event names delivered to client sessions"""

    ORDER_STATUS_UPDATE = 'order_status_update'
    ORDER_PAYMENT_SUCCESS = 'order_payment_success'
    ROOM_STATUS_UPDATE = 'room_status_update'
    NOTIFICATION = 'notification'
    SYSTEM_ANNOUNCEMENT = 'system_announcement'
    CONNECTION_STATUS = 'connection_status'


class NotificationKind(StrEnum):
    """Type tag stored on durable notification records"""

    ORDER_CREATED = 'order_created'
    NEW_ORDER = 'new_order'
    ORDER_STATUS = 'order_status'
    PAYMENT_SUCCESS = 'payment_success'
    POINTS_CHANGE = 'points_change'
    SYSTEM_ANNOUNCEMENT = 'system_announcement'
    CUSTOM = 'custom'

from typing import Any, Dict

from src.service.venue.domain.entity.order_entity import Order


def build_order_snapshot(order: Order) -> Dict[str, Any]:
    """JSON-safe view of an order for push payloads and notification data"""
    return {
        'id': str(order.id),
        'orderNumber': order.order_number,
        'userId': order.user_id,
        'storeId': order.store_id,
        'roomId': order.room_id,
        'type': order.type.value,
        'status': order.status.value,
        'statusText': order.status_text,
        'startTime': order.start_time.isoformat() if order.start_time else None,
        'endTime': order.end_time.isoformat() if order.end_time else None,
        'totalAmount': str(order.total_amount),
        'actualAmount': str(order.actual_amount),
    }

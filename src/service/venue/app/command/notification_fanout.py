"""
Notification Fan-out

Turns order/room/system events into:
- live pushes to every connected session of the target user and store
- durable notification records for offline delivery (per-identity queue)

Both paths are best-effort: failures are logged and never propagate to the
caller, so a dead socket or an unreachable queue backend cannot roll back an
order transition.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Set

import anyio
import uuid_utils as uuid

from src.platform.exception.exceptions import ValidationError
from src.platform.logging.loguru_io import Logger
from src.platform.realtime.connection_registry import ConnectionRegistry
from src.platform.realtime.i_push_channel import IPushChannel
from src.platform.types.clock import Clock
from src.service.venue.app.dto.notification_page import NotificationPage
from src.service.venue.app.dto.order_snapshot import build_order_snapshot
from src.service.venue.app.interface.i_notification_queue import INotificationQueue
from src.service.venue.domain.domain_event.order_domain_event import (
    LoyaltyPointsAwardedEvent,
    OrderCreatedEvent,
    OrderDomainEvent,
    OrderPaidEvent,
    OrderStatusChangedEvent,
)
from src.service.venue.domain.domain_event.push_event import NotificationDraft, PushEvent
from src.service.venue.domain.entity.notification_entity import Notification
from src.service.venue.domain.entity.order_entity import STATUS_TEXT
from src.service.venue.domain.entity.room_entity import Room
from src.service.venue.domain.enum.order_status import OrderStatus
from src.service.venue.domain.enum.push_event_type import NotificationKind, PushEventType


def user_identity(user_id: str) -> str:
    return f'user:{user_id}'


def store_identity(store_id: str) -> str:
    return f'store:{store_id}'


# Customer-facing wording for status-change notices
NOTICE_STATUS_TEXT = {**STATUS_TEXT, OrderStatus.PENDING: '等待确认'}


class NotificationFanout:
    def __init__(
        self,
        *,
        connection_registry: ConnectionRegistry,
        push_channel: IPushChannel,
        notification_queue: INotificationQueue,
        clock: Clock,
        write_timeout_seconds: float = 2.0,
        max_page_size: int = 100,
    ) -> None:
        self.connection_registry = connection_registry
        self.push_channel = push_channel
        self.notification_queue = notification_queue
        self.clock = clock
        self.write_timeout_seconds = write_timeout_seconds
        self.max_page_size = max_page_size

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def publish(self, *, event: PushEvent) -> int:
        """
        Deliver one event. Never raises.

        Returns:
            Number of live connections the envelope was queued to
        """
        now = self.clock.now()
        delivered = 0
        try:
            delivered = await self._push_live(event=event, now=now)
        except Exception as e:
            Logger.base.exception(f'❌ [FANOUT] Live push failed for {event.type}: {e}')

        for identity, draft in self._durable_targets(event):
            await self._append_durable(identity=identity, draft=draft, now=now)

        return delivered

    def _resolve_targets(self, event: PushEvent) -> Set[str]:
        if event.broadcast:
            return self.connection_registry.all_connections()

        conn_ids: Set[str] = set()
        if event.target_user_id is not None:
            conn_ids |= self.connection_registry.connections_for_user(user_id=event.target_user_id)
        if event.target_store_id is not None:
            conn_ids |= self.connection_registry.connections_for_store(
                store_id=event.target_store_id
            )
        return conn_ids

    async def _push_live(self, *, event: PushEvent, now: datetime) -> int:
        conn_ids = self._resolve_targets(event)
        if not conn_ids:
            Logger.base.debug(f'📡 [FANOUT] No live connections for {event.type}')
            return 0

        envelope = {'event': event.type.value, 'data': event.payload, 'timestamp': now.isoformat()}
        delivered = 0
        for conn_id in conn_ids:
            try:
                if await self.push_channel.send(conn_id=conn_id, envelope=envelope):
                    delivered += 1
            except Exception as e:
                Logger.base.warning(f'⚠️ [FANOUT] Push to {conn_id} failed: {e}')

        Logger.base.info(
            f'📡 [FANOUT] {event.type}: delivered={delivered}/{len(conn_ids)} connections'
        )
        return delivered

    @staticmethod
    def _durable_targets(event: PushEvent) -> List[tuple[str, NotificationDraft]]:
        targets = []
        if event.user_notice is not None and event.target_user_id is not None:
            targets.append((user_identity(event.target_user_id), event.user_notice))
        if event.store_notice is not None and event.target_store_id is not None:
            targets.append((store_identity(event.target_store_id), event.store_notice))
        return targets

    async def _append_durable(self, *, identity: str, draft: NotificationDraft, now: datetime) -> None:
        notification = Notification(
            id=str(uuid.uuid7()),
            type=draft.type.value,
            title=draft.title,
            message=draft.message,
            data=draft.data,
            timestamp=now,
        )
        try:
            with anyio.move_on_after(self.write_timeout_seconds) as scope:
                await self.notification_queue.append(identity=identity, notification=notification)
            if scope.cancelled_caught:
                Logger.base.warning(
                    f'⏱️ [FANOUT] Durable write for {identity} timed out '
                    f'after {self.write_timeout_seconds}s, dropped'
                )
        except Exception as e:
            Logger.base.error(f'❌ [FANOUT] Durable write for {identity} failed: {e}')

    # ------------------------------------------------------------------
    # Order events (IOrderEventNotifier)
    # ------------------------------------------------------------------

    async def notify(self, *, event: OrderDomainEvent) -> None:
        try:
            push_event = self._to_push_event(event)
        except Exception as e:
            Logger.base.exception(f'❌ [FANOUT] Cannot map {type(event).__name__}: {e}')
            return
        if push_event is not None:
            await self.publish(event=push_event)

    def _to_push_event(self, event: OrderDomainEvent) -> Optional[PushEvent]:
        if isinstance(event, OrderCreatedEvent):
            order = event.order
            snapshot = build_order_snapshot(order)
            return PushEvent(
                type=PushEventType.ORDER_STATUS_UPDATE,
                payload={'orderId': str(order.id), 'status': order.status.value, 'orderData': snapshot},
                target_user_id=order.user_id,
                target_store_id=order.store_id,
                user_notice=NotificationDraft(
                    type=NotificationKind.ORDER_CREATED,
                    title='订单已创建',
                    message=f'您的订单{order.order_number}已成功创建',
                    data={'orderId': str(order.id), 'orderData': snapshot},
                ),
                store_notice=NotificationDraft(
                    type=NotificationKind.NEW_ORDER,
                    title='新订单',
                    message=f'收到新订单{order.order_number}',
                    data={'orderId': str(order.id), 'orderData': snapshot},
                ),
            )

        if isinstance(event, OrderStatusChangedEvent):
            order = event.order
            return PushEvent(
                type=PushEventType.ORDER_STATUS_UPDATE,
                payload={
                    'orderId': str(order.id),
                    'status': order.status.value,
                    'previousStatus': event.previous_status.value,
                    'orderData': build_order_snapshot(order),
                },
                target_user_id=order.user_id,
                target_store_id=order.store_id,
                user_notice=NotificationDraft(
                    type=NotificationKind.ORDER_STATUS,
                    title='订单状态更新',
                    message=(
                        f'您的订单{order.order_number}状态已更新为'
                        f'{NOTICE_STATUS_TEXT.get(order.status, "未知状态")}'
                    ),
                    data={'orderId': str(order.id), 'status': order.status.value},
                ),
            )

        if isinstance(event, OrderPaidEvent):
            order = event.order
            amount = str(order.actual_amount)
            payment = order.payment_info
            return PushEvent(
                type=PushEventType.ORDER_PAYMENT_SUCCESS,
                payload={
                    'orderId': str(order.id),
                    'paymentData': {
                        'orderNumber': order.order_number,
                        'amount': amount,
                        'method': payment.method.value if payment else None,
                        'transactionId': payment.transaction_id if payment else None,
                    },
                },
                target_user_id=order.user_id,
                target_store_id=order.store_id,
                user_notice=NotificationDraft(
                    type=NotificationKind.PAYMENT_SUCCESS,
                    title='支付成功',
                    message=f'订单{order.order_number}支付成功，金额¥{amount}',
                    data={'orderId': str(order.id), 'amount': amount},
                ),
            )

        if isinstance(event, LoyaltyPointsAwardedEvent):
            message = (
                f'订单{event.order_number}完成，获得{event.points}积分，当前余额{event.balance}积分'
            )
            data = {'pointsChange': event.points, 'newBalance': event.balance}
            return PushEvent(
                type=PushEventType.NOTIFICATION,
                payload={'title': '积分到账', 'message': message, 'type': 'info', 'data': data},
                target_user_id=event.user_id,
                user_notice=NotificationDraft(
                    type=NotificationKind.POINTS_CHANGE, title='积分到账', message=message, data=data
                ),
            )

        Logger.base.warning(f'⚠️ [FANOUT] Unhandled order event {type(event).__name__}')
        return None

    # ------------------------------------------------------------------
    # Other producers
    # ------------------------------------------------------------------

    async def notify_room_status(self, *, room: Room) -> int:
        """Merchant dashboards only; room status is not kept in the durable queue"""
        return await self.publish(
            event=PushEvent(
                type=PushEventType.ROOM_STATUS_UPDATE,
                payload={
                    'roomId': room.id,
                    'status': room.status.value,
                    'roomData': {
                        'name': room.name,
                        'capacity': room.capacity,
                        'isAvailable': room.is_available,
                    },
                },
                target_store_id=room.store_id,
            )
        )

    async def send_notification(
        self,
        *,
        user_id: str,
        title: str,
        message: str,
        level: str = 'info',
        data: Optional[Dict[str, Any]] = None,
    ) -> int:
        data = data or {}
        return await self.publish(
            event=PushEvent(
                type=PushEventType.NOTIFICATION,
                payload={'title': title, 'message': message, 'type': level, 'data': data},
                target_user_id=user_id,
                user_notice=NotificationDraft(
                    type=NotificationKind.CUSTOM, title=title, message=message, data=data
                ),
            )
        )

    async def broadcast_system_announcement(
        self,
        *,
        title: str,
        message: str,
        level: str = 'info',
        target_user_ids: Optional[Sequence[str]] = None,
    ) -> int:
        """
        Targeted announcements are queued for each user; untargeted ones go
        to every live connection and are not persisted.
        """
        payload = {'title': title, 'message': message, 'type': level}
        if not target_user_ids:
            return await self.publish(
                event=PushEvent(
                    type=PushEventType.SYSTEM_ANNOUNCEMENT, payload=payload, broadcast=True
                )
            )

        delivered = 0
        for user_id in target_user_ids:
            delivered += await self.publish(
                event=PushEvent(
                    type=PushEventType.SYSTEM_ANNOUNCEMENT,
                    payload=payload,
                    target_user_id=user_id,
                    user_notice=NotificationDraft(
                        type=NotificationKind.SYSTEM_ANNOUNCEMENT,
                        title=title,
                        message=message,
                        data={'isSystemAnnouncement': True},
                    ),
                )
            )
        return delivered

    # ------------------------------------------------------------------
    # Durable queue read API
    # ------------------------------------------------------------------

    @Logger.io
    async def list_notifications(
        self, *, identity: str, page: int = 1, limit: int = 20
    ) -> NotificationPage:
        if page < 1:
            raise ValidationError('page must be >= 1')
        if not 1 <= limit <= self.max_page_size:
            raise ValidationError(f'limit must be between 1 and {self.max_page_size}')

        notifications, total = await self.notification_queue.page(
            identity=identity, page=page, limit=limit
        )
        return NotificationPage(
            notifications=notifications, total=total, has_more=page * limit < total
        )

    @Logger.io
    async def mark_read(self, *, identity: str, ids: Optional[List[str]] = None) -> int:
        """Acknowledged notifications leave the queue; no ids acknowledges everything"""
        return await self.notification_queue.remove(identity=identity, ids=ids)

    @Logger.io
    async def clear(self, *, identity: str) -> None:
        await self.notification_queue.clear(identity=identity)

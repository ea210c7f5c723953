from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from src.platform.types.clock import Clock
from src.service.venue.app.interface.i_notification_queue import INotificationQueue
from src.service.venue.domain.entity.notification_entity import Notification


class NotificationQueueInMemoryImpl(INotificationQueue):
    """
    Single-process queue with the same semantics as the Redis backend:
    newest first, trimmed to max_length, TTL refreshed on append.
    """

    def __init__(self, *, clock: Clock, max_length: int = 100, ttl_days: int = 30) -> None:
        self.clock = clock
        self.max_length = max_length
        self.ttl = timedelta(days=ttl_days)
        # identity → (notifications newest first, expires_at)
        self._queues: Dict[str, Tuple[List[Notification], datetime]] = {}

    def _live_entries(self, identity: str) -> List[Notification]:
        entry = self._queues.get(identity)
        if entry is None:
            return []
        notifications, expires_at = entry
        if self.clock.now() >= expires_at:
            del self._queues[identity]
            return []
        return notifications

    async def append(self, *, identity: str, notification: Notification) -> None:
        notifications = [notification, *self._live_entries(identity)][: self.max_length]
        self._queues[identity] = (notifications, self.clock.now() + self.ttl)

    async def page(self, *, identity: str, page: int, limit: int) -> Tuple[List[Notification], int]:
        notifications = self._live_entries(identity)
        start = (page - 1) * limit
        return notifications[start : start + limit], len(notifications)

    async def remove(self, *, identity: str, ids: Optional[List[str]] = None) -> int:
        notifications = self._live_entries(identity)
        if ids is None:
            self._queues.pop(identity, None)
            return len(notifications)

        id_set = set(ids)
        kept = [n for n in notifications if n.id not in id_set]
        if kept:
            self._queues[identity] = (kept, self._queues[identity][1])
        else:
            self._queues.pop(identity, None)
        return len(notifications) - len(kept)

    async def clear(self, *, identity: str) -> None:
        self._queues.pop(identity, None)

"""
Redis-backed durable notification queue

Key layout: {prefix}{identity} → LIST of JSON notifications, newest at index 0.

    append: MULTI LPUSH / LTRIM 0 max-1 / EXPIRE ttl EXEC
    page:   LRANGE (page-1)*limit .. page*limit-1 + LLEN
    remove: WATCH + rewrite of the surviving entries
"""

from typing import List, Optional, Tuple

import orjson

from src.platform.logging.loguru_io import Logger
from src.platform.state.redis_client import RedisClient, redis_client
from src.service.venue.app.interface.i_notification_queue import INotificationQueue
from src.service.venue.domain.entity.notification_entity import Notification


class NotificationQueueRedisImpl(INotificationQueue):
    def __init__(
        self,
        *,
        client: RedisClient = redis_client,
        key_prefix: str = 'notifications:',
        max_length: int = 100,
        ttl_days: int = 30,
    ) -> None:
        self._client = client
        self.key_prefix = key_prefix
        self.max_length = max_length
        self.ttl_seconds = ttl_days * 24 * 60 * 60

    def _key(self, identity: str) -> str:
        return f'{self.key_prefix}{identity}'

    @staticmethod
    def _encode(notification: Notification) -> str:
        return orjson.dumps(notification.to_dict()).decode()

    @staticmethod
    def _decode(raw: str | bytes) -> Notification:
        return Notification.from_dict(orjson.loads(raw))

    @Logger.io
    async def append(self, *, identity: str, notification: Notification) -> None:
        key = self._key(identity)
        async with self._client.get_client().pipeline(transaction=True) as pipe:
            pipe.lpush(key, self._encode(notification))
            pipe.ltrim(key, 0, self.max_length - 1)
            pipe.expire(key, self.ttl_seconds)
            await pipe.execute()

    async def page(self, *, identity: str, page: int, limit: int) -> Tuple[List[Notification], int]:
        key = self._key(identity)
        start = (page - 1) * limit
        async with self._client.get_client().pipeline(transaction=False) as pipe:
            pipe.lrange(key, start, start + limit - 1)
            pipe.llen(key)
            raw_items, total = await pipe.execute()
        return [self._decode(raw) for raw in raw_items], int(total)

    @Logger.io
    async def remove(self, *, identity: str, ids: Optional[List[str]] = None) -> int:
        key = self._key(identity)
        client = self._client.get_client()

        if ids is None:
            async with client.pipeline(transaction=True) as pipe:
                pipe.llen(key)
                pipe.delete(key)
                total, _ = await pipe.execute()
            return int(total)

        id_set = set(ids)

        async def _rewrite(pipe) -> int:
            raw_items = await pipe.lrange(key, 0, -1)
            kept = [raw for raw in raw_items if orjson.loads(raw)['id'] not in id_set]
            ttl = await pipe.ttl(key)
            pipe.multi()
            pipe.delete(key)
            if kept:
                pipe.rpush(key, *kept)
                pipe.expire(key, ttl if ttl > 0 else self.ttl_seconds)
            return len(raw_items) - len(kept)

        return await client.transaction(_rewrite, key, value_from_callable=True)

    async def clear(self, *, identity: str) -> None:
        await self._client.get_client().delete(self._key(identity))

"""
Per-key async lock

Serializes critical sections that share a key (e.g. "room:{id}" for
check-then-insert booking, "order:{id}" for status transitions) while
letting unrelated keys proceed concurrently.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

import anyio

from src.platform.logging.loguru_io import Logger


class KeyedLock:
    """
    In-process lock registry keyed by string

    - Lock objects are created lazily on first acquire
    - Entries are removed once no task holds or waits on the key,
      so the registry does not grow with the number of orders/rooms
    """

    def __init__(self) -> None:
        self._locks: Dict[str, anyio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, *, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = anyio.Lock()
            self._locks[key] = lock
        self._holders[key] = self._holders.get(key, 0) + 1

        try:
            async with lock:
                Logger.base.debug(f'🔒 [LOCK] Acquired lock: {key}')
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]
                Logger.base.debug(f'🔓 [LOCK] Released and dropped lock: {key}')

    def is_locked(self, *, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def holder_count(self, *, key: str) -> int:
        """Tasks currently holding or waiting on key"""
        return self._holders.get(key, 0)

    def __len__(self) -> int:
        return len(self._locks)

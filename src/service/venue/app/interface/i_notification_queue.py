from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from src.service.venue.domain.entity.notification_entity import Notification


class INotificationQueue(ABC):
    """
    Durable per-identity notification queue

    Most recent first, capped at max_length entries, TTL refreshed on every append.
    """

    @abstractmethod
    async def append(self, *, identity: str, notification: Notification) -> None:
        pass

    @abstractmethod
    async def page(self, *, identity: str, page: int, limit: int) -> Tuple[List[Notification], int]:
        """
        Returns:
            (notifications on the page, total entries in the queue)
        """
        pass

    @abstractmethod
    async def remove(self, *, identity: str, ids: Optional[List[str]] = None) -> int:
        """
        Drop acknowledged notifications; all of them when ids is None

        Returns:
            Number of entries removed
        """
        pass

    @abstractmethod
    async def clear(self, *, identity: str) -> None:
        pass

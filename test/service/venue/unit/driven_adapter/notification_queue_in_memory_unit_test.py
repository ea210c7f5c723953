from datetime import datetime, timedelta, timezone

import pytest

from src.service.venue.domain.entity.notification_entity import Notification
from src.service.venue.driven_adapter.notification.notification_queue_in_memory_impl import (
    NotificationQueueInMemoryImpl,
)


def _notification(n: int, at: datetime) -> Notification:
    return Notification(id=f'n-{n}', type='custom', title=f'#{n}', message='m', timestamp=at)


@pytest.mark.unit
class TestNotificationQueueInMemory:
    @pytest.mark.asyncio
    async def test_newest_first_and_trimmed(self, clock) -> None:
        queue = NotificationQueueInMemoryImpl(clock=clock, max_length=3)
        for n in range(5):
            await queue.append(identity='user:1', notification=_notification(n, clock.now()))

        items, total = await queue.page(identity='user:1', page=1, limit=10)

        assert total == 3
        assert [item.id for item in items] == ['n-4', 'n-3', 'n-2']

    @pytest.mark.asyncio
    async def test_queue_expires_after_ttl(self, clock) -> None:
        queue = NotificationQueueInMemoryImpl(clock=clock, ttl_days=30)
        await queue.append(identity='user:1', notification=_notification(1, clock.now()))

        clock.advance(days=29)
        _, before = await queue.page(identity='user:1', page=1, limit=10)
        clock.advance(days=2)
        _, after = await queue.page(identity='user:1', page=1, limit=10)

        assert (before, after) == (1, 0)

    @pytest.mark.asyncio
    async def test_append_refreshes_ttl(self, clock) -> None:
        queue = NotificationQueueInMemoryImpl(clock=clock, ttl_days=30)
        await queue.append(identity='user:1', notification=_notification(1, clock.now()))
        clock.advance(days=20)
        await queue.append(identity='user:1', notification=_notification(2, clock.now()))

        clock.advance(days=20)
        _, total = await queue.page(identity='user:1', page=1, limit=10)

        assert total == 2

    @pytest.mark.asyncio
    async def test_identities_are_isolated(self, clock) -> None:
        queue = NotificationQueueInMemoryImpl(clock=clock)
        await queue.append(identity='user:1', notification=_notification(1, clock.now()))

        removed = await queue.remove(identity='store:1')
        _, total = await queue.page(identity='user:1', page=1, limit=10)

        assert removed == 0
        assert total == 1

    def test_notification_dict_round_trip_keeps_timestamp(self) -> None:
        at = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc) + timedelta(seconds=5)
        notification = Notification(
            id='n-1', type='order_status', title='t', message='m', timestamp=at, data={'a': 1}
        )

        assert Notification.from_dict(notification.to_dict()) == notification

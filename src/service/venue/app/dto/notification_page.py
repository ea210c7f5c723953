from typing import List

import attrs

from src.service.venue.domain.entity.notification_entity import Notification


@attrs.define(frozen=True)
class NotificationPage:
    notifications: List[Notification]
    total: int
    has_more: bool

from typing import Any, Dict, Optional

import attrs

from src.service.venue.domain.enum.push_event_type import NotificationKind, PushEventType


@attrs.define(frozen=True)
class NotificationDraft:
    """Content of a durable notification before id/timestamp are assigned"""

    type: NotificationKind
    title: str
    message: str
    data: Dict[str, Any] = attrs.field(factory=dict)


@attrs.define(frozen=True)
class PushEvent:
    """
    One fan-out request

    - Live delivery goes to every connection of target_user_id and target_store_id,
      or to every live connection when broadcast is set
    - user_notice / store_notice are appended to the durable queue of the target
    """

    type: PushEventType
    payload: Dict[str, Any]
    target_user_id: Optional[str] = None
    target_store_id: Optional[str] = None
    broadcast: bool = False
    user_notice: Optional[NotificationDraft] = None
    store_notice: Optional[NotificationDraft] = None

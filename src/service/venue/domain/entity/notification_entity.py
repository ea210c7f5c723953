from datetime import datetime
from typing import Any, Dict

import attrs


@attrs.define
class Notification:
    """One entry of a per-identity durable notification queue"""

    id: str
    type: str
    title: str
    message: str
    timestamp: datetime
    data: Dict[str, Any] = attrs.field(factory=dict)
    read: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'data': self.data,
            'timestamp': self.timestamp.isoformat(),
            'read': self.read,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'Notification':
        return cls(
            id=raw['id'],
            type=raw['type'],
            title=raw['title'],
            message=raw['message'],
            data=raw.get('data') or {},
            timestamp=datetime.fromisoformat(raw['timestamp']),
            read=raw.get('read', False),
        )

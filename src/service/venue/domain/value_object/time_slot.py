from datetime import datetime

import attrs

from src.platform.exception.exceptions import ValidationError


@attrs.define(frozen=True)
class TimeSlot:
    """Half-open booking interval [start, end)"""

    start: datetime
    end: datetime

    def __attrs_post_init__(self) -> None:
        if self.end <= self.start:
            raise ValidationError('end_time must be after start_time')

    def overlaps(self, other: 'TimeSlot') -> bool:
        # Back-to-back slots (a.end == b.start) do not overlap
        return self.start < other.end and self.end > other.start

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600

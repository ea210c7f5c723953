"""
Wall clock abstraction.

Order expiry is wall-clock based: payment validation and the expiration
sweeper must read the same time source, so both receive a Clock via DI.
"""

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """UTC wall clock"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

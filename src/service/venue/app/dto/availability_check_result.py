"""Availability check result DTO."""

from enum import StrEnum
from typing import Optional

import attrs

from src.service.venue.domain.entity.room_entity import Room


class UnavailableReason(StrEnum):
    ROOM_NOT_AVAILABLE = 'ROOM_NOT_AVAILABLE'
    TIME_SLOT_UNAVAILABLE = 'TIME_SLOT_UNAVAILABLE'
    CAPACITY_EXCEEDED = 'CAPACITY_EXCEEDED'


@attrs.define(frozen=True)
class AvailabilityCheckResult:
    """
    Point-in-time answer for one room and interval.

    room is returned so the caller can price the deposit without a second lookup.
    """

    available: bool
    room: Room
    reason: Optional[UnavailableReason] = None

from datetime import datetime
from typing import Optional

from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.types.clock import Clock
from src.service.venue.app.dto.availability_check_result import (
    AvailabilityCheckResult,
    UnavailableReason,
)
from src.service.venue.app.interface.i_order_query_repo import IOrderQueryRepo
from src.service.venue.app.interface.i_room_repo import IRoomRepo
from src.service.venue.domain.enum.room_status import RoomStatus
from src.service.venue.domain.value_object.time_slot import TimeSlot


class BookingAvailabilityChecker:
    """
    Decide whether a room can be booked for [start_time, end_time).

    Point-in-time check: callers that insert afterwards must hold the
    per-room lock across check + insert.
    """

    def __init__(
        self, *, room_repo: IRoomRepo, order_query_repo: IOrderQueryRepo, clock: Clock
    ) -> None:
        self.room_repo = room_repo
        self.order_query_repo = order_query_repo
        self.clock = clock

    @Logger.io
    async def check(
        self,
        *,
        room_id: str,
        start_time: datetime,
        end_time: datetime,
        guest_count: Optional[int] = None,
    ) -> AvailabilityCheckResult:
        # Raises ValidationError for end_time <= start_time
        slot = TimeSlot(start=start_time, end=end_time)

        room = await self.room_repo.get_by_id(room_id=room_id)
        if not room:
            raise NotFoundError('Room not found')

        if room.status != RoomStatus.AVAILABLE or not room.is_available:
            return AvailabilityCheckResult(
                available=False, room=room, reason=UnavailableReason.ROOM_NOT_AVAILABLE
            )

        now = self.clock.now()
        candidates = await self.order_query_repo.list_room_orders_overlapping(
            room_id=room_id, start_time=slot.start, end_time=slot.end
        )
        for order in candidates:
            order_slot = order.time_slot
            if order_slot and order.holds_slot(now) and order_slot.overlaps(slot):
                Logger.base.info(
                    f'🚫 [AVAILABILITY] Room {room_id} slot {slot.start}~{slot.end} '
                    f'conflicts with order {order.order_number} ({order.status})'
                )
                return AvailabilityCheckResult(
                    available=False, room=room, reason=UnavailableReason.TIME_SLOT_UNAVAILABLE
                )

        if guest_count is not None and guest_count > room.capacity:
            return AvailabilityCheckResult(
                available=False, room=room, reason=UnavailableReason.CAPACITY_EXCEEDED
            )

        return AvailabilityCheckResult(available=True, room=room)

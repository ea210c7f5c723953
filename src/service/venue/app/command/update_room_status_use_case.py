from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.venue.app.command.notification_fanout import NotificationFanout
from src.service.venue.app.interface.i_room_repo import IRoomRepo
from src.service.venue.domain.entity.room_entity import Room
from src.service.venue.domain.enum.room_status import RoomStatus


class UpdateRoomStatusUseCase:
    def __init__(self, *, room_repo: IRoomRepo, notification_fanout: NotificationFanout) -> None:
        self.room_repo = room_repo
        self.notification_fanout = notification_fanout

    @Logger.io
    async def execute(self, *, room_id: str, status: RoomStatus) -> Room:
        room = await self.room_repo.get_by_id(room_id=room_id)
        if not room:
            raise NotFoundError('Room not found')

        if room.status == status:
            return room

        updated = await self.room_repo.update_status(room_id=room_id, status=RoomStatus(status))
        Logger.base.info(f'🚪 [ROOM] {room.name} ({room_id}): {room.status} → {updated.status}')
        await self.notification_fanout.notify_room_status(room=updated)
        return updated

from typing import Optional

from anyio.streams.memory import MemoryObjectReceiveStream

from src.platform.logging.loguru_io import Logger
from src.platform.realtime.connection_record import ClientRole
from src.platform.realtime.connection_registry import ConnectionRegistry
from src.platform.realtime.i_push_channel import IPushChannel
from src.platform.types.clock import Clock
from src.service.venue.domain.enum.push_event_type import PushEventType


class ConnectClientUseCase:
    """
    Session lifecycle for a realtime transport (websocket / SSE handler).

    connect() registers the session and returns the stream the transport
    drains; disconnect() must be called when the socket goes away.
    """

    def __init__(
        self, *, connection_registry: ConnectionRegistry, push_channel: IPushChannel, clock: Clock
    ) -> None:
        self.connection_registry = connection_registry
        self.push_channel = push_channel
        self.clock = clock

    @Logger.io
    async def connect(
        self,
        *,
        user_id: str,
        conn_id: str,
        role: ClientRole = ClientRole.USER,
        store_id: Optional[str] = None,
    ) -> MemoryObjectReceiveStream[dict]:
        # Raises ConnectionLimitError before any stream is allocated
        record = self.connection_registry.add_connection(
            user_id=user_id, conn_id=conn_id, role=role, store_id=store_id
        )
        try:
            stream = await self.push_channel.open(conn_id=conn_id)
            await self.push_channel.send(
                conn_id=conn_id,
                envelope={
                    'event': PushEventType.CONNECTION_STATUS.value,
                    'data': {
                        'status': 'connected',
                        'userId': record.user_id,
                        'role': record.role.value,
                        'storeId': record.store_id,
                    },
                    'timestamp': self.clock.now().isoformat(),
                },
            )
        except Exception:
            # A session without a stream must not count toward the per-user cap
            self.connection_registry.remove_connection(conn_id=conn_id)
            await self.push_channel.close(conn_id=conn_id)
            raise
        return stream

    @Logger.io
    async def disconnect(self, *, conn_id: str) -> None:
        self.connection_registry.remove_connection(conn_id=conn_id)
        await self.push_channel.close(conn_id=conn_id)

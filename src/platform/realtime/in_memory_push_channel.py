"""
In-memory Push Channel Implementation

One bounded anyio memory stream per live connection. The fan-out writes
with send_nowait so a slow client can never stall an order transition.
"""

from typing import Dict

from anyio import BrokenResourceError, ClosedResourceError, WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from src.platform.logging.loguru_io import Logger


class InMemoryPushChannelImpl:
    """
    Memory Management:
    - Stream max buffer: buffer_size envelopes per connection
    - Drop policy: drop and warn if stream full (send_nowait raises WouldBlock)
    - Cleanup: close both stream ends on close()
    """

    def __init__(self, *, buffer_size: int = 32) -> None:
        self.buffer_size = buffer_size
        # conn_id → (send_stream, receive_stream)
        self._streams: Dict[
            str, tuple[MemoryObjectSendStream[dict], MemoryObjectReceiveStream[dict]]
        ] = {}

    async def open(self, *, conn_id: str) -> MemoryObjectReceiveStream[dict]:
        if conn_id in self._streams:
            return self._streams[conn_id][1]

        send_stream, receive_stream = create_memory_object_stream[dict](
            max_buffer_size=self.buffer_size
        )
        self._streams[conn_id] = (send_stream, receive_stream)
        Logger.base.debug(f'📡 [PUSH] Opened stream for {conn_id} (open={len(self._streams)})')
        return receive_stream

    async def send(self, *, conn_id: str, envelope: dict) -> bool:
        streams = self._streams.get(conn_id)
        if streams is None:
            Logger.base.debug(f'📡 [PUSH] No stream for {conn_id}, skipping')
            return False

        send_stream, _ = streams
        try:
            send_stream.send_nowait(envelope)
            return True
        except WouldBlock:
            Logger.base.warning(
                f'⚠️ [PUSH] Stream full for {conn_id}, dropping event (event={envelope.get("event")})'
            )
        except (BrokenResourceError, ClosedResourceError):
            Logger.base.warning(f'⚠️ [PUSH] Stream for {conn_id} already closed, dropping event')
        return False

    async def close(self, *, conn_id: str) -> None:
        streams = self._streams.pop(conn_id, None)
        if streams is None:
            return

        send_stream, receive_stream = streams
        await send_stream.aclose()
        await receive_stream.aclose()
        Logger.base.debug(f'📡 [PUSH] Closed stream for {conn_id} (open={len(self._streams)})')

    def is_open(self, *, conn_id: str) -> bool:
        return conn_id in self._streams

"""
Push Channel Interface

Delivers event envelopes to live client sessions identified by conn_id.
"""

from typing import Protocol

from anyio.streams.memory import MemoryObjectReceiveStream


class IPushChannel(Protocol):
    async def open(self, *, conn_id: str) -> MemoryObjectReceiveStream[dict]:
        """
        Create the outbound stream for a newly registered connection

        Returns:
            Receive side, drained by the transport writing to the client
        """
        ...

    async def send(self, *, conn_id: str, envelope: dict) -> bool:
        """
        Deliver one envelope without blocking

        Returns:
            True if queued for delivery, False if dropped (unknown or slow connection)
        """
        ...

    async def close(self, *, conn_id: str) -> None:
        """Close and forget the connection's stream (safe for unknown conn_id)"""
        ...

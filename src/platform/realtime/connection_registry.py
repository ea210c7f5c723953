"""
Connection Registry

Tracks live client sessions and answers "which connections should receive
an event for user X / store Y". A user may hold several sessions (tabs,
devices); merchants are additionally indexed by the store they operate.
"""

from datetime import datetime, timezone
import threading
from typing import Dict, Optional, Set

from src.platform.exception.exceptions import ConflictError, ConnectionLimitError
from src.platform.logging.loguru_io import Logger
from src.platform.realtime.connection_record import ClientRole, ConnectionRecord


class ConnectionRegistry:
    """
    Bidirectional index of live connections

    Structures:
    - conn_id → ConnectionRecord (forward record)
    - user_id → {conn_id} (reverse lookup)
    - store_id → {conn_id} (reverse lookup, merchant sessions only)

    Every conn_id lives in exactly one forward record and its reverse entries;
    removal cleans all three maps and drops keys whose set became empty.

    Thread-safe: a single threading.Lock guards all three maps, so callers on
    the event loop and in worker threads observe consistent snapshots.
    """

    def __init__(self, *, max_connections_per_user: int = 5) -> None:
        self.max_connections_per_user = max_connections_per_user
        self._connections: Dict[str, ConnectionRecord] = {}
        self._user_connections: Dict[str, Set[str]] = {}
        self._store_connections: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def add_connection(
        self,
        *,
        user_id: str,
        conn_id: str,
        role: ClientRole | str = ClientRole.USER,
        store_id: Optional[str] = None,
    ) -> ConnectionRecord:
        role = ClientRole(role)
        with self._lock:
            if conn_id in self._connections:
                raise ConflictError(f'Connection {conn_id} is already registered')

            user_conn_ids = self._user_connections.get(user_id, set())
            if len(user_conn_ids) >= self.max_connections_per_user:
                raise ConnectionLimitError(
                    f'User {user_id} already has {len(user_conn_ids)} live connections '
                    f'(max {self.max_connections_per_user})'
                )

            record = ConnectionRecord(
                conn_id=conn_id,
                user_id=user_id,
                role=role,
                store_id=store_id if role == ClientRole.MERCHANT else None,
                connected_at=datetime.now(timezone.utc),
            )
            self._connections[conn_id] = record
            self._user_connections.setdefault(user_id, set()).add(conn_id)
            if record.store_id is not None:
                self._store_connections.setdefault(record.store_id, set()).add(conn_id)

            total = len(self._connections)

        Logger.base.info(
            f'🔌 [REGISTRY] Connected {conn_id} (user={user_id}, role={role}, '
            f'store={record.store_id}, total={total})'
        )
        return record

    def remove_connection(self, *, conn_id: str) -> Optional[ConnectionRecord]:
        """Remove a connection; unknown conn_id is a no-op and returns None"""
        with self._lock:
            record = self._connections.pop(conn_id, None)
            if record is None:
                return None

            self._discard(self._user_connections, record.user_id, conn_id)
            if record.store_id is not None:
                self._discard(self._store_connections, record.store_id, conn_id)

            total = len(self._connections)

        Logger.base.info(
            f'🔌 [REGISTRY] Disconnected {conn_id} (user={record.user_id}, remaining={total})'
        )
        return record

    @staticmethod
    def _discard(index: Dict[str, Set[str]], key: str, conn_id: str) -> None:
        conn_ids = index.get(key)
        if conn_ids is None:
            return
        conn_ids.discard(conn_id)
        if not conn_ids:
            del index[key]

    def connections_for_user(self, *, user_id: str) -> Set[str]:
        with self._lock:
            return set(self._user_connections.get(user_id, ()))

    def connections_for_store(self, *, store_id: str) -> Set[str]:
        with self._lock:
            return set(self._store_connections.get(store_id, ()))

    def get_connection(self, *, conn_id: str) -> Optional[ConnectionRecord]:
        with self._lock:
            return self._connections.get(conn_id)

    def all_connections(self) -> Set[str]:
        with self._lock:
            return set(self._connections)

    def is_user_online(self, *, user_id: str) -> bool:
        with self._lock:
            return user_id in self._user_connections

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                'distinct_users': len(self._user_connections),
                'distinct_stores': len(self._store_connections),
                'total_connections': len(self._connections),
            }

from datetime import datetime
from enum import StrEnum
from typing import Optional

import attrs


class ClientRole(StrEnum):
    USER = 'user'
    MERCHANT = 'merchant'
    ADMIN = 'admin'


@attrs.define(frozen=True)
class ConnectionRecord:
    """One live client session (a socket / stream held by a user or merchant)"""

    conn_id: str
    user_id: str
    role: ClientRole
    connected_at: datetime
    store_id: Optional[str] = None

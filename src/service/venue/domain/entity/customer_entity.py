from datetime import datetime
from decimal import Decimal
from typing import Optional

import attrs

from src.service.venue.domain.value_object.money import ZERO


@attrs.define
class Customer:
    id: str
    phone: str
    vip_level: int = 0
    vip_expire_at: Optional[datetime] = None
    total_spent: Decimal = ZERO
    balance: Decimal = ZERO
    points: int = 0

    def is_vip(self, now: datetime) -> bool:
        if self.vip_level <= 0:
            return False
        return self.vip_expire_at is None or self.vip_expire_at > now

    def effective_vip_level(self, now: datetime) -> int:
        """Lapsed VIP membership prices and earns like level 0"""
        return self.vip_level if self.is_vip(now) else 0

from abc import ABC, abstractmethod
from decimal import Decimal

from src.service.venue.domain.entity.store_entity import Store


class IStoreRepo(ABC):
    @abstractmethod
    async def get_by_id(self, *, store_id: str) -> Store | None:
        pass

    @abstractmethod
    async def add_revenue(self, *, store_id: str, amount: Decimal, idempotency_key: str) -> bool:
        """Paid receipts"""
        pass

    @abstractmethod
    async def add_settled_revenue(
        self, *, store_id: str, amount: Decimal, idempotency_key: str
    ) -> bool:
        """Completed orders: settled revenue and completed_order_count"""
        pass

    @abstractmethod
    async def revert(self, *, idempotency_key: str) -> bool:
        pass

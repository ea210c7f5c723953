from abc import ABC, abstractmethod
from decimal import Decimal

from src.service.venue.domain.entity.customer_entity import Customer


class ICustomerRepo(ABC):
    """
    Customer lookups and atomic counter updates

    Each increment carries an idempotency key; applying a key twice is a
    no-op that returns False.
    """

    @abstractmethod
    async def get_by_id(self, *, customer_id: str) -> Customer | None:
        pass

    @abstractmethod
    async def add_total_spent(
        self, *, customer_id: str, amount: Decimal, idempotency_key: str
    ) -> bool:
        pass

    @abstractmethod
    async def add_balance(self, *, customer_id: str, amount: Decimal, idempotency_key: str) -> bool:
        pass

    @abstractmethod
    async def add_points(self, *, customer_id: str, points: int, idempotency_key: str) -> bool:
        pass

    @abstractmethod
    async def revert(self, *, idempotency_key: str) -> bool:
        pass

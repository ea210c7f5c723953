from abc import ABC, abstractmethod

from uuid_utils import UUID

from src.service.venue.domain.entity.order_entity import Order


class IOrderCommandRepo(ABC):
    """
    Order write side

    Orders are never deleted; status changes are versioned writes.
    """

    @abstractmethod
    async def create(self, *, order: Order) -> Order:
        pass

    @abstractmethod
    async def get_by_id(self, *, order_id: UUID) -> Order | None:
        pass

    @abstractmethod
    async def update(self, *, order: Order, expected_version: int) -> Order:
        """
        Compare-and-set write

        Args:
            order: New order state
            expected_version: Version the caller loaded before transitioning

        Raises:
            OrderVersionConflictError: Stored version differs from expected_version
            NotFoundError: Order does not exist
        """
        pass

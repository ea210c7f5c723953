from typing import Protocol

from src.service.venue.domain.domain_event.order_domain_event import OrderDomainEvent


class IOrderEventNotifier(Protocol):
    async def notify(self, *, event: OrderDomainEvent) -> None:
        """Deliver a committed order event; must never raise"""
        ...

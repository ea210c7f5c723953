from decimal import Decimal

from src.platform.exception.exceptions import ValidationError
from src.service.venue.app.interface.i_customer_repo import ICustomerRepo
from src.service.venue.domain.entity.customer_entity import Customer
from src.service.venue.domain.value_object.money import ZERO
from src.service.venue.driven_adapter.repo.in_memory_counter_store import InMemoryCounterStore


def _ensure_balance_not_negative(customer: Customer) -> None:
    if customer.balance < ZERO:
        raise ValidationError('Insufficient balance')


class CustomerRepoInMemoryImpl(ICustomerRepo):
    def __init__(self) -> None:
        self._store: InMemoryCounterStore[Customer] = InMemoryCounterStore(entity_name='User')

    def add(self, customer: Customer) -> Customer:
        return self._store.put(customer.id, customer)

    async def get_by_id(self, *, customer_id: str) -> Customer | None:
        return self._store.get(customer_id)

    async def add_total_spent(
        self, *, customer_id: str, amount: Decimal, idempotency_key: str
    ) -> bool:
        return self._store.increment(
            record_id=customer_id, deltas={'total_spent': amount}, idempotency_key=idempotency_key
        )

    async def add_balance(self, *, customer_id: str, amount: Decimal, idempotency_key: str) -> bool:
        return self._store.increment(
            record_id=customer_id,
            deltas={'balance': amount},
            idempotency_key=idempotency_key,
            check=_ensure_balance_not_negative,
        )

    async def add_points(self, *, customer_id: str, points: int, idempotency_key: str) -> bool:
        return self._store.increment(
            record_id=customer_id, deltas={'points': points}, idempotency_key=idempotency_key
        )

    async def revert(self, *, idempotency_key: str) -> bool:
        return self._store.revert(idempotency_key=idempotency_key)

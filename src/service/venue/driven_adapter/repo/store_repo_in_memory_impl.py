from decimal import Decimal

from src.service.venue.app.interface.i_store_repo import IStoreRepo
from src.service.venue.domain.entity.store_entity import Store
from src.service.venue.driven_adapter.repo.in_memory_counter_store import InMemoryCounterStore


class StoreRepoInMemoryImpl(IStoreRepo):
    def __init__(self) -> None:
        self._store: InMemoryCounterStore[Store] = InMemoryCounterStore(entity_name='Store')

    def add(self, store: Store) -> Store:
        return self._store.put(store.id, store)

    async def get_by_id(self, *, store_id: str) -> Store | None:
        return self._store.get(store_id)

    async def add_revenue(self, *, store_id: str, amount: Decimal, idempotency_key: str) -> bool:
        return self._store.increment(
            record_id=store_id, deltas={'revenue': amount}, idempotency_key=idempotency_key
        )

    async def add_settled_revenue(
        self, *, store_id: str, amount: Decimal, idempotency_key: str
    ) -> bool:
        return self._store.increment(
            record_id=store_id,
            deltas={'settled_revenue': amount, 'completed_order_count': 1},
            idempotency_key=idempotency_key,
        )

    async def revert(self, *, idempotency_key: str) -> bool:
        return self._store.revert(idempotency_key=idempotency_key)

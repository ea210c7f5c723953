"""
Keyed record store with idempotent, revertible counter increments.

Backs the in-memory repositories. An increment and its ledger entry are
written without an await in between, so concurrent tasks on the event loop
see each increment atomically.
"""

from typing import Any, Callable, Dict, Generic, Optional, TypeVar

import attrs

from src.platform.exception.exceptions import NotFoundError


T = TypeVar('T')

Deltas = Dict[str, Any]


class InMemoryCounterStore(Generic[T]):
    def __init__(self, *, entity_name: str) -> None:
        self.entity_name = entity_name
        self._records: Dict[str, T] = {}
        # idempotency_key → (record_id, deltas applied)
        self._ledger: Dict[str, tuple[str, Deltas]] = {}

    def get(self, record_id: str) -> Optional[T]:
        return self._records.get(record_id)

    def put(self, record_id: str, record: T) -> T:
        self._records[record_id] = record
        return record

    def values(self) -> list[T]:
        return list(self._records.values())

    def increment(
        self,
        *,
        record_id: str,
        deltas: Deltas,
        idempotency_key: str,
        check: Optional[Callable[[T], None]] = None,
    ) -> bool:
        """
        Returns:
            True if applied, False if idempotency_key was applied before

        Raises:
            NotFoundError: Unknown record_id
            Whatever check raises for the would-be record (nothing is written)
        """
        if idempotency_key in self._ledger:
            return False

        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f'{self.entity_name} not found')

        updated = self._apply(record, deltas)
        if check is not None:
            check(updated)

        self._records[record_id] = updated
        self._ledger[idempotency_key] = (record_id, deltas)
        return True

    def revert(self, *, idempotency_key: str) -> bool:
        entry = self._ledger.pop(idempotency_key, None)
        if entry is None:
            return False

        record_id, deltas = entry
        record = self._records.get(record_id)
        if record is None:
            return False
        self._records[record_id] = self._apply(record, {k: -v for k, v in deltas.items()})
        return True

    def is_applied(self, idempotency_key: str) -> bool:
        return idempotency_key in self._ledger

    @staticmethod
    def _apply(record: T, deltas: Deltas) -> T:
        return attrs.evolve(
            record, **{field: getattr(record, field) + delta for field, delta in deltas.items()}
        )

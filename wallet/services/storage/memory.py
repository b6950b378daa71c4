"""
In-Memory Storage Implementation

Process-local store used for tests and for running without a backend.
Records are kept in insertion order keyed by id, with an owner index.
Batches are atomic: every record is checked before any is written.
Records are copied on the way in and out, so callers never hold the
stored instance.
"""

from typing import Any, Optional
from uuid import UUID

from wallet.errors import NotFoundError, StorageError
from wallet.models.transaction import Transaction
from wallet.services.storage.interface import LedgerStoreInterface


# Fields a patch can never touch
PROTECTED_FIELDS = frozenset({"id", "owner", "created_at"})


def apply_patch(record: Transaction, patch: dict[str, Any]) -> Transaction:
    """Return a re-validated copy of ``record`` with ``patch`` applied."""
    data = record.model_dump()
    data.update({k: v for k, v in patch.items() if k not in PROTECTED_FIELDS})
    return Transaction.model_validate(data)


class InMemoryLedgerStore(LedgerStoreInterface):
    """Dictionary-backed ledger store."""

    atomic_batches = True

    def __init__(self, records: Optional[list[Transaction]] = None):
        self._records: dict[UUID, Transaction] = {}
        self._by_owner: dict[str, list[UUID]] = {}
        for record in records or []:
            self._put(record)

    def __len__(self) -> int:
        return len(self._records)

    def _put(self, record: Transaction) -> None:
        if record.id in self._records:
            raise StorageError(f"Duplicate transaction id: {record.id}")
        self._records[record.id] = record.model_copy(deep=True)
        self._by_owner.setdefault(record.owner, []).append(record.id)

    async def insert(self, record: Transaction) -> Transaction:
        self._put(record)
        return record.model_copy(deep=True)

    async def insert_batch(self, records: list[Transaction]) -> list[Transaction]:
        ids = [record.id for record in records]
        if len(set(ids)) != len(ids) or any(i in self._records for i in ids):
            raise StorageError("Duplicate transaction id in batch")
        for record in records:
            self._put(record)
        return [record.model_copy(deep=True) for record in records]

    async def get(self, transaction_id: UUID) -> Optional[Transaction]:
        record = self._records.get(transaction_id)
        return record.model_copy(deep=True) if record is not None else None

    async def update(self, transaction_id: UUID, patch: dict[str, Any]) -> Transaction:
        record = self._records.get(transaction_id)
        if record is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}", field="id")
        updated = apply_patch(record, patch)
        self._records[transaction_id] = updated
        return updated.model_copy(deep=True)

    async def delete(self, transaction_id: UUID) -> None:
        record = self._records.pop(transaction_id, None)
        if record is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}", field="id")
        self._by_owner[record.owner].remove(transaction_id)

    async def list_by_owner(self, owner: str) -> list[Transaction]:
        return [self._records[i].model_copy(deep=True) for i in self._by_owner.get(owner, [])]

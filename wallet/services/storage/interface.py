"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for ledger storage.
This allows us to:
1. Swap Google Sheets for a file or a real database
2. Use in-memory storage for testing
3. Keep ledger rules decoupled from storage implementation

The interface is intentionally a plain CRUD surface keyed by id,
with owner as the only secondary index. All ledger invariants are
enforced by the engine, not here.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from wallet.errors import NotFoundError, StorageError, StoreUnavailableError
from wallet.models.transaction import Transaction


class LedgerStoreInterface(ABC):
    """
    Abstract interface for transaction storage operations.

    Any storage implementation (memory, JSON file, Google Sheets, ...)
    must implement these methods.
    """

    # True when insert_batch commits all records or none
    atomic_batches: bool = False

    @abstractmethod
    async def insert(self, record: Transaction) -> Transaction:
        """
        Persist a new transaction.

        Args:
            record: The fully-formed transaction (id already assigned)

        Returns:
            The stored record

        Raises:
            StorageError: If the id already exists or the write fails
            StoreUnavailableError: If the backend cannot be reached
        """
        pass

    async def insert_batch(self, records: list[Transaction]) -> list[Transaction]:
        """
        Persist several transactions as one unit.

        Only stores with ``atomic_batches = True`` implement this.
        Callers must check the flag and fall back to single inserts.
        """
        raise NotImplementedError(
            f"{type(self).__name__} does not support atomic batches"
        )

    @abstractmethod
    async def get(self, transaction_id: UUID) -> Optional[Transaction]:
        """
        Retrieve a transaction by its ID.

        Returns:
            The transaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def update(self, transaction_id: UUID, patch: dict[str, Any]) -> Transaction:
        """
        Apply a patch of field values to a stored transaction.

        Args:
            transaction_id: The transaction's unique identifier
            patch: Field name (snake_case) -> new value

        Returns:
            The updated record

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete(self, transaction_id: UUID) -> None:
        """
        Delete a transaction by ID.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    async def list_by_owner(self, owner: str) -> list[Transaction]:
        """
        List every transaction of one owner, in store order.

        Returns:
            Possibly empty list of transactions
        """
        pass


__all__ = [
    "LedgerStoreInterface",
    "NotFoundError",
    "StorageError",
    "StoreUnavailableError",
]

"""Services package."""

from wallet.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    InMemoryLedgerStore,
    JsonFileLedgerStore,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
    StoreUnavailableError,
)

__all__ = [
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStore",
    "InMemoryLedgerStore",
    "JsonFileLedgerStore",
    "LedgerStoreInterface",
    "NotFoundError",
    "StorageError",
    "StoreUnavailableError",
]

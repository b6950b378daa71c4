"""
Storage Services Package

Provides the abstract ledger store interface and its implementations:
in-memory, JSON file and Google Sheets.
"""

from wallet.services.storage.interface import (
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
    StoreUnavailableError,
)
from wallet.services.storage.memory import InMemoryLedgerStore
from wallet.services.storage.json_file import JsonFileLedgerStore
from wallet.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
)

__all__ = [
    # Interface
    "LedgerStoreInterface",
    # Exceptions
    "NotFoundError",
    "StorageError",
    "StoreUnavailableError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStore",
    "InMemoryLedgerStore",
    "JsonFileLedgerStore",
]

"""
Main Orchestrator for Wallet Ledger

This module ties the components together:

    settings -> store -> engine -> query executor
                  audit logger (shared)

DESIGN DECISION: The orchestrator only wires. It holds no ledger
rules of its own; every invariant lives in the engine, so swapping
the store (memory, JSON file, Google Sheets) never changes behavior.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from wallet.audit import AuditLogger, configure_logging
from wallet.config import Settings, get_settings
from wallet.ledger import LedgerEngine
from wallet.queries import LedgerQueryExecutor
from wallet.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    InMemoryLedgerStore,
    JsonFileLedgerStore,
    LedgerStoreInterface,
)
from wallet.validation import TransactionValidator


@dataclass
class LedgerComponents:
    """Everything a front end needs to drive the ledger."""

    store: LedgerStoreInterface
    audit_logger: AuditLogger
    validator: TransactionValidator
    engine: LedgerEngine
    query_executor: LedgerQueryExecutor


def create_store(settings: Settings) -> LedgerStoreInterface:
    """Build the store selected by ``STORAGE_BACKEND``."""
    backend = settings.storage.backend
    if backend == "json_file":
        return JsonFileLedgerStore(Path(settings.storage.json_path))
    if backend == "google_sheets":
        return GoogleSheetsLedgerStore(GoogleSheetsClient(settings.google_sheets))
    return InMemoryLedgerStore()


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[LedgerStoreInterface] = None,
) -> LedgerComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Configuration; the cached settings if omitted
        store: Use this store instead of the configured backend
            (tests pass an InMemoryLedgerStore)

    Returns:
        LedgerComponents sharing one audit logger
    """
    if settings is None:
        settings = get_settings()
    configure_logging(settings.app.log_level)

    if store is None:
        store = create_store(settings)
    ledger_settings = settings.ledger

    audit_logger = AuditLogger()
    validator = TransactionValidator(ledger_settings)
    engine = LedgerEngine(
        store=store,
        validator=validator,
        audit_logger=audit_logger,
        settings=ledger_settings,
    )
    query_executor = LedgerQueryExecutor(engine, audit_logger=audit_logger)

    return LedgerComponents(
        store=store,
        audit_logger=audit_logger,
        validator=validator,
        engine=engine,
        query_executor=query_executor,
    )

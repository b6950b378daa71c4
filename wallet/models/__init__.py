"""
Data Models Package

This package contains all Pydantic models used in the Wallet Ledger.
All data flowing through the system must conform to these schemas.
"""

from wallet.models.transaction import (
    Aggregates,
    EditStatus,
    LedgerRow,
    LedgerSummary,
    Transaction,
    TransactionDraft,
    TransactionType,
    TransferLeg,
    TransferResult,
    ValidationIssue,
    as_utc,
    utc_now,
)
from wallet.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Aggregates",
    "EditStatus",
    "LedgerRow",
    "LedgerSummary",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "TransferLeg",
    "TransferResult",
    "ValidationIssue",
    "as_utc",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

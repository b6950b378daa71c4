"""
Ledger Error Taxonomy

Every failure the ledger can report carries a machine-readable ``kind``
and, where it applies, the offending ``field``. The presentation layer
renders a specific message from that structure.

None of these errors should crash the process. They are raised to the
caller, who decides whether to re-prompt, retry or report.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base exception for all ledger failures."""

    kind = "ledger_error"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Structured form for rendering and logging."""
        return {
            "kind": self.kind,
            "field": self.field,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(LedgerError):
    """
    Malformed input at create/update.

    Carries every issue found, not only the first one, so the caller
    can highlight all bad fields at once.
    """

    kind = "validation"

    def __init__(self, issues: list, message: Optional[str] = None):
        self.issues = list(issues)
        first = self.issues[0] if self.issues else None
        super().__init__(
            message or (first.message if first else "Invalid transaction"),
            field=first.field if first else None,
            details={"issues": [issue.model_dump() for issue in self.issues]},
        )


class NotFoundError(LedgerError):
    """Target does not exist or is not owned by the caller."""

    kind = "not_found"


class EditWindowExpiredError(LedgerError):
    """Update attempted after the edit-lock window closed."""

    kind = "edit_window_expired"


class TransferFailedError(LedgerError):
    """A transfer pair could not be committed (or removed) as one unit."""

    kind = "transfer_failed"


class StorageError(LedgerError):
    """Base exception for storage operations."""

    kind = "storage"


class StoreUnavailableError(StorageError):
    """Could not reach the storage backend. Transient."""

    kind = "store_unavailable"

"""
Audit Models for Wallet Ledger

Every significant ledger action produces one structured event.
This provides:
1. Traceability of every mutation
2. Debugging information when a write fails
3. A record of rejected operations (validation, edit lock)

DESIGN DECISION: Events are emitted to the structured log only.
The ledger itself keeps no audit trail or soft-deleted rows.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator


# Longest description an event keeps; longer text is cut, never rejected
MAX_DESCRIPTION_LENGTH = 500


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Mutations
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSFER_CREATED = "transfer_created"
    TRANSFER_DELETED = "transfer_deleted"

    # Rejections
    VALIDATION_FAILED = "validation_failed"
    EDIT_WINDOW_EXPIRED = "edit_window_expired"
    NOT_FOUND = "not_found"

    # Transfer failures
    TRANSFER_FAILED = "transfer_failed"
    TRANSFER_ROLLED_BACK = "transfer_rolled_back"

    # Reads
    LEDGER_SUMMARIZED = "ledger_summarized"

    # System events
    STORE_ERROR = "store_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant ledger action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - which owner and record is this about?
    owner: Optional[str] = None
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the transaction (or transfer) this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., both legs of one transfer)"
    )

    description: str = Field(
        ...,
        max_length=MAX_DESCRIPTION_LENGTH,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    @field_validator('description', mode='before')
    @classmethod
    def truncate_description(cls, v: Any) -> Any:
        """Cut over-long descriptions instead of rejecting the event."""
        if isinstance(v, str) and len(v) > MAX_DESCRIPTION_LENGTH:
            return v[:MAX_DESCRIPTION_LENGTH - 1] + "…"
        return v

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner": self.owner,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_created(owner, tx_id, "EXPENSE", "40")
        event = AuditEventBuilder.transfer_failed(owner, transfer_id, error)
    """

    @staticmethod
    def transaction_created(
        owner: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            owner=owner,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.capitalize()} recorded: {amount}",
            details={
                "type": transaction_type,
                "amount": amount,
            },
        )

    @staticmethod
    def transaction_updated(
        owner: str,
        transaction_id: UUID,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            owner=owner,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction updated ({len(changed_fields)} fields)",
            details={"changed_fields": changed_fields},
        )

    @staticmethod
    def transaction_deleted(
        owner: str,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            owner=owner,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
        )

    @staticmethod
    def transfer_created(
        owner: str,
        transfer_id: UUID,
        source: str,
        destination: str,
        amount: str,
        leg_ids: list[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_CREATED,
            owner=owner,
            entity_id=transfer_id,
            correlation_id=transfer_id,
            description=f"Transfer recorded: {source} → {destination} {amount}",
            details={
                "source": source,
                "destination": destination,
                "amount": amount,
                "leg_ids": [str(leg_id) for leg_id in leg_ids],
            },
        )

    @staticmethod
    def transfer_deleted(
        owner: str,
        transfer_id: UUID,
        leg_ids: list[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_DELETED,
            owner=owner,
            entity_id=transfer_id,
            correlation_id=transfer_id,
            description="Transfer deleted (both legs)",
            details={"leg_ids": [str(leg_id) for leg_id in leg_ids]},
        )

    @staticmethod
    def validation_failed(
        owner: str,
        operation: str,
        issues: list[dict],
        entity_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            owner=owner,
            entity_id=entity_id,
            description=f"{operation.capitalize()} rejected with {len(issues)} issues",
            details={
                "operation": operation,
                "issues": issues,
            },
            error_kind="validation",
        )

    @staticmethod
    def edit_window_expired(
        owner: str,
        transaction_id: UUID,
        age_hours: float,
        window_hours: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EDIT_WINDOW_EXPIRED,
            severity=AuditSeverity.WARNING,
            owner=owner,
            entity_id=transaction_id,
            description=f"Edit rejected: transaction is {age_hours:.1f}h old",
            details={
                "age_hours": round(age_hours, 3),
                "window_hours": window_hours,
            },
            error_kind="edit_window_expired",
        )

    @staticmethod
    def not_found(
        owner: str,
        transaction_id: Optional[UUID],
        operation: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOT_FOUND,
            severity=AuditSeverity.WARNING,
            owner=owner,
            entity_id=transaction_id,
            description=f"{operation.capitalize()} target not found",
            details={"operation": operation},
            error_kind="not_found",
        )

    @staticmethod
    def transfer_failed(
        owner: str,
        transfer_id: UUID,
        error_message: str,
        orphaned_ids: Optional[list[UUID]] = None,
    ) -> AuditEvent:
        # An orphan means the ledger is inconsistent and needs manual repair
        severity = AuditSeverity.CRITICAL if orphaned_ids else AuditSeverity.ERROR
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_FAILED,
            severity=severity,
            owner=owner,
            entity_id=transfer_id,
            correlation_id=transfer_id,
            description="Transfer could not be committed atomically",
            details={"orphaned_ids": [str(i) for i in orphaned_ids or []]},
            error_kind="transfer_failed",
            error_message=error_message,
        )

    @staticmethod
    def transfer_rolled_back(
        owner: str,
        transfer_id: UUID,
        reverted_ids: list[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_ROLLED_BACK,
            severity=AuditSeverity.WARNING,
            owner=owner,
            entity_id=transfer_id,
            correlation_id=transfer_id,
            description="Partial transfer write reverted",
            details={"reverted_ids": [str(i) for i in reverted_ids]},
        )

    @staticmethod
    def ledger_summarized(
        owner: str,
        window: str,
        row_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_SUMMARIZED,
            severity=AuditSeverity.DEBUG,
            owner=owner,
            description=f"Ledger summarized: {window} window, {row_count} rows",
            details={
                "window": window,
                "row_count": row_count,
            },
        )

    @staticmethod
    def store_error(
        operation: str,
        error_kind: str,
        error_message: str,
        owner: Optional[str] = None,
        entity_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            owner=owner,
            entity_id=entity_id,
            description=f"Store error during {operation}",
            details={"operation": operation},
            error_kind=error_kind,
            error_message=error_message,
        )

"""
Audit Logger

DESIGN DECISION: Every significant ledger action is logged as one
structured event. This provides:
1. Traceability of every mutation and rejection
2. Debugging capability when a store write fails
3. A visible signal when a transfer had to be rolled back

The audit logger:
- Writes JSON lines through structlog
- Supports correlation IDs to trace related events (both transfer legs)
- Is local only; the ledger does not persist an audit trail
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from wallet.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output to stderr at the given level."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))


class AuditLogger:
    """
    Central audit logging service for ledger operations.
    """

    def __init__(self, logger_name: str = "wallet.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> AuditEvent:
        """
        Log an audit event at the level matching its severity.

        Returns the event, so callers can keep it for tests or replies.
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.CRITICAL:
            self._logger.critical("audit_event", **log_dict)
        elif event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        return event

    def log_transaction_created(
        self,
        owner: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
    ) -> None:
        """Log a new income or expense."""
        self.log(AuditEventBuilder.transaction_created(
            owner=owner,
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
        ))

    def log_transaction_updated(
        self,
        owner: str,
        transaction_id: UUID,
        changed_fields: list[str],
    ) -> None:
        """Log a successful update."""
        self.log(AuditEventBuilder.transaction_updated(
            owner=owner,
            transaction_id=transaction_id,
            changed_fields=changed_fields,
        ))

    def log_transaction_deleted(self, owner: str, transaction_id: UUID) -> None:
        """Log a deletion."""
        self.log(AuditEventBuilder.transaction_deleted(
            owner=owner,
            transaction_id=transaction_id,
        ))

    def log_transfer_created(
        self,
        owner: str,
        transfer_id: UUID,
        source: str,
        destination: str,
        amount: str,
        leg_ids: list[UUID],
    ) -> None:
        """Log a committed transfer pair."""
        self.log(AuditEventBuilder.transfer_created(
            owner=owner,
            transfer_id=transfer_id,
            source=source,
            destination=destination,
            amount=amount,
            leg_ids=leg_ids,
        ))

    def log_transfer_deleted(
        self,
        owner: str,
        transfer_id: UUID,
        leg_ids: list[UUID],
    ) -> None:
        """Log removal of both legs of a transfer."""
        self.log(AuditEventBuilder.transfer_deleted(
            owner=owner,
            transfer_id=transfer_id,
            leg_ids=leg_ids,
        ))

    def log_validation_failed(
        self,
        owner: str,
        operation: str,
        issues: list[dict],
        entity_id: Optional[UUID] = None,
    ) -> None:
        """Log rejected input."""
        self.log(AuditEventBuilder.validation_failed(
            owner=owner,
            operation=operation,
            issues=issues,
            entity_id=entity_id,
        ))

    def log_edit_window_expired(
        self,
        owner: str,
        transaction_id: UUID,
        age_hours: float,
        window_hours: float,
    ) -> None:
        """Log an update attempted after the lock."""
        self.log(AuditEventBuilder.edit_window_expired(
            owner=owner,
            transaction_id=transaction_id,
            age_hours=age_hours,
            window_hours=window_hours,
        ))

    def log_not_found(
        self,
        owner: str,
        transaction_id: Optional[UUID],
        operation: str,
    ) -> None:
        """Log a missing or foreign target."""
        self.log(AuditEventBuilder.not_found(
            owner=owner,
            transaction_id=transaction_id,
            operation=operation,
        ))

    def log_transfer_failed(
        self,
        owner: str,
        transfer_id: UUID,
        error_message: str,
        orphaned_ids: Optional[list[UUID]] = None,
    ) -> None:
        """Log a transfer that could not be committed."""
        self.log(AuditEventBuilder.transfer_failed(
            owner=owner,
            transfer_id=transfer_id,
            error_message=error_message,
            orphaned_ids=orphaned_ids,
        ))

    def log_transfer_rolled_back(
        self,
        owner: str,
        transfer_id: UUID,
        reverted_ids: list[UUID],
    ) -> None:
        """Log compensation of a partial transfer write."""
        self.log(AuditEventBuilder.transfer_rolled_back(
            owner=owner,
            transfer_id=transfer_id,
            reverted_ids=reverted_ids,
        ))

    def log_ledger_summarized(self, owner: str, window: str, row_count: int) -> None:
        self.log(AuditEventBuilder.ledger_summarized(
            owner=owner,
            window=window,
            row_count=row_count,
        ))

    def log_store_error(
        self,
        operation: str,
        error_kind: str,
        error_message: str,
        owner: Optional[str] = None,
        entity_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage failure."""
        self.log(AuditEventBuilder.store_error(
            operation=operation,
            error_kind=error_kind,
            error_message=error_message,
            owner=owner,
            entity_id=entity_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Used as the shared transfer_id of both legs of one transfer.
    """
    return uuid4()

"""
Ledger Query Execution

DESIGN DECISION: Reads are DETERMINISTIC and derived.
Nothing computed here is stored: edit status, window membership and
totals are recomputed from the owner's records on every call, using
the same rules the engine enforces on writes.

Totals always cover the whole ledger. The window only narrows the
rows that are listed, so switching Weekly/Monthly never changes the
balance shown above the list.
"""

from datetime import datetime
from typing import Optional

from wallet.audit import AuditLogger
from wallet.ledger.engine import LedgerEngine
from wallet.ledger.window import TimeWindow, filter_by_window
from wallet.models.transaction import (
    EditStatus,
    LedgerRow,
    LedgerSummary,
    Transaction,
    TransferLeg,
    as_utc,
)


class LedgerQueryExecutor:
    """
    Builds the ledger list and totals for one owner.

    GUARANTEES:
    - Only returns real data from storage
    - One row per transfer, never one per leg
    - Row order follows store order
    """

    def __init__(self, engine: LedgerEngine, audit_logger: Optional[AuditLogger] = None):
        self._engine = engine
        self._audit_logger = audit_logger

    async def summarize(
        self,
        owner: str,
        window: "TimeWindow | str" = TimeWindow.ALL,
        division: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LedgerSummary:
        """
        Aggregates, division balances and the rows of one window.

        Args:
            owner: Whose ledger
            window: All, Weekly or Monthly (rows only)
            division: Optional division filter (rows only)
            now: Reference instant; the engine clock if omitted

        Raises:
            ValidationError: unknown window or empty owner
        """
        window = TimeWindow.parse(window)
        now = as_utc(now) if now is not None else self._engine.now()

        records = await self._engine.list_by_owner(owner)
        aggregates = self._engine.compute_aggregates(records)
        balances = self._engine.compute_division_balances(records)

        listed = records
        if division is not None:
            division = division.strip()
            listed = [
                tx for tx in records
                if tx.division == division or tx.to_division == division
            ]
        listed = filter_by_window(listed, window, now, self._engine.settings)

        rows = [self._to_row(tx, now) for tx in self._collapse_transfers(listed)]

        summary = LedgerSummary(
            owner=owner.strip(),
            window=window.value,
            generated_at=now,
            aggregates=aggregates,
            division_balances=balances,
            rows=rows,
        )

        if self._audit_logger:
            self._audit_logger.log_ledger_summarized(
                owner=summary.owner,
                window=summary.window,
                row_count=summary.row_count,
            )

        return summary

    @staticmethod
    def _collapse_transfers(transactions: list[Transaction]) -> list[Transaction]:
        """
        Keep one record per transfer.

        The OUT leg stands for the pair. A leg whose partner is missing
        from the input is kept as is.
        """
        paired = {
            tx.transfer_id
            for tx in transactions
            if tx.is_transfer and tx.leg == TransferLeg.OUT
        }
        return [
            tx for tx in transactions
            if not tx.is_transfer
            or tx.leg == TransferLeg.OUT
            or tx.transfer_id not in paired
        ]

    def _to_row(self, tx: Transaction, now: datetime) -> LedgerRow:
        # Transfers are only ever deleted, never edited
        if tx.is_transfer:
            status = EditStatus.LOCKED
        else:
            status = self._engine.edit_status(tx, now)
        return LedgerRow(
            id=tx.id,
            type=tx.type,
            description=tx.description,
            category=tx.category,
            division_label=tx.display_division(),
            amount=tx.amount,
            created_at=tx.created_at,
            status=status,
            can_edit=status == EditStatus.EDITABLE,
            transfer_id=tx.transfer_id,
        )

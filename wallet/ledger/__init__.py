"""Ledger rules: engine, edit lock, time windows and aggregation."""

from wallet.ledger.aggregates import compute_aggregates, compute_division_balances
from wallet.ledger.edit_lock import edit_status, is_editable
from wallet.ledger.engine import LedgerEngine
from wallet.ledger.window import TimeWindow, filter_by_window, window_size

__all__ = [
    "LedgerEngine",
    "TimeWindow",
    "compute_aggregates",
    "compute_division_balances",
    "edit_status",
    "filter_by_window",
    "is_editable",
    "window_size",
]

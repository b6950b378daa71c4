"""
Edit-lock window.

Editable while age <= window (12h by default), Locked afterwards.
One-way and time-driven; the status is computed on every read and never
stored. A record exactly at the window boundary is still editable.
"""

from datetime import datetime, timedelta

from wallet.models.transaction import EditStatus, Transaction, as_utc


def is_editable(tx: Transaction, now: datetime, window_hours: float) -> bool:
    return as_utc(now) - tx.created_at <= timedelta(hours=window_hours)


def edit_status(tx: Transaction, now: datetime, window_hours: float) -> EditStatus:
    if is_editable(tx, now, window_hours):
        return EditStatus.EDITABLE
    return EditStatus.LOCKED

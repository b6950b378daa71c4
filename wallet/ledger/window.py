"""
Time-Window Filter

Pure, stateless selection over an already-loaded sequence of
transactions by elapsed time from a reference instant.

Windows are half-open: a record is kept when its age is strictly
less than the window size, so a record exactly at the boundary is
excluded. Input order is always preserved.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Optional

from wallet.config import LedgerSettings, get_settings
from wallet.errors import ValidationError
from wallet.models.transaction import Transaction, ValidationIssue, as_utc


class TimeWindow(str, Enum):
    """Selectable ledger list windows."""
    ALL = "All"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"

    @classmethod
    def parse(cls, value: "TimeWindow | str") -> "TimeWindow":
        """Accept the enum or its name in any case ("weekly", "WEEKLY")."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for window in cls:
                if window.value.lower() == value.strip().lower():
                    return window
        raise ValidationError([ValidationIssue(
            field="window",
            issue_type="unknown_window",
            message=f"Unknown time window: {value!r} (expected All, Weekly or Monthly)",
        )])


def window_size(
    window: TimeWindow,
    settings: Optional[LedgerSettings] = None,
) -> Optional[timedelta]:
    """Size of a window, or None for All."""
    settings = settings or get_settings().ledger
    if window == TimeWindow.WEEKLY:
        return timedelta(hours=settings.weekly_window_hours)
    if window == TimeWindow.MONTHLY:
        return timedelta(hours=settings.monthly_window_hours)
    return None


def filter_by_window(
    transactions: Iterable[Transaction],
    window: "TimeWindow | str",
    now: datetime,
    settings: Optional[LedgerSettings] = None,
) -> list[Transaction]:
    """
    Select the transactions younger than the window.

    Args:
        transactions: Records to filter (not modified)
        window: All, Weekly or Monthly
        now: Reference instant
        settings: Window sizes; defaults to configured settings

    Returns:
        New list, input order preserved
    """
    size = window_size(TimeWindow.parse(window), settings)
    if size is None:
        return list(transactions)

    now = as_utc(now)
    return [tx for tx in transactions if now - tx.created_at < size]

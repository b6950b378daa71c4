"""Tests for the pure ledger rules: time windows, edit lock, aggregation."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from wallet.config import LedgerSettings
from wallet.errors import ValidationError
from wallet.ledger import (
    TimeWindow,
    compute_aggregates,
    compute_division_balances,
    edit_status,
    filter_by_window,
    is_editable,
    window_size,
)
from wallet.models import EditStatus, Transaction, TransactionType, TransferLeg


NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
SETTINGS = LedgerSettings()


def tx(type_="EXPENSE", amount="10", division="Personal", age=timedelta(0), **extra):
    return Transaction(
        owner="alice",
        type=TransactionType(type_),
        amount=Decimal(amount),
        description="entry",
        division=division,
        created_at=NOW - age,
        **extra,
    )


def transfer(amount, source, destination):
    transfer_id = uuid4()
    return [
        tx("TRANSFER", amount, source, to_division=destination,
           transfer_id=transfer_id, leg=leg)
        for leg in (TransferLeg.OUT, TransferLeg.IN)
    ]


class TestTimeWindow:
    """Tests for the Weekly/Monthly/All filter."""

    def test_parse_is_case_insensitive(self):
        """Test window names in any case."""
        assert TimeWindow.parse("weekly") == TimeWindow.WEEKLY
        assert TimeWindow.parse(" MONTHLY ") == TimeWindow.MONTHLY
        assert TimeWindow.parse(TimeWindow.ALL) == TimeWindow.ALL

    def test_parse_unknown_window(self):
        """Test that an unknown window is a validation error."""
        with pytest.raises(ValidationError) as exc:
            TimeWindow.parse("Yearly")
        assert exc.value.field == "window"

    def test_window_sizes(self):
        """Test configured window sizes."""
        assert window_size(TimeWindow.WEEKLY, SETTINGS) == timedelta(hours=168)
        assert window_size(TimeWindow.MONTHLY, SETTINGS) == timedelta(hours=720)
        assert window_size(TimeWindow.ALL, SETTINGS) is None

    def test_weekly_boundaries(self):
        """Test 167h kept, exactly 168h and 169h excluded."""
        inside = tx(age=timedelta(hours=167))
        boundary = tx(age=timedelta(hours=168))
        outside = tx(age=timedelta(hours=169))

        kept = filter_by_window([inside, boundary, outside], "Weekly", NOW, SETTINGS)
        assert kept == [inside]

    def test_monthly_boundaries(self):
        """Test 719h kept, exactly 720h excluded."""
        inside = tx(age=timedelta(hours=719))
        boundary = tx(age=timedelta(hours=720))
        assert filter_by_window([inside, boundary], TimeWindow.MONTHLY, NOW, SETTINGS) == [inside]

    def test_all_keeps_everything_in_order(self):
        """Test that All returns a new list in input order."""
        records = [tx(age=timedelta(days=400)), tx(), tx(age=timedelta(days=30))]
        result = filter_by_window(records, TimeWindow.ALL, NOW, SETTINGS)
        assert result == records
        assert result is not records

    def test_order_preserved(self):
        """Test that filtering never reorders."""
        a = tx(age=timedelta(hours=1))
        b = tx(age=timedelta(hours=100))
        c = tx(age=timedelta(hours=2))
        assert filter_by_window([b, a, c], TimeWindow.WEEKLY, NOW, SETTINGS) == [b, a, c]

    def test_empty_input(self):
        """Test that empty input gives empty output."""
        assert filter_by_window([], TimeWindow.WEEKLY, NOW, SETTINGS) == []


class TestEditLock:
    """Tests for the 12-hour edit window."""

    @pytest.mark.parametrize("age,editable", [
        (timedelta(0), True),
        (timedelta(hours=11, minutes=59), True),
        (timedelta(hours=12), True),
        (timedelta(hours=12, minutes=1), False),
        (timedelta(days=3), False),
    ])
    def test_boundaries(self, age, editable):
        """Test editable up to and including 12h."""
        record = tx(age=age)
        assert is_editable(record, NOW, 12) is editable
        expected = EditStatus.EDITABLE if editable else EditStatus.LOCKED
        assert edit_status(record, NOW, 12) == expected

    def test_lock_is_one_way(self):
        """Test that a locked record stays locked as time moves on."""
        record = tx(age=timedelta(hours=13))
        for later in (NOW, NOW + timedelta(hours=1), NOW + timedelta(days=30)):
            assert edit_status(record, later, 12) == EditStatus.LOCKED

    def test_status_values(self):
        """Test the displayed status labels."""
        assert EditStatus.EDITABLE.value == "Edit"
        assert EditStatus.LOCKED.value == "Locked"


class TestAggregates:
    """Tests for income/expense/balance and division balances."""

    def test_income_minus_expense(self):
        """Test {INCOME 100, EXPENSE 40} gives balance 60."""
        result = compute_aggregates([tx("INCOME", "100"), tx("EXPENSE", "40")])
        assert result.income == Decimal("100")
        assert result.expense == Decimal("40")
        assert result.balance == Decimal("60")

    def test_empty_ledger(self):
        """Test that no transactions give all zeros."""
        result = compute_aggregates([])
        assert (result.income, result.expense, result.balance) == (0, 0, 0)

    def test_negative_balance(self):
        """Test that spending more than earned goes negative."""
        assert compute_aggregates([tx("EXPENSE", "25")]).balance == Decimal("-25")

    def test_exact_decimal_sums(self):
        """Test that sums do not drift like floats."""
        records = [tx("INCOME", "0.10") for _ in range(3)]
        assert compute_aggregates(records).income == Decimal("0.30")

    def test_transfers_are_balance_neutral(self):
        """Test that adding a transfer leaves totals unchanged."""
        base = [tx("INCOME", "100"), tx("EXPENSE", "40")]
        before = compute_aggregates(base)
        after = compute_aggregates(base + transfer("30", "Personal", "Savings"))
        assert after == before

    def test_division_balances(self):
        """Test that transfers move money between divisions only."""
        records = [
            tx("INCOME", "100", "Personal"),
            tx("EXPENSE", "40", "Personal"),
            tx("EXPENSE", "5", "Business"),
            *transfer("30", "Personal", "Savings"),
        ]
        balances = compute_division_balances(records)
        assert balances == {
            "Personal": Decimal("30"),
            "Business": Decimal("-5"),
            "Savings": Decimal("30"),
        }
        assert sum(balances.values()) == compute_aggregates(records).balance

    def test_division_order_follows_first_use(self):
        """Test divisions are listed in order of first appearance."""
        records = [tx("INCOME", "1", "B"), tx("INCOME", "1", "A")]
        assert list(compute_division_balances(records)) == ["B", "A"]

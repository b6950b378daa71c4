"""
Ledger Aggregation

DESIGN DECISION: Transfers are balance-neutral. Both transfer legs carry
type TRANSFER and never contribute to income or expense totals; they
only move money between per-division balances.
"""

from decimal import Decimal
from typing import Iterable

from wallet.models.transaction import (
    Aggregates,
    Transaction,
    TransactionType,
    TransferLeg,
)


def compute_aggregates(transactions: Iterable[Transaction]) -> Aggregates:
    """Sum income and expense; balance = income - expense."""
    income = Decimal("0")
    expense = Decimal("0")

    for tx in transactions:
        if tx.type == TransactionType.INCOME:
            income += tx.amount
        elif tx.type == TransactionType.EXPENSE:
            expense += tx.amount

    return Aggregates(income=income, expense=expense, balance=income - expense)


def compute_division_balances(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """
    Net balance per division.

    Income adds to its division and expense subtracts. The OUT leg of a
    transfer subtracts from the source division, the IN leg adds to the
    destination, so the balances always sum to the aggregate balance.
    Divisions appear in order of first use.
    """
    balances: dict[str, Decimal] = {}

    def post(division: str, amount: Decimal) -> None:
        balances[division] = balances.get(division, Decimal("0")) + amount

    for tx in transactions:
        if tx.type == TransactionType.INCOME:
            post(tx.division, tx.amount)
        elif tx.type == TransactionType.EXPENSE:
            post(tx.division, -tx.amount)
        elif tx.leg == TransferLeg.OUT:
            post(tx.division, -tx.amount)
        elif tx.leg == TransferLeg.IN:
            post(tx.to_division, tx.amount)

    return balances

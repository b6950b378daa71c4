"""
Shared fixtures for Wallet Ledger tests.

Time-based rules run against a fixed clock that tests move by hand.
Storage is in memory; no test touches the network or Google Sheets.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from wallet.audit import AuditLogger
from wallet.config import LedgerSettings
from wallet.errors import StoreUnavailableError
from wallet.ledger import LedgerEngine
from wallet.models import AuditEvent, AuditEventType
from wallet.services.storage import InMemoryLedgerStore


FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock returning a settable instant."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingAuditLogger(AuditLogger):
    """Audit logger that also keeps every event for assertions."""

    def __init__(self):
        super().__init__("wallet.audit.test")
        self.events: list[AuditEvent] = []

    def log(self, event: AuditEvent) -> AuditEvent:
        self.events.append(event)
        return super().log(event)

    def of_type(self, event_type: AuditEventType) -> list[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]


class FlakyLedgerStore(InMemoryLedgerStore):
    """
    In-memory store without atomic batches that fails on demand.

    fail_inserts / fail_deletes hold 1-based call numbers that raise.
    unavailable_reads is the number of upcoming reads that raise.
    """

    atomic_batches = False

    def __init__(self):
        super().__init__()
        self.fail_inserts: set[int] = set()
        self.fail_deletes: set[int] = set()
        self.unavailable_reads = 0
        self.insert_calls = 0
        self.delete_calls = 0
        self.read_calls = 0

    async def insert(self, record):
        self.insert_calls += 1
        if self.insert_calls in self.fail_inserts:
            raise StoreUnavailableError("insert failed")
        return await super().insert(record)

    async def delete(self, transaction_id):
        self.delete_calls += 1
        if self.delete_calls in self.fail_deletes:
            raise StoreUnavailableError("delete failed")
        return await super().delete(transaction_id)

    def _read_attempt(self) -> None:
        self.read_calls += 1
        if self.unavailable_reads > 0:
            self.unavailable_reads -= 1
            raise StoreUnavailableError("read failed")

    async def get(self, transaction_id):
        self._read_attempt()
        return await super().get(transaction_id)

    async def list_by_owner(self, owner):
        self._read_attempt()
        return await super().list_by_owner(owner)


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    """Default policy with zero retry backoff."""
    return LedgerSettings(
        read_retry_min_wait_seconds=0.0,
        read_retry_max_wait_seconds=0.0,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def audit_logger() -> RecordingAuditLogger:
    return RecordingAuditLogger()


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def flaky_store() -> FlakyLedgerStore:
    return FlakyLedgerStore()


@pytest.fixture
def engine(store, ledger_settings, audit_logger, clock) -> LedgerEngine:
    return LedgerEngine(
        store=store,
        audit_logger=audit_logger,
        settings=ledger_settings,
        clock=clock,
    )


@pytest.fixture
def flaky_engine(flaky_store, ledger_settings, audit_logger, clock) -> LedgerEngine:
    return LedgerEngine(
        store=flaky_store,
        audit_logger=audit_logger,
        settings=ledger_settings,
        clock=clock,
    )


@pytest_asyncio.fixture
async def household(engine, clock):
    """
    One owner with salary, rent and a savings transfer,
    recorded 10 days, 3 days and 1 hour before the fixed clock.
    """
    start = clock.now
    clock.now = start - timedelta(days=10)
    salary = await engine.create("alice", {
        "type": "INCOME",
        "amount": "1000",
        "description": "Salary",
        "category": "Work",
        "division": "Personal",
    })
    clock.now = start - timedelta(days=3)
    rent = await engine.create("alice", {
        "type": "EXPENSE",
        "amount": "400",
        "description": "Rent",
        "category": "Housing",
        "division": "Personal",
    })
    clock.now = start - timedelta(hours=1)
    transfer = await engine.create_transfer("alice", {
        "type": "TRANSFER",
        "amount": "150",
        "description": "Monthly savings",
        "division": "Personal",
        "toDivision": "Savings",
    })
    clock.now = start
    return {"salary": salary, "rent": rent, "transfer": transfer}

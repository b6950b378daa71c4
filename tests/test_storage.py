"""
Tests for the ledger stores.

The same contract runs against the in-memory and JSON file stores.
Google Sheets runs against a fake worksheet; no network access.
"""

import json

import gspread
import pytest
import pytest_asyncio
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from wallet.config import GoogleSheetsSettings
from wallet.errors import NotFoundError, StorageError, StoreUnavailableError
from wallet.models import Transaction, TransactionType, TransferLeg
from wallet.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    InMemoryLedgerStore,
    JsonFileLedgerStore,
)
from wallet.services.storage.google_sheets import TRANSACTION_COLUMNS


CREATED = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def expense(owner="alice", amount="19.99", **extra):
    return Transaction(
        owner=owner,
        type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        description="Books",
        category="Education",
        created_at=CREATED,
        **extra,
    )


def transfer_legs(owner="alice"):
    transfer_id = uuid4()
    return [
        Transaction(
            owner=owner,
            type=TransactionType.TRANSFER,
            amount=Decimal("75"),
            description="Savings",
            division="Personal",
            to_division="Savings",
            transfer_id=transfer_id,
            leg=leg,
            created_at=CREATED,
        )
        for leg in (TransferLeg.OUT, TransferLeg.IN)
    ]


# =============================================================================
# FAKE GOOGLE SHEETS
# =============================================================================

class FakeWorksheet:
    """Just enough of gspread.Worksheet for the ledger store."""

    def __init__(self):
        self.rows: list[list[str]] = [list(TRANSACTION_COLUMNS)]
        self.fail_with = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def get_all_values(self):
        self._check()
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self._check()
        self.rows.append(["" if v is None else str(v) for v in values])

    def update_cell(self, row, col, value):
        self._check()
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)

    def delete_rows(self, index):
        self._check()
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self, sheet=None):
        self.sheet = sheet or FakeWorksheet()

    def get_transactions_sheet(self):
        return self.sheet


class FakeSpreadsheet:
    def __init__(self):
        self.sheets = {}

    def worksheet(self, title):
        if title not in self.sheets:
            raise gspread.WorksheetNotFound(title)
        return self.sheets[title]

    def add_worksheet(self, title, rows, cols):
        sheet = FakeWorksheet()
        sheet.rows = []
        self.sheets[title] = sheet
        return sheet


# =============================================================================
# SHARED CONTRACT
# =============================================================================

@pytest_asyncio.fixture(params=["memory", "json_file", "google_sheets"])
async def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryLedgerStore()
    if request.param == "json_file":
        return JsonFileLedgerStore(tmp_path / "ledger.json")
    return GoogleSheetsLedgerStore(FakeSheetsClient())


class TestStoreContract:
    """Tests every store must pass."""

    @pytest.mark.asyncio
    async def test_insert_and_get(self, any_store):
        """Test that a stored record reads back equal, amount exact."""
        record = expense()
        await any_store.insert(record)

        loaded = await any_store.get(record.id)
        assert loaded == record
        assert loaded.amount == Decimal("19.99")

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, any_store):
        """Test that an unknown id reads as None."""
        assert await any_store.get(uuid4()) is None

    @pytest.mark.asyncio
    async def test_list_by_owner_in_insert_order(self, any_store):
        """Test owner partitioning and store order."""
        first = expense()
        other = expense(owner="bob")
        second = expense(amount="5")
        for record in (first, other, second):
            await any_store.insert(record)

        assert [r.id for r in await any_store.list_by_owner("alice")] == [first.id, second.id]
        assert [r.id for r in await any_store.list_by_owner("bob")] == [other.id]
        assert await any_store.list_by_owner("carol") == []

    @pytest.mark.asyncio
    async def test_update_applies_patch(self, any_store):
        """Test that update changes fields but never identity."""
        record = expense()
        await any_store.insert(record)
        updated_at = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)

        updated = await any_store.update(record.id, {
            "amount": Decimal("21.50"),
            "owner": "mallory",
            "updated_at": updated_at,
        })

        assert updated.amount == Decimal("21.50")
        assert updated.owner == "alice"
        assert updated.updated_at == updated_at
        assert await any_store.get(record.id) == updated

    @pytest.mark.asyncio
    async def test_update_missing(self, any_store):
        """Test that updating an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await any_store.update(uuid4(), {"amount": Decimal("1")})

    @pytest.mark.asyncio
    async def test_delete(self, any_store):
        """Test delete and delete-missing."""
        keep, drop = expense(), expense(amount="1")
        await any_store.insert(keep)
        await any_store.insert(drop)

        await any_store.delete(drop.id)

        assert await any_store.get(drop.id) is None
        assert [r.id for r in await any_store.list_by_owner("alice")] == [keep.id]
        with pytest.raises(NotFoundError):
            await any_store.delete(drop.id)

    @pytest.mark.asyncio
    async def test_transfer_legs_round_trip(self, any_store):
        """Test that transfer links survive storage."""
        debit, credit = transfer_legs()
        await any_store.insert(debit)
        await any_store.insert(credit)

        loaded = await any_store.list_by_owner("alice")
        assert loaded == [debit, credit]
        assert loaded[0].transfer_id == loaded[1].transfer_id

    @pytest.mark.asyncio
    async def test_returned_records_are_detached(self, any_store):
        """Test that mutating a read result never changes what is stored."""
        record = expense()
        await any_store.insert(record)
        record.description = "Changed after insert"

        got = await any_store.get(record.id)
        got.amount = Decimal("-5")
        got.owner = "mallory"
        listed = (await any_store.list_by_owner("alice"))[0]
        listed.category = "Tampered"

        stored = await any_store.get(record.id)
        assert stored.amount == Decimal("19.99")
        assert stored.owner == "alice"
        assert stored.category == "Education"
        assert stored.description == "Books"
        assert await any_store.list_by_owner("mallory") == []


# =============================================================================
# BACKEND SPECIFICS
# =============================================================================

class TestInMemoryStore:
    """Tests for InMemoryLedgerStore."""

    @pytest.mark.asyncio
    async def test_batch_is_all_or_nothing(self):
        """Test that a batch with a duplicate id writes nothing."""
        existing = expense()
        store = InMemoryLedgerStore([existing])

        with pytest.raises(StorageError):
            await store.insert_batch([expense(), existing])

        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_duplicate_insert_rejected(self):
        """Test that ids are unique."""
        record = expense()
        store = InMemoryLedgerStore()
        await store.insert(record)
        with pytest.raises(StorageError):
            await store.insert(record)


class TestJsonFileStore:
    """Tests for JsonFileLedgerStore."""

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        """Test that a new store on the same file sees earlier writes."""
        path = tmp_path / "data" / "ledger.json"
        record = expense()
        await JsonFileLedgerStore(path).insert(record)

        assert await JsonFileLedgerStore(path).get(record.id) == record

    @pytest.mark.asyncio
    async def test_file_layout(self, tmp_path):
        """Test the document is keyed by id with an owner index."""
        path = tmp_path / "ledger.json"
        record = expense()
        await JsonFileLedgerStore(path).insert(record)

        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["version"] == 1
        assert document["transactions"][str(record.id)]["amount"] == "19.99"
        assert document["owners"] == {"alice": [str(record.id)]}

    @pytest.mark.asyncio
    async def test_batch_written_once(self, tmp_path):
        """Test that both legs land in one write."""
        store = JsonFileLedgerStore(tmp_path / "ledger.json")
        legs = transfer_legs()
        await store.insert_batch(legs)
        assert await store.list_by_owner("alice") == legs

    @pytest.mark.asyncio
    async def test_corrupt_file(self, tmp_path):
        """Test that unreadable JSON is a storage error."""
        path = tmp_path / "ledger.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            await JsonFileLedgerStore(path).list_by_owner("alice")

    @pytest.mark.asyncio
    async def test_unknown_version(self, tmp_path):
        """Test that a future file format is refused."""
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({"version": 99}), encoding="utf-8")
        with pytest.raises(StorageError, match="version"):
            await JsonFileLedgerStore(path).get(uuid4())


class TestGoogleSheetsStore:
    """Tests for GoogleSheetsLedgerStore against a fake worksheet."""

    @pytest.mark.asyncio
    async def test_row_layout(self):
        """Test one row per transaction in column order."""
        client = FakeSheetsClient()
        store = GoogleSheetsLedgerStore(client)
        record = expense()
        await store.insert(record)

        row = dict(zip(TRANSACTION_COLUMNS, client.sheet.rows[1]))
        assert row["id"] == str(record.id)
        assert row["amount"] == "19.99"
        assert row["to_division"] == ""
        assert row["created_at"] == CREATED.isoformat()

    @pytest.mark.asyncio
    async def test_update_touches_changed_cells_only(self):
        """Test that unchanged cells are left alone."""
        client = FakeSheetsClient()
        store = GoogleSheetsLedgerStore(client)
        record = expense()
        await store.insert(record)
        calls = []
        original = client.sheet.update_cell

        def spy(row, col, value):
            calls.append(TRANSACTION_COLUMNS[col - 1])
            original(row, col, value)

        client.sheet.update_cell = spy
        await store.update(record.id, {"description": "Novels"})

        assert calls == ["description"]

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self):
        """Test that a hand-edited bad row does not hide the rest."""
        client = FakeSheetsClient()
        store = GoogleSheetsLedgerStore(client)
        good = expense()
        await store.insert(good)
        client.sheet.rows.append([str(uuid4()), "alice", "EXPENSE", "lots"])
        client.sheet.rows.append([])

        assert await store.list_by_owner("alice") == [good]

    @pytest.mark.asyncio
    async def test_connection_errors_are_unavailable(self):
        """Test that network failures become StoreUnavailableError."""
        client = FakeSheetsClient()
        client.sheet.fail_with = ConnectionError("reset by peer")
        store = GoogleSheetsLedgerStore(client)

        with pytest.raises(StoreUnavailableError):
            await store.list_by_owner("alice")
        with pytest.raises(StoreUnavailableError):
            await store.insert(expense())

    @pytest.mark.asyncio
    async def test_other_errors_are_storage_errors(self):
        """Test that unexpected failures become StorageError."""
        client = FakeSheetsClient()
        client.sheet.fail_with = RuntimeError("quota")
        store = GoogleSheetsLedgerStore(client)

        with pytest.raises(StorageError) as exc:
            await store.get(uuid4())
        assert not isinstance(exc.value, StoreUnavailableError)

    def test_store_is_not_atomic(self):
        """Test that the engine is told to compensate."""
        assert GoogleSheetsLedgerStore(FakeSheetsClient()).atomic_batches is False


class TestGoogleSheetsClient:
    """Tests for worksheet setup."""

    def test_creates_missing_sheet_with_header(self, tmp_path):
        """Test that a missing Transactions sheet is created with headers."""
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}", encoding="utf-8")
        client = GoogleSheetsClient(GoogleSheetsSettings(
            credentials_path=str(credentials),
            spreadsheet_id="sheet-123",
        ))
        spreadsheet = FakeSpreadsheet()
        client._spreadsheet = spreadsheet

        sheet = client.get_transactions_sheet()

        assert sheet.rows == [TRANSACTION_COLUMNS]
        assert client.get_transactions_sheet() is sheet

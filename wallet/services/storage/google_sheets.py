"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a shared backend because:
1. Owners can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for personal use)
- No transactions: atomic_batches is False, so the ledger engine
  writes transfer legs one by one and compensates on failure
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so the ledger
engine does not know which backend it talks to.
"""

from typing import Any, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from wallet.config import GoogleSheetsSettings, get_settings
from wallet.errors import NotFoundError, StorageError, StoreUnavailableError
from wallet.models.transaction import Transaction
from wallet.services.storage.interface import LedgerStoreInterface
from wallet.services.storage.memory import apply_patch


# Column mappings for the Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "owner",
    "type",
    "amount",
    "description",
    "category",
    "division",
    "to_division",
    "transfer_id",
    "leg",
    "created_at",
    "updated_at",
]

ID_COLUMN = TRANSACTION_COLUMNS.index("id")
OWNER_COLUMN = TRANSACTION_COLUMNS.index("owner")

logger = structlog.get_logger(__name__)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        retry=retry_if_exception_type(StoreUnavailableError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreUnavailableError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.transactions_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.transactions_sheet_name,
                rows=1000,
                cols=len(TRANSACTION_COLUMNS),
            )
            sheet.append_row(TRANSACTION_COLUMNS)
        return sheet


class GoogleSheetsLedgerStore(LedgerStoreInterface):
    """
    Google Sheets implementation of ledger storage.

    One transaction per row; the first row is the header.
    """

    atomic_batches = False

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, record: Transaction) -> list:
        """Convert a Transaction to a spreadsheet row."""
        data = record.to_record()
        return ["" if data[column] is None else data[column] for column in TRANSACTION_COLUMNS]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        # Handle missing trailing columns gracefully
        def safe_get(index: int) -> Optional[str]:
            try:
                return row[index] or None
            except IndexError:
                return None

        data = {
            column: safe_get(index)
            for index, column in enumerate(TRANSACTION_COLUMNS)
        }
        return Transaction.model_validate(data)

    def _find_row(self, sheet: gspread.Worksheet, transaction_id: UUID) -> tuple[int, list]:
        """Locate a transaction; returns (1-based sheet row, row values)."""
        key = str(transaction_id)
        # Row 1 is the header
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and row[ID_COLUMN] == key:
                return idx, row
        raise NotFoundError(f"Transaction not found: {transaction_id}", field="id")

    def _wrap(self, operation: str, error: Exception) -> StorageError:
        if isinstance(error, (gspread.exceptions.APIError, OSError)):
            return StoreUnavailableError(f"Google Sheets unavailable during {operation}: {error}")
        return StorageError(f"Failed to {operation}: {error}")

    async def insert(self, record: Transaction) -> Transaction:
        """Append a transaction row."""
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(self._transaction_to_row(record), value_input_option="RAW")
            return record
        except StorageError:
            raise
        except Exception as e:
            raise self._wrap("insert transaction", e)

    async def get(self, transaction_id: UUID) -> Optional[Transaction]:
        """Retrieve a transaction by its ID."""
        try:
            sheet = self._client.get_transactions_sheet()
            _, row = self._find_row(sheet, transaction_id)
            return self._row_to_transaction(row)
        except NotFoundError:
            return None
        except StorageError:
            raise
        except Exception as e:
            raise self._wrap("get transaction", e)

    async def update(self, transaction_id: UUID, patch: dict[str, Any]) -> Transaction:
        """Apply a patch to an existing transaction row."""
        try:
            sheet = self._client.get_transactions_sheet()
            idx, row = self._find_row(sheet, transaction_id)
            updated = apply_patch(self._row_to_transaction(row), patch)
            new_row = self._transaction_to_row(updated)

            # Update only the cells that changed
            for col_idx, value in enumerate(new_row, start=1):
                old = row[col_idx - 1] if col_idx - 1 < len(row) else ""
                if old != value:
                    sheet.update_cell(idx, col_idx, value)

            return updated
        except (NotFoundError, StorageError):
            raise
        except Exception as e:
            raise self._wrap("update transaction", e)

    async def delete(self, transaction_id: UUID) -> None:
        """Delete a transaction row."""
        try:
            sheet = self._client.get_transactions_sheet()
            idx, _ = self._find_row(sheet, transaction_id)
            sheet.delete_rows(idx)
        except (NotFoundError, StorageError):
            raise
        except Exception as e:
            raise self._wrap("delete transaction", e)

    async def list_by_owner(self, owner: str) -> list[Transaction]:
        """List an owner's transactions in sheet order."""
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise self._wrap("list transactions", e)

        records = []
        for row_number, row in enumerate(all_rows, start=2):
            if not row or not row[ID_COLUMN]:  # Skip empty rows
                continue
            if len(row) <= OWNER_COLUMN or row[OWNER_COLUMN] != owner:
                continue
            try:
                records.append(self._row_to_transaction(row))
            except ValueError as e:
                # Hand-edited rows can be malformed; keep the rest readable
                logger.warning(
                    "malformed_sheet_row",
                    row_number=row_number,
                    error=str(e),
                )
        return records


"""
JSON File Storage Implementation

One JSON document holds the whole ledger:

    {
      "version": 1,
      "transactions": {"<id>": {...record...}, ...},
      "owners": {"<owner>": ["<id>", ...], ...}
    }

Records are keyed by id, with a secondary index by owner that also
fixes the store order. Amounts are written as strings so Decimal
values round-trip exactly.

TRADEOFFS:
- Every operation reads the file; there is no cache
- Every write rewrites the file (temp file + os.replace), so a batch
  is committed in one replace and is atomic
- File I/O (including fsync) is blocking and runs inside the async
  methods, stalling the event loop for the length of each read/write
- Suitable for one user on one machine, not for concurrent writers
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

from wallet.errors import NotFoundError, StorageError, StoreUnavailableError
from wallet.models.transaction import Transaction
from wallet.services.storage.interface import LedgerStoreInterface
from wallet.services.storage.memory import apply_patch


FORMAT_VERSION = 1


class JsonFileLedgerStore(LedgerStoreInterface):
    """File-backed ledger store."""

    atomic_batches = True

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _empty(self) -> dict:
        return {"version": FORMAT_VERSION, "transactions": {}, "owners": {}}

    def _load(self) -> dict:
        if not self._path.exists():
            return self._empty()
        try:
            with self._path.open("r", encoding="utf-8") as f:
                document = json.load(f)
        except OSError as e:
            raise StoreUnavailableError(f"Cannot read ledger file {self._path}: {e}")
        except json.JSONDecodeError as e:
            raise StorageError(f"Ledger file {self._path} is corrupt: {e}")

        if document.get("version") != FORMAT_VERSION:
            raise StorageError(
                f"Unsupported ledger file version: {document.get('version')!r}"
            )
        return document

    def _save(self, document: dict) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self._path.parent, prefix=".ledger-", suffix=".json"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, sort_keys=True)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self._path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreUnavailableError(f"Cannot write ledger file {self._path}: {e}")

    def _to_record(self, data: dict) -> Transaction:
        try:
            return Transaction.model_validate(data)
        except ValueError as e:
            raise StorageError(f"Malformed ledger record {data.get('id')!r}: {e}")

    def _add(self, document: dict, record: Transaction) -> None:
        key = str(record.id)
        if key in document["transactions"]:
            raise StorageError(f"Duplicate transaction id: {record.id}")
        document["transactions"][key] = record.to_record()
        document["owners"].setdefault(record.owner, []).append(key)

    async def insert(self, record: Transaction) -> Transaction:
        document = self._load()
        self._add(document, record)
        self._save(document)
        return record

    async def insert_batch(self, records: list[Transaction]) -> list[Transaction]:
        document = self._load()
        for record in records:
            self._add(document, record)
        self._save(document)
        return list(records)

    async def get(self, transaction_id: UUID) -> Optional[Transaction]:
        data = self._load()["transactions"].get(str(transaction_id))
        return self._to_record(data) if data else None

    async def update(self, transaction_id: UUID, patch: dict[str, Any]) -> Transaction:
        document = self._load()
        key = str(transaction_id)
        data = document["transactions"].get(key)
        if data is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}", field="id")

        updated = apply_patch(self._to_record(data), patch)
        document["transactions"][key] = updated.to_record()
        self._save(document)
        return updated

    async def delete(self, transaction_id: UUID) -> None:
        document = self._load()
        key = str(transaction_id)
        data = document["transactions"].pop(key, None)
        if data is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}", field="id")

        owner_ids = document["owners"].get(data["owner"], [])
        if key in owner_ids:
            owner_ids.remove(key)
        self._save(document)

    async def list_by_owner(self, owner: str) -> list[Transaction]:
        document = self._load()
        return [
            self._to_record(document["transactions"][key])
            for key in document["owners"].get(owner, [])
            if key in document["transactions"]
        ]

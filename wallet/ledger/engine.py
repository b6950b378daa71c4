"""
Ledger Engine

The sole place where ledger invariants are enforced. Every mutation
flows through here:

    caller -> LedgerEngine (validate / transform) -> store (persist)

GUARANTEES:
- owner is an explicit argument of every operation; no session state
- id, owner and created_at never change after creation
- updates are refused once the edit window (12h) has passed
- a transfer is two linked records written as one unit; a failure
  leaves the ledger exactly as it was before the call
- reads are retried on transient store failure, writes never are

Every success and every rejection is reported to the audit logger.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Union
from uuid import UUID

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from wallet.audit import AuditLogger, create_correlation_id
from wallet.config import LedgerSettings, get_settings
from wallet.errors import (
    EditWindowExpiredError,
    NotFoundError,
    StorageError,
    StoreUnavailableError,
    TransferFailedError,
    ValidationError,
)
from wallet.ledger.aggregates import compute_aggregates, compute_division_balances
from wallet.ledger.edit_lock import edit_status, is_editable
from wallet.models.transaction import (
    Aggregates,
    EditStatus,
    Transaction,
    TransactionDraft,
    TransactionType,
    TransferLeg,
    TransferResult,
    ValidationIssue,
    as_utc,
    utc_now,
)
from wallet.services.storage import LedgerStoreInterface
from wallet.validation import TransactionValidator


class LedgerEngine:
    """
    Validates and applies ledger operations against a store.

    Args:
        store: Any LedgerStoreInterface implementation
        validator: Field validation; built from settings if omitted
        audit_logger: Structured event log; a default one if omitted
        settings: Ledger policy; configured settings if omitted
        clock: Returns "now"; injectable for time-based rules
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._settings = settings or get_settings().ledger
        self._validator = validator or TransactionValidator(self._settings)
        self._audit = audit_logger or AuditLogger()
        self._clock = clock or utc_now

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    def now(self) -> datetime:
        return as_utc(self._clock())

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create(
        self,
        owner: str,
        data: Mapping[str, Any],
    ) -> Union[Transaction, TransferResult]:
        """
        Record an income or expense.

        Input with type TRANSFER is handed to create_transfer and the
        resulting TransferResult is returned instead.

        Raises:
            ValidationError: bad input (nothing is written)
            StorageError: the store rejected the write
        """
        owner = self._require_owner(owner)
        draft = self._validate_create(owner, data)

        if draft.type == TransactionType.TRANSFER:
            return await self._commit_transfer(owner, draft)

        record = Transaction(
            owner=owner,
            type=draft.type,
            amount=draft.amount,
            description=draft.description,
            category=draft.category,
            division=draft.division,
            created_at=self.now(),
        )

        try:
            stored = await self._store.insert(record)
        except StorageError as e:
            self._log_store_error("create", e, owner, record.id)
            raise

        self._audit.log_transaction_created(
            owner=owner,
            transaction_id=stored.id,
            transaction_type=stored.type.value,
            amount=str(stored.amount),
        )
        return stored

    async def create_transfer(
        self,
        owner: str,
        data: Mapping[str, Any],
    ) -> TransferResult:
        """
        Record a transfer between two divisions of one owner.

        Raises:
            ValidationError: bad input, or type is not TRANSFER
            TransferFailedError: the pair could not be committed;
                nothing is left behind
        """
        owner = self._require_owner(owner)
        draft = self._validate_create(owner, data)

        if draft.type != TransactionType.TRANSFER:
            issues = [ValidationIssue(
                field="type",
                issue_type="not_transfer",
                message="create_transfer requires type TRANSFER",
            )]
            self._audit.log_validation_failed(
                owner=owner,
                operation="create_transfer",
                issues=[issue.model_dump() for issue in issues],
            )
            raise ValidationError(issues)

        return await self._commit_transfer(owner, draft)

    async def _commit_transfer(self, owner: str, draft: TransactionDraft) -> TransferResult:
        transfer_id = create_correlation_id()
        common = dict(
            owner=owner,
            type=TransactionType.TRANSFER,
            amount=draft.amount,
            description=draft.description,
            category=draft.category,
            division=draft.division,
            to_division=draft.to_division,
            transfer_id=transfer_id,
            created_at=self.now(),
        )
        debit = Transaction(leg=TransferLeg.OUT, **common)
        credit = Transaction(leg=TransferLeg.IN, **common)

        if self._store.atomic_batches:
            try:
                await self._store.insert_batch([debit, credit])
            except Exception as e:
                self._audit.log_transfer_failed(
                    owner=owner,
                    transfer_id=transfer_id,
                    error_message=str(e),
                )
                raise TransferFailedError(
                    f"Transfer could not be recorded: {e}",
                    details={"transfer_id": str(transfer_id)},
                ) from e
        else:
            try:
                await self._store.insert(debit)
            except Exception as e:
                self._audit.log_transfer_failed(
                    owner=owner,
                    transfer_id=transfer_id,
                    error_message=str(e),
                )
                raise TransferFailedError(
                    f"Transfer could not be recorded: {e}",
                    details={"transfer_id": str(transfer_id)},
                ) from e

            try:
                await self._store.insert(credit)
            except Exception as e:
                orphaned = await self._revert_inserts(owner, transfer_id, [debit])
                self._audit.log_transfer_failed(
                    owner=owner,
                    transfer_id=transfer_id,
                    error_message=str(e),
                    orphaned_ids=orphaned,
                )
                raise TransferFailedError(
                    f"Transfer could not be recorded: {e}",
                    details={
                        "transfer_id": str(transfer_id),
                        "orphaned_ids": [str(i) for i in orphaned],
                    },
                ) from e

        self._audit.log_transfer_created(
            owner=owner,
            transfer_id=transfer_id,
            source=draft.division,
            destination=draft.to_division,
            amount=str(draft.amount),
            leg_ids=[debit.id, credit.id],
        )
        return TransferResult(debit=debit, credit=credit)

    async def _revert_inserts(
        self,
        owner: str,
        transfer_id: UUID,
        records: list[Transaction],
    ) -> list[UUID]:
        """Delete already-written legs. Returns ids that could not be removed."""
        orphaned = []
        reverted = []
        for record in records:
            try:
                await self._store.delete(record.id)
                reverted.append(record.id)
            except NotFoundError:
                reverted.append(record.id)
            except Exception as e:
                self._log_store_error("transfer rollback", e, owner, record.id)
                orphaned.append(record.id)

        if reverted:
            self._audit.log_transfer_rolled_back(
                owner=owner,
                transfer_id=transfer_id,
                reverted_ids=reverted,
            )
        return orphaned

    # -------------------------------------------------------------------------
    # Update / delete
    # -------------------------------------------------------------------------

    async def update(
        self,
        owner: str,
        transaction_id: Union[UUID, str],
        patch: Mapping[str, Any],
    ) -> Transaction:
        """
        Patch an income or expense inside its edit window.

        Raises:
            NotFoundError: no such transaction for this owner
            EditWindowExpiredError: the record is older than the window
            ValidationError: the merged record breaks a field rule
        """
        owner = self._require_owner(owner)
        existing = await self._get_owned(owner, transaction_id, "update")

        now = self.now()
        if not is_editable(existing, now, self._settings.edit_window_hours):
            age = existing.age_hours(now)
            self._audit.log_edit_window_expired(
                owner=owner,
                transaction_id=existing.id,
                age_hours=age,
                window_hours=self._settings.edit_window_hours,
            )
            raise EditWindowExpiredError(
                f"Transactions can only be edited within "
                f"{self._settings.edit_window_hours:g} hours of creation",
                field="createdAt",
                details={
                    "age_hours": round(age, 3),
                    "window_hours": self._settings.edit_window_hours,
                },
            )

        try:
            draft = self._validator.validate_for_update(existing, patch)
        except ValidationError as e:
            self._audit.log_validation_failed(
                owner=owner,
                operation="update",
                issues=e.details["issues"],
                entity_id=existing.id,
            )
            raise

        changes: dict[str, Any] = {
            name: getattr(draft, name)
            for name in ("type", "amount", "description", "category", "division")
            if getattr(draft, name) != getattr(existing, name)
        }
        if not changes:
            return existing
        changes["updated_at"] = now

        try:
            updated = await self._store.update(existing.id, changes)
        except NotFoundError:
            self._audit.log_not_found(owner, existing.id, "update")
            raise
        except StorageError as e:
            self._log_store_error("update", e, owner, existing.id)
            raise

        self._audit.log_transaction_updated(
            owner=owner,
            transaction_id=updated.id,
            changed_fields=sorted(k for k in changes if k != "updated_at"),
        )
        return updated

    async def delete(
        self,
        owner: str,
        transaction_id: Union[UUID, str],
    ) -> list[UUID]:
        """
        Delete a transaction. Not subject to the edit window.

        Deleting either leg of a transfer deletes both.

        Returns:
            Ids of every record removed

        Raises:
            NotFoundError: no such transaction for this owner
            TransferFailedError: a transfer pair could not be removed
                as a unit; the ledger is left unchanged
        """
        owner = self._require_owner(owner)
        existing = await self._get_owned(owner, transaction_id, "delete")

        if existing.is_transfer:
            return await self._delete_transfer(owner, existing)

        try:
            await self._store.delete(existing.id)
        except NotFoundError:
            self._audit.log_not_found(owner, existing.id, "delete")
            raise
        except StorageError as e:
            self._log_store_error("delete", e, owner, existing.id)
            raise

        self._audit.log_transaction_deleted(owner, existing.id)
        return [existing.id]

    async def _delete_transfer(self, owner: str, leg: Transaction) -> list[UUID]:
        partners = [
            tx for tx in await self._read(self._store.list_by_owner, owner)
            if tx.transfer_id == leg.transfer_id and tx.id != leg.id
        ]

        try:
            await self._store.delete(leg.id)
        except NotFoundError:
            self._audit.log_not_found(owner, leg.id, "delete")
            raise
        except StorageError as e:
            self._log_store_error("delete", e, owner, leg.id)
            raise

        removed = [leg.id]
        for partner in partners:
            try:
                await self._store.delete(partner.id)
            except NotFoundError:
                continue
            except Exception as e:
                orphaned = await self._restore(owner, leg.transfer_id, removed, [leg, *partners])
                self._audit.log_transfer_failed(
                    owner=owner,
                    transfer_id=leg.transfer_id,
                    error_message=str(e),
                    orphaned_ids=orphaned,
                )
                raise TransferFailedError(
                    f"Transfer could not be deleted: {e}",
                    details={
                        "transfer_id": str(leg.transfer_id),
                        "orphaned_ids": [str(i) for i in orphaned],
                    },
                ) from e
            removed.append(partner.id)

        self._audit.log_transfer_deleted(owner, leg.transfer_id, removed)
        return removed

    async def _restore(
        self,
        owner: str,
        transfer_id: UUID,
        removed: list[UUID],
        legs: list[Transaction],
    ) -> list[UUID]:
        """Re-insert legs deleted so far. Returns partners left without their pair."""
        by_id = {tx.id: tx for tx in legs}
        lost = []
        for leg_id in removed:
            try:
                await self._store.insert(by_id[leg_id])
            except Exception as e:
                self._log_store_error("transfer restore", e, owner, leg_id)
                lost.append(leg_id)

        if len(lost) < len(removed):
            self._audit.log_transfer_rolled_back(
                owner=owner,
                transfer_id=transfer_id,
                reverted_ids=[i for i in removed if i not in lost],
            )
        # A lost leg leaves its still-stored partners unpaired
        return [tx.id for tx in legs if tx.id not in removed] if lost else []

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, owner: str, transaction_id: Union[UUID, str]) -> Transaction:
        """Fetch one of the owner's transactions, or raise NotFoundError."""
        owner = self._require_owner(owner)
        return await self._get_owned(owner, transaction_id, "get")

    async def list_by_owner(
        self,
        owner: str,
        division: Optional[str] = None,
    ) -> list[Transaction]:
        """
        All of the owner's transactions in store order.

        With a division, only records whose division or destination
        division matches are returned.
        """
        owner = self._require_owner(owner)
        records = await self._read(self._store.list_by_owner, owner)

        if division is None:
            return records
        division = division.strip()
        return [
            tx for tx in records
            if tx.division == division or tx.to_division == division
        ]

    def compute_aggregates(self, transactions: list[Transaction]) -> Aggregates:
        return compute_aggregates(transactions)

    def compute_division_balances(self, transactions: list[Transaction]) -> dict[str, Decimal]:
        return compute_division_balances(transactions)

    def edit_status(self, tx: Transaction, now: Optional[datetime] = None) -> EditStatus:
        """Editable or Locked, computed from the record's age."""
        return edit_status(tx, now or self.now(), self._settings.edit_window_hours)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_owner(self, owner: str) -> str:
        if not isinstance(owner, str) or not owner.strip():
            raise ValidationError([ValidationIssue(
                field="owner",
                issue_type="missing",
                message="An owner identity is required",
            )])
        return owner.strip()

    def _validate_create(self, owner: str, data: Mapping[str, Any]) -> TransactionDraft:
        try:
            return self._validator.validate_for_create(data)
        except ValidationError as e:
            self._audit.log_validation_failed(
                owner=owner,
                operation="create",
                issues=e.details["issues"],
            )
            raise

    async def _get_owned(
        self,
        owner: str,
        transaction_id: Union[UUID, str],
        operation: str,
    ) -> Transaction:
        """Resolve an id to a record of this owner; foreign records are not found."""
        try:
            key = transaction_id if isinstance(transaction_id, UUID) else UUID(str(transaction_id))
        except ValueError:
            # Malformed ids cannot name a record
            self._audit.log_not_found(owner, None, operation)
            raise NotFoundError(
                f"Transaction not found: {transaction_id}", field="id"
            ) from None

        record = await self._read(self._store.get, key)
        if record is None or record.owner != owner:
            self._audit.log_not_found(owner, key, operation)
            raise NotFoundError(f"Transaction not found: {transaction_id}", field="id")
        return record

    async def _read(self, fn: Callable, *args: Any) -> Any:
        """Run an idempotent store read, retrying transient failures."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(StoreUnavailableError),
            stop=stop_after_attempt(self._settings.read_retry_attempts),
            wait=wait_exponential(
                multiplier=self._settings.read_retry_min_wait_seconds,
                min=self._settings.read_retry_min_wait_seconds,
                max=self._settings.read_retry_max_wait_seconds,
            ),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await fn(*args)
        except StorageError as e:
            self._log_store_error(getattr(fn, "__name__", "read"), e)
            raise

    def _log_store_error(
        self,
        operation: str,
        error: Exception,
        owner: Optional[str] = None,
        entity_id: Optional[UUID] = None,
    ) -> None:
        self._audit.log_store_error(
            operation=operation,
            error_kind=getattr(error, "kind", type(error).__name__),
            error_message=str(error),
            owner=owner,
            entity_id=entity_id,
        )

"""
Core Data Models for Wallet Ledger

These models define the schemas for all ledger data flowing through the system.
They are designed to:
1. Carry amounts as Decimal, never float
2. Keep identity fields (id, owner, created_at) immutable
3. Be serializable for storage and for the presentation payload

DESIGN DECISION: A transfer is stored as two Transaction records (legs)
sharing a transfer_id. The OUT leg records the outflow from `division`,
the IN leg the inflow into `to_division`. Both legs keep type TRANSFER
so totals treat them as net-zero.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """The three kinds of ledger event."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"


class TransferLeg(str, Enum):
    """Which side of a transfer a record represents."""
    OUT = "OUT"  # leaves `division`
    IN = "IN"    # arrives in `to_division`


class EditStatus(str, Enum):
    """
    Edit-lock state of a transaction.

    Computed on every read from the record's age. Never persisted.
    """
    EDITABLE = "Edit"
    LOCKED = "Locked"


# =============================================================================
# TRANSACTION
# =============================================================================

class TransactionDraft(BaseModel):
    """
    Normalized, validated input for a new or updated transaction.

    Produced by the validator. Holds no identity fields.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    division: str = Field(..., min_length=1)
    to_division: Optional[str] = None


class Transaction(BaseModel):
    """
    A single ledger record.

    CRITICAL: id, owner and created_at are assigned once at creation
    and are never changed by an update.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    owner: str = Field(
        ...,
        min_length=1,
        description="Identity of the account this record belongs to"
    )

    # Ledger fields
    type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount in the owner's base currency"
    )
    description: str = Field(..., min_length=1)
    category: str = Field(default="General", min_length=1)
    division: str = Field(default="Personal", min_length=1)
    to_division: Optional[str] = Field(
        default=None,
        description="Destination division (transfers only)"
    )

    # Transfer linkage
    transfer_id: Optional[UUID] = Field(
        default=None,
        description="Shared by both legs of one transfer"
    )
    leg: Optional[TransferLeg] = None

    # Timestamps
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the transaction was created"
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        description="Last successful update"
    )

    @field_validator('created_at', 'updated_at')
    @classmethod
    def normalize_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store every timestamp as aware UTC."""
        return as_utc(v) if v is not None else v

    @model_validator(mode='after')
    def validate_transfer_shape(self) -> 'Transaction':
        """Transfer legs need both divisions, distinct, and a link."""
        if self.type == TransactionType.TRANSFER:
            if not self.to_division:
                raise ValueError("Transfer requires a destination division")
            if self.to_division == self.division:
                raise ValueError("Transfer source and destination must differ")
            if self.transfer_id is None or self.leg is None:
                raise ValueError("Transfer leg requires transfer_id and leg")
        else:
            if self.to_division is not None or self.transfer_id is not None or self.leg is not None:
                raise ValueError("Only transfers carry to_division, transfer_id or leg")
        return self

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)

    @property
    def is_transfer(self) -> bool:
        return self.type == TransactionType.TRANSFER

    def age_hours(self, now: datetime) -> float:
        """Hours elapsed since creation."""
        return (now - self.created_at).total_seconds() / 3600

    def display_division(self) -> str:
        """Division label as shown in the ledger list."""
        if self.is_transfer:
            return f"{self.division} → {self.to_division}"
        return self.division

    def to_payload(self) -> dict:
        """
        Presentation payload (camelCase, JSON-ready).

        Optional fields are omitted when unset, so toDivision only
        appears on transfers.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_record(self) -> dict:
        """Storage form: snake_case, exact Decimal as string."""
        data = self.model_dump(mode="python")
        data["id"] = str(self.id)
        data["type"] = self.type.value
        data["amount"] = str(self.amount)
        data["transfer_id"] = str(self.transfer_id) if self.transfer_id else None
        data["leg"] = self.leg.value if self.leg else None
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data


class TransferResult(BaseModel):
    """Both persisted legs of one transfer."""

    debit: Transaction = Field(..., description="OUT leg, source division")
    credit: Transaction = Field(..., description="IN leg, destination division")

    @property
    def transfer_id(self) -> UUID:
        return self.debit.transfer_id


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'not_numeric', 'same_division')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


# =============================================================================
# AGGREGATES AND READ MODELS
# =============================================================================

class Aggregates(BaseModel):
    """Income, expense and balance over a set of transactions."""

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")

    @field_serializer('income', 'expense', 'balance', when_used='json')
    def serialize_amounts(self, value: Decimal) -> float:
        return float(value)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json")


class LedgerRow(BaseModel):
    """
    One row of the ledger list.

    A transfer pair renders as a single row labelled
    ``division → to_division``.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: UUID
    type: TransactionType
    description: str
    category: str
    division_label: str
    amount: Decimal
    created_at: datetime
    status: EditStatus
    can_edit: bool
    transfer_id: Optional[UUID] = None

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)


class LedgerSummary(BaseModel):
    """
    Everything a ledger screen needs in one read.

    Aggregates and division balances cover the whole ledger,
    rows cover the selected time window.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    owner: str
    window: str
    generated_at: datetime = Field(default_factory=utc_now)
    aggregates: Aggregates
    division_balances: dict[str, Decimal] = Field(default_factory=dict)
    rows: list[LedgerRow] = Field(default_factory=list)

    @field_serializer('division_balances', when_used='json')
    def serialize_balances(self, balances: dict[str, Decimal]) -> dict[str, float]:
        return {division: float(value) for division, value in balances.items()}

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

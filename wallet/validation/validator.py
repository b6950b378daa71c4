"""
Transaction Validation

DESIGN DECISION: Field-level validation happens here, before anything
reaches the ledger engine's storage calls. It is independent of storage.

Rules:
- amount is present, numeric, finite and > 0
- description is non-empty after trimming
- type is INCOME, EXPENSE or TRANSFER
- a transfer names a destination division different from its source
- category and division names stay within max_name_length

IMPORTANT: Validation never silently fixes bad values. It collects
every issue and raises one ValidationError listing them all.
The only normalizations are the documented defaults (category,
division) and Decimal coercion of the amount.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from pydantic.alias_generators import to_snake

from wallet.config import LedgerSettings, get_settings
from wallet.errors import ValidationError
from wallet.models.transaction import (
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
)


# Assigned by the engine/store; discarded when present in input
IDENTITY_FIELDS = frozenset({
    "id",
    "owner",
    "created_at",
    "updated_at",
    "transfer_id",
    "leg",
})

EDITABLE_FIELDS = frozenset({
    "type",
    "amount",
    "description",
    "category",
    "division",
    "to_division",
})


class TransactionValidator:
    """
    Validates transaction input for create and update.

    Accepts payload mappings with either camelCase (``toDivision``)
    or snake_case (``to_division``) keys.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def validate_for_create(self, data: Mapping[str, Any]) -> TransactionDraft:
        """
        Validate input for a new transaction.

        Returns:
            Normalized draft (Decimal amount, defaults applied)

        Raises:
            ValidationError: listing every issue found
        """
        fields, issues = self._normalize(data)
        draft, field_issues = self._check_fields(fields)
        issues.extend(field_issues)

        if issues:
            raise ValidationError(issues)
        return draft

    def validate_for_update(
        self,
        existing: Transaction,
        patch: Mapping[str, Any],
    ) -> TransactionDraft:
        """
        Validate a patch against an existing transaction.

        Identity fields in the patch are discarded. The patch is merged
        over the existing values and the merged record is checked with
        the same rules as create.

        Raises:
            ValidationError: listing every issue found
        """
        fields, issues = self._normalize(patch)

        if existing.is_transfer:
            issues.append(ValidationIssue(
                field="type",
                issue_type="immutable_transfer",
                message="Transfers cannot be edited; delete and record it again",
            ))
        elif self._parse_type(fields.get("type", existing.type)) == TransactionType.TRANSFER:
            issues.append(ValidationIssue(
                field="type",
                issue_type="transfer_conversion",
                message="An income or expense cannot be turned into a transfer",
            ))

        if issues:
            raise ValidationError(issues)

        merged = {
            "type": existing.type,
            "amount": existing.amount,
            "description": existing.description,
            "category": existing.category,
            "division": existing.division,
            "to_division": existing.to_division,
        }
        merged.update(fields)

        draft, field_issues = self._check_fields(merged)
        if field_issues:
            raise ValidationError(field_issues)
        return draft

    def _normalize(
        self,
        data: Mapping[str, Any],
    ) -> tuple[dict[str, Any], list[ValidationIssue]]:
        """Snake-case the keys, drop identity fields, flag unknown ones."""
        issues = []

        if not isinstance(data, Mapping):
            issues.append(ValidationIssue(
                field="input",
                issue_type="invalid_type",
                message="Transaction input must be a mapping of fields",
            ))
            return {}, issues

        fields = {}
        for key, value in data.items():
            name = to_snake(str(key))
            if name in IDENTITY_FIELDS:
                continue
            if name not in EDITABLE_FIELDS:
                issues.append(ValidationIssue(
                    field=str(key),
                    issue_type="unknown_field",
                    message=f"Unknown field: {key}",
                ))
                continue
            fields[name] = value

        return fields, issues

    def _check_fields(
        self,
        fields: dict[str, Any],
    ) -> tuple[Optional[TransactionDraft], list[ValidationIssue]]:
        issues = []

        tx_type = self._parse_type(fields.get("type"))
        if tx_type is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="missing" if fields.get("type") in (None, "") else "unknown_type",
                message="Type must be one of INCOME, EXPENSE, TRANSFER",
            ))

        amount, amount_issue = self._coerce_amount(fields.get("amount"))
        if amount_issue:
            issues.append(amount_issue)

        description, issue = self._text(fields.get("description"), "description")
        if issue:
            issues.append(issue)
        elif not description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
            ))
        elif len(description) > self._settings.max_description_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=(
                    f"Description is longer than "
                    f"{self._settings.max_description_length} characters"
                ),
            ))

        category, issue = self._text(fields.get("category"), "category")
        if issue:
            issues.append(issue)
        issues.extend(self._name_length(category, "category"))
        category = category or self._settings.default_category

        division, issue = self._text(fields.get("division"), "division")
        if issue:
            issues.append(issue)
        issues.extend(self._name_length(division, "division"))
        division = division or self._settings.default_division

        to_division = None
        if tx_type == TransactionType.TRANSFER:
            to_division, issue = self._text(fields.get("to_division"), "toDivision")
            if issue:
                issues.append(issue)
            elif not to_division:
                issues.append(ValidationIssue(
                    field="toDivision",
                    issue_type="missing",
                    message="A transfer needs a destination division",
                ))
            elif len(to_division) > self._settings.max_name_length:
                issues.extend(self._name_length(to_division, "toDivision"))
            elif to_division == division:
                issues.append(ValidationIssue(
                    field="toDivision",
                    issue_type="same_division",
                    message="Transfer source and destination divisions must differ",
                ))

        if issues:
            return None, issues

        return TransactionDraft(
            type=tx_type,
            amount=amount,
            description=description,
            category=category,
            division=division,
            to_division=to_division,
        ), issues

    def _name_length(self, value: str, field: str) -> list[ValidationIssue]:
        if len(value) <= self._settings.max_name_length:
            return []
        return [ValidationIssue(
            field=field,
            issue_type="too_long",
            message=f"{field} is longer than {self._settings.max_name_length} characters",
        )]

    @staticmethod
    def _parse_type(value: Any) -> Optional[TransactionType]:
        if isinstance(value, TransactionType):
            return value
        if not isinstance(value, str):
            return None
        try:
            return TransactionType(value.strip().upper())
        except ValueError:
            return None

    @staticmethod
    def _coerce_amount(value: Any) -> tuple[Optional[Decimal], Optional[ValidationIssue]]:
        """
        Coerce the submitted amount to Decimal.

        Numeric strings are accepted (form input); booleans, NaN and
        infinities are not numbers here.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return None, ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
            )

        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
            return None, ValidationIssue(
                field="amount",
                issue_type="not_numeric",
                message=f"Amount must be a number, got {type(value).__name__}",
            )

        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        except InvalidOperation:
            return None, ValidationIssue(
                field="amount",
                issue_type="not_numeric",
                message=f"Amount must be a number, got {value!r}",
            )

        if not amount.is_finite():
            return None, ValidationIssue(
                field="amount",
                issue_type="not_numeric",
                message="Amount must be a finite number",
            )

        if amount <= 0:
            return None, ValidationIssue(
                field="amount",
                issue_type="not_positive",
                message="Amount must be greater than zero",
            )

        return amount, None

    @staticmethod
    def _text(value: Any, field: str) -> tuple[str, Optional[ValidationIssue]]:
        """Trimmed text value, or an issue if it is not a string."""
        if value is None:
            return "", None
        if not isinstance(value, str):
            return "", ValidationIssue(
                field=field,
                issue_type="invalid_type",
                message=f"{field} must be text",
            )
        return value.strip(), None

"""Transaction validation package."""

from wallet.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]

"""Query execution package."""

from wallet.queries.executor import LedgerQueryExecutor

__all__ = ["LedgerQueryExecutor"]

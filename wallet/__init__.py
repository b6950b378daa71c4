"""
Wallet Ledger - Source Package

Transaction ledger for a personal/shared finance tracker: income,
expense and inter-division transfers, with aggregated balances.

DESIGN PRINCIPLES:
1. Every mutation flows through the ledger engine
2. Fail early, fail visibly
3. No partial transfers
4. Owner is an explicit argument, never ambient state
5. Storage layer is swappable
"""

__version__ = "1.0.0"

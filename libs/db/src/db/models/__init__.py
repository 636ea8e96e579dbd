"""Shared SQLAlchemy models registry for the workspace database.

Currently holds the transaction ledger written by ``txn_pipeline``.
"""

from .ledger import Base, LedgerTransaction

__all__ = [
    "Base",
    "LedgerTransaction",
]

"""Transaction stores.

The pipeline only needs two operations from persistence, captured by the
:class:`TransactionStore` protocol: ``insert`` and ``query_by_time_range``
(used by the windowed duplicate check). Two implementations ship here:

- :class:`InMemoryTransactionStore` for tests and one-shot CLI runs;
- :class:`SqlTransactionStore` backed by the shared ``db`` library
  (SQLAlchemy, ``txn_ledger`` table).

Both treat the time range as inclusive on both ends.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from decimal import Decimal
from typing import Protocol, runtime_checkable

from db.client import create_schema, session_scope
from db.models.ledger import LedgerTransaction
from sqlalchemy import select

from .logging_setup import get_logger
from .models import (
    CategorizedTransaction,
    Category,
    CategorySource,
    Direction,
    ExtractedTransaction,
)

_logger = get_logger("txn_pipeline.store")


@runtime_checkable
class TransactionStore(Protocol):
    def insert(self, txn: CategorizedTransaction) -> None: ...

    def query_by_time_range(
        self, start: datetime, end: datetime
    ) -> list[CategorizedTransaction]: ...


class InMemoryTransactionStore:
    """Append-only list guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[CategorizedTransaction] = []

    def insert(self, txn: CategorizedTransaction) -> None:
        with self._lock:
            self._items.append(txn)

    def query_by_time_range(self, start: datetime, end: datetime) -> list[CategorizedTransaction]:
        with self._lock:
            hits = [t for t in self._items if start <= t.occurred_at <= end]
        return sorted(hits, key=lambda t: t.occurred_at)

    def all(self) -> list[CategorizedTransaction]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


# ---- SQL store ------------------------------------------------------------------


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_row(txn: CategorizedTransaction) -> LedgerTransaction:
    t = txn.transaction
    return LedgerTransaction(
        occurred_at=_utc(t.occurred_at),
        amount=t.amount,
        signed_amount=t.signed_amount,
        direction=t.direction.value,
        currency_code=t.currency,
        merchant_raw=t.merchant_raw,
        merchant_clean=t.merchant_clean,
        description=t.description,
        source_label=t.source_label,
        origin=t.origin,
        reference=t.reference,
        account_last4=t.account_last4,
        is_card=t.is_card,
        balance=t.balance,
        category=txn.category.value,
        subcategory=txn.subcategory,
        confidence=txn.confidence,
        category_source=txn.category_source.value,
        fingerprint_sha256=txn.fingerprint,
    )


def from_row(row: LedgerTransaction) -> CategorizedTransaction:
    extracted = ExtractedTransaction(
        amount=Decimal(row.amount),
        direction=Direction(row.direction),
        merchant_raw=row.merchant_raw,
        merchant_clean=row.merchant_clean,
        occurred_at=_utc(row.occurred_at),
        source_label=row.source_label,
        currency=row.currency_code,
        reference=row.reference,
        account_last4=row.account_last4,
        is_card=bool(row.is_card),
        balance=None if row.balance is None else Decimal(row.balance),
        description=row.description,
        origin=row.origin,
    )
    return CategorizedTransaction(
        transaction=extracted,
        category=Category(row.category),
        confidence=float(row.confidence),
        category_source=CategorySource(row.category_source),
        subcategory=row.subcategory,
        fingerprint=row.fingerprint_sha256,
    )


class SqlTransactionStore:
    """Store backed by the shared SQLAlchemy engine.

    Each call runs in its own ``session_scope`` so inserts are committed
    immediately; a cancelled import keeps everything inserted so far.
    """

    def __init__(self, *, database_url: str | None = None, create: bool = True) -> None:
        self._database_url = database_url
        if create:
            create_schema(database_url=database_url)

    def insert(self, txn: CategorizedTransaction) -> None:
        with session_scope(database_url=self._database_url) as s:
            s.add(to_row(txn))
        _logger.debug("ledger_insert source=%s", txn.transaction.source_label)

    def query_by_time_range(self, start: datetime, end: datetime) -> list[CategorizedTransaction]:
        stmt = (
            select(LedgerTransaction)
            .where(LedgerTransaction.occurred_at >= _utc(start))
            .where(LedgerTransaction.occurred_at <= _utc(end))
            .order_by(LedgerTransaction.occurred_at, LedgerTransaction.id)
        )
        with session_scope(database_url=self._database_url) as s:
            rows = s.scalars(stmt).all()
            return [from_row(r) for r in rows]


__all__ = [
    "InMemoryTransactionStore",
    "SqlTransactionStore",
    "TransactionStore",
    "from_row",
    "to_row",
]

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest

from tests.helpers.db import bootstrap_sqlite_db, count_ledger_rows
from txn_pipeline.models import (
    CategorizedTransaction,
    Category,
    CategorySource,
    Direction,
    ExtractedTransaction,
    NotificationStatus,
    RawUnit,
)
from txn_pipeline.pipeline import TransactionPipeline
from txn_pipeline.store import SqlTransactionStore, TransactionStore


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "ledger.sqlite3")


def _categorized(when: datetime, amount: str, merchant: str = "Swiggy") -> CategorizedTransaction:
    return CategorizedTransaction(
        transaction=ExtractedTransaction(
            amount=Decimal(amount),
            direction=Direction.DEBIT,
            merchant_raw=merchant.lower(),
            merchant_clean=merchant,
            occurred_at=when,
            source_label="PhonePe",
            reference="401234567890",
            account_last4="1234",
            balance=Decimal("10000.50"),
            origin="com.phonepe.app",
        ),
        category=Category.FOOD,
        confidence=0.95,
        category_source=CategorySource.RULE,
        subcategory="Food Delivery",
        fingerprint="a" * 64,
    )


def test_round_trip_in_utc(db_url: str, t0: datetime) -> None:
    store = SqlTransactionStore(database_url=db_url)
    assert isinstance(store, TransactionStore)
    original = _categorized(t0, "499.00")
    store.insert(original)

    (got,) = store.query_by_time_range(t0 - timedelta(seconds=1), t0 + timedelta(seconds=1))
    assert got.occurred_at == t0
    assert got.occurred_at.tzinfo is UTC
    assert got.transaction.amount == Decimal("499.00")
    assert got.signed_amount == Decimal("-499.00")
    assert got.transaction.balance == Decimal("10000.50")
    assert got.transaction.reference == "401234567890"
    assert got.category is Category.FOOD
    assert got.subcategory == "Food Delivery"
    assert got.fingerprint == "a" * 64


def test_range_is_inclusive_and_ordered(db_url: str, t0: datetime) -> None:
    store = SqlTransactionStore(database_url=db_url)
    for offset, amount in ((60, "3.00"), (0, "1.00"), (30, "2.00"), (600, "4.00")):
        store.insert(_categorized(t0 + timedelta(seconds=offset), amount))
    got = store.query_by_time_range(t0, t0 + timedelta(seconds=60))
    assert [t.transaction.amount for t in got] == [Decimal(n) for n in ("1.00", "2.00", "3.00")]
    assert count_ledger_rows(db_url) == 4


def test_pipeline_dedups_against_database(db_url: str, t0: datetime) -> None:
    pipeline = TransactionPipeline(SqlTransactionStore(database_url=db_url))
    app = RawUnit(body="Paid ₹500 to Swiggy", origin="com.phonepe.app", observed_at=t0)
    assert pipeline.process_notification(app).status is NotificationStatus.STORED

    # A fresh pipeline has an empty redelivery cache but sees the stored row.
    again = TransactionPipeline(SqlTransactionStore(database_url=db_url))
    sms = RawUnit(
        body="Rs.500.00 debited from a/c **1234 on 22-01-24 to VPA swiggy@axis",
        origin="VM-HDFCBK",
        observed_at=t0 + timedelta(seconds=20),
    )
    out = again.process_notification(sms)
    assert out.status is NotificationStatus.DUPLICATE
    assert out.transaction is not None
    assert out.transaction.transaction.source_label == "PhonePe"
    assert count_ledger_rows(db_url) == 1

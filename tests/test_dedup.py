from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from txn_pipeline.config import DedupConfig
from txn_pipeline.dedup import (
    RedeliveryGuard,
    compute_fingerprint,
    find_windowed_duplicate,
    first_windowed_duplicate,
    is_windowed_duplicate,
)
from txn_pipeline.models import (
    CategorizedTransaction,
    Category,
    CategorySource,
    Direction,
    ExtractedTransaction,
)
from txn_pipeline.store import InMemoryTransactionStore


def _txn(
    when: datetime,
    amount: str = "500.00",
    direction: Direction = Direction.DEBIT,
    merchant: str = "Swiggy",
) -> ExtractedTransaction:
    return ExtractedTransaction(
        amount=Decimal(amount),
        direction=direction,
        merchant_raw=merchant,
        merchant_clean=merchant,
        occurred_at=when,
        source_label="test",
    )


def _stored(txn: ExtractedTransaction) -> CategorizedTransaction:
    return CategorizedTransaction(
        transaction=txn,
        category=Category.OTHER,
        confidence=0.1,
        category_source=CategorySource.RULE,
    )


# ---- Fingerprints --------------------------------------------------------------


def test_fingerprint_uses_lowercased_body_prefix() -> None:
    body = "Paid ₹499 to Swiggy. " + "x" * 60
    a = compute_fingerprint("com.phonepe.app", Decimal("499"), body)
    b = compute_fingerprint("com.phonepe.app", Decimal("499"), body.upper()[:50] + "tail differs")
    assert a == b
    assert len(a) == 64


def test_fingerprint_depends_on_origin_and_amount() -> None:
    body = "Paid ₹499 to Swiggy"
    base = compute_fingerprint("com.phonepe.app", Decimal("499"), body)
    assert base != compute_fingerprint("VM-HDFCBK", Decimal("499"), body)
    assert base != compute_fingerprint("com.phonepe.app", Decimal("500"), body)


def test_fingerprint_depends_on_body_prefix() -> None:
    a = compute_fingerprint("com.phonepe.app", Decimal("499"), "Paid ₹499 to Swiggy")
    b = compute_fingerprint("com.phonepe.app", Decimal("499"), "Paid ₹499 to Zomato")
    assert a != b


def test_redelivery_guard_is_bounded_lru() -> None:
    guard = RedeliveryGuard(capacity=2)
    assert guard.check_and_remember("a") is False
    assert guard.check_and_remember("b") is False
    assert guard.check_and_remember("a") is True  # refreshes "a"
    assert guard.check_and_remember("c") is False  # evicts "b"
    assert "b" not in guard
    assert "a" in guard
    assert len(guard) == 2


def test_forgotten_fingerprint_is_new_again() -> None:
    guard = RedeliveryGuard()
    guard.check_and_remember("a")
    guard.forget("a")
    guard.forget("never-seen")
    assert guard.check_and_remember("a") is False


def test_redelivery_guard_rejects_zero_capacity() -> None:
    with pytest.raises(ValueError):
        RedeliveryGuard(capacity=0)


# ---- Windowed match ------------------------------------------------------------


def test_within_window_is_duplicate(t0: datetime) -> None:
    assert is_windowed_duplicate(_txn(t0 + timedelta(seconds=30)), _txn(t0))


def test_outside_window_is_not(t0: datetime) -> None:
    assert not is_windowed_duplicate(_txn(t0 + timedelta(seconds=90)), _txn(t0))


def test_bounds_are_strict(t0: datetime) -> None:
    cfg = DedupConfig(window_seconds=60, amount_tolerance=Decimal("0.01"))
    assert not is_windowed_duplicate(_txn(t0 + timedelta(seconds=60)), _txn(t0), cfg)
    assert not is_windowed_duplicate(_txn(t0, "500.01"), _txn(t0), cfg)
    assert is_windowed_duplicate(_txn(t0, "500.009"), _txn(t0), cfg)


def test_merchant_is_ignored(t0: datetime) -> None:
    # Two different payees for the same amount inside the window are merged.
    a = _txn(t0, merchant="Swiggy")
    b = _txn(t0 + timedelta(seconds=10), merchant="Zomato")
    assert is_windowed_duplicate(b, a)


def test_opposite_direction_is_not_duplicate(t0: datetime) -> None:
    debit = _txn(t0, direction=Direction.DEBIT)
    credit = _txn(t0 + timedelta(seconds=5), direction=Direction.CREDIT)
    assert not is_windowed_duplicate(credit, debit)


def test_find_windowed_duplicate_uses_store_range(t0: datetime) -> None:
    store = InMemoryTransactionStore()
    far = _stored(_txn(t0 - timedelta(minutes=10)))
    near = _stored(_txn(t0 - timedelta(seconds=20)))
    store.insert(far)
    store.insert(near)
    assert find_windowed_duplicate(_txn(t0), store) is near
    assert find_windowed_duplicate(_txn(t0, "42.00"), store) is None


def test_first_windowed_duplicate_scans_a_snapshot(t0: datetime) -> None:
    snapshot = [_stored(_txn(t0 - timedelta(minutes=10))), _stored(_txn(t0 + timedelta(seconds=5)))]
    assert first_windowed_duplicate(_txn(t0), snapshot) is snapshot[1]
    assert first_windowed_duplicate(_txn(t0), []) is None

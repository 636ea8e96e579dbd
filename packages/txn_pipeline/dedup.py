"""Duplicate detection.

Two independent mechanisms:

1. Exact fingerprint (same-channel redelivery). :func:`compute_fingerprint`
   digests ``(origin, amount, lowercase(body[:50]))``; :class:`RedeliveryGuard`
   remembers recent fingerprints so a re-announced notification is dropped
   before full extraction.
2. Windowed cross-source match. A candidate duplicates a stored transaction
   when both ``|Δt| < window`` and ``|Δsigned_amount| < tolerance``.
   Merchant text is ignored on purpose: statement narrations and notification
   merchants rarely agree verbatim.

Two distinct transactions for the same amount inside one window are merged.
That false positive is accepted; narrowing the window raises false negatives
from clock skew between channels.

A statement batch is checked against a snapshot of the store taken before
its first insert, so rows of one file never merge with each other.
"""

from __future__ import annotations

import hashlib
import threading
from collections import OrderedDict
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from .config import DedupConfig
from .logging_setup import get_logger
from .models import CategorizedTransaction, ExtractedTransaction
from .store import TransactionStore

_logger = get_logger("txn_pipeline.dedup")

FINGERPRINT_PREFIX_LEN = 50


def compute_fingerprint(origin: str, amount: Decimal, body: str) -> str:
    """Return the SHA-256 hex digest identifying one delivered event."""

    payload = "|".join((origin, format(amount, "f"), body[:FINGERPRINT_PREFIX_LEN].lower()))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class RedeliveryGuard:
    """Bounded, thread-safe memory of recently seen fingerprints (LRU)."""

    def __init__(self, capacity: int = 1024) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._seen: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.Lock()

    def check_and_remember(self, fingerprint: str) -> bool:
        """Return ``True`` if ``fingerprint`` was already seen; remember it either way."""

        with self._lock:
            if fingerprint in self._seen:
                self._seen.move_to_end(fingerprint)
                return True
            self._seen[fingerprint] = None
            if len(self._seen) > self._capacity:
                self._seen.popitem(last=False)
            return False

    def forget(self, fingerprint: str) -> None:
        """Drop ``fingerprint`` so a later delivery is processed again."""

        with self._lock:
            self._seen.pop(fingerprint, None)

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


type Timed = ExtractedTransaction | CategorizedTransaction


def _when(t: Timed) -> datetime:
    return t.occurred_at


def is_windowed_duplicate(
    candidate: Timed,
    existing: Timed,
    config: DedupConfig | None = None,
) -> bool:
    cfg = config or DedupConfig()
    dt = abs((_when(existing) - _when(candidate)).total_seconds())
    da = abs(existing.signed_amount - candidate.signed_amount)
    return dt < cfg.window_seconds and da < cfg.amount_tolerance


def first_windowed_duplicate(
    candidate: Timed,
    existing: Iterable[CategorizedTransaction],
    config: DedupConfig | None = None,
) -> CategorizedTransaction | None:
    cfg = config or DedupConfig()
    for other in existing:
        if is_windowed_duplicate(candidate, other, cfg):
            return other
    return None


def find_windowed_duplicate(
    candidate: Timed,
    store: TransactionStore,
    config: DedupConfig | None = None,
) -> CategorizedTransaction | None:
    """Return the first stored transaction ``candidate`` duplicates, if any."""

    cfg = config or DedupConfig()
    t = _when(candidate)
    found = first_windowed_duplicate(
        candidate, store.query_by_time_range(t - cfg.window, t + cfg.window), cfg
    )
    if found is not None:
        _logger.debug("windowed_duplicate_found source=%s", found.transaction.source_label)
    return found


__all__ = [
    "FINGERPRINT_PREFIX_LEN",
    "RedeliveryGuard",
    "compute_fingerprint",
    "find_windowed_duplicate",
    "first_windowed_duplicate",
    "is_windowed_duplicate",
]

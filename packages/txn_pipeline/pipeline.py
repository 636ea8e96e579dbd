"""End-to-end pipeline for both input channels.

Notification channel (:meth:`TransactionPipeline.process_notification`)::

    guard -> amount -> fingerprint -> redelivery check -> full extraction
          -> windowed dedup -> cascade -> store.insert

The fingerprint is computed right after the amount is known, so a
redelivered notification is dropped before its merchant, reference and
balance are extracted.

File channel (:meth:`TransactionPipeline.import_statement`): parse the whole
statement, then dedup, categorize and insert row by row in file order. Rows
are checked against what the store held before the batch began, never
against each other, and a row whose insert fails is reported as
``"Row N: ..."`` while the rest of the batch continues. Progress is reported
as ``(done, total)`` after each row and a ``threading.Event`` aborts between
rows, keeping what was already inserted.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence

from .cascade import Capabilities, CategorizationCascade
from .cloud import CloudCategorizer
from .config import PipelineConfig
from .dedup import (
    RedeliveryGuard,
    compute_fingerprint,
    find_windowed_duplicate,
    first_windowed_duplicate,
)
from .detect import parse_statement
from .extractors.variants import select_variant
from .intake import PostedNotification, to_raw_unit
from .logging_setup import get_logger
from .models import (
    CategorizedTransaction,
    ExtractedTransaction,
    ImportSummary,
    NotificationOutcome,
    NotificationStatus,
    RawUnit,
)
from .on_device import LocalModel, OnDeviceCategorizer
from .store import InMemoryTransactionStore, TransactionStore

_logger = get_logger("txn_pipeline.pipeline")

type Progress = Callable[[int, int], None]


class TransactionPipeline:
    def __init__(
        self,
        store: TransactionStore | None = None,
        *,
        config: PipelineConfig | None = None,
        local_model: LocalModel | None = None,
        cloud: CloudCategorizer | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.config.validate()
        self.store: TransactionStore = store if store is not None else InMemoryTransactionStore()
        self.guard = RedeliveryGuard(self.config.redelivery_cache_size)
        self.on_device = OnDeviceCategorizer(local_model) if local_model is not None else None
        self.cloud = cloud if cloud is not None else CloudCategorizer(self.config.cloud)
        self.cascade = CategorizationCascade(
            thresholds=self.config.thresholds,
            on_device=self.on_device,
            cloud=self.cloud,
        )

    def capabilities(self, *, online: bool = True) -> Capabilities:
        """Snapshot of which model tiers may run right now."""

        return Capabilities(
            on_device_enabled=self.config.on_device_enabled,
            on_device_ready=self.on_device is not None and self.on_device.is_ready(),
            cloud_enabled=self.config.cloud_enabled,
            online=online,
            cloud_configured=self.cloud.is_configured(),
        )

    # ---- Notification channel ----------------------------------------------------

    def process_notification(
        self,
        unit: RawUnit,
        *,
        capabilities: Capabilities | None = None,
    ) -> NotificationOutcome:
        variant = select_variant(unit.origin)
        if not variant.looks_like_transaction(unit.body):
            _logger.debug("notification_discarded reason=guard variant=%s", variant.tag)
            return NotificationOutcome(NotificationStatus.DISCARDED, variant=variant.tag)
        amount = variant.extract_amount(unit.body)
        if amount is None:
            _logger.debug("notification_discarded reason=no_amount variant=%s", variant.tag)
            return NotificationOutcome(NotificationStatus.DISCARDED, variant=variant.tag)

        fingerprint = compute_fingerprint(unit.origin, amount, unit.body)
        if self.guard.check_and_remember(fingerprint):
            _logger.info("notification_redelivered variant=%s", variant.tag)
            return NotificationOutcome(NotificationStatus.REDELIVERED, variant=variant.tag)

        try:
            txn = variant.build(unit, amount)
            existing = find_windowed_duplicate(txn, self.store, self.config.dedup)
            if existing is not None:
                _logger.info("notification_duplicate variant=%s", variant.tag)
                return NotificationOutcome(
                    NotificationStatus.DUPLICATE, transaction=existing, variant=variant.tag
                )

            caps = capabilities if capabilities is not None else self.capabilities()
            categorized = self.cascade.categorize_transaction(txn, caps, fingerprint=fingerprint)
            self.store.insert(categorized)
        except Exception:
            # Not stored: let the platform's next delivery through.
            self.guard.forget(fingerprint)
            raise
        _logger.info(
            "notification_stored variant=%s direction=%s category=%s source=%s",
            variant.tag,
            txn.direction,
            categorized.category,
            categorized.category_source,
        )
        return NotificationOutcome(
            NotificationStatus.STORED, transaction=categorized, variant=variant.tag
        )

    def process_posted(
        self,
        notification: PostedNotification,
        *,
        capabilities: Capabilities | None = None,
    ) -> NotificationOutcome:
        """Run intake filtering, then :meth:`process_notification`."""

        unit = to_raw_unit(notification)
        if unit is None:
            return NotificationOutcome(NotificationStatus.DISCARDED)
        return self.process_notification(unit, capabilities=capabilities)

    # ---- File channel ------------------------------------------------------------

    def _snapshot(
        self, transactions: Sequence[ExtractedTransaction]
    ) -> list[CategorizedTransaction]:
        """Stored rows that any of ``transactions`` could duplicate, read before inserting."""

        if not transactions:
            return []
        window = self.config.dedup.window
        start = min(t.occurred_at for t in transactions) - window
        end = max(t.occurred_at for t in transactions) + window
        return self.store.query_by_time_range(start, end)

    def import_statement(
        self,
        data: bytes,
        filename: str | None = None,
        password: str | None = None,
        *,
        progress: Progress | None = None,
        cancel: threading.Event | None = None,
        capabilities: Capabilities | None = None,
    ) -> ImportSummary:
        result = parse_statement(
            data, filename, password, config=self.config, cancel=cancel
        )
        if not result.success:
            return ImportSummary(
                success=False, format_label=result.format_label, errors=result.errors
            )

        caps = capabilities if capabilities is not None else self.capabilities()
        total = len(result.transactions)
        snapshot = self._snapshot(result.transactions)
        stored: list[CategorizedTransaction] = []
        errors = list(result.errors)
        skipped = failed = 0
        cancelled = False
        for done, txn in enumerate(result.transactions, start=1):
            if cancel is not None and cancel.is_set():
                cancelled = True
                break
            if first_windowed_duplicate(txn, snapshot, self.config.dedup) is not None:
                skipped += 1
            else:
                try:
                    categorized = self.cascade.categorize_transaction(txn, caps)
                    self.store.insert(categorized)
                except Exception as exc:  # noqa: BLE001
                    failed += 1
                    _logger.warning(
                        "statement_row_failed row=%d error=%s", done, type(exc).__name__
                    )
                    if len(errors) < self.config.max_reported_errors:
                        errors.append(f"Row {done}: {exc}")
                else:
                    stored.append(categorized)
            if progress is not None:
                progress(done, total)

        _logger.info(
            "statement_imported format=%s parsed=%d imported=%d skipped=%d failed=%d "
            "cancelled=%s",
            result.format_label,
            total,
            len(stored),
            skipped,
            failed,
            cancelled,
        )
        return ImportSummary(
            success=True,
            format_label=result.format_label,
            parsed=total,
            imported=len(stored),
            skipped=skipped,
            failed=failed,
            errors=tuple(errors),
            cancelled=cancelled,
            stored=tuple(stored),
        )


__all__ = ["Progress", "TransactionPipeline"]

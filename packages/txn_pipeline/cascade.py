"""Categorization cascade.

Tiers are tried cheapest first and the first result clearing its tier's
threshold wins:

1. rules (always run; final when confidence >= ``thresholds.rule``)
2. on-device model (enabled AND ready; >= ``thresholds.on_device``)
3. cloud model (enabled AND online AND configured; >= ``thresholds.cloud``)
4. otherwise the rule result computed in step 1

Model tiers are passed as zero-argument thunks so nothing runs until the
cascade reaches them. A thunk that raises or returns ``None`` counts as "no
result". Whether a tier may run is decided from an explicit
:class:`Capabilities` value instead of ambient state.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal

from .cloud import CloudCategorizer
from .config import CascadeThresholds
from .logging_setup import get_logger
from .merchants import normalize_merchant
from .models import Categorization, CategorizedTransaction, ExtractedTransaction
from .on_device import OnDeviceCategorizer
from .rules import categorize_by_rules

_logger = get_logger("txn_pipeline.cascade")

type Thunk = Callable[[], Categorization | None]


@dataclass(frozen=True, slots=True)
class Capabilities:
    """Runtime facts the cascade needs to decide which tiers may run."""

    on_device_enabled: bool = False
    on_device_ready: bool = False
    cloud_enabled: bool = False
    online: bool = False
    cloud_configured: bool = False

    @property
    def on_device_usable(self) -> bool:
        return self.on_device_enabled and self.on_device_ready

    @property
    def cloud_usable(self) -> bool:
        return self.cloud_enabled and self.online and self.cloud_configured


@dataclass(frozen=True, slots=True)
class Step:
    name: str
    threshold: float
    run: Thunk


def _attempt(step: Step) -> Categorization | None:
    try:
        return step.run()
    except Exception as e:  # noqa: BLE001
        _logger.warning("tier_failed tier=%s error=%s", step.name, e.__class__.__name__)
        return None


def first_confident(steps: Iterable[Step]) -> Categorization | None:
    """Run ``steps`` in order; return the first result meeting its threshold."""

    for step in steps:
        result = _attempt(step)
        if result is not None and result.confidence >= step.threshold:
            _logger.debug("tier_accepted tier=%s confidence=%.2f", step.name, result.confidence)
            return result
    return None


class CategorizationCascade:
    def __init__(
        self,
        *,
        thresholds: CascadeThresholds | None = None,
        on_device: OnDeviceCategorizer | None = None,
        cloud: CloudCategorizer | None = None,
    ) -> None:
        self.thresholds = thresholds or CascadeThresholds()
        self.on_device = on_device
        self.cloud = cloud

    def categorize(
        self,
        merchant_text: str,
        amount: Decimal | None,
        capabilities: Capabilities,
    ) -> Categorization:
        rule = categorize_by_rules(merchant_text, amount)
        steps = [Step("rule", self.thresholds.rule, lambda: rule)]
        if self.on_device is not None and capabilities.on_device_usable:
            on_device = self.on_device
            steps.append(
                Step(
                    "on_device",
                    self.thresholds.on_device,
                    lambda: on_device.categorize(merchant_text, amount),
                )
            )
        if self.cloud is not None and capabilities.cloud_usable:
            cloud = self.cloud
            steps.append(
                Step("cloud", self.thresholds.cloud, lambda: cloud.categorize(merchant_text, amount))
            )
        chosen = first_confident(steps) or rule
        _logger.debug("categorized source=%s category=%s", chosen.source, chosen.category)
        return chosen

    def categorize_transaction(
        self,
        txn: ExtractedTransaction,
        capabilities: Capabilities,
        *,
        fingerprint: str | None = None,
    ) -> CategorizedTransaction:
        result = self.categorize(txn.merchant_clean, txn.amount, capabilities)
        return apply_categorization(txn, result, fingerprint=fingerprint)


def apply_categorization(
    txn: ExtractedTransaction,
    result: Categorization,
    *,
    fingerprint: str | None = None,
) -> CategorizedTransaction:
    """Pair ``txn`` with ``result``; a proposed merchant name replaces ``merchant_clean``."""

    if result.merchant_name and result.merchant_name.strip():
        txn = dataclasses.replace(txn, merchant_clean=normalize_merchant(result.merchant_name))
    return CategorizedTransaction(
        transaction=txn,
        category=result.category,
        confidence=result.confidence,
        category_source=result.source,
        subcategory=result.subcategory,
        fingerprint=fingerprint,
    )


__all__ = [
    "Capabilities",
    "CategorizationCascade",
    "Step",
    "apply_categorization",
    "first_confident",
]

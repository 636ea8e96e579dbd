from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from txn_pipeline.cascade import (
    Capabilities,
    CategorizationCascade,
    Step,
    apply_categorization,
    first_confident,
)
from txn_pipeline.models import (
    Categorization,
    Category,
    CategorySource,
    Direction,
    ExtractedTransaction,
)
from txn_pipeline.on_device import OnDeviceCategorizer

ALL_ON = Capabilities(
    on_device_enabled=True,
    on_device_ready=True,
    cloud_enabled=True,
    online=True,
    cloud_configured=True,
)


class FakeLocalModel:
    def __init__(self, reply: str, *, ready: bool = True) -> None:
        self.reply = reply
        self.ready = ready
        self.prompts: list[str] = []

    def is_ready(self) -> bool:
        return self.ready

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


class FakeCloud:
    def __init__(self, result: Categorization | None = None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = 0

    def is_configured(self) -> bool:
        return True

    def categorize(self, merchant_text: str, amount: Decimal | None = None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


def _cloud(category: Category, confidence: float, **kw) -> FakeCloud:
    return FakeCloud(Categorization(category, confidence, CategorySource.CLOUD_MODEL, **kw))


# ---- first_confident -----------------------------------------------------------


def test_first_confident_respects_each_threshold() -> None:
    low = Categorization(Category.FOOD, 0.5, CategorySource.RULE)
    ok = Categorization(Category.SHOPPING, 0.75, CategorySource.CLOUD_MODEL)
    steps = [Step("rule", 0.85, lambda: low), Step("cloud", 0.7, lambda: ok)]
    assert first_confident(steps) is ok


def test_first_confident_is_lazy_and_survives_errors() -> None:
    ran: list[str] = []

    def boom() -> Categorization | None:
        ran.append("boom")
        raise RuntimeError("tier down")

    def never() -> Categorization | None:
        ran.append("never")
        return None

    hit = Categorization(Category.FOOD, 0.9, CategorySource.ON_DEVICE_MODEL)
    steps = [Step("a", 0.7, boom), Step("b", 0.7, lambda: hit), Step("c", 0.7, never)]
    assert first_confident(steps) is hit
    assert ran == ["boom"]


# ---- Cascade -------------------------------------------------------------------


def test_confident_rule_skips_models() -> None:
    local = FakeLocalModel('{"category": "OTHER", "confidence": 0.99}')
    cloud = _cloud(Category.OTHER, 0.99)
    cascade = CategorizationCascade(on_device=OnDeviceCategorizer(local), cloud=cloud)
    result = cascade.categorize("Swiggy", Decimal("499"), ALL_ON)
    assert result.source is CategorySource.RULE
    assert result.category is Category.FOOD
    assert local.prompts == []
    assert cloud.calls == 0


def test_on_device_wins_before_cloud() -> None:
    local = FakeLocalModel('{"category": "HEALTH", "confidence": 0.8}')
    cloud = _cloud(Category.OTHER, 0.99)
    cascade = CategorizationCascade(on_device=OnDeviceCategorizer(local), cloud=cloud)
    result = cascade.categorize("Dr Mehta", Decimal("800"), ALL_ON)
    assert result.source is CategorySource.ON_DEVICE_MODEL
    assert result.category is Category.HEALTH
    assert cloud.calls == 0


def test_low_on_device_falls_through_to_cloud() -> None:
    local = FakeLocalModel('{"category": "HEALTH", "confidence": 0.5}')
    cloud = _cloud(Category.UTILITIES, 0.72)
    cascade = CategorizationCascade(on_device=OnDeviceCategorizer(local), cloud=cloud)
    result = cascade.categorize("Dr Mehta", Decimal("800"), ALL_ON)
    assert result.source is CategorySource.CLOUD_MODEL
    assert result.category is Category.UTILITIES


def test_failing_cloud_falls_back_to_rule() -> None:
    cloud = FakeCloud(error=TimeoutError("slow"))
    cascade = CategorizationCascade(cloud=cloud)
    result = cascade.categorize("rahul@okaxis", Decimal("1200"), ALL_ON)
    assert cloud.calls == 1
    assert result.source is CategorySource.RULE
    assert result.category is Category.OTHER
    assert result.confidence == 0.1


def test_below_threshold_cloud_falls_back_to_rule() -> None:
    cascade = CategorizationCascade(cloud=_cloud(Category.FOOD, 0.69))
    result = cascade.categorize("rahul@okaxis", Decimal("50"), ALL_ON)
    assert result.source is CategorySource.RULE
    assert result.category is Category.FOOD
    assert result.confidence == 0.3


def test_capabilities_gate_model_tiers() -> None:
    local = FakeLocalModel('{"category": "HEALTH", "confidence": 0.9}')
    cloud = _cloud(Category.HEALTH, 0.9)
    cascade = CategorizationCascade(on_device=OnDeviceCategorizer(local), cloud=cloud)

    offline = Capabilities(on_device_enabled=True, on_device_ready=False, cloud_enabled=True)
    assert not offline.on_device_usable and not offline.cloud_usable
    result = cascade.categorize("rahul@okaxis", None, offline)
    assert result.source is CategorySource.RULE
    assert local.prompts == []
    assert cloud.calls == 0


def test_local_model_not_ready_is_no_result() -> None:
    local = FakeLocalModel('{"category": "HEALTH"}', ready=False)
    assert OnDeviceCategorizer(local).categorize("x") is None
    local.ready = True
    result = OnDeviceCategorizer(local).categorize("x")
    assert result is not None and result.confidence == 0.7


# ---- Applying the result -------------------------------------------------------


def _txn(t0: datetime, merchant: str) -> ExtractedTransaction:
    return ExtractedTransaction(
        amount=Decimal("499"),
        direction=Direction.DEBIT,
        merchant_raw=merchant,
        merchant_clean=merchant,
        occurred_at=t0,
        source_label="test",
    )


def test_proposed_merchant_name_replaces_clean_name(t0: datetime) -> None:
    result = Categorization(
        Category.FOOD, 0.95, CategorySource.RULE, "Food Delivery", merchant_name="  Swiggy  "
    )
    out = apply_categorization(_txn(t0, "swiggy@axis"), result, fingerprint="f" * 64)
    assert out.merchant_clean == "Swiggy"
    assert out.transaction.merchant_raw == "swiggy@axis"
    assert out.subcategory == "Food Delivery"
    assert out.fingerprint == "f" * 64


def test_blank_merchant_name_keeps_extracted(t0: datetime) -> None:
    result = Categorization(Category.OTHER, 0.1, CategorySource.RULE, merchant_name="  ")
    out = apply_categorization(_txn(t0, "rahul@okaxis"), result)
    assert out.merchant_clean == "rahul@okaxis"
    assert out.fingerprint is None


def test_categorize_transaction(t0: datetime) -> None:
    out = CategorizationCascade().categorize_transaction(
        _txn(t0, "swiggy@axis"), Capabilities(), fingerprint="abc"
    )
    assert out.category is Category.FOOD
    assert out.merchant_clean == "Swiggy"
    assert out.fingerprint == "abc"

from __future__ import annotations

from decimal import Decimal

import pytest

import txn_pipeline.cloud as cloud_mod
from tests.helpers.openai_stub import OpenAIStub, decision_json
from txn_pipeline.cloud import CloudCategorizer
from txn_pipeline.config import CloudConfig
from txn_pipeline.models import Category, CategorySource

_KEYED = {"OPENAI_API_KEY": "sk-test"}


def _install(monkeypatch: pytest.MonkeyPatch, reply) -> OpenAIStub:
    stub = OpenAIStub(reply)
    monkeypatch.setattr(cloud_mod, "OpenAI", stub)
    return stub


def test_is_configured_reads_the_key_variable() -> None:
    assert not CloudCategorizer(environ={}).is_configured()
    assert not CloudCategorizer(environ={"OPENAI_API_KEY": "   "}).is_configured()
    assert CloudCategorizer(environ=_KEYED).is_configured()
    custom = CloudCategorizer(CloudConfig(api_key_env="MY_KEY"), environ={"MY_KEY": "k"})
    assert custom.is_configured()


def test_unconfigured_never_calls_the_api(monkeypatch: pytest.MonkeyPatch) -> None:
    stub = _install(monkeypatch, lambda _m: decision_json("FOOD"))
    assert CloudCategorizer(environ={}).categorize("Swiggy") is None
    assert stub.calls == []


def test_request_shape(monkeypatch: pytest.MonkeyPatch) -> None:
    stub = _install(monkeypatch, lambda _m: decision_json("FOOD", 0.92, merchant_name="Swiggy"))
    tier = CloudCategorizer(CloudConfig(model="gpt-test", timeout_seconds=3.0), environ=_KEYED)
    result = tier.categorize("SWIGGY*BLR", Decimal("499"))

    assert result is not None
    assert result.category is Category.FOOD
    assert result.confidence == 0.92
    assert result.merchant_name == "Swiggy"
    assert result.source is CategorySource.CLOUD_MODEL

    (call,) = stub.calls
    assert call["model"] == "gpt-test"
    assert "Indian users" in call["instructions"]
    assert '"SWIGGY*BLR"' in call["input"]
    assert call["text"]["format"]["name"] == "transaction_category"
    assert stub.client_kwargs == [{"api_key": "sk-test", "timeout": 3.0}]


def test_missing_confidence_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, lambda _m: decision_json("SHOPPING", None))
    result = CloudCategorizer(environ=_KEYED).categorize("Myntra")
    assert result is not None
    assert result.confidence == 0.8


def test_garbage_reply_is_no_result(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, lambda _m: "I'm not sure, sorry")
    assert CloudCategorizer(environ=_KEYED).categorize("Myntra") is None


def test_sdk_errors_propagate(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, lambda _m: TimeoutError("deadline exceeded"))
    with pytest.raises(TimeoutError):
        CloudCategorizer(environ=_KEYED).categorize("Myntra")

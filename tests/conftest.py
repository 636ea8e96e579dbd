"""Pytest configuration for test isolation.

The pipeline reads ``TXN_*`` variables, ``OPENAI_API_KEY`` and the database
URL from the environment, keeps one shared SQLAlchemy engine per process and
configures package logging once. Any of these leaking between tests makes
results depend on test order (a real API key would even enable the cloud
tier), so every test starts from a clean slate.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

import pytest
from db.client import dispose_engine

from txn_pipeline.logging_setup import reset_logging

IST = timezone(timedelta(hours=5, minutes=30))


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in list(os.environ):
        if key.startswith("TXN_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    yield
    dispose_engine()
    reset_logging()


@pytest.fixture
def t0() -> datetime:
    return datetime(2024, 1, 22, 10, 30, tzinfo=IST)

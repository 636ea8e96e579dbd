from __future__ import annotations

import io
import logging

from txn_pipeline.logging_setup import configure_logging, get_logger


def test_long_digit_runs_are_masked() -> None:
    out = io.StringIO()
    configure_logging("INFO", fmt="%(message)s", stream=out)
    get_logger("txn_pipeline.test").info("ref=%s acct=%s rows=%d", "401234567890", "1234", 12)
    assert out.getvalue().strip() == "ref=xxxxxxxx7890 acct=1234 rows=12"


def test_configure_is_idempotent() -> None:
    first, second = io.StringIO(), io.StringIO()
    configure_logging("DEBUG", stream=first)
    configure_logging("INFO", stream=second)
    pkg = logging.getLogger("txn_pipeline")
    assert len(pkg.handlers) == 1
    assert pkg.level == logging.DEBUG
    assert pkg.propagate is False


def test_unconfigured_logger_is_silent() -> None:
    get_logger("txn_pipeline.quiet")
    handlers = logging.getLogger("txn_pipeline").handlers
    assert [type(h) for h in handlers] == [logging.NullHandler]

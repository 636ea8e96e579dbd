"""Logging for ``txn_pipeline``.

Everything this package handles is personal financial data, so the log
policy is about what never reaches a handler:

- notification bodies, statement rows and merchant strings are not passed
  to log calls at all; modules log ``event key=value`` lines made of variant
  tags, counts, statuses and exception type names;
- as a backstop, the handler installed by :func:`configure_logging` masks
  every run of six or more digits down to its last four, so an account or
  UPI reference number that slips into a message is not written out whole.

The CLI (or a host service) calls :func:`configure_logging` once; library
modules only call :func:`get_logger` with a ``txn_pipeline.<module>`` name and
stay silent behind a ``NullHandler`` until then.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from typing import IO

_PKG_LOGGER_NAME = "txn_pipeline"
_LEVEL_ENV = "TXN_PIPELINE_LOG_LEVEL"
_DEFAULT_FMT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False
_LONG_DIGITS = re.compile(r"\d{6,}")


def _mask(m: re.Match[str]) -> str:
    digits = m.group(0)
    return "x" * (len(digits) - 4) + digits[-4:]


class _MaskDigits(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _LONG_DIGITS.sub(_mask, message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelName(name)
        if isinstance(numeric, int):
            return numeric
    env_val = os.getenv(_LEVEL_ENV)
    if env_val and env_val != level:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package root logger exactly once.

    ``level`` falls back to ``TXN_PIPELINE_LOG_LEVEL`` and then ``INFO``.
    Repeated calls are no-ops so that library consumers and the CLI can both
    call this safely.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FMT))
    handler.addFilter(_MaskDigits())

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def reset_logging() -> None:
    """Drop handlers installed by :func:`configure_logging` (used by tests)."""

    global _CONFIGURED
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    _CONFIGURED = False


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name with library-safe defaults."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "reset_logging"]

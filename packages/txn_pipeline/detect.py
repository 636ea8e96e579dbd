"""Format detection and the file-channel entry point.

- :func:`select_variant` picks the notification variant for an origin tag.
- :func:`read_statement` turns raw bytes into text (pdfplumber for PDFs,
  UTF-8 for everything else).
- :func:`parse_statement` detects the statement format and parses it. It never
  raises: unknown formats, unreadable or password-protected files come back as
  a failed :class:`~txn_pipeline.models.StatementResult` with one message.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from .config import PipelineConfig
from .exceptions import (
    PasswordRequiredError,
    StatementReadError,
    UnknownFormatError,
)
from .extractors.statement_csv import parse_csv
from .extractors.statement_pdf import extract_pdf_text, has_bank_landmark, parse_pdf_text
from .extractors.variants import select_variant
from .logging_setup import get_logger
from .models import StatementResult

_logger = get_logger("txn_pipeline.detect")

PDF_MAGIC = b"%PDF"
EMPTY_FILE_MESSAGE = "File is empty"
UNKNOWN_LABEL = "Unknown"
PASSWORD_LABEL = "PDF (Password Required)"
PDF_ERROR_LABEL = "PDF Error"
READ_ERROR_LABEL = "Read Error"


@dataclass(frozen=True, slots=True)
class StatementText:
    text: str
    is_pdf: bool


def is_pdf(data: bytes, filename: str | None = None) -> bool:
    if data.lstrip()[:4] == PDF_MAGIC:
        return True
    return bool(filename) and filename.lower().endswith(".pdf")


def read_statement(
    data: bytes,
    *,
    filename: str | None = None,
    password: str | None = None,
) -> StatementText:
    """Return the statement's text.

    Raises :class:`PasswordRequiredError` or :class:`StatementReadError`.
    """

    if is_pdf(data, filename):
        return StatementText(extract_pdf_text(data, password=password), is_pdf=True)
    try:
        return StatementText(data.decode("utf-8-sig"), is_pdf=False)
    except UnicodeDecodeError as e:
        raise StatementReadError(f"File is not UTF-8 text: {e.reason}") from e


def parse_statement_text(
    text: str,
    *,
    is_pdf_text: bool = False,
    config: PipelineConfig | None = None,
    cancel: threading.Event | None = None,
) -> StatementResult:
    """Parse already-extracted statement text.

    CSV detection runs first for plain text; text whose opening lines name a
    known issuer is read as PDF-extracted text when no CSV format claims it.
    """

    cfg = config or PipelineConfig()
    if not text.strip():
        return StatementResult.failure(EMPTY_FILE_MESSAGE, UNKNOWN_LABEL)
    if is_pdf_text:
        return parse_pdf_text(text, tz=cfg.tz, max_errors=cfg.max_reported_errors)
    try:
        return parse_csv(
            text,
            tz=cfg.tz,
            workers=cfg.statement_workers,
            max_errors=cfg.max_reported_errors,
            cancel=cancel,
        )
    except UnknownFormatError:
        if has_bank_landmark(text):
            return parse_pdf_text(text, tz=cfg.tz, max_errors=cfg.max_reported_errors)
        raise


def parse_statement(
    data: bytes,
    filename: str | None = None,
    password: str | None = None,
    *,
    config: PipelineConfig | None = None,
    cancel: threading.Event | None = None,
) -> StatementResult:
    """Detect and parse one statement file."""

    if not data or not data.strip():
        return StatementResult.failure(EMPTY_FILE_MESSAGE, UNKNOWN_LABEL)
    try:
        st = read_statement(data, filename=filename, password=password)
        result = parse_statement_text(
            st.text, is_pdf_text=st.is_pdf, config=config, cancel=cancel
        )
    except PasswordRequiredError as e:
        _logger.info("statement_password_required filename=%s", filename)
        return StatementResult.failure(str(e), PASSWORD_LABEL)
    except UnknownFormatError as e:
        _logger.info("statement_unknown_format filename=%s", filename)
        return StatementResult.failure(str(e), UNKNOWN_LABEL)
    except StatementReadError as e:
        _logger.warning("statement_read_failed filename=%s error=%s", filename, e)
        label = PDF_ERROR_LABEL if is_pdf(data, filename) else READ_ERROR_LABEL
        return StatementResult.failure(str(e), label)
    _logger.info(
        "statement_parsed filename=%s format=%s parsed=%d errors=%d",
        filename,
        result.format_label,
        len(result.transactions),
        result.error_count,
    )
    return result


__all__ = [
    "EMPTY_FILE_MESSAGE",
    "PASSWORD_LABEL",
    "StatementText",
    "is_pdf",
    "parse_statement",
    "parse_statement_text",
    "read_statement",
    "select_variant",
]

"""PDF statement formats.

Text is pulled out of the document with pdfplumber (no OCR). The source bank
is identified from landmarks in the first non-blank lines, then one of two
block strategies applies:

- line blocks: a line containing a date anchor starts a block that spans the
  next one or two lines, stopping early at the next anchor line;
- anchor blocks (PhonePe): the document is flattened to one string and the
  text between consecutive date matches is one transaction, because wrapped
  paragraphs do not line up with transactions.

Per-block failures are recorded as ``"Line N: message"`` with ``N`` the
1-based index among non-blank lines.
"""

from __future__ import annotations

import bisect
import io
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, tzinfo
from decimal import Decimal
from enum import StrEnum

import pdfplumber
from pdfminer.pdfdocument import PDFPasswordIncorrect

from ..dates import (
    DD_MM_YY_SLASH,
    DD_MM_YYYY_DASH,
    DD_MM_YYYY_SLASH,
    DD_MMM_YYYY,
    MMM_DD_COMMA_YYYY,
    MMM_DD_YYYY,
    YYYY_MM_DD,
    DatePatterns,
    resolve_date,
)
from ..exceptions import PasswordRequiredError, StatementReadError
from ..logging_setup import get_logger
from ..merchants import merchant_from_description
from ..models import Direction, ExtractedTransaction, StatementResult
from .common import SKIPPED, Skipped, collect, parse_amount

_logger = get_logger("txn_pipeline.extractors.statement_pdf")

PHONEPE_EMPTY_MESSAGE = "Could not extract transactions. Please check if PDF format is supported."
GENERIC_EMPTY_MESSAGE = "Could not extract transactions from PDF. The format may not be supported."
MAX_DESCRIPTION_LEN = 100


class BlockError(Exception):
    def __init__(self, line_no: int, message: str) -> None:
        super().__init__(f"Line {line_no}: {message}")
        self.line_no = line_no


type BlockOutcome = ExtractedTransaction | BlockError | Skipped


# ---- Text extraction ----------------------------------------------------------


def _is_password_error(exc: BaseException) -> bool:
    seen: BaseException | None = exc
    while seen is not None:
        if isinstance(seen, PDFPasswordIncorrect):
            return True
        if any(isinstance(a, PDFPasswordIncorrect) for a in seen.args):
            return True
        seen = seen.__cause__ or seen.__context__
    return False


def extract_pdf_text(data: bytes, *, password: str | None = None) -> str:
    """Return the text of every page, newline separated.

    Raises :class:`PasswordRequiredError` for encrypted documents opened
    without the right password and :class:`StatementReadError` when the
    bytes cannot be read as a PDF.
    """

    try:
        with pdfplumber.open(io.BytesIO(data), password=password or "") as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:  # noqa: BLE001
        if _is_password_error(e):
            raise PasswordRequiredError() from e
        raise StatementReadError(f"Could not read PDF: {e}") from e
    _logger.debug("pdf_text_extracted pages=%d", len(pages))
    return "\n".join(pages)


# ---- Amounts ------------------------------------------------------------------

# Statement amounts always carry paise; bare integers are reference numbers.
_STATEMENT_AMOUNT = re.compile(
    r"(?<!\d)(?<!\d[.,])((?:\d{1,3}(?:,\d{2,3})+|\d+)\.\d{2})(?!\d)(?:\s*\b(Cr|Dr)\b)?",
    re.IGNORECASE,
)
_RUPEE_AMOUNT = re.compile(r"₹\s*([\d,]+(?:\.\d{2})?)")


@dataclass(frozen=True, slots=True)
class _Amount:
    value: Decimal
    suffix: str


def _amounts(text: str) -> list[_Amount]:
    found: list[_Amount] = []
    for m in _STATEMENT_AMOUNT.finditer(text):
        value = parse_amount(m.group(1))
        if value is not None:
            found.append(_Amount(value, (m.group(2) or "").lower()))
    return found


class AmountPick(StrEnum):
    # The trailing figure is the running balance when more than one is present.
    BEFORE_BALANCE = "BEFORE_BALANCE"
    FIRST_ABOVE_ONE = "FIRST_ABOVE_ONE"


def _pick(amounts: Sequence[_Amount], how: AmountPick) -> _Amount | None:
    positive = [a for a in amounts if a.value > 0]
    if how is AmountPick.FIRST_ABOVE_ONE:
        return next((a for a in positive if a.value > 1), None)
    if not positive:
        return None
    return positive[-2] if len(positive) >= 2 else positive[-1]


# ---- Line-block formats -------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LineBlockFormat:
    tag: str
    label: str
    landmark: Callable[[str], bool]
    anchor: re.Pattern[str]
    date_patterns: DatePatterns
    block_lines: int
    pick: AmountPick
    credit: Callable[[str, _Amount], bool]
    default_description: str
    empty_message: str | None = None


_CR_WORD = re.compile(r"\bcr\b", re.IGNORECASE)


def _credit_by_suffix(_block: str, amount: _Amount) -> bool:
    return amount.suffix == "cr"


def _credit_by_cr(block: str, _amount: _Amount) -> bool:
    return bool(_CR_WORD.search(block))


def _credit_by_words(block: str, _amount: _Amount) -> bool:
    lower = block.lower()
    return bool(_CR_WORD.search(block)) or "credit" in lower or "received" in lower


def _is_sbi(head: str) -> bool:
    return "state bank of india" in head or (
        "sbi" in head and ("account statement" in head or "transaction" in head)
    )


SBI_PDF = LineBlockFormat(
    tag="SBI",
    label="SBI PDF Statement",
    landmark=_is_sbi,
    anchor=re.compile(r"\d{2}[/-]\d{2}[/-]\d{4}|\d{2}\s+[A-Za-z]{3}\s+\d{4}"),
    date_patterns=(DD_MM_YYYY_SLASH, DD_MM_YYYY_DASH, DD_MMM_YYYY),
    block_lines=3,
    pick=AmountPick.BEFORE_BALANCE,
    credit=_credit_by_suffix,
    default_description="SBI Transaction",
)

HDFC_PDF = LineBlockFormat(
    tag="HDFC",
    label="HDFC PDF Statement",
    landmark=lambda head: "hdfc bank" in head,
    anchor=re.compile(r"\d{2}/\d{2}/\d{2,4}"),
    date_patterns=(DD_MM_YY_SLASH, DD_MM_YYYY_SLASH),
    block_lines=2,
    pick=AmountPick.BEFORE_BALANCE,
    credit=lambda block, _a: bool(_CR_WORD.search(block)) or "credit" in block.lower(),
    default_description="HDFC Transaction",
)

ICICI_PDF = LineBlockFormat(
    tag="ICICI",
    label="ICICI PDF Statement",
    landmark=lambda head: "icici bank" in head,
    anchor=re.compile(r"\d{2}[-/]\d{2}[-/]\d{4}"),
    date_patterns=(DD_MM_YYYY_DASH, DD_MM_YYYY_SLASH),
    block_lines=2,
    pick=AmountPick.BEFORE_BALANCE,
    credit=_credit_by_cr,
    default_description="ICICI Transaction",
)

AXIS_PDF = LineBlockFormat(
    tag="AXIS",
    label="Axis PDF Statement",
    landmark=lambda head: "axis bank" in head,
    anchor=re.compile(r"\d{2}[-/]\d{2}[-/]\d{4}"),
    date_patterns=(DD_MM_YYYY_DASH,),
    block_lines=2,
    pick=AmountPick.BEFORE_BALANCE,
    credit=_credit_by_cr,
    default_description="Axis Transaction",
)

GENERIC_PDF = LineBlockFormat(
    tag="GENERIC",
    label="PDF Statement",
    landmark=lambda head: True,
    anchor=re.compile(r"\d{2}[-/]\d{2}[-/]\d{2,4}|\d{2}\s+[A-Za-z]{3}\s+\d{4}|\d{4}-\d{2}-\d{2}"),
    date_patterns=(DD_MM_YYYY_SLASH, DD_MM_YYYY_DASH, DD_MM_YY_SLASH, DD_MMM_YYYY, YYYY_MM_DD),
    block_lines=2,
    pick=AmountPick.FIRST_ABOVE_ONE,
    credit=_credit_by_words,
    default_description="Transaction",
    empty_message=GENERIC_EMPTY_MESSAGE,
)

_NOISE = re.compile(r"₹|\bRs\.?|\bINR\b", re.IGNORECASE)


def _parse_line_block(
    fmt: LineBlockFormat,
    lines: Sequence[str],
    i: int,
    *,
    tz: tzinfo,
) -> BlockOutcome:
    line_no = i + 1
    m = fmt.anchor.search(lines[i])
    if m is None:
        return SKIPPED
    occurred_at = resolve_date(m.group(0), fmt.date_patterns, tz=tz)
    if occurred_at is None:
        return BlockError(line_no, f"unparseable date {m.group(0)!r}")

    block = [lines[i]]
    for j in range(i + 1, min(i + fmt.block_lines, len(lines))):
        if fmt.anchor.search(lines[j]):
            break
        block.append(lines[j])
    text = " ".join(block)
    # Dates look like amounts to the amount pattern (``22.01.2024``).
    undated = fmt.anchor.sub(" ", text)

    picked = _pick(_amounts(undated), fmt.pick)
    if picked is None:
        return SKIPPED

    description = " ".join(_NOISE.sub(" ", _STATEMENT_AMOUNT.sub(" ", undated)).split())
    description = description[:MAX_DESCRIPTION_LEN] or fmt.default_description
    try:
        return ExtractedTransaction(
            amount=picked.value,
            direction=Direction.CREDIT if fmt.credit(undated, picked) else Direction.DEBIT,
            merchant_raw=description,
            merchant_clean=merchant_from_description(description),
            occurred_at=occurred_at,
            source_label=fmt.label,
            description=description,
        )
    except ValueError as e:
        return BlockError(line_no, str(e))


def parse_line_blocks(
    fmt: LineBlockFormat,
    lines: Sequence[str],
    *,
    tz: tzinfo = UTC,
    max_errors: int = 5,
) -> StatementResult:
    outcomes = [
        _parse_line_block(fmt, lines, i, tz=tz)
        for i, line in enumerate(lines)
        if fmt.anchor.search(line)
    ]
    return collect(outcomes, fmt.label, max_errors=max_errors, empty_message=fmt.empty_message)


# ---- PhonePe anchor blocks ----------------------------------------------------

PHONEPE_LABEL = "PhonePe PDF Statement"
_PHONEPE_ANCHOR = re.compile(
    r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+\d{1,2},?\s+\d{4}", re.IGNORECASE
)
_PHONEPE_PATTERNS: DatePatterns = (MMM_DD_COMMA_YYYY, MMM_DD_YYYY)
_PAID_TO = re.compile(r"Paid\s+to\s+(.+?)(?=\s+DEBIT\b|\s+Transaction\b|$)", re.IGNORECASE)
_RECEIVED_FROM = re.compile(
    r"Received\s+from\s+(.+?)(?=\s+CREDIT\b|\s+Transaction\b|$)", re.IGNORECASE
)
_DEBIT_WORD = re.compile(r"\bDEBIT\b", re.IGNORECASE)
_CREDIT_WORD = re.compile(r"\bCREDIT\b", re.IGNORECASE)
_HANDLE = re.compile(r"@\w+")


def _is_phonepe(head: str) -> bool:
    return (
        "phonepe" in head
        or "phone pe" in head
        or ("transaction statement for" in head and "paid to" in head)
    )


def _phonepe_block(block: str, date_text: str, line_no: int, *, tz: tzinfo) -> BlockOutcome:
    normalized = " ".join(re.sub(r",\s*", ", ", date_text).split())
    occurred_at = resolve_date(normalized, _PHONEPE_PATTERNS, tz=tz)
    if occurred_at is None:
        return BlockError(line_no, f"unparseable date {date_text!r}")

    is_debit = bool(_DEBIT_WORD.search(block))
    is_credit = bool(_CREDIT_WORD.search(block))
    if not (is_debit or is_credit):
        # Column headings and page furniture carry dates too.
        return SKIPPED

    m = _PAID_TO.search(block) or _RECEIVED_FROM.search(block)
    merchant = m.group(1) if m else ""
    merchant = " ".join(_HANDLE.sub("", merchant).split())
    if not merchant:
        merchant = "Received" if is_credit else "Payment"

    amount_m = _RUPEE_AMOUNT.search(block)
    amount = parse_amount(amount_m.group(1)) if amount_m else None
    if amount is None or amount <= 0:
        return SKIPPED

    verb = "Received from" if is_credit else "Paid to"
    try:
        return ExtractedTransaction(
            amount=amount,
            direction=Direction.CREDIT if is_credit else Direction.DEBIT,
            merchant_raw=merchant,
            merchant_clean=merchant_from_description(merchant),
            occurred_at=occurred_at,
            source_label=PHONEPE_LABEL,
            description=f"PhonePe: {verb} {merchant}",
        )
    except ValueError as e:
        return BlockError(line_no, str(e))


def parse_phonepe(
    lines: Sequence[str],
    *,
    tz: tzinfo = UTC,
    max_errors: int = 5,
) -> StatementResult:
    starts: list[int] = []
    offset = 0
    for line in lines:
        starts.append(offset)
        offset += len(line) + 1
    flat = " ".join(lines)

    anchors = list(_PHONEPE_ANCHOR.finditer(flat))
    outcomes: list[BlockOutcome] = []
    for k, m in enumerate(anchors):
        end = anchors[k + 1].start() if k + 1 < len(anchors) else len(flat)
        line_no = bisect.bisect_right(starts, m.start())
        outcomes.append(_phonepe_block(flat[m.start() : end], m.group(0), line_no, tz=tz))
    return collect(
        outcomes, PHONEPE_LABEL, max_errors=max_errors, empty_message=PHONEPE_EMPTY_MESSAGE
    )


# ---- Dispatch -----------------------------------------------------------------

SBI_SCAN_LINES = 20
PHONEPE_SCAN_LINES = 30


def _heads(lines: Sequence[str]) -> tuple[str, str]:
    return (
        " ".join(lines[:SBI_SCAN_LINES]).lower(),
        " ".join(lines[:PHONEPE_SCAN_LINES]).lower(),
    )


def has_bank_landmark(text: str) -> bool:
    """True when ``text`` names a known issuer in its opening lines."""

    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    head, wide_head = _heads(lines)
    return _is_phonepe(wide_head) or any(
        f.landmark(head) for f in (SBI_PDF, HDFC_PDF, ICICI_PDF, AXIS_PDF)
    )


def parse_pdf_text(text: str, *, tz: tzinfo = UTC, max_errors: int = 5) -> StatementResult:
    """Identify the issuing bank and parse the extracted text."""

    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    head, wide_head = _heads(lines)

    if SBI_PDF.landmark(head):
        result = parse_line_blocks(SBI_PDF, lines, tz=tz, max_errors=max_errors)
    elif _is_phonepe(wide_head):
        result = parse_phonepe(lines, tz=tz, max_errors=max_errors)
    else:
        fmt = next(
            f for f in (HDFC_PDF, ICICI_PDF, AXIS_PDF, GENERIC_PDF) if f.landmark(head)
        )
        result = parse_line_blocks(fmt, lines, tz=tz, max_errors=max_errors)

    _logger.info(
        "pdf_parsed format=%s lines=%d parsed=%d errors=%d",
        result.format_label,
        len(lines),
        len(result.transactions),
        result.error_count,
    )
    return result


__all__ = [
    "AXIS_PDF",
    "GENERIC_PDF",
    "HDFC_PDF",
    "ICICI_PDF",
    "PHONEPE_LABEL",
    "SBI_PDF",
    "AmountPick",
    "BlockError",
    "LineBlockFormat",
    "extract_pdf_text",
    "has_bank_landmark",
    "parse_line_blocks",
    "parse_pdf_text",
    "parse_phonepe",
]

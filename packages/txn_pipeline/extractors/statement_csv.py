"""CSV statement formats.

The header is the first non-blank row. A format claims the file when its
header keywords are present; columns are then discovered from the header
cells, with each format's documented fixed index as a fallback. Every data
row is parsed independently:

- a blank date cell, too few cells or no positive amount skips the row
  silently (counted in ``skipped_rows``);
- an unparseable date or malformed amount records ``"Row N: message"``
  where ``N`` is the 1-based line number in the file.
"""

from __future__ import annotations

import csv
import io
import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, tzinfo
from decimal import Decimal
from enum import StrEnum

from ..dates import (
    DD_MM_YY_SLASH,
    DD_MM_YYYY_DASH,
    DD_MM_YYYY_SLASH,
    DD_MMM_YYYY,
    DD_MMM_YYYY_TIME,
    MM_DD_YYYY_SLASH,
    MMM_DD_COMMA_YYYY,
    YYYY_MM_DD,
    DatePatterns,
    resolve_date,
)
from ..exceptions import UnknownFormatError
from ..logging_setup import get_logger
from ..merchants import merchant_from_description, normalize_merchant
from ..models import Direction, ExtractedTransaction, StatementResult
from ..pmap import p_map
from .common import SKIPPED, Skipped, collect, to_decimal

_logger = get_logger("txn_pipeline.extractors.statement_csv")


class RowKind(StrEnum):
    DEBIT_CREDIT = "DEBIT_CREDIT"
    PHONEPE = "PHONEPE"
    GOOGLE_PAY = "GOOGLE_PAY"
    GENERIC = "GENERIC"


@dataclass(frozen=True, slots=True)
class Column:
    """How to find one field in a header row.

    A cell matches when it equals one of ``exact`` or contains one of
    ``contains``; the first matching cell wins, else ``fallback``.
    """

    contains: tuple[str, ...] = ()
    exact: tuple[str, ...] = ()
    fallback: int | None = None

    def find(self, header: Sequence[str]) -> int | None:
        for i, cell in enumerate(header):
            if cell in self.exact or any(k in cell for k in self.contains):
                return i
        return None

    def locate(self, header: Sequence[str]) -> int | None:
        found = self.find(header)
        return self.fallback if found is None else found


@dataclass(frozen=True, slots=True)
class CsvFormat:
    tag: str
    label: str
    kind: RowKind
    date_patterns: DatePatterns
    detect: Callable[[str, Sequence[str]], bool]
    columns: Mapping[str, Column]
    strip_long_digits: bool = False


@dataclass(frozen=True, slots=True)
class CsvRow:
    line_no: int
    cells: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ColumnMap:
    fmt: CsvFormat
    indices: Mapping[str, int | None] = field(default_factory=dict)

    def cell(self, row: CsvRow, name: str) -> str:
        idx = self.indices.get(name)
        if idx is None or idx >= len(row.cells):
            return ""
        return row.cells[idx].strip()

    def min_cells(self) -> int:
        present = [i for i in self.indices.values() if i is not None]
        return max(present) + 1 if present else 0


class RowError(Exception):
    def __init__(self, line_no: int, message: str) -> None:
        super().__init__(f"Row {line_no}: {message}")
        self.line_no = line_no


type RowOutcome = ExtractedTransaction | RowError | Skipped


# ---- Header detection ---------------------------------------------------------


def _has(header: str, *words: str) -> bool:
    return all(w in header for w in words)


def _is_sbi(header: str, _cells: Sequence[str]) -> bool:
    return _has(header, "txn date", "value date", "description")


def _is_hdfc(header: str, _cells: Sequence[str]) -> bool:
    return _has(header, "date", "narration") and ("withdrawal" in header or "deposit" in header)


def _is_icici(header: str, _cells: Sequence[str]) -> bool:
    return _has(header, "transaction date", "transaction remarks")


def _is_axis(header: str, _cells: Sequence[str]) -> bool:
    return _has(header, "tran date", "particulars")


def _is_phonepe(header: str, _cells: Sequence[str]) -> bool:
    return _has(header, "date", "recipient", "amount")


def _is_gpay(header: str, cells: Sequence[str]) -> bool:
    return _has(header, "date", "amount") and any(c in ("to", "from") for c in cells)


def _is_generic(header: str, cells: Sequence[str]) -> bool:
    if _GENERIC_COLUMNS["date"].find(cells) is None:
        return False
    pair = (
        _GENERIC_COLUMNS["debit"].find(cells) is not None
        and _GENERIC_COLUMNS["credit"].find(cells) is not None
    )
    return pair or _GENERIC_COLUMNS["amount"].find(cells) is not None


_GENERIC_COLUMNS: Mapping[str, Column] = {
    "date": Column(contains=("date",), fallback=0),
    "description": Column(
        contains=("description", "narration", "merchant", "name", "particulars"), fallback=1
    ),
    "debit": Column(contains=("debit", "withdrawal")),
    "credit": Column(contains=("credit", "deposit")),
    "amount": Column(contains=("amount",)),
    "type": Column(contains=("type",)),
}


FORMATS: tuple[CsvFormat, ...] = (
    CsvFormat(
        tag="SBI",
        label="SBI Bank Statement",
        kind=RowKind.DEBIT_CREDIT,
        date_patterns=(DD_MMM_YYYY, DD_MM_YYYY_DASH, DD_MM_YYYY_SLASH),
        detect=_is_sbi,
        columns={
            "date": Column(contains=("txn date",), fallback=0),
            "description": Column(contains=("description",), fallback=2),
            "debit": Column(contains=("debit",), fallback=4),
            "credit": Column(contains=("credit",), fallback=5),
        },
    ),
    CsvFormat(
        tag="HDFC",
        label="HDFC Bank Statement",
        kind=RowKind.DEBIT_CREDIT,
        date_patterns=(DD_MM_YY_SLASH, DD_MM_YYYY_SLASH),
        detect=_is_hdfc,
        columns={
            "date": Column(contains=("date",), fallback=0),
            "description": Column(contains=("narration",), fallback=1),
            "debit": Column(contains=("withdrawal",), fallback=3),
            "credit": Column(contains=("deposit",), fallback=4),
        },
    ),
    CsvFormat(
        tag="ICICI",
        label="ICICI Bank Statement",
        kind=RowKind.DEBIT_CREDIT,
        date_patterns=(DD_MM_YYYY_DASH, DD_MM_YYYY_SLASH),
        detect=_is_icici,
        columns={
            "date": Column(contains=("transaction date",), fallback=1),
            "description": Column(contains=("transaction remarks",), fallback=2),
            "debit": Column(contains=("withdrawal", "debit"), fallback=4),
            "credit": Column(contains=("deposit", "credit"), fallback=5),
        },
    ),
    CsvFormat(
        tag="AXIS",
        label="Axis Bank Statement",
        kind=RowKind.DEBIT_CREDIT,
        date_patterns=(DD_MM_YYYY_DASH,),
        detect=_is_axis,
        columns={
            "date": Column(contains=("tran date",), fallback=0),
            "description": Column(contains=("particulars",), fallback=1),
            "debit": Column(contains=("debit", "withdrawal"), exact=("dr",), fallback=2),
            "credit": Column(contains=("credit", "deposit"), exact=("cr",), fallback=3),
        },
    ),
    CsvFormat(
        tag="PHONEPE",
        label="PhonePe Export",
        kind=RowKind.PHONEPE,
        date_patterns=(DD_MMM_YYYY_TIME, DD_MMM_YYYY, YYYY_MM_DD),
        detect=_is_phonepe,
        columns={
            "date": Column(contains=("date",), fallback=0),
            "party": Column(contains=("recipient", "merchant"), exact=("to",), fallback=1),
            "amount": Column(contains=("amount",), fallback=2),
            "type": Column(contains=("type", "status")),
        },
    ),
    CsvFormat(
        tag="GOOGLE_PAY",
        label="Google Pay Export",
        kind=RowKind.GOOGLE_PAY,
        date_patterns=(MMM_DD_COMMA_YYYY, DD_MMM_YYYY, YYYY_MM_DD),
        detect=_is_gpay,
        columns={
            "date": Column(contains=("date",), fallback=0),
            "to": Column(contains=("recipient",), exact=("to",)),
            "from": Column(contains=("sender",), exact=("from",)),
            "amount": Column(contains=("amount",), fallback=3),
        },
    ),
    CsvFormat(
        tag="GENERIC",
        label="Generic CSV",
        kind=RowKind.GENERIC,
        date_patterns=(YYYY_MM_DD, DD_MM_YYYY_SLASH, DD_MM_YYYY_DASH, MM_DD_YYYY_SLASH, DD_MMM_YYYY),
        detect=_is_generic,
        columns=_GENERIC_COLUMNS,
        strip_long_digits=True,
    ),
)


def detect_csv_format(header_cells: Sequence[str]) -> CsvFormat | None:
    """Return the first format whose header keywords match, else ``None``."""

    cells = [c.strip().lower() for c in header_cells]
    header = ",".join(cells)
    for fmt in FORMATS:
        if fmt.detect(header, cells):
            return fmt
    return None


def _column_map(fmt: CsvFormat, header_cells: Sequence[str]) -> ColumnMap:
    cells = [c.strip().lower() for c in header_cells]
    indices = {name: col.locate(cells) for name, col in fmt.columns.items()}
    if fmt.kind is RowKind.GENERIC:
        # Prefer the debit/credit pair; a lone amount column is the fallback.
        if indices.get("debit") is None or indices.get("credit") is None:
            indices["debit"] = None
            indices["credit"] = None
        else:
            indices["amount"] = None
    return ColumnMap(fmt=fmt, indices=indices)


# ---- Row parsing --------------------------------------------------------------


def _decimal_cell(row: CsvRow, raw: str) -> Decimal | None:
    try:
        return to_decimal(raw)
    except ValueError as e:
        raise RowError(row.line_no, str(e)) from e


def _debit_credit(row: CsvRow, cols: ColumnMap) -> tuple[Decimal, Direction] | None:
    credit = _decimal_cell(row, cols.cell(row, "credit")) or Decimal(0)
    debit = _decimal_cell(row, cols.cell(row, "debit")) or Decimal(0)
    if abs(credit) > 0:
        return abs(credit), Direction.CREDIT
    if abs(debit) > 0:
        return abs(debit), Direction.DEBIT
    return None


def parse_row(
    row: CsvRow,
    cols: ColumnMap,
    *,
    tz: tzinfo = UTC,
) -> RowOutcome:
    """Parse one data row; never raises."""

    fmt = cols.fmt
    try:
        if len(row.cells) < cols.min_cells() and fmt.kind is RowKind.DEBIT_CREDIT:
            return SKIPPED
        date_text = cols.cell(row, "date")
        if not date_text:
            return SKIPPED
        occurred_at = resolve_date(date_text, fmt.date_patterns, tz=tz)
        if occurred_at is None:
            raise RowError(row.line_no, f"unparseable date {date_text!r}")

        match fmt.kind:
            case RowKind.DEBIT_CREDIT:
                description = cols.cell(row, "description")
                picked = _debit_credit(row, cols)
                merchant = merchant_from_description(description)
            case RowKind.PHONEPE:
                party = cols.cell(row, "party")
                description = party
                amount = _decimal_cell(row, cols.cell(row, "amount"))
                kind = cols.cell(row, "type").lower()
                credit = any(w in kind for w in ("received", "credit", "cashback"))
                picked = (
                    (abs(amount), Direction.CREDIT if credit else Direction.DEBIT)
                    if amount
                    else None
                )
                merchant = normalize_merchant(party)
            case RowKind.GOOGLE_PAY:
                to = cols.cell(row, "to")
                sender = cols.cell(row, "from")
                credit = bool(sender) and not to
                description = sender if credit else to
                amount = _decimal_cell(row, cols.cell(row, "amount"))
                picked = (
                    (abs(amount), Direction.CREDIT if credit else Direction.DEBIT)
                    if amount
                    else None
                )
                merchant = normalize_merchant(description)
            case RowKind.GENERIC:
                description = cols.cell(row, "description")
                if cols.indices.get("debit") is not None:
                    picked = _debit_credit(row, cols)
                else:
                    raw = cols.cell(row, "amount")
                    amount = _decimal_cell(row, raw)
                    kind = cols.cell(row, "type").lower()
                    if not amount:
                        picked = None
                    elif cols.indices.get("type") is not None and kind:
                        credit = "credit" in kind or kind == "cr"
                        picked = (abs(amount), Direction.CREDIT if credit else Direction.DEBIT)
                    else:
                        picked = (abs(amount), Direction.DEBIT if amount < 0 else Direction.CREDIT)
                merchant = merchant_from_description(
                    description, strip_long_digits=fmt.strip_long_digits
                )

        if picked is None:
            return SKIPPED
        amount, direction = picked
        return ExtractedTransaction(
            amount=amount,
            direction=direction,
            merchant_raw=description,
            merchant_clean=merchant,
            occurred_at=occurred_at,
            source_label=fmt.label,
            description=description,
        )
    except RowError as e:
        return e
    except ValueError as e:
        return RowError(row.line_no, str(e))


# ---- File parsing -------------------------------------------------------------


def read_rows(text: str) -> tuple[list[str] | None, list[CsvRow]]:
    """Split ``text`` into the header cells and the non-blank data rows."""

    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.reader(io.StringIO(text))
    header: list[str] | None = None
    rows: list[CsvRow] = []
    for cells in reader:
        if not any(c.strip() for c in cells):
            continue
        if header is None:
            header = cells
            continue
        rows.append(CsvRow(line_no=reader.line_num, cells=tuple(cells)))
    return header, rows


def parse_csv(
    text: str,
    *,
    tz: tzinfo = UTC,
    workers: int = 1,
    max_errors: int = 5,
    cancel: threading.Event | None = None,
) -> StatementResult:
    """Parse CSV statement text.

    Raises :class:`~txn_pipeline.exceptions.UnknownFormatError` when no
    registered format claims the header.
    """

    header, rows = read_rows(text)
    if header is None:
        raise UnknownFormatError()
    fmt = detect_csv_format(header)
    if fmt is None:
        raise UnknownFormatError()
    cols = _column_map(fmt, header)

    outcomes: list[RowOutcome] = p_map(
        rows,
        lambda row: parse_row(row, cols, tz=tz),
        concurrency=workers,
        cancel=cancel,
    )
    result = collect(outcomes, fmt.label, max_errors=max_errors)
    _logger.info(
        "csv_parsed format=%s rows=%d parsed=%d errors=%d skipped=%d",
        fmt.tag,
        len(rows),
        len(result.transactions),
        result.error_count,
        result.skipped_rows,
    )
    return result


__all__ = [
    "FORMATS",
    "Column",
    "ColumnMap",
    "CsvFormat",
    "CsvRow",
    "RowError",
    "RowKind",
    "detect_csv_format",
    "parse_csv",
    "parse_row",
    "read_rows",
]

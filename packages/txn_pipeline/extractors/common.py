"""Helpers shared by the notification and statement extractors."""

from __future__ import annotations

import re
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from ..models import ExtractedTransaction, StatementResult

MAX_AMOUNT = Decimal("10000000")

_CURRENCY_TOKENS = ("₹", "rs", "inr")


def keywords(*fragments: str) -> re.Pattern[str]:
    """Compile regex fragments into one case-insensitive pattern.

    Each fragment must start at a word boundary, so ``"paid"`` does not fire
    inside ``"prepaid"`` while ``"refund"`` still matches ``"refunded"``.
    Close a fragment with ``\\b`` to demand a whole word.
    """

    body = "|".join(f"(?:{f})" for f in fragments)
    return re.compile(rf"(?<!\w)(?:{body})", re.IGNORECASE)


def all_of(*fragments: str) -> re.Pattern[str]:
    """Pattern matching text that contains every fragment, in any order."""

    ahead = "".join(rf"(?=.*?(?<!\w)(?:{f}))" for f in fragments)
    return re.compile(rf"^{ahead}", re.IGNORECASE | re.DOTALL)


def parse_amount(raw: str | None) -> Decimal | None:
    """Parse a captured amount such as ``"1,234.50"``; ``None`` when invalid."""

    if raw is None:
        return None
    s = raw.replace(",", "").strip()
    if not s:
        return None
    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def is_plausible_amount(value: Decimal | None) -> bool:
    return value is not None and Decimal(0) < value < MAX_AMOUNT


def to_decimal(raw: str | None) -> Decimal | None:
    """Parse a statement amount cell into a signed ``Decimal``.

    Blank cells return ``None``. Currency markers, thousands separators,
    ``Cr``/``Dr`` suffixes and surrounding parentheses are tolerated;
    a leading ``-``, parentheses or a ``Dr`` suffix make the value negative.
    Anything else raises ``ValueError`` so the caller can record a row error.
    """

    if raw is None:
        return None
    s = raw.strip()
    if not s:
        return None
    negative = False

    lowered = s.lower()
    if lowered.endswith("cr"):
        s = s[:-2].strip()
    elif lowered.endswith("dr"):
        negative = True
        s = s[:-2].strip()

    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
            changed = True
        low = s.lower()
        for token in _CURRENCY_TOKENS:
            if low.startswith(token):
                s = s[len(token) :].lstrip(". ").lstrip()
                changed = True
                break
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.replace(",", "").strip()
    if not s or s == "-":
        return None
    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc
    if not d.is_finite():
        raise ValueError(f"invalid amount: {raw!r}")
    return -abs(d) if negative else d


# ---- Per-row outcomes ---------------------------------------------------------


class Skipped:
    """Marker for a row or block rejected silently (blank date, no amount)."""

    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "SKIPPED"


SKIPPED = Skipped()


def collect(
    outcomes: Iterable[ExtractedTransaction | Exception | Skipped],
    format_label: str,
    *,
    max_errors: int = 5,
    empty_message: str | None = None,
) -> StatementResult:
    """Fold per-row outcomes into a :class:`StatementResult`.

    Exceptions become error strings (at most ``max_errors`` kept, the total
    in ``error_count``). ``empty_message`` is appended when nothing parsed.
    """

    transactions: list[ExtractedTransaction] = []
    errors: list[str] = []
    skipped = 0
    for outcome in outcomes:
        if isinstance(outcome, ExtractedTransaction):
            transactions.append(outcome)
        elif isinstance(outcome, Exception):
            errors.append(str(outcome))
        else:
            skipped += 1
    shown = errors[:max_errors]
    if not transactions and empty_message is not None:
        shown.append(empty_message)
    return StatementResult(
        success=bool(transactions),
        transactions=tuple(transactions),
        errors=tuple(shown),
        format_label=format_label,
        error_count=len(errors),
        skipped_rows=skipped,
    )


__all__ = [
    "MAX_AMOUNT",
    "SKIPPED",
    "Skipped",
    "all_of",
    "collect",
    "is_plausible_amount",
    "keywords",
    "parse_amount",
    "to_decimal",
]

"""Strict date resolution against ordered, per-format pattern lists.

Each statement format carries its own ordered tuple of ``strptime`` patterns.
:func:`resolve_date` tries them in order and returns the first success as a
timezone-aware ``datetime``. ``strptime`` never rolls an invalid day over
(``31/02/2024`` fails), and "no match" is returned as ``None`` so callers can
reject the row instead of substituting the current time.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, tzinfo

# Named patterns (day-month ordering follows Indian bank exports).
DD_MMM_YYYY = "%d %b %Y"
DD_MM_YYYY_DASH = "%d-%m-%Y"
DD_MM_YYYY_SLASH = "%d/%m/%Y"
DD_MM_YY_SLASH = "%d/%m/%y"
MM_DD_YYYY_SLASH = "%m/%d/%Y"
YYYY_MM_DD = "%Y-%m-%d"
MMM_DD_COMMA_YYYY = "%b %d, %Y"
MMM_DD_YYYY = "%b %d %Y"
DD_MMM_YYYY_TIME = "%d %b %Y, %I:%M %p"

type DatePatterns = Sequence[str]


def _leading_tokens(text: str, pattern: str) -> str | None:
    """Return the prefix of ``text`` spanning as many tokens as ``pattern``.

    Bank exports often append a time (``22/01/2024 10:31:07``) to the date
    cell; the date itself must still parse strictly.
    """

    n = len(pattern.split())
    tokens = text.split()
    if len(tokens) <= n:
        return None
    return " ".join(tokens[:n])


def resolve_date(
    text: str | None,
    patterns: DatePatterns,
    *,
    tz: tzinfo = UTC,
) -> datetime | None:
    """Parse ``text`` with the first matching pattern, or return ``None``.

    Naive results are anchored to ``tz`` (the statement's local zone).
    """

    if text is None:
        return None
    s = " ".join(text.split())
    if not s:
        return None
    for pattern in patterns:
        candidates = [s]
        prefix = _leading_tokens(s, pattern)
        if prefix is not None:
            candidates.append(prefix)
        for candidate in candidates:
            try:
                parsed = datetime.strptime(candidate, pattern)
            except ValueError:
                continue
            return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=tz)
    return None


__all__ = [
    "DD_MMM_YYYY",
    "DD_MMM_YYYY_TIME",
    "DD_MM_YYYY_DASH",
    "DD_MM_YYYY_SLASH",
    "DD_MM_YY_SLASH",
    "DatePatterns",
    "MMM_DD_COMMA_YYYY",
    "MMM_DD_YYYY",
    "MM_DD_YYYY_SLASH",
    "YYYY_MM_DD",
    "resolve_date",
]

"""Merchant name normalization.

- :func:`normalize_merchant` is the canonical transform applied to every
  extracted merchant. It strips payment-rail prefixes, optionally long digit
  runs, collapses whitespace, truncates to 50 characters and falls back to
  ``"Unknown Merchant"``. It is idempotent.
- :func:`clean_merchant_text` tidies a raw candidate captured from a
  notification before it is judged and normalized.
- :func:`merchant_from_description` pulls the counterparty out of a
  statement narration such as ``UPI/DR/406512345678/Landlord/HDFC``.
"""

from __future__ import annotations

import re

from .models import UNKNOWN_MERCHANT

MAX_MERCHANT_LEN = 50

_RAIL_PREFIX = re.compile(r"(?:UPI|IMPS|NEFT)/\d+/", re.IGNORECASE)
_LONG_DIGITS = re.compile(r"\d{10,}")
_DISALLOWED = re.compile(r"[^\w\s@.\-]")
_TRAILING_STATUS = re.compile(r"\s*\b(?:successful|failed)\s*$", re.IGNORECASE)

# Narration rules, most specific first.
_DESCRIPTION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"UPI/(?:DR|CR)/[^/]*/([^/]+)", re.IGNORECASE),
    re.compile(r"UPI[-/]([^/]+)/", re.IGNORECASE),
    re.compile(r"\bto ([^/]+)/", re.IGNORECASE),
    re.compile(r"\bfrom ([^/]+)/", re.IGNORECASE),
    re.compile(r"paid to (.+)", re.IGNORECASE),
    re.compile(r"received from (.+)", re.IGNORECASE),
    re.compile(r"IMPS[-/]([^/]+)", re.IGNORECASE),
    re.compile(r"NEFT[-/]([^/]+)", re.IGNORECASE),
)


def normalize_merchant(raw: str | None, *, strip_long_digits: bool = False) -> str:
    """Return the canonical merchant name for ``raw``.

    ``strip_long_digits`` removes runs of ten or more digits (account and
    phone numbers); only the generic extractors ask for it.
    """

    s = raw or ""
    while True:
        stripped = _RAIL_PREFIX.sub("", s)
        if strip_long_digits:
            stripped = _LONG_DIGITS.sub("", stripped)
        if stripped == s:
            break
        s = stripped
    s = " ".join(s.split())
    s = s[:MAX_MERCHANT_LEN].strip()
    return s or UNKNOWN_MERCHANT


def clean_merchant_text(raw: str) -> str:
    """Tidy a merchant candidate captured from notification text."""

    s = raw.replace("¡", "@")
    s = _TRAILING_STATUS.sub("", s)
    s = " ".join(s.split())
    s = _DISALLOWED.sub("", s)
    return s[:MAX_MERCHANT_LEN].strip()


def merchant_from_description(description: str | None, *, strip_long_digits: bool = False) -> str:
    """Extract and normalize the counterparty named in a statement narration."""

    text = description or ""
    for pattern in _DESCRIPTION_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        candidate = m.group(1).strip()
        # Reference numbers sit in the same slot on some rails.
        if len(candidate) > 1 and not candidate.isdigit():
            return normalize_merchant(candidate, strip_long_digits=strip_long_digits)
    return normalize_merchant(text, strip_long_digits=strip_long_digits)


__all__ = [
    "MAX_MERCHANT_LEN",
    "clean_merchant_text",
    "merchant_from_description",
    "normalize_merchant",
]

"""Notification extraction engine.

A :class:`NotificationVariant` is a tagged record carrying one bank's or
app's pattern tables; the extraction operations below are generic over those
tables. The registered variants live in :mod:`txn_pipeline.extractors.variants`.

Every pattern list is ordered most specific first and the first usable match
wins. Variant tables are always consulted before the shared base tables.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

from ..merchants import clean_merchant_text, normalize_merchant
from ..models import Direction, ExtractedTransaction, RawUnit
from .common import is_plausible_amount, keywords, parse_amount


class VariantTag(StrEnum):
    HDFC = "HDFC"
    ICICI = "ICICI"
    SBI = "SBI"
    AXIS = "AXIS"
    KOTAK = "KOTAK"
    CANARA = "CANARA"
    AIRTEL = "AIRTEL"
    PHONEPE = "PHONEPE"
    GOOGLE_PAY = "GOOGLE_PAY"
    AMAZON_PAY = "AMAZON_PAY"
    PAYTM = "PAYTM"
    WHATSAPP_PAY = "WHATSAPP_PAY"
    GENERIC = "GENERIC"


# ---- Pattern table entries ----------------------------------------------------


@dataclass(frozen=True, slots=True)
class Capture:
    """A pattern whose first group is the captured value.

    ``template`` rewrites the match (``"Cash Deposit CDM {0}"``); a template
    without placeholders is a fixed name returned whenever the pattern fires.
    """

    pattern: re.Pattern[str]
    template: str | None = None

    def apply(self, text: str) -> str | None:
        m = self.pattern.search(text)
        if not m:
            return None
        if self.template is not None:
            return self.template.format(*(g or "" for g in m.groups()))
        return m.group(1)


@dataclass(frozen=True, slots=True)
class DirectionRule:
    pattern: re.Pattern[str]
    direction: Direction


def capture(pattern: str, template: str | None = None, *, flags: int = re.IGNORECASE) -> Capture:
    return Capture(re.compile(pattern, flags), template)


def rule(pattern: re.Pattern[str], direction: Direction) -> DirectionRule:
    return DirectionRule(pattern, direction)


# ---- Shared base tables -------------------------------------------------------

_AMT = r"([\d,]+(?:\.\d{1,2})?)"

# Currency marker and transaction verb, both required.
_CURRENCY = re.compile(r"₹|(?<![a-z])(?:rs\.|rs |inr)", re.IGNORECASE)
_VERB = keywords(
    "debited", "credited", "paid", "received", "sent", "withdrawn", "transferred", "spent", "purchase"
)

_OTP_NOISE = keywords(
    r"otp\b",
    "one time password",
    "one-time password",
    "verification code",
    "security code",
    "do not share",
    "don't share",
    "dont share",
)
_PROMO_NOISE = keywords(
    r"offer", r"cashback offer", r"discount", r"win\b", r"congratulations", r"lucky", r"reward points"
)
_REQUEST_NOISE = keywords(
    "payment request",
    "collect request",
    "pay now",
    "due date",
    "reminder",
    "bill due",
    "emi due",
    "has requested money",
    "requested money from you",
    "will be debited from your account on approving",
    "upcoming mandate",
    "mandate set for",
)
_EXPIRY_NOISE = keywords("expir", "valid for", "valid till", "validity")

BASE_AMOUNT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?:Rs\.?|₹|INR)\s*{_AMT}", re.IGNORECASE),
    re.compile(rf"{_AMT}\s*(?:Rs\.?|₹|INR)", re.IGNORECASE),
)

_INVESTMENT = re.compile(
    r"\b(?:zerodha|groww|kite|upstox|angel one|angel broking|mutual fund|sip|"
    r"systematic investment|nse|bse|demat|shares|stocks|equity|nifty|sensex|trading)\b",
    re.IGNORECASE,
)
_UPI_CREDIT = re.compile(r"upi/cr|/cr/|/c//", re.IGNORECASE)
_UPI_DEBIT = re.compile(r"upi/dr|/dr/|/d//", re.IGNORECASE)
_RAIL_CREDIT = re.compile(r"\b(?:neft|imps|rtgs)[\s/-]*cr\b", re.IGNORECASE)
_RAIL_DEBIT = re.compile(r"\b(?:neft|imps|rtgs)[\s/-]*dr\b", re.IGNORECASE)
_SELF_TRANSFER_FROM = re.compile(r"\btransfer(?:red)? from\b", re.IGNORECASE)
_SELF_TRANSFER_TO = re.compile(r"\btransfer(?:red)? to\b", re.IGNORECASE)
_CREDIT_WORDS = keywords("credited", "received", "deposited", "refund")
_DEBIT_FROM = re.compile(r"\b(?:debited|withdrawn)\s+from\b", re.IGNORECASE)
_FROM = re.compile(r"\bfrom\b", re.IGNORECASE)
_DEBIT_WORDS = keywords("debited", "spent", "paid", "withdrawn", "purchase", "sent to")
_TRANSFERRED = keywords("transferred")

_PARTY = r"([A-Za-z][A-Za-z0-9\s@.\-]{2,40}?)"
_PARTY_END = r"(?=\s+(?:on|ref|upi|via)\b|\s*$)"

BASE_MERCHANT_RULES: tuple[Capture, ...] = (
    capture(r"\bat\s+(.+?)\s+on\s"),
    capture(rf"\b(?:to|towards)\s+{_PARTY}{_PARTY_END}"),
    capture(rf"\bfrom\s+{_PARTY}{_PARTY_END}"),
    capture(r"\bVPA\s+([A-Za-z0-9@.\-]+)"),
    capture(r"\bInfo[:\s]+(.+?)(?=\s+(?:Avl|Ref)\b|\s*$)"),
)
BASE_MERCHANT_SKIP = frozenset({"you", "your", "a/c", "account", "bank", "upi"})

BASE_REFERENCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"\b(?:upi\s*ref(?:\s*no)?|ref(?:\s*no)?|txn\s*(?:id|no)?|utr)(?![a-z])[.:\s#]*([A-Za-z0-9]+)",
        re.IGNORECASE,
    ),
    re.compile(r"\breference[.:\s#]*([A-Za-z0-9]+)", re.IGNORECASE),
)
MIN_BASE_REFERENCE_LEN = 6

BASE_ACCOUNT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:a/c|acct?|account)[^\d]{0,20}?(?:xx+|\*+|x+)(\d{4})", re.IGNORECASE),
    re.compile(r"card[^\d]{0,20}?(?:ending|with)?[^\d]{0,10}(\d{4})\b", re.IGNORECASE),
    re.compile(r"(?:xx+|\*+)(\d{4})", re.IGNORECASE),
)

BASE_BALANCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        rf"\b(?:avl\.?\s*bal|available\s*(?:bal(?:ance)?)?|bal(?:ance)?)\b[.:\s]*(?:Rs\.?|₹|INR)?\s*{_AMT}",
        re.IGNORECASE,
    ),
    re.compile(rf"(?:Rs\.?|₹|INR)\s*{_AMT}\s*(?:avl|available|bal)", re.IGNORECASE),
)

BASE_CARD_MARKERS: tuple[str, ...] = (
    "card",
    " dc ",
    " cc ",
    "debit card",
    "credit card",
    "pos ",
    "atm ",
)


# ---- Variant ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NotificationVariant:
    """One registered notification source and its pattern tables.

    ``origins`` is a tuple of marker groups; a group matches when every one of
    its markers occurs in the origin (case-insensitive). ``exclusions`` reject
    a body unless ``exemptions`` also match. Merchant candidates come from
    ``merchant_rules`` (then the base rules when ``inherit_base_merchant``),
    then the keyword ``merchant_fallbacks``.
    """

    tag: VariantTag
    label: str
    origins: tuple[tuple[str, ...], ...] = ()
    matches_any_origin: bool = False
    exclusions: re.Pattern[str] | None = None
    exemptions: re.Pattern[str] | None = None
    amount_patterns: tuple[re.Pattern[str], ...] = ()
    direction_rules: tuple[DirectionRule, ...] = ()
    merchant_rules: tuple[Capture, ...] = ()
    inherit_base_merchant: bool = True
    merchant_fallbacks: tuple[Capture, ...] = ()
    merchant_skip: frozenset[str] = frozenset()
    merchant_reject: re.Pattern[str] | None = None
    reference_rules: tuple[Capture, ...] = ()
    account_patterns: tuple[re.Pattern[str], ...] = ()
    balance_patterns: tuple[re.Pattern[str], ...] = ()
    card_markers: tuple[str, ...] = ()
    strip_long_digits: bool = False

    # -- identity --

    def can_handle(self, origin: str) -> bool:
        if self.matches_any_origin:
            return True
        o = origin.upper()
        return any(all(m.upper() in o for m in group) for group in self.origins)

    # -- guard --

    def looks_like_transaction(self, body: str) -> bool:
        """Return ``True`` only for text that reads as a completed transaction.

        Requires a currency marker and a transaction verb, then rejects OTPs,
        promotions (unless money was debited), payment requests and reminders,
        expiry notices and this variant's own exclusions.
        """

        text = body or ""
        if not (_CURRENCY.search(text) and _VERB.search(text)):
            return False
        lower = text.lower()
        if _OTP_NOISE.search(text):
            return False
        if _PROMO_NOISE.search(text) and "debited" not in lower:
            return False
        if _REQUEST_NOISE.search(text) or _EXPIRY_NOISE.search(text):
            return False
        if self.exclusions is not None and self.exclusions.search(text):
            return self.exemptions is not None and bool(self.exemptions.search(text))
        return True

    # -- fields --

    def extract_amount(self, body: str) -> Decimal | None:
        for pattern in (*self.amount_patterns, *BASE_AMOUNT_PATTERNS):
            m = pattern.search(body)
            if not m:
                continue
            value = parse_amount(m.group(1))
            if is_plausible_amount(value):
                return value
        return None

    def extract_direction(self, body: str) -> Direction:
        if _INVESTMENT.search(body):
            return Direction.INVESTMENT
        if _UPI_CREDIT.search(body):
            return Direction.CREDIT
        if _UPI_DEBIT.search(body):
            return Direction.DEBIT
        for r in self.direction_rules:
            if r.pattern.search(body):
                return r.direction
        if _RAIL_CREDIT.search(body):
            return Direction.CREDIT
        if _RAIL_DEBIT.search(body):
            return Direction.DEBIT
        if _SELF_TRANSFER_FROM.search(body) and _SELF_TRANSFER_TO.search(body):
            return Direction.TRANSFER
        if _CREDIT_WORDS.search(body) or (_FROM.search(body) and not _DEBIT_FROM.search(body)):
            return Direction.CREDIT
        if _DEBIT_WORDS.search(body):
            return Direction.DEBIT
        if _TRANSFERRED.search(body):
            return Direction.TRANSFER
        return Direction.UNKNOWN

    def extract_merchant(self, body: str) -> str | None:
        rules = self.merchant_rules + (BASE_MERCHANT_RULES if self.inherit_base_merchant else ())
        for r in rules:
            raw = r.apply(body)
            if raw is None:
                continue
            if r.template is not None:
                return raw
            candidate = clean_merchant_text(raw)
            if self._acceptable_merchant(candidate):
                return candidate
        for r in self.merchant_fallbacks:
            named = r.apply(body)
            if named:
                return named
        return None

    def _acceptable_merchant(self, candidate: str) -> bool:
        if len(candidate) <= 1:
            return False
        lower = candidate.lower()
        if lower in BASE_MERCHANT_SKIP or lower in self.merchant_skip:
            return False
        if lower.startswith("a/c"):
            return False
        return not (self.merchant_reject is not None and self.merchant_reject.search(candidate))

    def extract_reference(self, body: str) -> str | None:
        for r in self.reference_rules:
            value = r.apply(body)
            if value:
                return value
        for pattern in BASE_REFERENCE_PATTERNS:
            for m in pattern.finditer(body):
                if len(m.group(1)) >= MIN_BASE_REFERENCE_LEN:
                    return m.group(1)
        return None

    def extract_account_last4(self, body: str) -> str | None:
        for pattern in (*self.account_patterns, *BASE_ACCOUNT_PATTERNS):
            m = pattern.search(body)
            if m:
                return m.group(1)
        return None

    def extract_balance(self, body: str) -> Decimal | None:
        for pattern in (*self.balance_patterns, *BASE_BALANCE_PATTERNS):
            m = pattern.search(body)
            if not m:
                continue
            value = parse_amount(m.group(1))
            if value is not None and value >= 0:
                return value
        return None

    def detect_is_card(self, body: str) -> bool:
        padded = f" {body.lower()} "
        return any(marker in padded for marker in (*self.card_markers, *BASE_CARD_MARKERS))

    # -- whole unit --

    def build(self, unit: RawUnit, amount: Decimal) -> ExtractedTransaction:
        """Assemble the transaction for a unit that already passed the guard."""

        body = unit.body
        raw = self.extract_merchant(body)
        return ExtractedTransaction(
            amount=amount,
            direction=self.extract_direction(body),
            merchant_raw=raw or "",
            merchant_clean=normalize_merchant(raw, strip_long_digits=self.strip_long_digits),
            occurred_at=unit.observed_at,
            source_label=self.label,
            reference=self.extract_reference(body),
            account_last4=self.extract_account_last4(body),
            is_card=self.detect_is_card(body),
            balance=self.extract_balance(body),
            origin=unit.origin,
        )

    def extract(self, unit: RawUnit) -> ExtractedTransaction | None:
        if not self.looks_like_transaction(unit.body):
            return None
        amount = self.extract_amount(unit.body)
        if amount is None:
            return None
        return self.build(unit, amount)


__all__ = [
    "BASE_AMOUNT_PATTERNS",
    "BASE_MERCHANT_RULES",
    "Capture",
    "DirectionRule",
    "NotificationVariant",
    "VariantTag",
    "capture",
    "rule",
]

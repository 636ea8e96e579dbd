"""Data models for ``txn_pipeline``.

Inbound text arrives as a :class:`RawUnit` (validated with pydantic because it
is handed over by external collaborators). Everything the pipeline produces
is a frozen ``dataclass``: :class:`ExtractedTransaction` before dedup and
categorization, :class:`CategorizedTransaction` once a category has been
assigned, plus the result envelopes returned to callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

UNKNOWN_MERCHANT = "Unknown Merchant"
DEFAULT_CURRENCY = "INR"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Direction(StrEnum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"
    TRANSFER = "TRANSFER"
    INVESTMENT = "INVESTMENT"
    UNKNOWN = "UNKNOWN"


class Category(StrEnum):
    FOOD = "FOOD"
    GROCERIES = "GROCERIES"
    TRANSPORT = "TRANSPORT"
    SHOPPING = "SHOPPING"
    UTILITIES = "UTILITIES"
    ENTERTAINMENT = "ENTERTAINMENT"
    HEALTH = "HEALTH"
    TRANSFERS = "TRANSFERS"
    OTHER = "OTHER"


class CategorySource(StrEnum):
    RULE = "RULE"
    ON_DEVICE_MODEL = "ON_DEVICE_MODEL"
    CLOUD_MODEL = "CLOUD_MODEL"
    USER = "USER"
    UNKNOWN = "UNKNOWN"


class NotificationStatus(StrEnum):
    """What happened to a single notification unit."""

    DISCARDED = "DISCARDED"  # failed the transaction guard or had no amount
    REDELIVERED = "REDELIVERED"  # same fingerprint seen before
    DUPLICATE = "DUPLICATE"  # matched a stored transaction inside the window
    STORED = "STORED"


# ---------------------------------------------------------------------------
# Inbound unit
# ---------------------------------------------------------------------------


class RawUnit(BaseModel):
    """One unit of text to parse.

    ``origin`` is an app package name (``com.phonepe.app``) or an SMS sender id
    (``VM-HDFCBK``). ``observed_at`` must be timezone-aware.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    body: str
    origin: str
    observed_at: datetime

    @field_validator("origin")
    @classmethod
    def _origin_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("origin must be non-empty")
        return v

    @field_validator("observed_at")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("observed_at must be timezone-aware")
        return v


# ---------------------------------------------------------------------------
# Extraction output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExtractedTransaction:
    """A parsed transaction before deduplication and categorization.

    ``amount`` is always a positive magnitude; the sign lives in
    ``direction``. Instances that would violate ``amount > 0``, carry a naive
    ``occurred_at`` or a blank ``merchant_clean`` cannot be constructed.
    """

    amount: Decimal
    direction: Direction
    merchant_raw: str
    merchant_clean: str
    occurred_at: datetime
    source_label: str
    currency: str = DEFAULT_CURRENCY
    reference: str | None = None
    account_last4: str | None = None
    is_card: bool = False
    balance: Decimal | None = None
    description: str = ""
    origin: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal) or not self.amount > 0:
            raise ValueError(f"amount must be a positive Decimal, got {self.amount!r}")
        if self.occurred_at.tzinfo is None or self.occurred_at.utcoffset() is None:
            raise ValueError("occurred_at must be timezone-aware")
        if not self.merchant_clean.strip():
            raise ValueError("merchant_clean must not be blank")

    @property
    def signed_amount(self) -> Decimal:
        """``+amount`` for credits; every other direction is outgoing."""

        return self.amount if self.direction is Direction.CREDIT else -self.amount


@dataclass(frozen=True, slots=True)
class Categorization:
    """Result proposed by one categorization tier."""

    category: Category
    confidence: float
    source: CategorySource
    subcategory: str | None = None
    merchant_name: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0,1], got {self.confidence}")


@dataclass(frozen=True, slots=True)
class CategorizedTransaction:
    """An extracted transaction paired with its final category.

    This is the unit handed to the transaction store. ``merchant_clean``
    reflects any cleaned name proposed by the winning tier.
    """

    transaction: ExtractedTransaction
    category: Category
    confidence: float
    category_source: CategorySource
    subcategory: str | None = None
    fingerprint: str | None = None

    @property
    def occurred_at(self) -> datetime:
        return self.transaction.occurred_at

    @property
    def signed_amount(self) -> Decimal:
        return self.transaction.signed_amount

    @property
    def merchant_clean(self) -> str:
        return self.transaction.merchant_clean


# ---------------------------------------------------------------------------
# Result envelopes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StatementResult:
    """Outcome of parsing one statement file.

    ``errors`` holds at most the configured number of messages;
    ``error_count`` keeps the uncapped total. ``skipped_rows`` counts rows
    rejected silently for a blank date or a missing amount.
    """

    success: bool
    transactions: tuple[ExtractedTransaction, ...]
    errors: tuple[str, ...]
    format_label: str
    error_count: int = 0
    skipped_rows: int = 0

    @classmethod
    def failure(cls, message: str, format_label: str) -> StatementResult:
        return cls(
            success=False,
            transactions=(),
            errors=(message,),
            format_label=format_label,
            error_count=1,
        )


@dataclass(frozen=True, slots=True)
class ImportSummary:
    """Counts reported back after importing a statement.

    ``skipped`` rows duplicated something already stored; ``failed`` rows could
    not be stored and each has a ``"Row N: ..."`` entry in ``errors`` (capped).
    """

    success: bool
    format_label: str
    parsed: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    errors: tuple[str, ...] = ()
    cancelled: bool = False
    stored: tuple[CategorizedTransaction, ...] = field(default=(), repr=False)


@dataclass(frozen=True, slots=True)
class NotificationOutcome:
    status: NotificationStatus
    transaction: CategorizedTransaction | None = None
    variant: str | None = None


__all__ = [
    "DEFAULT_CURRENCY",
    "UNKNOWN_MERCHANT",
    "Categorization",
    "CategorizedTransaction",
    "Category",
    "CategorySource",
    "Direction",
    "ExtractedTransaction",
    "ImportSummary",
    "NotificationOutcome",
    "NotificationStatus",
    "RawUnit",
    "StatementResult",
]

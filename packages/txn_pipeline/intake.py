"""Notification intake.

Turns a posted notification (package name plus its title/text/big-text
fields) into a :class:`~txn_pipeline.models.RawUnit`, or drops it:

- only allow-listed packages (UPI apps, bank apps, SMS apps) are accepted;
- the composed body must contain at least one financial keyword, so
  personal messages are discarded before any parsing happens.

For SMS apps the notification title carries the sender id (``VM-HDFCBK``)
and becomes the origin; every other package is its own origin.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from .logging_setup import get_logger
from .models import RawUnit

_logger = get_logger("txn_pipeline.intake")

UPI_APPS: frozenset[str] = frozenset(
    {
        "com.phonepe.app",
        "in.amazon.mShop.android.shopping",
        "com.google.android.apps.nbu.paisa.user",
        "net.one97.paytm",
        "com.whatsapp",
        "in.org.npci.upiapp",
        "com.freecharge.android",
        "com.mobikwik_new",
    }
)

BANK_APPS: frozenset[str] = frozenset(
    {
        "com.sbi.SBIFreedomPlus",
        "com.sbi.lotusintouch",
        "com.csam.icici.bank.imobile",
        "com.axis.mobile",
        "com.hdfc.mobilebanking",
        "com.kotak.mobile.banking",
        "com.airtel.money",
    }
)

SMS_APPS: frozenset[str] = frozenset(
    {
        "com.google.android.apps.messaging",
        "com.android.mms",
        "com.samsung.android.messaging",
        "com.miui.securitycenter",
        "com.xiaomi.mipicks",
        "com.mi.android.globalminusscreen",
        "com.android.messaging",
    }
)

FINANCIAL_KEYWORDS: tuple[str, ...] = (
    "debited",
    "credited",
    "paid",
    "received",
    "sent",
    "withdrawn",
    "transferred",
    "payment",
    "transaction",
    "spent",
    "purchase",
    "₹",
    "rs.",
    "rs ",
    "inr",
    "upi",
)

BODY_SEPARATOR = " | "


class PostedNotification(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    package: str
    posted_at: datetime
    title: str = ""
    text: str = ""
    big_text: str = ""


def is_financial_app(package: str) -> bool:
    return package in UPI_APPS or package in BANK_APPS or package in SMS_APPS


def has_financial_keyword(text: str) -> bool:
    lower = text.lower()
    return any(k in lower for k in FINANCIAL_KEYWORDS)


def compose_body(title: str, text: str, big_text: str) -> str:
    """Join the non-blank fields with ``" | "`` in title, text, big-text order."""

    return BODY_SEPARATOR.join(p.strip() for p in (title, text, big_text) if p and p.strip())


def origin_for(package: str, title: str) -> str:
    if package in SMS_APPS and title.strip():
        return title.strip()
    return package


def to_raw_unit(notification: PostedNotification) -> RawUnit | None:
    """Return the unit to feed the pipeline, or ``None`` when it is dropped."""

    if not is_financial_app(notification.package):
        return None
    body = compose_body(notification.title, notification.text, notification.big_text)
    if not body or not has_financial_keyword(body):
        _logger.debug("intake_dropped reason=no_keyword package=%s", notification.package)
        return None
    return RawUnit(
        body=body,
        origin=origin_for(notification.package, notification.title),
        observed_at=notification.posted_at,
    )


__all__ = [
    "BANK_APPS",
    "FINANCIAL_KEYWORDS",
    "SMS_APPS",
    "UPI_APPS",
    "PostedNotification",
    "compose_body",
    "has_financial_keyword",
    "is_financial_app",
    "origin_for",
    "to_raw_unit",
]

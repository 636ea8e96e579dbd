"""Registered notification variants, in dispatch priority order.

Adding a source means adding one :class:`NotificationVariant` here and one
entry in :data:`REGISTRY`. Origin markers are matched as case-insensitive
substrings of the app package name or SMS sender id.
"""

from __future__ import annotations

import re

from ..logging_setup import get_logger
from ..models import Direction
from .common import all_of, keywords
from .notifications import NotificationVariant, VariantTag, capture, rule

_logger = get_logger("txn_pipeline.extractors.variants")

_AMT = r"([\d,]+(?:\.\d{1,2})?)"
_CUR = r"(?:₹|Rs\.?)"
_NAME = r"([A-Za-z][A-Za-z0-9\s@.\-]*?)"
# Where an app's counterparty name stops.
_END = r"(?=\s+(?:on|via|using|ref|upi|from|for|txn|avl)\b|\s*[|,]|\.(?:\s|$)|\s*$)"

_CREDIT = Direction.CREDIT
_DEBIT = Direction.DEBIT


def _origins(*markers: str) -> tuple[tuple[str, ...], ...]:
    return tuple((m,) for m in markers)


def _patterns(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# ---- Banks --------------------------------------------------------------------

HDFC = NotificationVariant(
    tag=VariantTag.HDFC,
    label="HDFC Bank",
    origins=_origins("HDFCBK", "HDFCBANK", "HDFCB", "HDFC", "HDFCCC"),
    exclusions=keywords(
        "emi due",
        "bill payment due",
        "credit card bill",
        "minimum amount due",
        "statement ready",
        "e-statement",
    ),
    merchant_rules=(
        capture(r"\bVPA\s+([A-Za-z0-9@.\-]+)"),
        capture(r"\bat\s+(.+?)\s+on\s"),
        capture(r"\bto\s+(.+?)\s+(?:on|ref|upi)\b"),
        capture(r"\bby\s+(?:NEFT|IMPS|RTGS)[-\s]+(.+?)(?:\s+on\b|\s*$)"),
        capture(r"\bInfo[:\s]+(.+?)(?=\s+(?:Avl|Ref)\b|\s*$)"),
    ),
)

ICICI = NotificationVariant(
    tag=VariantTag.ICICI,
    label="ICICI Bank",
    origins=_origins("ICICIT", "ICICIO", "ICICIB", "ICICIBANK", "ICICI", "ICICIC"),
    exclusions=keywords(
        "amazon pay later",
        "emi scheduled",
        "statement generated",
        "credit limit",
        "payment reminder",
        "standing instructions",
        "emi conversion",
        "statement is sent",
        "is due by",
        "pay total due",
        "minimum due",
    ),
    amount_patterns=_patterns(
        rf"(?:INR|Rs\.?)\s*{_AMT}\s+spent",
        rf"Payment\s+of\s+Rs\.?\s*{_AMT}",
        rf"USD\s*{_AMT}\s+spent",
    ),
    direction_rules=(
        rule(keywords("spent using", "spent on"), _DEBIT),
        rule(all_of("payment", "received"), _CREDIT),
    ),
    merchant_rules=(
        capture(
            r"on\s+\d{1,2}-[A-Za-z]{3}-\d{2}\s+(?:on|at)\s+"
            r"([A-Za-z0-9][A-Za-z0-9\s_\-*]+?)\.?\s*(?:Avl|If not|To dispute)"
        ),
        capture(r"\bat\s+([A-Za-z0-9][A-Za-z0-9\s_\-*]+?)\.?\s*(?:Avl|If not|To dispute)"),
        capture(r"\bthrough\s+([A-Za-z][A-Za-z0-9\s]+?)\s+on\s"),
    ),
    account_patterns=_patterns(r"Card\s*XX(\d{4})"),
    balance_patterns=_patterns(rf"Avl\s*(?:Limit|Lmt)[:\s]*(?:INR|Rs\.?)\s*{_AMT}"),
    card_markers=("card xx", "credit card", "debit card"),
)

SBI = NotificationVariant(
    tag=VariantTag.SBI,
    label="SBI",
    origins=_origins(
        "SBIINB", "SBIUPI", "SBICRD", "ATMSBI", "SBIPSG", "SBISMS", "SBIBNK", "CBSSBI", "SBI"
    ),
    exclusions=keywords(
        "cheque book",
        "passbook",
        "nomination",
        r"kyc\b",
        "link aadhaar",
        "update mobile",
        "otp to login",
    ),
    amount_patterns=_patterns(
        r"debited\s+by\s+(\d+(?:\.\d{1,2})?)(?=\s|$)",
        r"credited\s+by\s+Rs\.?\s*(\d+(?:\.\d{1,2})?)",
    ),
    direction_rules=(
        rule(keywords("debited by"), _DEBIT),
        rule(keywords("credited by", "is credited"), _CREDIT),
        rule(keywords("withdrawn"), _DEBIT),
    ),
    merchant_rules=(
        capture(r"\btrf\s+to\s+(.+?)(?:\s+Refno|\s+If not)"),
        capture(r"\btransfer\s+from\s+(.+?)(?:\s+Ref|\s+-SBI)"),
        capture(r"\bmobile\s+[\dX]+-(.+?)(?:\s*\(IMPS|\s+-SBI)"),
        capture(r"through\s+NEFT.*?\bby\s+(.+?),\s*INFO:"),
        capture(r"Deposit\s+of\s+Cash\s+at\s*([A-Z0-9]+)\s*CDM", "Cash Deposit CDM {0}"),
        capture(r"((?:UBI|SBI|WBT|CBI|BOI|PNB|HDFC|ICICI)\s*ATM\s*[A-Z0-9]+)", flags=0),
    ),
    reference_rules=(
        capture(r"\bRef(?:no|\s?No)[\s:]*(\d+)"),
        capture(r"\bIMPS\s+Ref\s?no[\s:]*(\d+)"),
    ),
    account_patterns=_patterns(r"A/C\s*X(\d{4})", r"a/c\s*no\.?\s*X+(\d{4})"),
)

AXIS = NotificationVariant(
    tag=VariantTag.AXIS,
    label="Axis Bank",
    origins=_origins("AXISBK", "AXISBANK", "AXIS", "AXISCC"),
    exclusions=keywords(
        "flipkart axis",
        "reward points",
        "statement",
        "emi conversion",
        "credit limit",
    ),
    merchant_rules=(
        capture(r"\bInfo[:\s]+UPI/\d+/(.+?)(?=\s+Avl\b|\s*$)"),
        capture(r"\bInfo[:\s]+(?:NEFT|IMPS|RTGS)[-/](.+?)(?=\s+Avl\b|\s*$)"),
        capture(r"\bat\s+(.+?)\s+on\s"),
        capture(rf"\bto\s+([A-Za-z][A-Za-z0-9\s@.\-]+?){_END}"),
        capture(r"\bVPA[:\s]+([A-Za-z0-9@.\-]+)"),
    ),
)

KOTAK = NotificationVariant(
    tag=VariantTag.KOTAK,
    label="Kotak Bank",
    origins=_origins("KOTAKB", "KOTAK", "KOTAKBANK", "811KOT"),
    exclusions=keywords(
        "privy league",
        "reward points",
        "statement ready",
        "minimum due",
        "pin generation",
        "net banking password",
        "welcome kit",
        "authentication process",
        "email id",
        "activated",
        "modified",
        "enabled",
        "blocked",
        "unblocked",
        "initial funding",
        "refund initiated",
        "refund has been initiated",
    ),
    exemptions=keywords(r"received\s+rs", r"sent\s+rs", "spent"),
    amount_patterns=_patterns(
        rf"Received\s+Rs\.?\s*{_AMT}",
        rf"Sent\s+Rs\.?\s*{_AMT}",
        rf"Rs\.?\s*{_AMT}\s+spent",
    ),
    direction_rules=(
        rule(keywords(r"received\s+rs"), _CREDIT),
        rule(keywords(r"sent\s+rs"), _DEBIT),
        rule(keywords("spent via", "spent at"), _DEBIT),
        rule(all_of("refund", "initiated"), _CREDIT),
    ),
    merchant_rules=(
        capture(r"\bfrom\s+([A-Za-z0-9@._\-¡]+)\s+on\s"),
        capture(r"\bSent.*?\bto\s+([A-Za-z0-9@._\-¡]+)\s+on\s"),
        capture(r"\bat\s+([A-Za-z0-9_\-\s]+?)\s+on\s+\d"),
    ),
    inherit_base_merchant=False,
    reference_rules=(
        capture(r"\bUPI\s+Ref[:\s]*(\d+)"),
        capture(r"\bUTR[:\s]*([A-Z0-9]+)"),
    ),
    account_patterns=_patterns(r"Card\s*XX(\d{4})", r"\bAC\s*X+(\d{4})"),
    balance_patterns=_patterns(rf"Avl\s*bal\s*Rs\.?\s*{_AMT}"),
    card_markers=("debit card", "card xx"),
)

CANARA = NotificationVariant(
    tag=VariantTag.CANARA,
    label="Canara Bank",
    origins=_origins("CANBNK", "CANARA", "CANARABANK"),
    exclusions=keywords("password", r"pin\b", r"kyc\b"),
    amount_patterns=_patterns(
        rf"debited\s+Rs\.?\s*INR\s*{_AMT}",
        rf"amount\s+of\s+INR\s*{_AMT}",
        rf"Rs\.?\s*INR\s*{_AMT}",
    ),
    direction_rules=(
        rule(keywords("has been credited", "credited to"), _CREDIT),
        rule(keywords("has been debited", r"debited\s+rs"), _DEBIT),
        rule(keywords("atm txn"), _DEBIT),
        rule(keywords("services charges"), _DEBIT),
        rule(keywords("towards interest"), _CREDIT),
    ),
    merchant_rules=(
        capture(r"Seq\s*\d+\s*ATM\s*txn", "ATM Withdrawal"),
        capture(r"\bby\s+Sender\s+(.+?),\s*IFSC"),
    ),
    inherit_base_merchant=False,
    merchant_fallbacks=(
        capture(r"services\s+charges", "Bank Service Charges"),
        capture(r"towards\s+interest", "Interest Credit"),
        capture(r"\bpos\s+txn", "POS Transaction"),
    ),
    reference_rules=(
        capture(r"\bUTR\s+([A-Z0-9]+)"),
        capture(r"\bSeq\s*(\d+)", "SEQ{0}"),
    ),
    account_patterns=_patterns(r"(?:A/C|account)\s*XXX?(\d{3,4})", r"XXX(\d{3,4})"),
    balance_patterns=_patterns(
        rf"Avl\s*Bal\s*(?:is\s*)?(?:Rs\.?\s*)?INR\s*{_AMT}",
        rf"Total\s*Avail\.?\s*Bal\s*INR\s*{_AMT}",
    ),
)

AIRTEL = NotificationVariant(
    tag=VariantTag.AIRTEL,
    label="Airtel Payments Bank",
    origins=_origins("AIRTEL", "APBANK", "APTBNK", "AIRPAY", "AIRTELPB"),
    exclusions=keywords(r"recharge", r"plan\b", "validity", "data pack", "talktime", "thanks"),
    exemptions=keywords("debited", "credited", "payment"),
    merchant_rules=(
        capture(r"\bpayment\s+to\s+(.+?)(?=\s+on\b|\s+ref\b|\.\s*Txn|\s*$)"),
        capture(rf"\bfrom\s+{_NAME}{_END}"),
        capture(rf"\bto\s+{_NAME}{_END}"),
        capture(r"\bVPA[:\s]+([A-Za-z0-9@.\-]+)"),
    ),
    merchant_fallbacks=(capture(r"\bwallet\b", "Airtel Wallet"),),
    merchant_skip=frozenset({"your", "airtel", "payments", "bank", "a/c", "wallet"}),
    reference_rules=(capture(r"\bTxn\s*ID[:\s]*([A-Za-z0-9]+)"),),
)


# ---- UPI apps -----------------------------------------------------------------

PHONEPE = NotificationVariant(
    tag=VariantTag.PHONEPE,
    label="PhonePe",
    origins=_origins("com.phonepe.app", "PHONEPE"),
    exclusions=keywords("request", "collect", "remind", "reward", "scratch card"),
    amount_patterns=_patterns(
        rf"(?:Paid|Received|Sent|Payment\s+of)\s*{_CUR}\s*{_AMT}",
        rf"{_CUR}\s*{_AMT}",
    ),
    direction_rules=(
        rule(keywords("received", r"got\b"), _CREDIT),
        rule(keywords("paid", "sent", "payment"), _DEBIT),
    ),
    merchant_rules=(
        capture(rf"\b(?:paid\s+to|to)\s+{_NAME}{_END}"),
        capture(rf"\b(?:received\s+from|from)\s+{_NAME}{_END}"),
    ),
)

GOOGLE_PAY = NotificationVariant(
    tag=VariantTag.GOOGLE_PAY,
    label="Google Pay",
    origins=(("com.google.android.apps.nbu.paisa.user",), ("GOOGLE", "PAY"), ("GPAY",)),
    exclusions=keywords("request", "collect", "remind", "offer", "reward", "scratch"),
    amount_patterns=_patterns(
        rf"(?:You\s+)?(?:paid|received|sent)\s*{_CUR}\s*{_AMT}",
        rf"{_CUR}\s*{_AMT}\s*(?:received|paid|sent)",
    ),
    direction_rules=(
        rule(keywords("received"), _CREDIT),
        rule(keywords("you paid", "sent", "paid to"), _DEBIT),
    ),
    merchant_rules=(
        capture(rf"\b(?:paid\s+to|to)\s+{_NAME}{_END}"),
        capture(rf"\b(?:received\s+from|from)\s+{_NAME}{_END}"),
    ),
)

AMAZON_PAY = NotificationVariant(
    tag=VariantTag.AMAZON_PAY,
    label="Amazon Pay",
    origins=_origins("in.amazon.mShop.android.shopping", "AMAZON", "AMZN"),
    exclusions=keywords("offer", "deal", "sale", "discount code", "deliver", "shipped", "arriving", "track"),
    exemptions=keywords("paid", "debited"),
    amount_patterns=_patterns(
        rf"{_CUR}\s*{_AMT}\s*(?:paid|received|sent)",
        rf"Payment\s+of\s*{_CUR}\s*{_AMT}",
    ),
    direction_rules=(
        rule(keywords("received", "refund", "cashback"), _CREDIT),
        rule(keywords("paid", "sent", "payment"), _DEBIT),
    ),
    merchant_rules=(
        capture(r"\b(?:paid\s+to|to)\s+([A-Za-z][A-Za-z0-9\s@.\-]*?)(?=\s+using\b|\s+via\b|\s*[|,]|\.(?:\s|$)|\s*$)"),
        capture(rf"\bfrom\s+{_NAME}{_END}"),
        capture(r"\bOrder\s*#?\s*(\d+)", "Amazon Order #{0}"),
    ),
    merchant_fallbacks=(capture(r"amazon", "Amazon"),),
)

PAYTM = NotificationVariant(
    tag=VariantTag.PAYTM,
    label="Paytm",
    origins=_origins("net.one97.paytm", "PAYTM", "ONE97"),
    exclusions=keywords("request", "collect", "remind", "offer", "promo", "recharge due"),
    amount_patterns=_patterns(
        rf"(?:Paid|Received|Sent|Added)\s*{_CUR}\s*{_AMT}",
        rf"{_CUR}\s*{_AMT}\s*(?:debited|credited|added)",
    ),
    direction_rules=(
        rule(keywords("received", "credited", "added", "cashback"), _CREDIT),
        rule(keywords("paid", "sent", "debited"), _DEBIT),
    ),
    merchant_rules=(
        capture(
            r"\b(?:paid\s+to|payment\s+to|to)\s+([A-Za-z][A-Za-z0-9\s@.\-]*?)"
            r"(?=\s+via\b|\s+using\b|\s*[|,]|\.(?:\s|$)|\s*$)"
        ),
        capture(rf"\bfrom\s+{_NAME}{_END}"),
    ),
    merchant_reject=re.compile(r"paytm", re.IGNORECASE),
    merchant_fallbacks=(capture(r"\bwallet\b", "Paytm Wallet"),),
)

WHATSAPP_PAY = NotificationVariant(
    tag=VariantTag.WHATSAPP_PAY,
    label="WhatsApp Pay",
    origins=_origins("com.whatsapp", "WHATSAPP"),
    exclusions=keywords("request", "missed call", "voice message", "photo", "video", "document", "sticker"),
    amount_patterns=_patterns(
        rf"(?:sent\s+you|you\s+sent|received|paid)\s*{_CUR}\s*{_AMT}",
        rf"{_CUR}\s*{_AMT}\s*payment",
        rf"Payment\s+of\s*{_CUR}\s*{_AMT}",
    ),
    direction_rules=(
        rule(keywords("sent you", "received"), _CREDIT),
        rule(keywords("you sent", "paid", "payment to"), _DEBIT),
    ),
    merchant_rules=(
        capture(r"^([A-Za-z][A-Za-z\s]+?)\s+sent\s+you\b"),
        capture(rf"\b(?:sent\s+to|to)\s+{_NAME}{_END}"),
        capture(rf"\bfrom\s+{_NAME}{_END}"),
    ),
)

GENERIC = NotificationVariant(
    tag=VariantTag.GENERIC,
    label="Unknown",
    matches_any_origin=True,
    exclusions=keywords("one time", "password", "verification"),
    strip_long_digits=True,
)


REGISTRY: tuple[NotificationVariant, ...] = (
    HDFC,
    ICICI,
    SBI,
    AXIS,
    KOTAK,
    CANARA,
    AIRTEL,
    PHONEPE,
    GOOGLE_PAY,
    AMAZON_PAY,
    PAYTM,
    WHATSAPP_PAY,
    GENERIC,
)


def select_variant(origin: str) -> NotificationVariant:
    """Return the first registered variant claiming ``origin``.

    Always returns a variant; :data:`GENERIC` claims everything.
    """

    for variant in REGISTRY:
        if variant.can_handle(origin):
            _logger.debug("variant_selected tag=%s", variant.tag)
            return variant
    return GENERIC


def variant_for_tag(tag: VariantTag | str) -> NotificationVariant:
    key = VariantTag(tag)
    for variant in REGISTRY:
        if variant.tag is key:
            return variant
    raise KeyError(tag)


__all__ = [
    "AIRTEL",
    "AMAZON_PAY",
    "AXIS",
    "CANARA",
    "GENERIC",
    "GOOGLE_PAY",
    "HDFC",
    "ICICI",
    "KOTAK",
    "PAYTM",
    "PHONEPE",
    "REGISTRY",
    "SBI",
    "WHATSAPP_PAY",
    "select_variant",
    "variant_for_tag",
]

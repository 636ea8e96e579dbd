"""Rule-based categorizer.

An ordered table of ``(pattern, category, subcategory, confidence)`` rows is
scanned top to bottom; the first row whose pattern occurs anywhere in the
merchant text wins. Without a match, the amount gives a weak hint
(small amounts lean FOOD, large ones SHOPPING) and everything else is OTHER.

Patterns are substring regexes, except that short brand tokens such as
``ola``, ``hp`` or ``vi`` are word-anchored: brand rows rename the merchant,
so they must not fire inside a person's name like "Ravi" or "Kuberan".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal

from .models import Categorization, Category, CategorySource

SMALL_AMOUNT_LIMIT = Decimal("100")
LARGE_AMOUNT_LIMIT = Decimal("5000")
HINT_CONFIDENCE = 0.3
NO_MATCH_CONFIDENCE = 0.1


@dataclass(frozen=True, slots=True)
class MerchantRule:
    pattern: re.Pattern[str]
    category: Category
    subcategory: str | None
    confidence: float


def _r(pattern: str, category: Category, subcategory: str | None, confidence: float) -> MerchantRule:
    return MerchantRule(re.compile(pattern, re.IGNORECASE), category, subcategory, confidence)


F, G, T, S = Category.FOOD, Category.GROCERIES, Category.TRANSPORT, Category.SHOPPING
U, E, H = Category.UTILITIES, Category.ENTERTAINMENT, Category.HEALTH

MERCHANT_RULES: tuple[MerchantRule, ...] = (
    # Food
    _r(r"swiggy", F, "Food Delivery", 0.95),
    _r(r"zomato", F, "Food Delivery", 0.95),
    _r(r"dominos|domino's", F, "Fast Food", 0.95),
    _r(r"pizza\s*hut", F, "Fast Food", 0.95),
    _r(r"mcdonald|\bmcd\b", F, "Fast Food", 0.95),
    _r(r"\bkfc\b", F, "Fast Food", 0.95),
    _r(r"burger\s*king", F, "Fast Food", 0.95),
    _r(r"starbucks|cafe\s*coffee|\bccd\b", F, "Cafe", 0.95),
    _r(r"restaurant|cafe|dhaba|hotel|food", F, None, 0.7),
    # Groceries
    _r(r"big\s*bazaar", G, "Supermarket", 0.95),
    _r(r"d-?mart|dmart", G, "Supermarket", 0.95),
    _r(r"reliance\s*(?:fresh|smart)", G, "Supermarket", 0.95),
    _r(r"more\s*supermarket", G, "Supermarket", 0.95),
    _r(r"bigbasket|big\s*basket", G, "Online Grocery", 0.95),
    _r(r"blinkit|grofers", G, "Quick Commerce", 0.95),
    _r(r"zepto", G, "Quick Commerce", 0.95),
    _r(r"instamart", G, "Quick Commerce", 0.95),
    _r(r"grocery|supermarket|kirana|provision", G, None, 0.7),
    # Transport
    _r(r"\buber", T, "Rideshare", 0.95),
    _r(r"\bola(?:cabs)?\b", T, "Rideshare", 0.95),
    _r(r"rapido", T, "Bike Taxi", 0.95),
    _r(r"metro", T, "Metro", 0.85),
    _r(r"irctc|railway", T, "Train", 0.95),
    _r(r"petrol|fuel|\bhpcl\b|\bhp\b|\biocl?\b|bpcl|\bshell\b", T, "Fuel", 0.9),
    _r(r"parking", T, "Parking", 0.85),
    _r(r"fastag|\btoll\b", T, "Toll", 0.95),
    # Shopping
    _r(r"amazon", S, "Online Shopping", 0.9),
    _r(r"flipkart", S, "Online Shopping", 0.95),
    _r(r"myntra", S, "Fashion", 0.95),
    _r(r"ajio", S, "Fashion", 0.95),
    _r(r"nykaa", S, "Beauty", 0.95),
    _r(r"decathlon", S, "Sports", 0.95),
    _r(r"croma|vijay\s*sales|reliance\s*digital", S, "Electronics", 0.95),
    _r(r"mall|shop|store|mart|retail", S, None, 0.6),
    # Utilities
    _r(r"electricity|bescom|tata\s*power|adani", U, "Electricity", 0.95),
    _r(r"\bgas\b|indane|bharat\s*gas|\bhp\s*gas\b", U, "Gas", 0.9),
    _r(r"water\s*bill|bwssb", U, "Water", 0.95),
    _r(r"\bjio\b|airtel|vodafone|\bvi\b|bsnl", U, "Mobile Recharge", 0.85),
    _r(r"broadband|wifi|internet", U, "Internet", 0.85),
    _r(r"recharge|bill\s*pay", U, None, 0.6),
    # Entertainment
    _r(r"netflix", E, "Streaming", 0.95),
    _r(r"hotstar|disney", E, "Streaming", 0.95),
    _r(r"prime\s*video|amazon\s*prime", E, "Streaming", 0.9),
    _r(r"spotify", E, "Music", 0.95),
    _r(r"youtube\s*premium", E, "Streaming", 0.95),
    _r(r"bookmyshow|\bpvr\b|\binox\b|cinema|movie", E, "Movies", 0.9),
    _r(r"game|gaming|steam|playstation|xbox", E, "Gaming", 0.85),
    # Health
    _r(r"apollo|pharmacy|medplus|netmeds|pharmeasy|1mg", H, "Pharmacy", 0.9),
    _r(r"hospital|clinic|doctor|\bdr\.", H, "Medical", 0.85),
    _r(r"gym|fitness|cult\.?fit", H, "Fitness", 0.9),
    _r(r"diagnostic|\blabs?\b|\btest\b", H, "Diagnostics", 0.85),
    # Transfers
    _r(r"transfer|sent\s*to|paid\s*to", Category.TRANSFERS, None, 0.6),
)

_PUNCT = re.compile(r"[^\w\s-]")
_WS = re.compile(r"\s+")


def display_name(text: str) -> str:
    """First three words of ``text`` without punctuation, first letter upper-cased."""

    words = _WS.sub(" ", _PUNCT.sub("", text.strip())).split(" ")
    name = " ".join(words[:3]).strip()
    return name[:1].upper() + name[1:]


def _brand_name(rule: MerchantRule, m: re.Match[str]) -> str | None:
    # Generic keyword rows (no subcategory) name a kind of place, not a merchant.
    if rule.subcategory is None:
        return None
    return display_name(m.group(0)) or None


def _amount_hint(amount: Decimal | None) -> Category | None:
    if amount is None:
        return None
    if amount <= SMALL_AMOUNT_LIMIT:
        return Category.FOOD
    if amount > LARGE_AMOUNT_LIMIT:
        return Category.SHOPPING
    return None


def categorize_by_rules(merchant_text: str, amount: Decimal | None = None) -> Categorization:
    """Return the rule tier's categorization. Always produces a result."""

    for rule in MERCHANT_RULES:
        m = rule.pattern.search(merchant_text)
        if m:
            return Categorization(
                category=rule.category,
                confidence=rule.confidence,
                source=CategorySource.RULE,
                subcategory=rule.subcategory,
                merchant_name=_brand_name(rule, m),
            )
    hint = _amount_hint(amount)
    return Categorization(
        category=hint or Category.OTHER,
        confidence=HINT_CONFIDENCE if hint else NO_MATCH_CONFIDENCE,
        source=CategorySource.RULE,
    )


__all__ = ["MERCHANT_RULES", "MerchantRule", "categorize_by_rules", "display_name"]

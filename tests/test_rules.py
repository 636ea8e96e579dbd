from __future__ import annotations

from decimal import Decimal

import pytest

from txn_pipeline.models import Category, CategorySource
from txn_pipeline.rules import categorize_by_rules, display_name


@pytest.mark.parametrize(
    ("merchant", "category", "subcategory", "confidence"),
    [
        ("SWIGGY BANGALORE", Category.FOOD, "Food Delivery", 0.95),
        ("Big Basket order", Category.GROCERIES, "Online Grocery", 0.95),
        ("IRCTC e-ticket", Category.TRANSPORT, "Train", 0.95),
        ("AMAZON PAY INDIA", Category.SHOPPING, "Online Shopping", 0.9),
        ("BESCOM bill", Category.UTILITIES, "Electricity", 0.95),
        ("Netflix.com", Category.ENTERTAINMENT, "Streaming", 0.95),
        ("Apollo Pharmacy", Category.HEALTH, "Pharmacy", 0.9),
        ("Sharma Dhaba", Category.FOOD, None, 0.7),
    ],
)
def test_known_merchants(
    merchant: str, category: Category, subcategory: str | None, confidence: float
) -> None:
    result = categorize_by_rules(merchant)
    assert result.category is category
    assert result.subcategory == subcategory
    assert result.confidence == confidence
    assert result.source is CategorySource.RULE


def test_first_row_wins() -> None:
    # "amazon prime" is listed under entertainment, but the shopping row for
    # "amazon" comes first.
    assert categorize_by_rules("Amazon Prime").category is Category.SHOPPING


def test_brand_rows_propose_a_display_name() -> None:
    assert categorize_by_rules("swiggy@axis").merchant_name == "Swiggy"
    assert categorize_by_rules("Sharma Dhaba").merchant_name is None


@pytest.mark.parametrize(
    ("amount", "category", "confidence"),
    [
        (Decimal("80"), Category.FOOD, 0.3),
        (Decimal("100"), Category.FOOD, 0.3),
        (Decimal("1200"), Category.OTHER, 0.1),
        (Decimal("5000"), Category.OTHER, 0.1),
        (Decimal("5000.01"), Category.SHOPPING, 0.3),
        (None, Category.OTHER, 0.1),
    ],
)
def test_amount_hint_without_match(
    amount: Decimal | None, category: Category, confidence: float
) -> None:
    result = categorize_by_rules("rahul@okaxis", amount)
    assert result.category is category
    assert result.confidence == confidence
    assert result.merchant_name is None


def test_display_name() -> None:
    assert display_name("big bazaar, koramangala branch") == "Big bazaar koramangala"
    assert display_name("!!!") == ""


@pytest.mark.parametrize("name", ["Ravi Kumar", "Kuberan S", "Vivek Shetty", "Kavita Holani"])
def test_short_brand_tokens_need_whole_words(name: str) -> None:
    result = categorize_by_rules(name, Decimal("1500"))
    assert result.category is Category.OTHER
    assert result.merchant_name is None


@pytest.mark.parametrize(
    ("merchant", "subcategory"),
    [("OLA CABS", "Rideshare"), ("Vi prepaid", "Mobile Recharge"), ("HP petrol pump", "Fuel")],
)
def test_short_brand_tokens_match_as_words(merchant: str, subcategory: str) -> None:
    assert categorize_by_rules(merchant).subcategory == subcategory

from __future__ import annotations

from datetime import datetime

from txn_pipeline.intake import (
    PostedNotification,
    compose_body,
    has_financial_keyword,
    is_financial_app,
    origin_for,
    to_raw_unit,
)


def test_allow_list() -> None:
    assert is_financial_app("com.phonepe.app")
    assert is_financial_app("com.hdfc.mobilebanking")
    assert is_financial_app("com.google.android.apps.messaging")
    assert not is_financial_app("com.instagram.android")


def test_keyword_filter() -> None:
    assert has_financial_keyword("₹250 sent to Priya")
    assert has_financial_keyword("Your A/c was DEBITED")
    assert not has_financial_keyword("Mom: dinner at 8?")


def test_compose_body_skips_blank_fields() -> None:
    assert compose_body("Payment successful", "", "Paid ₹499 to Swiggy") == (
        "Payment successful | Paid ₹499 to Swiggy"
    )
    assert compose_body("", "  ", "") == ""


def test_sms_title_is_the_sender() -> None:
    assert origin_for("com.google.android.apps.messaging", "VM-HDFCBK") == "VM-HDFCBK"
    assert origin_for("com.google.android.apps.messaging", "") == (
        "com.google.android.apps.messaging"
    )
    assert origin_for("com.phonepe.app", "Payment successful") == "com.phonepe.app"


def test_to_raw_unit(t0: datetime) -> None:
    unit = to_raw_unit(
        PostedNotification(
            package="com.phonepe.app",
            posted_at=t0,
            title="Payment successful",
            text="Paid ₹499 to Swiggy",
        )
    )
    assert unit is not None
    assert unit.origin == "com.phonepe.app"
    assert unit.body == "Payment successful | Paid ₹499 to Swiggy"
    assert unit.observed_at == t0


def test_dropped_notifications(t0: datetime) -> None:
    assert to_raw_unit(
        PostedNotification(package="com.instagram.android", posted_at=t0, text="Paid ₹1")
    ) is None
    assert to_raw_unit(
        PostedNotification(package="com.whatsapp", posted_at=t0, title="Mom", text="call me")
    ) is None

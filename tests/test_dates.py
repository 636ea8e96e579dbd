from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from txn_pipeline.dates import (
    DD_MM_YYYY_SLASH,
    DD_MMM_YYYY,
    DD_MMM_YYYY_TIME,
    MM_DD_YYYY_SLASH,
    MMM_DD_COMMA_YYYY,
    resolve_date,
)

IST = timezone(timedelta(hours=5, minutes=30))


def test_first_matching_pattern_wins() -> None:
    got = resolve_date("01/02/2024", (DD_MM_YYYY_SLASH, MM_DD_YYYY_SLASH))
    assert got == datetime(2024, 2, 1, tzinfo=UTC)
    got = resolve_date("01/02/2024", (MM_DD_YYYY_SLASH, DD_MM_YYYY_SLASH))
    assert got == datetime(2024, 1, 2, tzinfo=UTC)


def test_result_is_anchored_to_zone() -> None:
    got = resolve_date("22 Jan 2024", (DD_MMM_YYYY,), tz=IST)
    assert got == datetime(2024, 1, 22, tzinfo=IST)
    assert got is not None and got.utcoffset() == timedelta(hours=5, minutes=30)


def test_invalid_day_is_rejected_not_rolled_over() -> None:
    assert resolve_date("31/02/2024", (DD_MM_YYYY_SLASH,)) is None


@pytest.mark.parametrize("text", [None, "", "   ", "not a date", "2024/13/45"])
def test_unparseable_returns_none(text: str | None) -> None:
    assert resolve_date(text, (DD_MM_YYYY_SLASH, DD_MMM_YYYY)) is None


def test_trailing_time_is_tolerated() -> None:
    got = resolve_date("22/01/2024 10:31:07", (DD_MM_YYYY_SLASH,))
    assert got == datetime(2024, 1, 22, tzinfo=UTC)


def test_patterns_with_time_and_commas() -> None:
    assert resolve_date("22 Jan 2024, 10:30 PM", (DD_MMM_YYYY_TIME,)) == datetime(
        2024, 1, 22, 22, 30, tzinfo=UTC
    )
    assert resolve_date("Jan 22, 2024", (MMM_DD_COMMA_YYYY,)) == datetime(2024, 1, 22, tzinfo=UTC)

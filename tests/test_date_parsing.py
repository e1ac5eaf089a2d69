from datetime import date, datetime, timedelta

import pytest

from bujo_capture.date_parsing import (
    DELIMITED_FORMATS,
    format_date,
    parse_date_value,
    parse_iso,
    parse_month_day,
    parse_weekday,
)

TODAY = date(2025, 3, 12)  # a Wednesday


def _parse(value):
    return parse_date_value(value, today=TODAY)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2025-03-15", date(2025, 3, 15)),
        ("2025-03-15T08:30:00Z", date(2025, 3, 15)),
        ("03/04/2025", date(2025, 3, 4)),
        ("13/04/2025", date(2025, 4, 13)),
        ("3-15-2025", date(2025, 3, 15)),
        ("15.03.2025", date(2025, 3, 15)),
        ("2025/03/15", date(2025, 3, 15)),
        ("3/15/25", date(2025, 3, 15)),
        ("20250315", date(2025, 3, 15)),
        ("03152025", date(2025, 3, 15)),
        ("today", date(2025, 3, 12)),
        ("Yesterday", date(2025, 3, 11)),
        ("TOMORROW", date(2025, 3, 13)),
        ("March 15", date(2025, 3, 15)),
        ("Mar 15th, 2024", date(2024, 3, 15)),
        ("15th of March", date(2025, 3, 15)),
        ("March 1st", date(2026, 3, 1)),
        ("15 Mar 2025 10:00", date(2025, 3, 15)),
    ],
)
def test_parse_date_value(raw, expected):
    assert _parse(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "null", "None", "N/A", 42, [], "02/30/2025", "01/01/1850"])
def test_unusable_values_yield_none(raw):
    assert _parse(raw) is None


def test_dates_and_datetimes_pass_through():
    assert _parse(date(2025, 1, 2)) == date(2025, 1, 2)
    assert _parse(datetime(2025, 1, 2, 23, 59)) == date(2025, 1, 2)


def test_month_first_table_order_decides_ambiguous_dates():
    names = [fmt.name for fmt in DELIMITED_FORMATS]

    assert names.index("MM/DD/YYYY") < names.index("DD/MM/YYYY")
    assert DELIMITED_FORMATS[0].parse("03/04/2025") == date(2025, 3, 4)
    assert DELIMITED_FORMATS[1].parse("03/04/2025") == date(2025, 4, 3)


def test_each_format_rejects_impossible_dates():
    for fmt in DELIMITED_FORMATS:
        assert fmt.parse("99/99/9999") is None


def test_weekday_resolves_to_next_occurrence():
    monday = parse_weekday("Monday", TODAY)

    assert monday is not None
    assert monday.weekday() == 0
    assert 1 <= (monday - TODAY).days <= 7
    assert monday == date(2025, 3, 17)


def test_weekday_on_same_day_is_today():
    assert parse_weekday("wednesday", TODAY) == TODAY
    assert parse_weekday("fri", TODAY) == date(2025, 3, 14)
    assert parse_weekday("next friday", TODAY) == date(2025, 3, 14)
    assert parse_weekday("someday", TODAY) is None


def test_month_day_rolls_over_leap_day():
    assert parse_month_day("February 29", date(2025, 3, 12)) is None
    assert parse_month_day("February 29", date(2023, 3, 12)) == date(2024, 2, 29)


def test_iso_requires_full_match():
    assert parse_iso("2025-03-15 and more", TODAY) is None


@pytest.mark.parametrize(
    "raw",
    ["2025-03-15", "03/04/2025", "3/15/25", "20250315", "tomorrow", "Monday", "March 1st", "15th of March"],
)
def test_resolved_dates_round_trip(raw):
    value = _parse(raw)

    assert value is not None
    assert _parse(format_date(value)) == value


def test_relative_terms_follow_today():
    assert _parse("tomorrow") - _parse("yesterday") == timedelta(days=2)

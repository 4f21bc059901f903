"""
Tests for day boundaries, date parameters and ordinal labels.
"""
from datetime import date, datetime, timedelta

import pytest

from date_utils import (
    day_bounds,
    format_date_with_ordinal,
    format_time_12h,
    ordinal_suffix,
    parse_date_param,
)


# ─── Ordinal labels ──────────────────────────────────────────────────────────

@pytest.mark.parametrize("d, expected", [
    (date(2025, 9, 1), "1st Sep 2025"),
    (date(2025, 8, 2), "2nd Aug 2025"),
    (date(2026, 1, 3), "3rd Jan 2026"),
    (date(2024, 6, 4), "4th Jun 2024"),
    (date(2025, 12, 21), "21st Dec 2025"),
    (date(2024, 11, 22), "22nd Nov 2024"),
    (date(2026, 3, 23), "23rd Mar 2026"),
])
def test_format_date_with_ordinal(d, expected):
    assert format_date_with_ordinal(d) == expected


def test_format_ignores_time_of_day():
    assert format_date_with_ordinal(datetime(2025, 9, 1, 23, 59)) == "1st Sep 2025"


def test_suffix_for_every_day_of_month():
    expected = {1: "st", 2: "nd", 3: "rd", 21: "st", 22: "nd", 23: "rd", 31: "st"}
    for d in range(1, 32):
        assert ordinal_suffix(d) == expected.get(d, "th"), d


def test_suffix_teens_beyond_month_range():
    assert ordinal_suffix(111) == "th"
    assert ordinal_suffix(112) == "th"
    assert ordinal_suffix(101) == "st"


def test_format_invalid_falls_back_to_today():
    assert format_date_with_ordinal(None) == format_date_with_ordinal(datetime.now())
    assert format_date_with_ordinal("not a date") == format_date_with_ordinal(datetime.now())


def test_format_time_12h():
    assert format_time_12h(datetime(2025, 9, 1, 0, 5)) == "12:05 AM"
    assert format_time_12h(datetime(2025, 9, 1, 7, 30)) == "7:30 AM"
    assert format_time_12h(datetime(2025, 9, 1, 12, 0)) == "12:00 PM"
    assert format_time_12h(datetime(2025, 9, 1, 18, 45)) == "6:45 PM"


# ─── Day bounds ──────────────────────────────────────────────────────────────

def test_day_bounds_from_datetime():
    start, end = day_bounds(datetime(2025, 9, 1, 14, 30, 12, 345))
    assert start == datetime(2025, 9, 1, 0, 0, 0, 0)
    assert end == datetime(2025, 9, 1, 23, 59, 59, 999000)


def test_day_bounds_from_date():
    start, end = day_bounds(date(2024, 2, 29))
    assert start == datetime(2024, 2, 29)
    assert end == datetime(2024, 2, 29, 23, 59, 59, 999000)


def test_day_bounds_half_open():
    d = datetime(2025, 12, 31, 9, 0)
    start, end = day_bounds(d)
    next_start, _ = day_bounds(d + timedelta(days=1))
    started_at = datetime(2025, 12, 31, 0, 0)
    assert started_at == start
    assert start <= started_at < end
    assert not (start <= next_start < end)
    assert next_start == datetime(2026, 1, 1)


def test_day_bounds_invalid_uses_today():
    start, end = day_bounds(None)
    assert start.date() == datetime.now().date() or start.date() == (datetime.now() - timedelta(seconds=1)).date()
    assert end.date() == start.date()


# ─── Date parameter ──────────────────────────────────────────────────────────

def test_parse_date_param_valid():
    assert parse_date_param("2025-09-01") == datetime(2025, 9, 1)


@pytest.mark.parametrize("raw", [None, "", "01-09-2025", "2025-9-1", "2025-02-30", "garbage"])
def test_parse_date_param_fallback(raw):
    before = datetime.now()
    parsed = parse_date_param(raw)
    assert before <= parsed <= datetime.now()

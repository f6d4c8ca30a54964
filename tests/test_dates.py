"""Tests for calendar-agnostic date arithmetic."""

from __future__ import annotations

from almanac.domain.models import Date
from almanac.services.dates import (
    add_days,
    add_months,
    add_years,
    compare_days,
    day_of_week,
    day_of_year,
    days_between,
    earlier_day,
    is_same_day,
    is_valid_date,
    later_day,
    months_between,
)


def _d(year: int, month: int, day: int, **time) -> Date:
    return Date(year=year, month=month, day=day, **time)


def test_compare_days_ignores_time():
    assert compare_days(_d(1492, 0, 1, hour=23), _d(1492, 0, 1, hour=1)) == 0
    assert compare_days(_d(1492, 0, 1), _d(1492, 0, 2)) == -1
    assert compare_days(_d(1493, 0, 1), _d(1492, 11, 31)) == 1
    assert is_same_day(_d(1492, 3, 3, hour=4), _d(1492, 3, 3))


def test_later_and_earlier_day():
    a, b = _d(1492, 0, 1), _d(1492, 0, 9)
    assert later_day(a, b) is b
    assert earlier_day(a, b) is a


def test_days_between_is_signed_and_ignores_time(calendar):
    assert days_between(calendar, _d(1492, 1, 28), _d(1492, 2, 1)) == 2
    assert days_between(calendar, _d(1493, 1, 28), _d(1493, 2, 1)) == 1
    assert days_between(calendar, _d(1492, 0, 5), _d(1492, 0, 1)) == -4
    assert days_between(calendar, _d(1492, 0, 1, hour=23), _d(1492, 0, 2, hour=1)) == 1


def test_months_between(calendar):
    assert months_between(calendar, _d(1492, 10, 30), _d(1493, 1, 1)) == 3
    assert months_between(calendar, _d(1492, 3, 1), _d(1492, 1, 1)) == -2


def test_day_of_week_cycles(calendar):
    start = day_of_week(calendar, _d(1492, 0, 1))
    assert day_of_week(calendar, _d(1492, 0, 8)) == start
    assert day_of_week(calendar, _d(1492, 0, 2)) == (start + 1) % 7


def test_day_of_year(calendar):
    assert day_of_year(calendar, _d(1492, 0, 1)) == 1
    assert day_of_year(calendar, _d(1492, 2, 1)) == 61
    assert day_of_year(calendar, _d(1493, 2, 1)) == 60


def test_add_days_keeps_time_and_crosses_years(calendar):
    moved = add_days(calendar, _d(1492, 11, 30, hour=6, minute=15), 3)
    assert moved == _d(1493, 0, 2, hour=6, minute=15)
    assert add_days(calendar, _d(1492, 2, 1), -1) == _d(1492, 1, 29)


def test_add_months_clamps_day(calendar):
    assert add_months(calendar, _d(1492, 0, 31), 1) == _d(1492, 1, 29)
    assert add_months(calendar, _d(1492, 0, 31), 13) == _d(1493, 1, 28)
    assert add_months(calendar, _d(1492, 0, 15), -1) == _d(1491, 11, 15)


def test_add_years_clamps_leap_day(calendar):
    assert add_years(calendar, _d(1492, 1, 29), 1) == _d(1493, 1, 28)
    assert add_years(calendar, _d(1492, 1, 29), 4) == _d(1496, 1, 29)


def test_is_valid_date(calendar, tenday):
    assert is_valid_date(calendar, _d(1492, 1, 29))
    assert not is_valid_date(calendar, _d(1493, 1, 29))
    assert not is_valid_date(calendar, _d(1492, 12, 1))
    assert not is_valid_date(calendar, _d(1492, 0, 1, hour=24))
    assert is_valid_date(tenday, _d(3, 10, 5))
    assert not is_valid_date(tenday, _d(3, 10, 6))


def test_time_of_day_follows_calendar_clock(calendar, watch):
    assert not is_valid_date(calendar, _d(1492, 0, 1, hour=1, minute=75))
    assert is_valid_date(calendar, _d(1492, 0, 1, hour=23, minute=59))
    late = _d(1, 0, 1, hour=1, minute=75)
    assert is_valid_date(watch, late)
    assert not is_valid_date(watch, _d(1, 0, 1, hour=8))
    assert not is_valid_date(watch, _d(1, 0, 1, minute=100))

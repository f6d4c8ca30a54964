"""Shared fixtures: calendars, a store and an engine over them."""

from __future__ import annotations

import pytest

from almanac.config import EngineSettings
from almanac.domain.calendar import (
    ConfiguredCalendar,
    LeapYearRule,
    MonthDefinition,
    MoonDefinition,
    MoonPhaseDefinition,
)
from almanac.domain.models import Date
from almanac.repos.memory import EventStore
from almanac.services.recurrence import RecurrenceEngine

_MONTHS = [
    ("Hammer", 31, None),
    ("Alturiak", 28, 29),
    ("Ches", 31, None),
    ("Tarsakh", 30, None),
    ("Mirtul", 31, None),
    ("Kythorn", 30, None),
    ("Flamerule", 31, None),
    ("Eleasis", 31, None),
    ("Eleint", 30, None),
    ("Marpenoth", 31, None),
    ("Uktar", 30, None),
    ("Nightal", 31, None),
]

_PHASES = [
    ("New", 0, 0.125),
    ("Waxing Crescent", 0.125, 0.25),
    ("First Quarter", 0.25, 0.375),
    ("Waxing Gibbous", 0.375, 0.5),
    ("Full Moon", 0.5, 0.625),
    ("Waning Gibbous", 0.625, 0.75),
    ("Last Quarter", 0.75, 0.875),
    ("Waning Crescent", 0.875, 1),
]


def make_calendar() -> ConfiguredCalendar:
    """Twelve months, 7-day weeks, a leap day every 4th year from year 0.

    The single moon has an 8-day cycle that is new on 1 Hammer 1492, so on
    day ``d`` of Hammer 1492 its position is ``((d - 1) % 8) / 8``.
    """
    return ConfiguredCalendar(
        name="Reckoning",
        months=[
            MonthDefinition(name=name, days=days, leap_days=leap)
            for name, days, leap in _MONTHS
        ],
        weekdays=["Sul", "Mol", "Zol", "Wir", "Zor", "Far", "Sar"],
        leap_year=LeapYearRule(start=0, interval=4),
        moons=[
            MoonDefinition(
                name="Selune",
                cycle_length=8,
                reference_date=Date(year=1492, month=0, day=1),
                phases=[
                    MoonPhaseDefinition(name=name, start=start, end=end)
                    for name, start, end in _PHASES
                ],
            )
        ],
    )


def make_tenday_calendar() -> ConfiguredCalendar:
    """Ten 30-day months plus a 5-day festival month; 10-day weeks."""
    months = [MonthDefinition(name=f"Month {i + 1}", days=30) for i in range(10)]
    months.append(MonthDefinition(name="Festival", days=5))
    return ConfiguredCalendar(
        name="Tenday",
        months=months,
        weekdays=[f"Day {i + 1}" for i in range(10)],
    )


def make_watch_calendar() -> ConfiguredCalendar:
    """One 30-day month of 8-hour days with 100-minute hours.

    Its moon has a 4-day cycle that is new on day 1 of year 1.
    """
    return ConfiguredCalendar(
        name="Watch",
        months=[MonthDefinition(name="Vigil", days=30)],
        weekdays=["Dawn", "Noon", "Dusk", "Dark", "Deep", "Grey", "Rest"],
        hours_per_day=8,
        minutes_per_hour=100,
        moons=[
            MoonDefinition(
                name="Lamp",
                cycle_length=4,
                reference_date=Date(year=1, month=0, day=1),
            )
        ],
    )


@pytest.fixture()
def calendar() -> ConfiguredCalendar:
    return make_calendar()


@pytest.fixture()
def tenday() -> ConfiguredCalendar:
    return make_tenday_calendar()


@pytest.fixture()
def watch() -> ConfiguredCalendar:
    return make_watch_calendar()


@pytest.fixture()
def store() -> EventStore:
    return EventStore()


@pytest.fixture()
def engine(calendar, store) -> RecurrenceEngine:
    return RecurrenceEngine(calendar, store, EngineSettings())

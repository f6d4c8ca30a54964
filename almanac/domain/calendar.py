"""Calendar adapters: the date/time and moon-phase oracle the engine consumes.

The engine only ever talks to a calendar through :class:`CalendarAdapter`.
Two concrete adapters ship with the package: :class:`ConfiguredCalendar`, a
data-driven fantasy calendar, and :class:`GregorianCalendar`.
"""

from __future__ import annotations

import calendar as _stdlib_calendar
from datetime import date as _date
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field, model_validator

from almanac.domain.models import Date


class CalendarError(ValueError):
    """Raised by an adapter when components do not describe a real date."""


class TimeComponents(BaseModel):
    """A broken-down moment; ``day`` is 1-indexed like :class:`Date`."""

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    day_of_week: int | None = None

    @classmethod
    def from_date(cls, value: Date) -> TimeComponents:
        return cls(
            year=value.year,
            month=value.month,
            day=value.day,
            hour=value.hour or 0,
            minute=value.minute or 0,
        )


class MoonPhase(BaseModel):
    position: float = Field(ge=0, lt=1)
    name: str | None = None


@runtime_checkable
class CalendarAdapter(Protocol):
    def date_to_seconds(self, components: TimeComponents) -> int: ...

    def seconds_to_components(self, seconds: int) -> TimeComponents: ...

    def days_in_month(self, month: int, year: int) -> int: ...

    def week_length(self) -> int: ...

    def months_per_year(self) -> int: ...

    def seconds_per_day(self) -> int: ...

    def moon_phase(
        self, moon_index: int, components: TimeComponents
    ) -> MoonPhase | None: ...


# ---------------------------------------------------------------------------
# Calendar definitions
# ---------------------------------------------------------------------------


class MonthDefinition(BaseModel):
    name: str
    days: int = Field(gt=0)
    leap_days: int | None = Field(default=None, gt=0)


class MoonPhaseDefinition(BaseModel):
    name: str
    start: float = Field(ge=0, le=1)
    end: float = Field(ge=0, le=1)


class MoonDefinition(BaseModel):
    name: str
    cycle_length: float = Field(gt=0)
    reference_date: Date
    phases: list[MoonPhaseDefinition] = Field(default_factory=list)

    def phase_name(self, position: float) -> str | None:
        for phase in self.phases:
            if phase.start <= position < phase.end:
                return phase.name
        return None


class LeapYearRule(BaseModel):
    """Every ``interval`` years counted from ``start`` is a leap year."""

    start: int = 0
    interval: int = Field(default=0, ge=0)

    def is_leap(self, year: int) -> bool:
        return self.interval > 0 and (year - self.start) % self.interval == 0

    def leap_years_before(self, year: int) -> int:
        """Signed count of leap years in ``[0, year)``."""
        if self.interval <= 0:
            return 0
        offset = self.start % self.interval

        def _upto(bound: int) -> int:
            return -((offset - bound) // self.interval)

        return _upto(year) - _upto(0)


def _moon_position(moon: MoonDefinition, days_since_reference: int) -> MoonPhase:
    position = (days_since_reference % moon.cycle_length) / moon.cycle_length
    position = position % 1.0
    return MoonPhase(position=position, name=moon.phase_name(position))


class ConfiguredCalendar(BaseModel):
    """A calendar described entirely by data.

    Day zero is the first day of the first month of year 0 and falls on
    weekday ``first_weekday``.  Leap years add ``leap_days - days`` to every
    month that declares ``leap_days``.
    """

    name: str
    months: list[MonthDefinition] = Field(min_length=1)
    weekdays: list[str] = Field(min_length=1)
    hours_per_day: int = Field(default=24, gt=0)
    minutes_per_hour: int = Field(default=60, gt=0)
    seconds_per_minute: int = Field(default=60, gt=0)
    first_weekday: int = Field(default=0, ge=0)
    leap_year: LeapYearRule | None = None
    moons: list[MoonDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def _first_weekday_in_week(self) -> ConfiguredCalendar:
        if self.first_weekday >= len(self.weekdays):
            raise ValueError("first_weekday must index into weekdays")
        return self

    # -- adapter surface ---------------------------------------------------

    def week_length(self) -> int:
        return len(self.weekdays)

    def months_per_year(self) -> int:
        return len(self.months)

    def seconds_per_day(self) -> int:
        return self.hours_per_day * self.minutes_per_hour * self.seconds_per_minute

    def is_leap_year(self, year: int) -> bool:
        return self.leap_year is not None and self.leap_year.is_leap(year)

    def days_in_month(self, month: int, year: int) -> int:
        if not 0 <= month < len(self.months):
            raise CalendarError(f"month {month} outside {self.name}")
        definition = self.months[month]
        if definition.leap_days is not None and self.is_leap_year(year):
            return definition.leap_days
        return definition.days

    def days_in_year(self, year: int) -> int:
        return sum(self.days_in_month(m, year) for m in range(len(self.months)))

    def date_to_seconds(self, components: TimeComponents) -> int:
        if not 1 <= components.day <= self.days_in_month(
            components.month, components.year
        ):
            raise CalendarError(
                f"day {components.day} outside month {components.month} "
                f"of year {components.year}"
            )
        days = self._days_before_year(components.year)
        days += sum(
            self.days_in_month(m, components.year) for m in range(components.month)
        )
        days += components.day - 1
        seconds_per_hour = self.minutes_per_hour * self.seconds_per_minute
        return (
            days * self.seconds_per_day()
            + components.hour * seconds_per_hour
            + components.minute * self.seconds_per_minute
            + components.second
        )

    def seconds_to_components(self, seconds: int) -> TimeComponents:
        total_days, remainder = divmod(seconds, self.seconds_per_day())
        year = total_days // sum(m.days for m in self.months)
        while self._days_before_year(year) > total_days:
            year -= 1
        while self._days_before_year(year + 1) <= total_days:
            year += 1
        day_of_year = total_days - self._days_before_year(year)

        month = 0
        while day_of_year >= self.days_in_month(month, year):
            day_of_year -= self.days_in_month(month, year)
            month += 1

        seconds_per_hour = self.minutes_per_hour * self.seconds_per_minute
        hour, remainder = divmod(remainder, seconds_per_hour)
        minute, second = divmod(remainder, self.seconds_per_minute)
        return TimeComponents(
            year=year,
            month=month,
            day=day_of_year + 1,
            hour=hour,
            minute=minute,
            second=second,
            day_of_week=(self.first_weekday + total_days) % len(self.weekdays),
        )

    def moon_phase(
        self, moon_index: int, components: TimeComponents
    ) -> MoonPhase | None:
        if not 0 <= moon_index < len(self.moons):
            return None
        moon = self.moons[moon_index]
        spd = self.seconds_per_day()
        current = self.date_to_seconds(components) // spd
        reference = (
            self.date_to_seconds(TimeComponents.from_date(moon.reference_date)) // spd
        )
        return _moon_position(moon, current - reference)

    # -- helpers -----------------------------------------------------------

    def _days_before_year(self, year: int) -> int:
        base = sum(m.days for m in self.months)
        extra = sum(m.leap_days - m.days for m in self.months if m.leap_days)
        leaps = self.leap_year.leap_years_before(year) if self.leap_year else 0
        return year * base + leaps * extra


# ---------------------------------------------------------------------------
# Gregorian
# ---------------------------------------------------------------------------

SYNODIC_MONTH = 29.530588853

GREGORIAN_WEEKDAYS = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]

LUNAR_PHASES = [
    MoonPhaseDefinition(name="New Moon", start=0, end=0.125),
    MoonPhaseDefinition(name="Waxing Crescent", start=0.125, end=0.25),
    MoonPhaseDefinition(name="First Quarter", start=0.25, end=0.375),
    MoonPhaseDefinition(name="Waxing Gibbous", start=0.375, end=0.5),
    MoonPhaseDefinition(name="Full Moon", start=0.5, end=0.625),
    MoonPhaseDefinition(name="Waning Gibbous", start=0.625, end=0.75),
    MoonPhaseDefinition(name="Last Quarter", start=0.75, end=0.875),
    MoonPhaseDefinition(name="Waning Crescent", start=0.875, end=1),
]


class GregorianCalendar:
    """Proleptic Gregorian calendar (years 1-9999) with a single moon.

    Weeks start on Sunday.  The moon is referenced to the new moon of
    6 January 2000.
    """

    name = "Gregorian"

    def __init__(self) -> None:
        self.moons = [
            MoonDefinition(
                name="Luna",
                cycle_length=SYNODIC_MONTH,
                reference_date=Date(year=2000, month=0, day=6),
                phases=list(LUNAR_PHASES),
            )
        ]

    def week_length(self) -> int:
        return 7

    def months_per_year(self) -> int:
        return 12

    def seconds_per_day(self) -> int:
        return 86400

    def days_in_month(self, month: int, year: int) -> int:
        if not 0 <= month < 12:
            raise CalendarError(f"month {month} outside the Gregorian year")
        return _stdlib_calendar.monthrange(year, month + 1)[1]

    def date_to_seconds(self, components: TimeComponents) -> int:
        ordinal = self._ordinal(components.year, components.month, components.day)
        return (
            ordinal * 86400
            + components.hour * 3600
            + components.minute * 60
            + components.second
        )

    def seconds_to_components(self, seconds: int) -> TimeComponents:
        ordinal, remainder = divmod(seconds, 86400)
        try:
            day = _date.fromordinal(ordinal)
        except (ValueError, OverflowError) as exc:
            raise CalendarError(str(exc)) from exc
        hour, remainder = divmod(remainder, 3600)
        minute, second = divmod(remainder, 60)
        return TimeComponents(
            year=day.year,
            month=day.month - 1,
            day=day.day,
            hour=hour,
            minute=minute,
            second=second,
            day_of_week=ordinal % 7,
        )

    def moon_phase(
        self, moon_index: int, components: TimeComponents
    ) -> MoonPhase | None:
        if not 0 <= moon_index < len(self.moons):
            return None
        moon = self.moons[moon_index]
        reference = moon.reference_date
        days = self._ordinal(
            components.year, components.month, components.day
        ) - self._ordinal(reference.year, reference.month, reference.day)
        return _moon_position(moon, days)

    @staticmethod
    def _ordinal(year: int, month: int, day: int) -> int:
        try:
            return _date(year, month + 1, day).toordinal()
        except ValueError as exc:
            raise CalendarError(str(exc)) from exc

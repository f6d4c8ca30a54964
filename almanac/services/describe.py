"""Plain-English summaries of recurrence rules ("Every 2 weeks, 5 times")."""

from __future__ import annotations

from typing import TYPE_CHECKING

from almanac.domain.models import (
    CheckInterval,
    Date,
    MoonCondition,
    RangeBit,
    RangePattern,
    RecurrenceDescriptor,
    RepeatKind,
)

if TYPE_CHECKING:
    from almanac.domain.calendar import CalendarAdapter
    from almanac.repos.memory import EventStore

_UNITS = {
    RepeatKind.DAILY: "day",
    RepeatKind.WEEKLY: "week",
    RepeatKind.MONTHLY: "month",
    RepeatKind.YEARLY: "year",
}

_CHECK_UNITS = {
    CheckInterval.DAILY: "day",
    CheckInterval.WEEKLY: "week",
    CheckInterval.MONTHLY: "month",
}


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def _format_date(value: Date) -> str:
    return f"{value.month + 1}/{value.day}/{value.year}"


def describe_recurrence(
    descriptor: RecurrenceDescriptor,
    store: EventStore | None = None,
    calendar: CalendarAdapter | None = None,
) -> str:
    """Summarise ``descriptor``.

    ``store`` supplies the name of a linked event and ``calendar`` the moon
    and phase names; both are optional.
    """
    if descriptor.linked_event is not None:
        text = _describe_link(descriptor, store)
    elif descriptor.repeat is RepeatKind.NEVER:
        return "Does not repeat"
    elif descriptor.repeat is RepeatKind.MOON:
        text = describe_moon_conditions(descriptor.moon_conditions, calendar)
    elif descriptor.repeat is RepeatKind.RANDOM:
        config = descriptor.random_config
        probability = config.probability if config else 10
        unit = _CHECK_UNITS[config.check_interval if config else CheckInterval.DAILY]
        text = f"{probability:g}% chance each {unit}"
    elif descriptor.repeat is RepeatKind.RANGE:
        text = describe_range_pattern(descriptor.range_pattern)
    else:
        interval = descriptor.repeat_interval
        unit = _UNITS[descriptor.repeat]
        text = f"Every {unit}" if interval == 1 else f"Every {_plural(interval, unit)}"
        if descriptor.moon_conditions:
            moons = describe_moon_conditions(descriptor.moon_conditions, calendar)
            text += f" ({moons})"

    if descriptor.max_occurrences > 0:
        text += f", {_plural(descriptor.max_occurrences, 'time')}"
    if descriptor.repeat_end_date is not None:
        text += f" until {_format_date(descriptor.repeat_end_date)}"
    return text


def _describe_link(descriptor: RecurrenceDescriptor, store: EventStore | None) -> str:
    link = descriptor.linked_event
    stored = store.get(link.event_id) if store is not None else None
    name = stored.name if stored is not None else "Unknown Event"
    if link.offset_days == 0:
        return f'Same day as "{name}"'
    if link.offset_days > 0:
        return f'{_plural(link.offset_days, "day")} after "{name}"'
    return f'{_plural(-link.offset_days, "day")} before "{name}"'


def describe_moon_conditions(
    conditions: list[MoonCondition], calendar: CalendarAdapter | None = None
) -> str:
    if not conditions:
        return "Moon phase event"
    moons = getattr(calendar, "moons", None) or []

    parts = []
    for condition in conditions:
        moon = moons[condition.moon_index] if condition.moon_index < len(moons) else None
        moon_name = moon.name if moon is not None else f"Moon {condition.moon_index + 1}"
        phases = []
        if moon is not None:
            for phase in moon.phases:
                if condition.phase_start <= condition.phase_end:
                    overlaps = (
                        phase.start < condition.phase_end
                        and phase.end > condition.phase_start
                    )
                else:
                    overlaps = (
                        phase.end > condition.phase_start
                        or phase.start < condition.phase_end
                    )
                if overlaps:
                    phases.append(phase.name)
        label = ", ".join(phases) if phases else "custom phase"
        parts.append(f"{moon_name}: {label}")
    return "; ".join(parts)


def _describe_bit(bit: RangeBit, unit: str) -> str | None:
    if bit is None:
        return None
    if isinstance(bit, int):
        return f"{unit}={bit}"
    low, high = bit
    if low is None and high is None:
        return f"any {unit}"
    if high is None:
        return f"{unit}>={low}"
    if low is None:
        return f"{unit}<={high}"
    return f"{unit}={low}-{high}"


def describe_range_pattern(pattern: RangePattern | None) -> str:
    if pattern is None:
        return "Custom range pattern"
    parts = [
        text
        for text in (
            _describe_bit(pattern.year, "year"),
            _describe_bit(pattern.month, "month"),
            _describe_bit(pattern.day, "day"),
        )
        if text
    ]
    return f"Range: {', '.join(parts)}" if parts else "Custom range pattern"

"""Service for finding which stored events fall on a date or within a range."""

from __future__ import annotations

from almanac.domain.models import Date, StoredEvent
from almanac.services.dates import compare_days
from almanac.services.recurrence import RecurrenceEngine


def _time_of_day(event: StoredEvent) -> tuple[int, int]:
    start = event.descriptor.start_date
    return (start.hour or 0, start.minute or 0)


def events_on(
    engine: RecurrenceEngine, events: list[StoredEvent], target: Date
) -> list[StoredEvent]:
    """Return visible events occurring on ``target``, earliest start time first."""
    matching = [
        event
        for event in events
        if event.visible
        and engine.occurs_on(event.descriptor, target, trail=(event.id,))
    ]
    return sorted(matching, key=_time_of_day)


def events_in_range(
    engine: RecurrenceEngine,
    events: list[StoredEvent],
    range_start: Date,
    range_end: Date,
) -> list[StoredEvent]:
    """Return visible events touching the range.

    An event touches the range when its initial start/end span overlaps it or
    when it has at least one occurrence inside it.
    """
    return [
        event
        for event in events
        if event.visible
        and (
            _span_overlaps(event, range_start, range_end)
            or engine.occurrences_in_range(
                event.descriptor, range_start, range_end, 1, trail=(event.id,)
            )
        )
    ]


def _span_overlaps(event: StoredEvent, range_start: Date, range_end: Date) -> bool:
    descriptor = event.descriptor
    if descriptor.linked_event is not None or descriptor.end_date is None:
        return False
    return (
        compare_days(descriptor.start_date, range_end) <= 0
        and compare_days(descriptor.end_date, range_start) >= 0
    )

"""Domain events emitted as stored events change and calendar time passes."""

from __future__ import annotations

from pydantic import BaseModel

from almanac.domain.models import Date


class EventSaved(BaseModel):
    """Fired when an event is created or its descriptor replaced."""

    event_id: str
    current_date: Date | None = None


class EventRemoved(BaseModel):
    """Fired after an event has been deleted from the store."""

    event_id: str
    dependent_ids: list[str]


class DateAdvanced(BaseModel):
    """Fired when the calendar's current date moves (via /tick)."""

    current_date: Date


class RandomCacheRefreshed(BaseModel):
    """Fired after a random event's occurrence cache was regenerated."""

    event_id: str
    year: int
    occurrence_count: int

"""Domain models for calendar events and their recurrence rules."""

from __future__ import annotations

import uuid
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RepeatKind(StrEnum):
    NEVER = "never"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    RANGE = "range"
    MOON = "moon"
    RANDOM = "random"


class CheckInterval(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Date(BaseModel):
    """A calendar-local date; ``month`` is 0-indexed, ``day`` 1-indexed."""

    model_config = ConfigDict(frozen=True)

    year: int
    month: int = Field(ge=0)
    day: int = Field(ge=1)
    hour: int | None = Field(default=None, ge=0)
    minute: int | None = Field(default=None, ge=0)

    def day_key(self) -> tuple[int, int, int]:
        return (self.year, self.month, self.day)

    def with_time_of(self, other: Date) -> Date:
        """Return this day carrying ``other``'s time of day."""
        if self.hour == other.hour and self.minute == other.minute:
            return self
        return self.model_copy(update={"hour": other.hour, "minute": other.minute})


class MoonCondition(BaseModel):
    """Matches while the moon's phase position lies in ``[phase_start, phase_end]``.

    When ``phase_start > phase_end`` the interval wraps through 0.
    """

    model_config = ConfigDict(frozen=True)

    moon_index: int = Field(default=0, ge=0)
    phase_start: float = Field(ge=0, le=1)
    phase_end: float = Field(ge=0, le=1)

    def contains(self, position: float) -> bool:
        if self.phase_start <= self.phase_end:
            return self.phase_start <= position <= self.phase_end
        return position >= self.phase_start or position <= self.phase_end


class RandomConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    seed: int = 0
    probability: float = Field(default=10, ge=0, le=100)
    check_interval: CheckInterval = CheckInterval.DAILY


class LinkedEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: str = Field(min_length=1)
    offset_days: int = 0


RangeBit = int | tuple[int | None, int | None] | None


class RangePattern(BaseModel):
    """Independent year/month/day matchers.

    Each component is ``None`` (any value), an exact ``int`` or an inclusive
    ``(min, max)`` pair whose bounds may be ``None`` for an open side.
    """

    model_config = ConfigDict(frozen=True)

    year: RangeBit = None
    month: RangeBit = None
    day: RangeBit = None


class RecurrenceDescriptor(BaseModel):
    """Everything needed to decide whether an event occurs on a date."""

    model_config = ConfigDict(frozen=True)

    start_date: Date
    end_date: Date | None = None
    repeat: RepeatKind = RepeatKind.NEVER
    repeat_interval: int = Field(default=1, ge=1)
    repeat_end_date: Date | None = None
    max_occurrences: int = Field(default=0, ge=0)
    moon_conditions: list[MoonCondition] = Field(default_factory=list)
    random_config: RandomConfig | None = None
    cached_random_occurrences: list[Date] | None = None
    linked_event: LinkedEvent | None = None
    range_pattern: RangePattern | None = None

    def spans_days(self) -> bool:
        """True when the first occurrence covers more than one day."""
        return (
            self.end_date is not None
            and self.end_date.day_key() != self.start_date.day_key()
        )


class StoredEvent(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str = Field(min_length=1)
    descriptor: RecurrenceDescriptor
    visible: bool = True
    random_cache_year: int | None = None


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class CreateEventRequest(BaseModel):
    name: str = Field(min_length=1)
    descriptor: RecurrenceDescriptor
    visible: bool = True
    current_date: Date | None = None


class UpdateDescriptorRequest(BaseModel):
    descriptor: RecurrenceDescriptor
    current_date: Date | None = None


class RangeQuery(BaseModel):
    range_start: Date
    range_end: Date
    cap: int | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _end_not_before_start(self) -> RangeQuery:
        if self.range_end.day_key() < self.range_start.day_key():
            raise ValueError("range_end must not be before range_start")
        return self


class OccursOnResponse(BaseModel):
    event_id: str
    date: Date
    occurs: bool


class OccurrencesResponse(BaseModel):
    event_id: str
    occurrences: list[Date]


class OrdinalResponse(BaseModel):
    event_id: str
    date: Date
    ordinal: int


class DescriptionResponse(BaseModel):
    event_id: str
    description: str


class EvaluateRequest(BaseModel):
    descriptor: RecurrenceDescriptor
    date: Date


class EvaluateResponse(BaseModel):
    occurs: bool
    ordinal: int


class TickRequest(BaseModel):
    current_date: Date

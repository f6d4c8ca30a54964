"""FastAPI application exposing the event store and the recurrence engine."""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, HTTPException
from pydantic import ValidationError

from almanac.config import configure_logging, load_settings
from almanac.domain.bus import EventBus
from almanac.domain.calendar import CalendarAdapter, ConfiguredCalendar, GregorianCalendar
from almanac.domain.events import DateAdvanced, EventRemoved, EventSaved
from almanac.domain.handlers import HandlerRegistry
from almanac.domain.models import (
    CreateEventRequest,
    Date,
    DescriptionResponse,
    EvaluateRequest,
    EvaluateResponse,
    OccurrencesResponse,
    OccursOnResponse,
    OrdinalResponse,
    RangeQuery,
    StoredEvent,
    TickRequest,
    UpdateDescriptorRequest,
)
from almanac.repos.memory import EventStore
from almanac.services.agenda import events_in_range, events_on
from almanac.services.dates import is_valid_date
from almanac.services.describe import describe_recurrence
from almanac.services.recurrence import RecurrenceEngine


def load_calendar(path: str | None) -> CalendarAdapter:
    """Load a ConfiguredCalendar from JSON, or fall back to Gregorian."""
    if not path:
        return GregorianCalendar()
    return ConfiguredCalendar.model_validate_json(Path(path).read_text())


settings = load_settings()
configure_logging(settings)

app = FastAPI(title="Almanac Recurrence Service")

# ── Singletons (created at import time for simplicity) ────────────────
calendar = load_calendar(settings.calendar_path)
event_bus = EventBus()
event_store = EventStore()
engine = RecurrenceEngine(calendar, event_store, settings)

handler_registry = HandlerRegistry(
    bus=event_bus,
    store=event_store,
    calendar=calendar,
    settings=settings,
)


def _date(year: int, month: int, day: int) -> Date:
    try:
        value = Date(year=year, month=month, day=day)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors()) from exc
    if not is_valid_date(calendar, value):
        raise HTTPException(status_code=422, detail="Date does not exist in calendar")
    return value


def _get_event(event_id: str) -> StoredEvent:
    event = event_store.get(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/events", response_model=StoredEvent, status_code=201)
def create_event(body: CreateEventRequest) -> StoredEvent:
    """Store an event and let handlers prepare any random occurrence cache."""
    event = StoredEvent(
        name=body.name, descriptor=body.descriptor, visible=body.visible
    )
    event_store.add(event)
    event_bus.publish(EventSaved(event_id=event.id, current_date=body.current_date))
    return event_store.get(event.id)


@app.get("/events", response_model=list[StoredEvent])
def list_events(visible_only: bool = False) -> list[StoredEvent]:
    """Return stored events, optionally only the visible ones."""
    if visible_only:
        return event_store.list_visible()
    return event_store.list_all()


@app.get("/events/{event_id}", response_model=StoredEvent)
def get_event(event_id: str) -> StoredEvent:
    """Return a single event by id."""
    return _get_event(event_id)


@app.put("/events/{event_id}/descriptor", response_model=StoredEvent)
def replace_descriptor(event_id: str, body: UpdateDescriptorRequest) -> StoredEvent:
    """Replace an event's recurrence rule; any random cache is rebuilt."""
    _get_event(event_id)
    event_store.update_descriptor(event_id, body.descriptor)
    event_bus.publish(EventSaved(event_id=event_id, current_date=body.current_date))
    return event_store.get(event_id)


@app.delete("/events/{event_id}", status_code=200)
def delete_event(event_id: str) -> dict:
    """Delete an event; events linked to it stop occurring."""
    _get_event(event_id)
    dependents = [e.id for e in event_store.linked_to(event_id)]
    event_store.delete(event_id)
    event_bus.publish(EventRemoved(event_id=event_id, dependent_ids=dependents))
    return {"status": "deleted", "dependent_ids": dependents}


@app.get("/events/{event_id}/occurs-on", response_model=OccursOnResponse)
def occurs_on(event_id: str, year: int, month: int, day: int) -> OccursOnResponse:
    """Answer whether the event occurs on the given date."""
    event = _get_event(event_id)
    target = _date(year, month, day)
    return OccursOnResponse(
        event_id=event_id,
        date=target,
        occurs=engine.occurs_on(event.descriptor, target, trail=(event_id,)),
    )


@app.post("/events/{event_id}/occurrences", response_model=OccurrencesResponse)
def list_occurrences(event_id: str, body: RangeQuery) -> OccurrencesResponse:
    """Enumerate the event's occurrences within a date range."""
    event = _get_event(event_id)
    occurrences = engine.occurrences_in_range(
        event.descriptor,
        body.range_start,
        body.range_end,
        body.cap,
        trail=(event_id,),
    )
    return OccurrencesResponse(event_id=event_id, occurrences=occurrences)


@app.get("/events/{event_id}/ordinal", response_model=OrdinalResponse)
def ordinal(event_id: str, year: int, month: int, day: int) -> OrdinalResponse:
    """Count the event's occurrences up to and including the given date."""
    event = _get_event(event_id)
    target = _date(year, month, day)
    return OrdinalResponse(
        event_id=event_id,
        date=target,
        ordinal=engine.ordinal_up_to(event.descriptor, target, trail=(event_id,)),
    )


@app.get("/events/{event_id}/description", response_model=DescriptionResponse)
def describe_event(event_id: str) -> DescriptionResponse:
    """Return an English summary of the event's recurrence."""
    event = _get_event(event_id)
    return DescriptionResponse(
        event_id=event_id,
        description=describe_recurrence(event.descriptor, event_store, calendar),
    )


@app.get("/dates/{year}/{month}/{day}/events", response_model=list[StoredEvent])
def list_events_on(year: int, month: int, day: int) -> list[StoredEvent]:
    """Return visible events occurring on a date, ordered by start time."""
    target = _date(year, month, day)
    return events_on(engine, event_store.list_all(), target)


@app.post("/agenda", response_model=list[StoredEvent])
def agenda(body: RangeQuery) -> list[StoredEvent]:
    """Return visible events touching a date range."""
    return events_in_range(
        engine, event_store.list_all(), body.range_start, body.range_end
    )


@app.post("/evaluate", response_model=EvaluateResponse)
def evaluate(body: EvaluateRequest) -> EvaluateResponse:
    """Evaluate an unsaved descriptor against a date."""
    return EvaluateResponse(
        occurs=engine.occurs_on(body.descriptor, body.date),
        ordinal=engine.ordinal_up_to(body.descriptor, body.date),
    )


@app.post("/tick")
def tick(body: TickRequest) -> dict:
    """Advance the calendar's current date and refresh stale random caches."""
    stale = handler_registry.stale_random_events(body.current_date)
    event_bus.publish(DateAdvanced(current_date=body.current_date))
    return {
        "current_date": body.current_date.model_dump(),
        "refreshed": [event.id for event in stale],
    }

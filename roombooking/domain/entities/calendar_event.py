from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class EventAttendee:
    email: str
    resource: bool = False
    response_status: str = "needsAction"


@dataclass(frozen=True)
class EventTime:
    # Timed events carry date_time; all-day events carry only date.
    date_time: datetime | None = None
    date: date | None = None
    time_zone: str | None = None


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    start: EventTime
    end: EventTime
    summary: str | None = None
    description: str | None = None
    status: str = "confirmed"  # "confirmed", "tentative", "cancelled"
    organizer_email: str | None = None
    attendees: tuple[EventAttendee, ...] = ()
    private_properties: dict[str, str] = field(default_factory=dict)
    recurrence: tuple[str, ...] = ()
    recurring_event_id: str | None = None  # set on expanded instances of a recurring event
    original_start: datetime | None = None


@dataclass(frozen=True)
class EventDraft:
    """Payload for creating an event."""

    summary: str
    start: datetime
    end: datetime
    time_zone: str = "UTC"
    description: str | None = None
    attendees: tuple[EventAttendee, ...] = ()
    recurrence: tuple[str, ...] = ()


@dataclass(frozen=True)
class EventPatch:
    """Partial update; None fields are left untouched."""

    summary: str | None = None
    description: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    time_zone: str | None = None
    attendees: tuple[EventAttendee, ...] | None = None

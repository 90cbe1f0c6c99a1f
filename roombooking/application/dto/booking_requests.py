from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from roombooking.domain.entities.booking import BookingSource, RecurrenceRule


@dataclass(frozen=True)
class CreateBookingRequest:
    room_id: str
    start_time: datetime
    end_time: datetime
    source: BookingSource = BookingSource.web
    title: str | None = None
    description: str | None = None
    host_user_id: str | None = None
    attendee_emails: tuple[str, ...] = ()


@dataclass(frozen=True)
class QuickBookingRequest:
    room_id: str
    duration_minutes: int
    source: BookingSource = BookingSource.tablet


@dataclass(frozen=True)
class RecurringBookingRequest:
    room_id: str
    start_time: datetime  # first occurrence start; its time of day applies to all occurrences
    end_time: datetime
    recurrence_rule: RecurrenceRule
    recurrence_end_date: date
    source: BookingSource = BookingSource.web
    title: str | None = None
    description: str | None = None
    host_user_id: str | None = None
    attendee_emails: tuple[str, ...] = ()

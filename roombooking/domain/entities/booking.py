from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class BookingStatus(str, Enum):
    scheduled = "scheduled"
    in_progress = "in_progress"
    ended = "ended"
    cancelled = "cancelled"
    no_show = "no_show"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({BookingStatus.ended, BookingStatus.cancelled, BookingStatus.no_show})
ACTIVE_STATUSES = frozenset({BookingStatus.scheduled, BookingStatus.in_progress})


class BookingSource(str, Enum):
    tablet = "tablet"
    web = "web"
    api = "api"
    admin = "admin"
    external_calendar = "external_calendar"  # imported by sync only


# Marks bookings created directly in the calendar UI rather than by this system.
EXTERNAL_ORIGIN_CALENDAR_UI = "calendar_ui"


class RecurrenceType(str, Enum):
    weekly = "weekly"
    monthly = "monthly"


@dataclass(frozen=True)
class RecurrenceRule:
    type: RecurrenceType
    days_of_week: tuple[int, ...] = ()  # 0=Sunday .. 6=Saturday, weekly only
    day_of_month: int | None = None  # 1-31, monthly only


@dataclass(frozen=True)
class Booking:
    id: str
    room_id: str
    start_time: datetime
    end_time: datetime
    status: BookingStatus = BookingStatus.scheduled
    title: str = "Conference Room Booking"
    description: str | None = None
    source: BookingSource = BookingSource.web
    host_user_id: str | None = None
    organizer_email: str | None = None
    attendee_emails: tuple[str, ...] = ()
    attendee_response_statuses: dict[str, str] = field(default_factory=dict)
    external_event_id: str | None = None
    external_calendar_id: str | None = None
    external_origin: str | None = None
    is_recurring: bool = False
    recurrence_rule: RecurrenceRule | None = None
    recurrence_end_date: date | None = None
    recurring_parent_id: str | None = None
    check_in_time: datetime | None = None
    extension_count: int = 0
    last_synced_at: datetime | None = None
    action_token: str | None = None
    overdue_reminder_sent_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def duration_minutes(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 60

    @property
    def series_id(self) -> str | None:
        """Id of the series parent, for both the parent and its occurrences."""
        if self.recurring_parent_id:
            return self.recurring_parent_id
        if self.is_recurring:
            return self.id
        return None

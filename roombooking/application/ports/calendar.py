from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from roombooking.domain.entities.calendar_event import BusyInterval, CalendarEvent, EventDraft, EventPatch


class CalendarPort(ABC):
    @abstractmethod
    def check_free_busy(
        self,
        calendar_ids: list[str],
        time_min: datetime,
        time_max: datetime,
    ) -> dict[str, list[BusyInterval]]:
        """Busy intervals per calendar id. Ordering is not guaranteed."""
        raise NotImplementedError

    @abstractmethod
    def create_event(
        self,
        calendar_id: str,
        event: EventDraft,
        private_properties: dict[str, str] | None = None,
    ) -> CalendarEvent:
        """Create event on a calendar using the service identity."""
        raise NotImplementedError

    @abstractmethod
    def create_event_as_user(
        self,
        user_email: str,
        event: EventDraft,
        private_properties: dict[str, str] | None = None,
    ) -> tuple[CalendarEvent, str]:
        """Create event impersonating a user. Returns (event, organizer email used)."""
        raise NotImplementedError

    @abstractmethod
    def create_recurring_event_as_user(
        self,
        user_email: str,
        event: EventDraft,
        private_properties: dict[str, str] | None = None,
    ) -> tuple[CalendarEvent, str]:
        """Like create_event_as_user; event.recurrence holds the RRULE lines."""
        raise NotImplementedError

    @abstractmethod
    def update_event(self, calendar_id: str, event_id: str, patch: EventPatch) -> CalendarEvent:
        raise NotImplementedError

    @abstractmethod
    def delete_event(self, calendar_id: str, event_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_instance(self, calendar_id: str, event_id: str, original_start: datetime) -> None:
        """Remove the occurrence of recurring event_id that was scheduled at original_start."""
        raise NotImplementedError

    @abstractmethod
    def get_event(self, calendar_id: str, event_id: str) -> CalendarEvent:
        raise NotImplementedError

    @abstractmethod
    def list_events(self, calendar_id: str, time_min: datetime, time_max: datetime) -> list[CalendarEvent]:
        """Single (expanded) events overlapping the window."""
        raise NotImplementedError

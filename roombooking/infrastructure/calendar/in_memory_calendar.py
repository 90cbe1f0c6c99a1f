from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, time, timezone

from dateutil.rrule import rrulestr

from roombooking.application.ports.calendar import CalendarPort
from roombooking.domain.entities.calendar_event import (
    BusyInterval,
    CalendarEvent,
    EventDraft,
    EventPatch,
    EventTime,
)


class CalendarUnavailableError(ConnectionError):
    pass


class InMemoryCalendar(CalendarPort):
    """
    Calendar provider kept in process memory. Events written to one calendar
    are mirrored onto every resource attendee's calendar, the way room
    resources show up in a real provider. Recurring masters are stored as
    written and expanded from their RRULE lines for free/busy; expanded
    instances for list_events can be seeded with add_event.
    """

    def __init__(
        self,
        service_account_email: str = "rooms@example.com",
        impersonation_allowed: bool = True,
    ) -> None:
        self._service_account_email = service_account_email
        self._impersonation_allowed = impersonation_allowed
        self._calendars: dict[str, dict[str, CalendarEvent]] = {}
        self._extra_busy: dict[str, list[BusyInterval]] = {}
        self._deleted_instances: dict[str, set[datetime]] = {}
        self._failing: set[str] = set()
        self._counter = 0
        self._logger = logging.getLogger(__name__)

    # -- test controls ---------------------------------------------------

    def fail(self, *operations: str) -> None:
        """Make the named operations raise CalendarUnavailableError until recover()."""
        self._failing.update(operations)

    def recover(self) -> None:
        self._failing.clear()

    def add_busy(self, calendar_id: str, start: datetime, end: datetime) -> None:
        self._extra_busy.setdefault(calendar_id, []).append(BusyInterval(start=start, end=end))

    def add_event(self, calendar_id: str, event: CalendarEvent) -> CalendarEvent:
        self._calendars.setdefault(calendar_id, {})[event.id] = event
        return event

    def events(self, calendar_id: str) -> list[CalendarEvent]:
        return list(self._calendars.get(calendar_id, {}).values())

    # -- CalendarPort ----------------------------------------------------

    def check_free_busy(
        self,
        calendar_ids: list[str],
        time_min: datetime,
        time_max: datetime,
    ) -> dict[str, list[BusyInterval]]:
        self._maybe_fail("check_free_busy")
        result: dict[str, list[BusyInterval]] = {}
        for calendar_id in calendar_ids:
            busy: list[BusyInterval] = []
            for event in self._calendars.get(calendar_id, {}).values():
                if event.status == "cancelled":
                    continue
                for start, end in self._occurrences(event, time_min, time_max):
                    if start < time_max and end > time_min:
                        busy.append(BusyInterval(start=start, end=end))
            for interval in self._extra_busy.get(calendar_id, []):
                if interval.start < time_max and interval.end > time_min:
                    busy.append(interval)
            # Unordered, like real providers.
            result[calendar_id] = list(reversed(busy))
        return result

    def create_event(
        self,
        calendar_id: str,
        event: EventDraft,
        private_properties: dict[str, str] | None = None,
    ) -> CalendarEvent:
        self._maybe_fail("create_event")
        return self._store_event(calendar_id, event, self._service_account_email, private_properties)

    def create_event_as_user(
        self,
        user_email: str,
        event: EventDraft,
        private_properties: dict[str, str] | None = None,
    ) -> tuple[CalendarEvent, str]:
        self._maybe_fail("create_event_as_user")
        if not self._impersonation_allowed:
            raise PermissionError(f"Impersonation not permitted for {user_email}")
        return self._store_event(user_email, event, user_email, private_properties), user_email

    def create_recurring_event_as_user(
        self,
        user_email: str,
        event: EventDraft,
        private_properties: dict[str, str] | None = None,
    ) -> tuple[CalendarEvent, str]:
        self._maybe_fail("create_recurring_event_as_user")
        if not event.recurrence:
            raise ValueError("Recurring event needs recurrence rules")
        return self.create_event_as_user(user_email, event, private_properties)

    def update_event(self, calendar_id: str, event_id: str, patch: EventPatch) -> CalendarEvent:
        self._maybe_fail("update_event")
        current = self.get_event(calendar_id, event_id)
        zone = patch.time_zone or current.start.time_zone
        updated = replace(
            current,
            summary=patch.summary if patch.summary is not None else current.summary,
            description=patch.description if patch.description is not None else current.description,
            start=EventTime(date_time=patch.start, time_zone=zone) if patch.start else current.start,
            end=EventTime(date_time=patch.end, time_zone=zone) if patch.end else current.end,
            attendees=patch.attendees if patch.attendees is not None else current.attendees,
        )
        for events in self._calendars.values():
            if event_id in events:
                events[event_id] = updated
        self._logger.info("Calendar event updated", extra={"calendar_id": calendar_id, "event_id": event_id})
        return updated

    def delete_event(self, calendar_id: str, event_id: str) -> None:
        self._maybe_fail("delete_event")
        found = False
        for events in self._calendars.values():
            if events.pop(event_id, None) is not None:
                found = True
        if not found:
            raise KeyError(f"Event {event_id} not found on {calendar_id}")
        self._deleted_instances.pop(event_id, None)
        self._logger.info("Calendar event deleted", extra={"calendar_id": calendar_id, "event_id": event_id})

    def delete_instance(self, calendar_id: str, event_id: str, original_start: datetime) -> None:
        self._maybe_fail("delete_instance")
        master = self.get_event(calendar_id, event_id)
        if not master.recurrence:
            raise ValueError(f"Event {event_id} is not recurring")
        self._deleted_instances.setdefault(event_id, set()).add(original_start)
        self._logger.info(
            "Calendar occurrence deleted",
            extra={"calendar_id": calendar_id, "event_id": event_id, "start": original_start.isoformat()},
        )

    def get_event(self, calendar_id: str, event_id: str) -> CalendarEvent:
        self._maybe_fail("get_event")
        event = self._calendars.get(calendar_id, {}).get(event_id)
        if event is None:
            raise KeyError(f"Event {event_id} not found on {calendar_id}")
        return event

    def list_events(self, calendar_id: str, time_min: datetime, time_max: datetime) -> list[CalendarEvent]:
        self._maybe_fail("list_events")
        listed = []
        for event in self._calendars.get(calendar_id, {}).values():
            bounds = _bounds(event)
            if bounds is None or (bounds[0] < time_max and bounds[1] > time_min):
                listed.append(event)
        return listed

    # -- internals -------------------------------------------------------

    def _store_event(
        self,
        calendar_id: str,
        draft: EventDraft,
        organizer: str,
        private_properties: dict[str, str] | None,
    ) -> CalendarEvent:
        self._counter += 1
        event = CalendarEvent(
            id=f"mock_event_{self._counter}",
            start=EventTime(date_time=draft.start, time_zone=draft.time_zone),
            end=EventTime(date_time=draft.end, time_zone=draft.time_zone),
            summary=draft.summary,
            description=draft.description,
            organizer_email=organizer,
            attendees=draft.attendees,
            private_properties=dict(private_properties or {}),
            recurrence=draft.recurrence,
        )
        targets = {calendar_id} | {a.email for a in draft.attendees if a.resource}
        for target in targets:
            self._calendars.setdefault(target, {})[event.id] = event
        self._logger.info(
            "Mock calendar event created",
            extra={"calendar_id": calendar_id, "event_id": event.id, "start": draft.start.isoformat()},
        )
        return event

    def _occurrences(
        self, event: CalendarEvent, time_min: datetime, time_max: datetime
    ) -> list[tuple[datetime, datetime]]:
        bounds = _bounds(event)
        if bounds is None:
            return []
        if not event.recurrence:
            return [bounds]
        start, end = bounds
        duration = end - start
        rule = rrulestr("\n".join(event.recurrence), dtstart=start, forceset=True)
        deleted = self._deleted_instances.get(event.id, set())
        return [
            (occurrence, occurrence + duration)
            for occurrence in rule.between(time_min - duration, time_max, inc=True)
            if occurrence not in deleted
        ]

    def _maybe_fail(self, operation: str) -> None:
        if operation in self._failing:
            raise CalendarUnavailableError(f"simulated {operation} failure")


def _bounds(event: CalendarEvent) -> tuple[datetime, datetime] | None:
    start = _as_datetime(event.start, time.min)
    end = _as_datetime(event.end, time.max)
    if start is None or end is None:
        return None
    return start, end


def _as_datetime(value: EventTime, fallback: time) -> datetime | None:
    if value.date_time is not None:
        return value.date_time
    if value.date is not None:
        return datetime.combine(value.date, fallback, tzinfo=timezone.utc)
    return None

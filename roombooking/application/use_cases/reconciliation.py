from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, time, timedelta, timezone
from typing import Callable

from roombooking.application.exceptions import ExternalSyncError, NotFoundError
from roombooking.application.ports.booking_store import BookingQuery, BookingStorePort
from roombooking.application.ports.calendar import CalendarPort
from roombooking.application.ports.directory import RoomDirectoryPort
from roombooking.application.use_cases.availability import resolve_calendar_id
from roombooking.application.use_cases.booking_lifecycle import DEFAULT_TITLE
from roombooking.application.use_cases.external_effects import PRIVATE_BOOKING_ID_KEY
from roombooking.application.utils.clock import Clock, utc_now
from roombooking.application.utils.host_resolution import normalize_attendees
from roombooking.domain.entities.booking import (
    EXTERNAL_ORIGIN_CALENDAR_UI,
    Booking,
    BookingSource,
    BookingStatus,
)
from roombooking.domain.entities.calendar_event import CalendarEvent, EventTime

S = BookingStatus

# (local status, status derived from the calendar) -> stored status.
# ended/no_show are final local decisions and survive a stale calendar event;
# in_progress can only be cancelled from outside, never reverted to scheduled.
STATUS_MERGE_TABLE: dict[tuple[BookingStatus, BookingStatus], BookingStatus] = {
    (S.ended, S.scheduled): S.ended,
    (S.ended, S.cancelled): S.ended,
    (S.no_show, S.scheduled): S.no_show,
    (S.no_show, S.cancelled): S.no_show,
    (S.cancelled, S.scheduled): S.cancelled,
    (S.cancelled, S.cancelled): S.cancelled,
    (S.in_progress, S.scheduled): S.in_progress,
    (S.in_progress, S.cancelled): S.cancelled,
    (S.scheduled, S.scheduled): S.scheduled,
    (S.scheduled, S.cancelled): S.cancelled,
}


def merge_status(local: BookingStatus, external: BookingStatus) -> BookingStatus:
    """Status to store for an existing booking; unknown pairs keep the local status."""
    return STATUS_MERGE_TABLE.get((local, external), local)


def external_status(event: CalendarEvent) -> BookingStatus:
    # The calendar only decides timing and cancellation; lifecycle moves stay local.
    if event.status == "cancelled":
        return BookingStatus.cancelled
    return BookingStatus.scheduled


def event_bounds(event: CalendarEvent) -> tuple[datetime, datetime] | None:
    start = _edge_time(event.start, is_end=False)
    end = _edge_time(event.end, is_end=True)
    if start is None or end is None:
        return None
    return start, end


def _edge_time(value: EventTime, is_end: bool) -> datetime | None:
    if value.date_time is not None:
        if value.date_time.tzinfo is None:
            return value.date_time.replace(tzinfo=timezone.utc)
        return value.date_time
    if value.date is not None:
        # All-day events span the whole UTC day.
        clock_time = time(23, 59, 59, 999000) if is_end else time.min
        return datetime.combine(value.date, clock_time, tzinfo=timezone.utc)
    return None


class SyncRateLimiter:
    """Per-room minimum interval between sync passes."""

    def __init__(self, min_interval_seconds: int = 60, clock: Clock | None = None) -> None:
        self._min_interval = timedelta(seconds=min_interval_seconds)
        self._clock = clock or utc_now
        self._last_synced: dict[str, datetime] = {}

    def should_sync(self, room_id: str) -> bool:
        last = self._last_synced.get(room_id)
        return last is None or self._clock() - last >= self._min_interval

    def mark_synced(self, room_id: str) -> None:
        self._last_synced[room_id] = self._clock()

    def last_synced(self, room_id: str) -> datetime | None:
        return self._last_synced.get(room_id)

    def reset(self, room_id: str | None = None) -> None:
        if room_id is None:
            self._last_synced.clear()
        else:
            self._last_synced.pop(room_id, None)


@dataclass(frozen=True)
class SyncResult:
    room_id: str
    synced: int = 0
    inserted: int = 0
    updated: int = 0
    purged: int = 0
    skipped_reason: str | None = None  # "rate_limited", "unmanaged"


class ReconciliationSync:
    """
    Imports calendar events for a room into local bookings over a rolling
    window. Idempotent and cheap to call from read paths thanks to the
    per-room rate limit.
    """

    def __init__(
        self,
        store: BookingStorePort,
        rooms: RoomDirectoryPort,
        calendar: CalendarPort,
        rate_limiter: SyncRateLimiter | None = None,
        window_past_minutes: int = 24 * 60,
        window_future_days: int = 30,
        clock: Clock | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._rooms = rooms
        self._calendar = calendar
        self._clock = clock or utc_now
        self._rate_limiter = rate_limiter or SyncRateLimiter(clock=self._clock)
        self._window_past = timedelta(minutes=window_past_minutes)
        self._window_future = timedelta(days=window_future_days)
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._logger = logging.getLogger(__name__)

    @property
    def rate_limiter(self) -> SyncRateLimiter:
        return self._rate_limiter

    def sync_room(self, room_id: str, force: bool = False) -> SyncResult:
        if not force and not self._rate_limiter.should_sync(room_id):
            return SyncResult(room_id=room_id, skipped_reason="rate_limited")

        room = self._rooms.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found for calendar sync", {"room_id": room_id})

        calendar_id = resolve_calendar_id(room)
        if not calendar_id:
            self._rate_limiter.mark_synced(room_id)
            return SyncResult(room_id=room_id, skipped_reason="unmanaged")

        now = self._clock()
        time_min = now - self._window_past
        time_max = now + self._window_future
        try:
            events = self._calendar.list_events(calendar_id, time_min, time_max)
        except Exception as e:
            self._logger.error(
                "Failed to list calendar events",
                extra={"room_id": room_id, "calendar_id": calendar_id, "error": str(e)},
            )
            raise ExternalSyncError(
                "Failed to list calendar events",
                {"room_id": room_id, "calendar_id": calendar_id},
            ) from e

        tombstones = self._tombstones_for(calendar_id)
        purged = self._purge_tombstoned(room_id, calendar_id, tombstones)

        if not events:
            self._rate_limiter.mark_synced(room_id)
            return SyncResult(room_id=room_id, purged=purged)

        existing = self._store.list_bookings(
            BookingQuery(room_id=room_id, ends_after=time_min, starts_before=time_max)
        )
        by_id = {b.id: b for b in existing}
        by_event = {
            (b.external_calendar_id, b.external_event_id): b for b in existing if b.external_event_id
        }

        inserts: list[Booking] = []
        updates: list[Booking] = []
        claimed: set[str] = set()

        for event in events:
            if not event.id:
                continue
            if event.id in tombstones or (event.recurring_event_id and event.recurring_event_id in tombstones):
                self._logger.info("Skipping deleted event", extra={"event_id": event.id, "room_id": room_id})
                continue

            bounds = event_bounds(event)
            if bounds is None or bounds[1] <= bounds[0]:
                self._logger.warning(
                    "Skipping event without a usable time range",
                    extra={"event_id": event.id, "room_id": room_id},
                )
                continue
            start, end = bounds

            private_id = event.private_properties.get(PRIVATE_BOOKING_ID_KEY)
            target = self._match(event, private_id, start, calendar_id, by_id, by_event, existing)
            if target is None:
                found = self._store.find_by_external_event(calendar_id, event.id)
                if found is not None and found.room_id == room_id:
                    target = found

            if target is not None:
                if target.id in claimed:
                    self._logger.warning(
                        "Event matched an already reconciled booking, skipping",
                        extra={"event_id": event.id, "booking_id": target.id},
                    )
                    continue
                claimed.add(target.id)
                updates.append(self._refresh(target, event, start, end, calendar_id, now))
            else:
                inserts.append(self._import(room_id, event, start, end, calendar_id, private_id, now))

        if inserts:
            self._store.insert_many(inserts)
        if updates:
            self._store.upsert_many(updates)

        self._rate_limiter.mark_synced(room_id)
        self._logger.info(
            "Calendar sync complete",
            extra={"room_id": room_id, "inserted": len(inserts), "updated": len(updates)},
        )
        return SyncResult(
            room_id=room_id,
            synced=len(inserts) + len(updates),
            inserted=len(inserts),
            updated=len(updates),
            purged=purged,
        )

    def _match(
        self,
        event: CalendarEvent,
        private_id: str | None,
        start: datetime,
        calendar_id: str,
        by_id: dict[str, Booking],
        by_event: dict[tuple[str | None, str | None], Booking],
        existing: list[Booking],
    ) -> Booking | None:
        if private_id:
            linked = by_id.get(private_id) or self._store.get(private_id)
            if linked is not None:
                if event.recurring_event_id and linked.series_id:
                    # Instances inherit the parent's link; pick the occurrence for this date.
                    member = _series_member(linked.series_id, (event.original_start, start), existing)
                    if member is not None:
                        return member
                else:
                    return linked
        return by_event.get((calendar_id, event.id))

    def _refresh(
        self,
        target: Booking,
        event: CalendarEvent,
        start: datetime,
        end: datetime,
        calendar_id: str,
        now: datetime,
    ) -> Booking:
        organizer = event.organizer_email or target.organizer_email
        attendees = [a for a in event.attendees if a.email and not a.resource]
        return replace(
            target,
            title=event.summary or DEFAULT_TITLE,
            description=event.description,
            start_time=start,
            end_time=end,
            status=merge_status(target.status, external_status(event)),
            attendee_emails=normalize_attendees([a.email for a in attendees], organizer),
            attendee_response_statuses={a.email: a.response_status for a in attendees},
            organizer_email=organizer,
            # A series parent keeps the series event id; occurrences pick up their instance id.
            external_event_id=target.external_event_id or event.id,
            external_calendar_id=target.external_calendar_id or calendar_id,
            last_synced_at=now,
            updated_at=now,
        )

    def _import(
        self,
        room_id: str,
        event: CalendarEvent,
        start: datetime,
        end: datetime,
        calendar_id: str,
        private_id: str | None,
        now: datetime,
    ) -> Booking:
        attendees = [a for a in event.attendees if a.email and not a.resource]
        return Booking(
            id=self._new_id(),
            room_id=room_id,
            start_time=start,
            end_time=end,
            status=external_status(event),
            title=event.summary or DEFAULT_TITLE,
            description=event.description,
            source=BookingSource.external_calendar,
            organizer_email=event.organizer_email,
            attendee_emails=normalize_attendees([a.email for a in attendees], event.organizer_email),
            attendee_response_statuses={a.email: a.response_status for a in attendees},
            external_event_id=event.id,
            external_calendar_id=calendar_id,
            external_origin=None if private_id else EXTERNAL_ORIGIN_CALENDAR_UI,
            last_synced_at=now,
            created_at=now,
            updated_at=now,
        )

    def _tombstones_for(self, calendar_id: str) -> set[str]:
        return {
            event_id
            for tomb_calendar, event_id in self._store.list_tombstones()
            if tomb_calendar is None or tomb_calendar == calendar_id
        }

    def _purge_tombstoned(self, room_id: str, calendar_id: str, tombstones: set[str]) -> int:
        purged = 0
        for event_id in tombstones:
            booking = self._store.find_by_external_event(calendar_id, event_id)
            if booking is not None and booking.room_id == room_id:
                self._store.delete(booking.id)
                purged += 1
        if purged:
            self._logger.info("Purged deleted bookings", extra={"room_id": room_id, "purged": purged})
        return purged


def _series_member(
    series_id: str,
    starts: tuple[datetime | None, ...],
    existing: list[Booking],
) -> Booking | None:
    wanted = [s for s in starts if s is not None]
    for booking in existing:
        if booking.series_id == series_id and booking.start_time in wanted:
            return booking
    return None

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Callable

from roombooking.application.dto.booking_requests import (
    CreateBookingRequest,
    QuickBookingRequest,
    RecurringBookingRequest,
)
from roombooking.application.exceptions import (
    BookingValidationError,
    InvalidStateError,
    NotAvailableError,
    NotFoundError,
    PersistenceVerificationError,
)
from roombooking.application.ports.booking_store import ActivityLogPort, BookingQuery, BookingStorePort
from roombooking.application.ports.directory import RoomDirectoryPort, UserDirectoryPort
from roombooking.application.use_cases.availability import AvailabilityChecker, resolve_calendar_id
from roombooking.application.use_cases.external_effects import (
    PRIVATE_BOOKING_ID_KEY,
    EffectKind,
    EffectOutcome,
    ExternalEffect,
    ExternalEffectExecutor,
    delete_effect,
    release_effects,
)
from roombooking.application.use_cases.recurrence import MAX_OCCURRENCES, expand_occurrences, to_rrule, validate_rule
from roombooking.application.utils.clock import Clock, is_aware, utc_now
from roombooking.application.utils.host_resolution import display_name, normalize_attendees, resolve_host
from roombooking.domain.entities.activity import ActivityAction, ActivityRecord
from roombooking.domain.entities.booking import (
    ACTIVE_STATUSES,
    Booking,
    BookingSource,
    BookingStatus,
)
from roombooking.domain.entities.calendar_event import BusyInterval, EventAttendee, EventDraft, EventPatch
from roombooking.domain.entities.room import Room
from roombooking.domain.entities.user import User

DEFAULT_TITLE = "Conference Room Booking"
WALK_UP_TITLE = "Walk-up Booking"
FALLBACK_MAX_DURATION_MINUTES = 240
MAX_LISTED_CONFLICTS = 5


@dataclass(frozen=True)
class BookingResult:
    booking: Booking
    effects: list[EffectOutcome] = field(default_factory=list)


@dataclass(frozen=True)
class SeriesResult:
    parent: Booking
    occurrences: list[Booking]
    effects: list[EffectOutcome] = field(default_factory=list)


@dataclass(frozen=True)
class SeriesCancelResult:
    series_id: str
    cancelled_count: int
    cancelled_ids: list[str]
    effects: list[EffectOutcome] = field(default_factory=list)


@dataclass(frozen=True)
class SeriesDetails:
    parent: Booking
    occurrences: list[Booking]
    status_summary: dict[str, int]
    next_occurrence: datetime | None


@dataclass(frozen=True)
class ConflictDetail:
    start: datetime
    end: datetime
    booking_id: str | None = None
    title: str | None = None
    organizer: str | None = None


@dataclass(frozen=True)
class ExtensionCheck:
    can_extend: bool
    new_end_time: datetime
    conflict: ConflictDetail | None = None


class BookingLifecycleUseCase:
    def __init__(
        self,
        store: BookingStorePort,
        activity_log: ActivityLogPort,
        rooms: RoomDirectoryPort,
        users: UserDirectoryPort,
        availability: AvailabilityChecker,
        effects: ExternalEffectExecutor,
        default_max_duration_minutes: int | None = None,
        auto_check_in_window_seconds: int = 60,
        max_extension_minutes: int | None = None,
        max_occurrences: int = MAX_OCCURRENCES,
        clock: Clock | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._activity_log = activity_log
        self._rooms = rooms
        self._users = users
        self._availability = availability
        self._effects = effects
        self._default_max_duration_minutes = default_max_duration_minutes
        self._auto_check_in_window = timedelta(seconds=auto_check_in_window_seconds)
        self._max_extension_minutes = max_extension_minutes
        self._max_occurrences = min(max_occurrences, MAX_OCCURRENCES)
        self._clock = clock or utc_now
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_booking(self, request: CreateBookingRequest) -> BookingResult:
        room = self._require_room(request.room_id)
        self._validate_time_range(request.start_time, request.end_time)
        self._validate_duration(room, request.start_time, request.end_time)
        host = self._require_host(request.host_user_id)

        calendar_id = resolve_calendar_id(room)
        availability = self._availability.check_availability(calendar_id, request.start_time, request.end_time)
        if not availability.is_available:
            raise NotAvailableError(
                "Room is not available for the requested time",
                {"conflicts": _serialize_conflicts(availability.conflicts)},
            )

        now = self._clock()
        # Tablet bookings starting right now are made by someone standing at the room.
        auto_check_in = (
            request.source == BookingSource.tablet
            and abs(request.start_time - now) <= self._auto_check_in_window
        )
        organizer = host.email if host else None
        booking = Booking(
            id=self._new_id(),
            room_id=room.id,
            start_time=request.start_time,
            end_time=request.end_time,
            status=BookingStatus.in_progress if auto_check_in else BookingStatus.scheduled,
            title=request.title or DEFAULT_TITLE,
            description=request.description,
            source=request.source,
            host_user_id=host.id if host else None,
            organizer_email=organizer,
            attendee_emails=normalize_attendees(request.attendee_emails, organizer),
            check_in_time=now if auto_check_in else None,
            created_at=now,
            updated_at=now,
        )
        stored = self._store.insert(booking)
        self._log(
            stored.id,
            ActivityAction.created,
            stored.host_user_id,
            {"source": stored.source.value, "auto_checked_in": auto_check_in},
        )
        self._logger.info(
            "Booking created",
            extra={"booking_id": stored.id, "room_id": room.id, "status": stored.status.value},
        )

        effects = self._create_event_effects(stored, room, calendar_id, host)
        outcomes = self._effects.execute(effects)
        return BookingResult(booking=self._reload(stored), effects=outcomes)

    def create_quick_booking(self, request: QuickBookingRequest) -> BookingResult:
        room = self._require_room(request.room_id)
        if not room.allow_walk_up_booking:
            raise BookingValidationError("Walk-up bookings not allowed for this room", {"room_id": room.id})
        if request.duration_minutes <= 0:
            raise BookingValidationError("Duration must be positive", {"duration_minutes": request.duration_minutes})

        now = self._clock()
        start_time = now
        end_time = now + timedelta(minutes=request.duration_minutes)
        self._validate_duration(room, start_time, end_time)

        calendar_id = resolve_calendar_id(room)
        availability = self._availability.check_availability(calendar_id, start_time, end_time)
        clipped = False
        if not availability.is_available and availability.conflicts:
            next_conflict = availability.conflicts[0]
            if next_conflict.start <= start_time:
                raise NotAvailableError(
                    f"Room is occupied until {next_conflict.end.isoformat()}",
                    {"occupied_until": next_conflict.end.isoformat()},
                )
            if next_conflict.start < end_time:
                end_time = next_conflict.start
                clipped = True

        booking = Booking(
            id=self._new_id(),
            room_id=room.id,
            start_time=start_time,
            end_time=end_time,
            status=BookingStatus.in_progress,
            title=WALK_UP_TITLE,
            source=request.source,
            check_in_time=now,
            created_at=now,
            updated_at=now,
        )
        stored = self._store.insert(booking)
        self._log(
            stored.id,
            ActivityAction.created,
            None,
            {
                "source": stored.source.value,
                "duration_minutes": request.duration_minutes,
                "clipped": clipped,
            },
        )
        self._logger.info(
            "Walk-up booking created",
            extra={"booking_id": stored.id, "room_id": room.id, "clipped": clipped},
        )

        effects = self._create_event_effects(
            stored, room, calendar_id, None, description=f"Quick booking from {room.name}"
        )
        outcomes = self._effects.execute(effects)
        return BookingResult(booking=self._reload(stored), effects=outcomes)

    def create_recurring_booking(self, request: RecurringBookingRequest) -> SeriesResult:
        room = self._require_room(request.room_id)
        self._validate_time_range(request.start_time, request.end_time)
        validate_rule(request.recurrence_rule)
        self._validate_duration(room, request.start_time, request.end_time)
        if request.recurrence_end_date < request.start_time.date():
            raise BookingValidationError(
                "Recurrence end date is before the first occurrence",
                {"recurrence_end_date": request.recurrence_end_date.isoformat()},
            )
        host = self._require_host(request.host_user_id)

        starts = expand_occurrences(
            request.start_time,
            request.recurrence_end_date,
            request.recurrence_rule,
            self._max_occurrences,
        )
        if not starts:
            raise BookingValidationError("No occurrences would be created for this recurrence rule")

        duration = request.end_time - request.start_time
        calendar_id = resolve_calendar_id(room)

        # Every occurrence is checked before anything is written.
        conflicting: list[datetime] = []
        for occurrence_start in starts:
            result = self._availability.check_availability(calendar_id, occurrence_start, occurrence_start + duration)
            if not result.is_available:
                conflicting.append(occurrence_start)
        if conflicting:
            raise NotAvailableError(
                _conflicting_dates_message(conflicting, len(starts)),
                {
                    "conflicting_dates": [c.date().isoformat() for c in conflicting],
                    "conflict_count": len(conflicting),
                    "occurrence_count": len(starts),
                },
            )

        now = self._clock()
        organizer = host.email if host else None
        attendees = normalize_attendees(request.attendee_emails, organizer)
        common: dict[str, Any] = {
            "room_id": room.id,
            "title": request.title or DEFAULT_TITLE,
            "description": request.description,
            "source": request.source,
            "host_user_id": host.id if host else None,
            "organizer_email": organizer,
            "attendee_emails": attendees,
            "created_at": now,
            "updated_at": now,
        }

        parent = self._store.insert(
            Booking(
                id=self._new_id(),
                start_time=starts[0],
                end_time=starts[0] + duration,
                is_recurring=True,
                recurrence_rule=request.recurrence_rule,
                recurrence_end_date=request.recurrence_end_date,
                **common,
            )
        )
        children = [
            Booking(
                id=self._new_id(),
                start_time=occurrence_start,
                end_time=occurrence_start + duration,
                recurring_parent_id=parent.id,
                **common,
            )
            for occurrence_start in starts[1:]
        ]
        try:
            stored_children = self._store.insert_many(children) if children else []
        except Exception as e:
            self._logger.error(
                "Failed to create occurrences, rolling back series parent",
                extra={"booking_id": parent.id, "error": str(e)},
            )
            self._store.delete(parent.id)
            raise

        self._log(
            parent.id,
            ActivityAction.created,
            parent.host_user_id,
            {
                "source": parent.source.value,
                "recurring": True,
                "occurrence_count": len(starts),
                "rule": request.recurrence_rule.type.value,
            },
        )
        self._logger.info(
            "Recurring series created",
            extra={"booking_id": parent.id, "room_id": room.id, "occurrences": len(starts)},
        )

        effects = self._create_event_effects(
            parent,
            room,
            calendar_id,
            host,
            recurrence=(to_rrule(request.recurrence_rule, len(starts)),),
        )
        outcomes = self._effects.execute(effects)
        return SeriesResult(parent=self._reload(parent), occurrences=stored_children, effects=outcomes)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def check_in(self, booking_id: str, user_id: str | None = None) -> BookingResult:
        booking = self._require_booking(booking_id)
        if booking.status != BookingStatus.scheduled:
            raise InvalidStateError(
                f"Cannot check in to a booking that is {booking.status.value}",
                {"status": booking.status.value},
            )
        now = self._clock()
        stored = self._store.update(
            replace(booking, status=BookingStatus.in_progress, check_in_time=now, updated_at=now)
        )
        self._log(booking_id, ActivityAction.checked_in, user_id)
        self._logger.info("Booking checked in", extra={"booking_id": booking_id})
        return BookingResult(booking=stored)

    def extend_booking(self, booking_id: str, additional_minutes: int, user_id: str | None = None) -> BookingResult:
        booking = self._require_booking(booking_id)
        if booking.status.is_terminal:
            raise InvalidStateError(
                "Cannot extend a completed or cancelled booking",
                {"status": booking.status.value},
            )
        if additional_minutes <= 0:
            raise BookingValidationError(
                "Extension must be a positive number of minutes",
                {"additional_minutes": additional_minutes},
            )
        if self._max_extension_minutes is not None and additional_minutes > self._max_extension_minutes:
            raise BookingValidationError(
                f"Extension cannot exceed {self._max_extension_minutes} minutes",
                {"additional_minutes": additional_minutes, "max_extension_minutes": self._max_extension_minutes},
            )
        room = self._require_room(booking.room_id)
        new_end = booking.end_time + timedelta(minutes=additional_minutes)

        # Only the added time needs to be free; the booking already owns the rest.
        availability = self._availability.check_availability(resolve_calendar_id(room), booking.end_time, new_end)
        if not availability.is_available:
            raise NotAvailableError(
                "Room is not available for the extension",
                {"conflicts": _serialize_conflicts(availability.conflicts)},
            )

        now = self._clock()
        stored = self._store.update(
            replace(
                booking,
                end_time=new_end,
                extension_count=booking.extension_count + 1,
                updated_at=now,
            )
        )
        self._log(
            booking_id,
            ActivityAction.extended,
            user_id,
            {"additional_minutes": additional_minutes, "new_end_time": new_end.isoformat()},
        )
        self._logger.info("Booking extended", extra={"booking_id": booking_id, "new_end_time": new_end.isoformat()})

        effects = self._update_end_effects(stored, room, delete_on_failure=False)
        return BookingResult(booking=stored, effects=self._effects.execute(effects))

    def check_extension(self, booking_id: str, additional_minutes: int) -> ExtensionCheck:
        booking = self._require_booking(booking_id)
        if booking.status.is_terminal:
            raise InvalidStateError(
                f"Booking is already {booking.status.value}",
                {"status": booking.status.value},
            )
        room = self._require_room(booking.room_id)
        new_end = booking.end_time + timedelta(minutes=additional_minutes)
        availability = self._availability.check_availability(resolve_calendar_id(room), booking.end_time, new_end)
        if availability.is_available:
            return ExtensionCheck(can_extend=True, new_end_time=new_end)

        interval = availability.conflicts[0] if availability.conflicts else BusyInterval(booking.end_time, new_end)
        return ExtensionCheck(
            can_extend=False,
            new_end_time=new_end,
            conflict=self._describe_conflict(booking, interval),
        )

    def end_booking(self, booking_id: str, user_id: str | None = None) -> BookingResult:
        booking = self._require_booking(booking_id)
        if booking.status.is_terminal:
            raise InvalidStateError(
                f"Booking is already {booking.status.value}",
                {"status": booking.status.value},
            )
        now = self._clock()
        new_end = max(now, booking.start_time + timedelta(minutes=1))
        self._store.update(replace(booking, status=BookingStatus.ended, end_time=new_end, updated_at=now))
        stored = self._verify_persisted(booking_id, BookingStatus.ended, end_time=new_end)

        self._log(booking_id, ActivityAction.ended_early, user_id, {"ended_at": new_end.isoformat()})
        self._logger.info("Booking ended early", extra={"booking_id": booking_id})

        room = self._rooms.get_room(booking.room_id)
        effects = self._update_end_effects(stored, room, delete_on_failure=True)
        return BookingResult(booking=stored, effects=self._effects.execute(effects))

    def cancel_booking(self, booking_id: str, user_id: str | None = None) -> BookingResult:
        booking = self._require_booking(booking_id)
        if booking.status.is_terminal:
            raise InvalidStateError(
                f"Booking is already {booking.status.value}",
                {"status": booking.status.value},
            )
        now = self._clock()
        self._store.update(replace(booking, status=BookingStatus.cancelled, updated_at=now))
        stored = self._verify_persisted(booking_id, BookingStatus.cancelled)

        self._log(booking_id, ActivityAction.cancelled, user_id)
        self._logger.info("Booking cancelled", extra={"booking_id": booking_id})

        effects = release_effects(stored, self._store)
        return BookingResult(booking=stored, effects=self._effects.execute(effects))

    def cancel_series(self, series_id: str, user_id: str | None = None) -> SeriesCancelResult:
        parent = self._store.get(series_id)
        if parent is None:
            raise NotFoundError("Recurring series not found", {"series_id": series_id})
        if not parent.is_recurring:
            raise BookingValidationError("This is not a recurring booking", {"booking_id": series_id})

        members = self._store.list_bookings(BookingQuery(series_id=parent.id, statuses=ACTIVE_STATUSES))
        now = self._clock()
        cancelled = [replace(b, status=BookingStatus.cancelled, updated_at=now) for b in members]
        if cancelled:
            self._store.update_many(cancelled)
        for booking in cancelled:
            self._verify_persisted(booking.id, BookingStatus.cancelled)
            self._log(booking.id, ActivityAction.cancelled, user_id, {"series_id": parent.id, "scope": "series"})

        self._logger.info(
            "Recurring series cancelled",
            extra={"booking_id": parent.id, "cancelled_count": len(cancelled)},
        )

        effects: list[ExternalEffect] = []
        if cancelled:
            effects = delete_effect(parent.id, parent.external_calendar_id, parent.external_event_id)
        return SeriesCancelResult(
            series_id=parent.id,
            cancelled_count=len(cancelled),
            cancelled_ids=[b.id for b in cancelled],
            effects=self._effects.execute(effects),
        )

    def get_series(self, series_id: str) -> SeriesDetails:
        parent = self._store.get(series_id)
        if parent is None:
            raise NotFoundError("Recurring series not found", {"series_id": series_id})
        if not parent.is_recurring:
            raise BookingValidationError("This is not a recurring booking", {"booking_id": series_id})

        members = self._store.list_bookings(BookingQuery(series_id=parent.id))
        now = self._clock()
        statuses = [b.status for b in members]
        summary = {
            "scheduled": statuses.count(BookingStatus.scheduled),
            "completed": statuses.count(BookingStatus.ended) + statuses.count(BookingStatus.in_progress),
            "cancelled": statuses.count(BookingStatus.cancelled),
            "no_show": statuses.count(BookingStatus.no_show),
        }
        upcoming = [b.start_time for b in members if b.status == BookingStatus.scheduled and b.start_time > now]
        return SeriesDetails(
            parent=parent,
            occurrences=members,
            status_summary=summary,
            next_occurrence=min(upcoming) if upcoming else None,
        )

    def delete_booking(self, booking_id: str, user_id: str | None = None) -> BookingResult:
        """Admin hard delete. The external event id is tombstoned first so sync never re-imports it."""
        booking = self._require_booking(booking_id)
        effects = release_effects(booking, self._store)
        # A series event that still serves other occurrences is not tombstoned.
        if booking.external_event_id and all(e.kind == EffectKind.delete_event for e in effects):
            self._store.tombstone_event(booking.external_calendar_id, booking.external_event_id)
        self._log(booking_id, ActivityAction.deleted, user_id, {"external_event_id": booking.external_event_id})
        self._store.delete(booking_id)
        self._logger.info("Booking deleted", extra={"booking_id": booking_id})

        return BookingResult(booking=booking, effects=self._effects.execute(effects))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_room(self, room_id: str) -> Room:
        room = self._rooms.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found", {"room_id": room_id})
        return room

    def _require_booking(self, booking_id: str) -> Booking:
        booking = self._store.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found", {"booking_id": booking_id})
        return booking

    def _require_host(self, host_user_id: str | None) -> User | None:
        if not host_user_id:
            return None
        user = self._users.get_user(host_user_id)
        if user is None or not user.is_active:
            raise NotFoundError("Host user not found or inactive", {"host_user_id": host_user_id})
        return user

    def _validate_time_range(self, start: datetime, end: datetime) -> None:
        if not is_aware(start) or not is_aware(end):
            raise BookingValidationError("Start and end times must include a timezone")
        if end <= start:
            raise BookingValidationError(
                "End time must be after start time",
                {"start_time": start.isoformat(), "end_time": end.isoformat()},
            )

    def _max_duration_minutes(self, room: Room) -> int:
        return (
            room.max_booking_duration_minutes
            or self._default_max_duration_minutes
            or FALLBACK_MAX_DURATION_MINUTES
        )

    def _validate_duration(self, room: Room, start: datetime, end: datetime) -> None:
        max_minutes = self._max_duration_minutes(room)
        duration_minutes = (end - start).total_seconds() / 60
        if duration_minutes > max_minutes:
            raise BookingValidationError(
                f"Booking duration exceeds maximum of {max_minutes} minutes",
                {"max_duration_minutes": max_minutes, "duration_minutes": duration_minutes},
            )

    def _verify_persisted(self, booking_id: str, status: BookingStatus, end_time: datetime | None = None) -> Booking:
        stored = self._store.get(booking_id)
        if stored is None or stored.status != status or (end_time is not None and stored.end_time != end_time):
            self._logger.error(
                "Booking write did not persist",
                extra={
                    "booking_id": booking_id,
                    "status": stored.status.value if stored else None,
                    "expected_status": status.value,
                },
            )
            raise PersistenceVerificationError(
                "Booking update did not persist",
                {"booking_id": booking_id, "expected_status": status.value},
            )
        return stored

    def _reload(self, booking: Booking) -> Booking:
        return self._store.get(booking.id) or booking

    def _describe_conflict(self, booking: Booking, interval: BusyInterval) -> ConflictDetail:
        candidates = self._store.list_bookings(
            BookingQuery(
                room_id=booking.room_id,
                statuses=ACTIVE_STATUSES,
                ends_after=interval.start,
                starts_before=interval.end,
            )
        )
        for other in candidates:
            if other.id == booking.id:
                continue
            if other.start_time < interval.end and other.end_time > interval.start:
                return ConflictDetail(
                    start=interval.start,
                    end=interval.end,
                    booking_id=other.id,
                    title=other.title,
                    organizer=display_name(resolve_host(other, self._users)),
                )
        return ConflictDetail(start=interval.start, end=interval.end)

    def _create_event_effects(
        self,
        booking: Booking,
        room: Room,
        calendar_id: str | None,
        host: User | None,
        description: str | None = None,
        recurrence: tuple[str, ...] = (),
    ) -> list[ExternalEffect]:
        if not calendar_id:
            return []
        attendees = [EventAttendee(email=calendar_id, resource=True)]
        attendees.extend(EventAttendee(email=email) for email in booking.attendee_emails)
        host_label = (host.name or host.email) if host else "N/A"
        draft = EventDraft(
            summary=booking.title,
            start=booking.start_time,
            end=booking.end_time,
            time_zone=room.timezone,
            description=description
            or booking.description
            or f"Booked via Room Booking\nRoom: {room.name}\nHost: {host_label}",
            attendees=tuple(attendees),
            recurrence=recurrence,
        )
        return [
            ExternalEffect(
                kind=EffectKind.create_recurring_event if recurrence else EffectKind.create_event,
                booking_id=booking.id,
                calendar_id=calendar_id,
                draft=draft,
                organizer_email=host.email if host else None,
                private_properties={PRIVATE_BOOKING_ID_KEY: booking.id},
            )
        ]

    def _update_end_effects(self, booking: Booking, room: Room | None, delete_on_failure: bool) -> list[ExternalEffect]:
        if not booking.external_event_id or not booking.external_calendar_id:
            return []
        return [
            ExternalEffect(
                kind=EffectKind.update_event,
                booking_id=booking.id,
                calendar_id=booking.external_calendar_id,
                event_id=booking.external_event_id,
                patch=EventPatch(end=booking.end_time, time_zone=room.timezone if room else "UTC"),
                delete_on_failure=delete_on_failure,
            )
        ]

    def _log(
        self,
        booking_id: str,
        action: ActivityAction,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self._activity_log.append(
            ActivityRecord(
                booking_id=booking_id,
                action=action,
                created_at=self._clock(),
                performed_by_user_id=user_id,
                metadata=dict(metadata or {}),
            )
        )


def _serialize_conflicts(conflicts: list[BusyInterval]) -> list[dict[str, str]]:
    return [{"start": c.start.isoformat(), "end": c.end.isoformat()} for c in conflicts]


def _conflicting_dates_message(conflicting: list[datetime], total: int) -> str:
    shown = ", ".join(c.strftime("%a %b %d, %Y") for c in conflicting[:MAX_LISTED_CONFLICTS])
    remaining = len(conflicting) - MAX_LISTED_CONFLICTS
    if remaining > 0:
        shown = f"{shown} (+{remaining} more)"
    return f"Room is not available on {len(conflicting)} of {total} dates: {shown}"

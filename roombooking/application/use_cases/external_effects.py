from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from roombooking.application.exceptions import ExternalSyncError
from roombooking.application.ports.booking_store import BookingQuery, BookingStorePort
from roombooking.application.ports.calendar import CalendarPort
from roombooking.domain.entities.booking import ACTIVE_STATUSES, Booking
from roombooking.domain.entities.calendar_event import CalendarEvent, EventAttendee, EventDraft, EventPatch

# Private extended property linking a calendar event back to the local booking.
PRIVATE_BOOKING_ID_KEY = "roombooking_booking_id"


class EffectKind(str, Enum):
    create_event = "create_event"
    create_recurring_event = "create_recurring_event"
    update_event = "update_event"
    delete_event = "delete_event"
    delete_instance = "delete_instance"  # one occurrence of a recurring event


@dataclass(frozen=True)
class ExternalEffect:
    """A calendar write owed after a local commit."""

    kind: EffectKind
    booking_id: str
    calendar_id: str
    event_id: str | None = None
    draft: EventDraft | None = None
    patch: EventPatch | None = None
    organizer_email: str | None = None
    private_properties: dict[str, str] = field(default_factory=dict)
    delete_on_failure: bool = False
    original_start: datetime | None = None


@dataclass(frozen=True)
class EffectOutcome:
    effect: ExternalEffect
    ok: bool
    event_id: str | None = None
    fallback_used: bool = False
    error: ExternalSyncError | None = None


class ExternalEffectExecutor:
    """
    Runs calendar side effects after the local state is committed.
    Failures are logged and reported as outcomes, never raised: local state
    stays authoritative and the reconciliation sync catches up later.
    """

    def __init__(self, calendar: CalendarPort, store: BookingStorePort) -> None:
        self._calendar = calendar
        self._store = store
        self._logger = logging.getLogger(__name__)

    def execute(self, effects: list[ExternalEffect]) -> list[EffectOutcome]:
        outcomes: list[EffectOutcome] = []
        for effect in effects:
            try:
                outcomes.append(self._run(effect))
            except Exception as e:
                self._logger.error(
                    "External calendar sync failed (local booking kept)",
                    extra={
                        "booking_id": effect.booking_id,
                        "calendar_id": effect.calendar_id,
                        "event_id": effect.event_id,
                        "effect": effect.kind.value,
                        "error": str(e),
                    },
                )
                error = ExternalSyncError(
                    f"{effect.kind.value} failed: {e}",
                    {"booking_id": effect.booking_id, "calendar_id": effect.calendar_id},
                )
                outcomes.append(EffectOutcome(effect=effect, ok=False, error=error))
        return outcomes

    def _run(self, effect: ExternalEffect) -> EffectOutcome:
        if effect.kind in (EffectKind.create_event, EffectKind.create_recurring_event):
            return self._create(effect)
        if effect.kind == EffectKind.update_event:
            return self._update(effect)
        if effect.kind == EffectKind.delete_event:
            self._calendar.delete_event(effect.calendar_id, _require_event_id(effect))
            self._logger.info(
                "Calendar event deleted",
                extra={"booking_id": effect.booking_id, "event_id": effect.event_id},
            )
            return EffectOutcome(effect=effect, ok=True, event_id=effect.event_id)
        if effect.kind == EffectKind.delete_instance:
            if effect.original_start is None:
                raise ValueError("delete_instance effect without original start")
            self._calendar.delete_instance(effect.calendar_id, _require_event_id(effect), effect.original_start)
            self._logger.info(
                "Calendar occurrence deleted",
                extra={"booking_id": effect.booking_id, "event_id": effect.event_id},
            )
            return EffectOutcome(effect=effect, ok=True, event_id=effect.event_id)
        raise ValueError(f"Unknown effect kind: {effect.kind}")

    def _create(self, effect: ExternalEffect) -> EffectOutcome:
        if effect.draft is None:
            raise ValueError("create effect without event draft")

        private = dict(effect.private_properties)
        event: CalendarEvent | None = None
        organizer_used: str | None = None
        fallback_used = False

        if effect.organizer_email:
            try:
                if effect.kind == EffectKind.create_recurring_event:
                    event, organizer_used = self._calendar.create_recurring_event_as_user(
                        effect.organizer_email, effect.draft, private
                    )
                else:
                    event, organizer_used = self._calendar.create_event_as_user(
                        effect.organizer_email, effect.draft, private
                    )
            except Exception as e:
                self._logger.warning(
                    "Impersonated create failed, falling back to service identity",
                    extra={"booking_id": effect.booking_id, "organizer": effect.organizer_email, "error": str(e)},
                )
                fallback_used = True

        if event is None:
            event = self._calendar.create_event(effect.calendar_id, _with_host_attendee(effect), private)
            organizer_used = event.organizer_email

        booking = self._store.get(effect.booking_id)
        if booking is not None:
            self._store.update(
                replace(
                    booking,
                    external_event_id=event.id,
                    external_calendar_id=effect.calendar_id,
                    # The host stays the organizer locally even when the service identity wrote the event.
                    organizer_email=booking.organizer_email or organizer_used,
                )
            )

        self._logger.info(
            "Calendar event created",
            extra={"booking_id": effect.booking_id, "event_id": event.id, "calendar_id": effect.calendar_id},
        )
        return EffectOutcome(effect=effect, ok=True, event_id=event.id, fallback_used=fallback_used)

    def _update(self, effect: ExternalEffect) -> EffectOutcome:
        event_id = _require_event_id(effect)
        if effect.patch is None:
            raise ValueError("update effect without patch")
        try:
            self._calendar.update_event(effect.calendar_id, event_id, effect.patch)
            return EffectOutcome(effect=effect, ok=True, event_id=event_id)
        except Exception as e:
            if not effect.delete_on_failure:
                raise
            self._logger.warning(
                "Calendar update failed, deleting event instead",
                extra={"booking_id": effect.booking_id, "event_id": event_id, "error": str(e)},
            )
        self._calendar.delete_event(effect.calendar_id, event_id)
        return EffectOutcome(effect=effect, ok=True, event_id=event_id, fallback_used=True)


def _with_host_attendee(effect: ExternalEffect) -> EventDraft:
    """Draft for the service identity: the host was meant to organize, so invite them instead."""
    draft = effect.draft
    host = effect.organizer_email
    if draft is None:
        raise ValueError("create effect without event draft")
    if not host:
        return draft
    if any(a.email.lower() == host.lower() for a in draft.attendees):
        return draft
    return replace(draft, attendees=draft.attendees + (EventAttendee(email=host, response_status="accepted"),))


def _require_event_id(effect: ExternalEffect) -> str:
    if not effect.event_id:
        raise ValueError(f"{effect.kind.value} effect without event id")
    return effect.event_id


def delete_effect(booking_id: str, calendar_id: str | None, event_id: str | None) -> list[ExternalEffect]:
    """Delete effect for a booking mirrored to the calendar, or nothing if it never was."""
    if not calendar_id or not event_id:
        return []
    return [
        ExternalEffect(
            kind=EffectKind.delete_event,
            booking_id=booking_id,
            calendar_id=calendar_id,
            event_id=event_id,
        )
    ]


def release_effects(booking: Booking, store: BookingStorePort) -> list[ExternalEffect]:
    """
    Effects that free a booking's slot in the calendar. Members of a series
    that is still running only drop their own occurrence: occurrences share
    the parent's series event, and the parent's event id covers them all.
    """
    if booking.recurring_parent_id and not booking.external_event_id:
        parent = store.get(booking.recurring_parent_id)
        if parent is None:
            return []
        return _delete_instance_effect(booking, parent.external_calendar_id, parent.external_event_id)

    if booking.is_recurring:
        members = store.list_bookings(BookingQuery(series_id=booking.id, statuses=ACTIVE_STATUSES))
        if any(b.id != booking.id for b in members):
            return _delete_instance_effect(booking, booking.external_calendar_id, booking.external_event_id)

    return delete_effect(booking.id, booking.external_calendar_id, booking.external_event_id)


def _delete_instance_effect(
    booking: Booking,
    calendar_id: str | None,
    series_event_id: str | None,
) -> list[ExternalEffect]:
    if not calendar_id or not series_event_id:
        return []
    return [
        ExternalEffect(
            kind=EffectKind.delete_instance,
            booking_id=booking.id,
            calendar_id=calendar_id,
            event_id=series_event_id,
            original_start=booking.start_time,
        )
    ]

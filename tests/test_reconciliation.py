from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from roombooking.application.dto.booking_requests import CreateBookingRequest, RecurringBookingRequest
from roombooking.application.exceptions import ExternalSyncError, NotFoundError
from roombooking.application.ports.booking_store import BookingQuery
from roombooking.application.use_cases.external_effects import PRIVATE_BOOKING_ID_KEY
from roombooking.application.use_cases.reconciliation import (
    SyncRateLimiter,
    external_status,
    merge_status,
)
from roombooking.domain.entities.booking import (
    Booking,
    BookingSource,
    BookingStatus,
    RecurrenceRule,
    RecurrenceType,
)
from roombooking.domain.entities.calendar_event import CalendarEvent, EventAttendee, EventTime

from conftest import NOW, ROOM_CALENDAR, FixedClock

S = BookingStatus


def _event(event_id, start, minutes=30, **kwargs):
    return CalendarEvent(
        id=event_id,
        start=EventTime(date_time=start),
        end=EventTime(date_time=start + timedelta(minutes=minutes)),
        **kwargs,
    )


def _book(container, start=NOW, minutes=60, host_user_id="u1"):
    return container.lifecycle.create_booking(
        CreateBookingRequest(
            room_id="room-1",
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            host_user_id=host_user_id,
        )
    ).booking


def _room_bookings(container):
    return container.store.list_bookings(BookingQuery(room_id="room-1"))


# ----------------------------------------------------------------------
# Status merge
# ----------------------------------------------------------------------


@pytest.mark.parametrize(
    "local, external, expected",
    [
        (S.ended, S.scheduled, S.ended),
        (S.ended, S.cancelled, S.ended),
        (S.no_show, S.scheduled, S.no_show),
        (S.no_show, S.cancelled, S.no_show),
        (S.cancelled, S.scheduled, S.cancelled),
        (S.cancelled, S.cancelled, S.cancelled),
        (S.in_progress, S.scheduled, S.in_progress),
        (S.in_progress, S.cancelled, S.cancelled),
        (S.scheduled, S.scheduled, S.scheduled),
        (S.scheduled, S.cancelled, S.cancelled),
    ],
)
def test_merge_status(local, external, expected):
    assert merge_status(local, external) == expected


def test_unknown_pair_keeps_local():
    assert merge_status(S.ended, S.in_progress) == S.ended


def test_external_status_only_knows_cancellation():
    assert external_status(_event("e", NOW, status="cancelled")) == S.cancelled
    assert external_status(_event("e", NOW, status="tentative")) == S.scheduled
    assert external_status(_event("e", NOW)) == S.scheduled


def test_rate_limiter():
    clock = FixedClock()
    limiter = SyncRateLimiter(min_interval_seconds=60, clock=clock)

    assert limiter.should_sync("room-1") is True
    limiter.mark_synced("room-1")
    clock.advance(seconds=59)
    assert limiter.should_sync("room-1") is False
    assert limiter.should_sync("room-2") is True
    clock.advance(seconds=1)
    assert limiter.should_sync("room-1") is True

    limiter.mark_synced("room-1")
    limiter.reset("room-1")
    assert limiter.last_synced("room-1") is None


# ----------------------------------------------------------------------
# Import and refresh
# ----------------------------------------------------------------------


def test_imports_event_created_in_calendar_ui(container, calendar):
    calendar.add_event(
        ROOM_CALENDAR,
        _event(
            "ext-1",
            NOW + timedelta(hours=1),
            summary="Standup",
            organizer_email="carol@example.com",
            attendees=(
                EventAttendee(email=ROOM_CALENDAR, resource=True, response_status="accepted"),
                EventAttendee(email="dan@example.com", response_status="accepted"),
                EventAttendee(email="carol@example.com", response_status="accepted"),
            ),
        ),
    )

    result = container.sync.sync_room("room-1")

    assert (result.inserted, result.updated) == (1, 0)
    [booking] = _room_bookings(container)
    assert booking.title == "Standup"
    assert booking.source == BookingSource.external_calendar
    assert booking.external_origin == "calendar_ui"
    assert booking.external_event_id == "ext-1"
    assert booking.external_calendar_id == ROOM_CALENDAR
    assert booking.organizer_email == "carol@example.com"
    assert booking.attendee_emails == ("dan@example.com",)
    assert booking.attendee_response_statuses == {
        "dan@example.com": "accepted",
        "carol@example.com": "accepted",
    }
    assert booking.last_synced_at == NOW


def test_sync_is_idempotent(container, calendar, clock):
    calendar.add_event(ROOM_CALENDAR, _event("ext-1", NOW + timedelta(hours=1), summary="Standup"))

    container.sync.sync_room("room-1")
    clock.advance(minutes=5)
    second = container.sync.sync_room("room-1")

    assert (second.inserted, second.updated) == (0, 1)
    [booking] = _room_bookings(container)
    assert booking.last_synced_at == clock.now


def test_rate_limited_unless_forced(container, clock):
    assert container.sync.sync_room("room-1").skipped_reason is None
    assert container.sync.sync_room("room-1").skipped_reason == "rate_limited"
    assert container.sync.sync_room("room-1", force=True).skipped_reason is None
    clock.advance(seconds=60)
    assert container.sync.sync_room("room-1").skipped_reason is None


def test_local_booking_matched_by_private_link(container, calendar):
    """Bookings this system wrote are refreshed in place, never duplicated."""
    booking = _book(container, start=NOW + timedelta(hours=2))
    event = calendar.get_event(ROOM_CALENDAR, booking.external_event_id)
    moved = replace(
        event,
        summary="Renamed in calendar",
        start=EventTime(date_time=NOW + timedelta(hours=3)),
        end=EventTime(date_time=NOW + timedelta(hours=4)),
    )
    calendar.add_event(ROOM_CALENDAR, moved)

    result = container.sync.sync_room("room-1")

    assert (result.inserted, result.updated) == (0, 1)
    [stored] = _room_bookings(container)
    assert stored.id == booking.id
    assert stored.title == "Renamed in calendar"
    assert stored.start_time == NOW + timedelta(hours=3)
    assert stored.source == BookingSource.web
    assert stored.external_origin is None


def test_ended_and_no_show_survive_sync(container, calendar, clock):
    ended = _book(container)
    clock.advance(minutes=10)
    container.lifecycle.end_booking(ended.id)
    no_show = _book(container, start=NOW + timedelta(hours=2))
    container.store.update(replace(container.store.get(no_show.id), status=S.no_show))
    cancelled_event = replace(calendar.get_event(ROOM_CALENDAR, ended.external_event_id), status="cancelled")
    calendar.add_event(ROOM_CALENDAR, cancelled_event)

    container.sync.sync_room("room-1", force=True)

    assert container.store.get(ended.id).status == S.ended
    assert container.store.get(no_show.id).status == S.no_show


def test_cancelled_stays_cancelled_when_event_reappears(container, calendar):
    booking = _book(container, start=NOW + timedelta(hours=2))
    event = calendar.get_event(ROOM_CALENDAR, booking.external_event_id)
    container.lifecycle.cancel_booking(booking.id)
    calendar.add_event(ROOM_CALENDAR, event)

    result = container.sync.sync_room("room-1", force=True)

    assert result.inserted == 0
    assert container.store.get(booking.id).status == S.cancelled


def test_external_cancellation_applies_to_active_bookings(container, calendar):
    scheduled = _book(container, start=NOW + timedelta(hours=2))
    in_progress = _book(container, start=NOW)
    container.lifecycle.check_in(in_progress.id)
    for booking in (scheduled, in_progress):
        event = calendar.get_event(ROOM_CALENDAR, booking.external_event_id)
        calendar.add_event(ROOM_CALENDAR, replace(event, status="cancelled"))

    container.sync.sync_room("room-1")

    assert container.store.get(scheduled.id).status == S.cancelled
    assert container.store.get(in_progress.id).status == S.cancelled


def test_in_progress_not_reverted_by_confirmed_event(container):
    booking = _book(container)
    container.lifecycle.check_in(booking.id)

    container.sync.sync_room("room-1")

    assert container.store.get(booking.id).status == S.in_progress


def test_all_day_event_spans_utc_day(container, calendar):
    day = date(2026, 3, 3)
    calendar.add_event(
        ROOM_CALENDAR,
        CalendarEvent(id="offsite", start=EventTime(date=day), end=EventTime(date=day), summary="Offsite"),
    )

    container.sync.sync_room("room-1")

    [booking] = _room_bookings(container)
    assert booking.start_time == datetime(2026, 3, 3, 0, 0, tzinfo=timezone.utc)
    assert booking.end_time == datetime(2026, 3, 3, 23, 59, 59, 999000, tzinfo=timezone.utc)


def test_events_without_usable_times_skipped(container, calendar):
    calendar.add_event(ROOM_CALENDAR, _event("zero", NOW + timedelta(hours=1), minutes=0))
    calendar.add_event(ROOM_CALENDAR, CalendarEvent(id="no-times", start=EventTime(), end=EventTime()))

    result = container.sync.sync_room("room-1")

    assert result.inserted == 0
    assert _room_bookings(container) == []


def test_private_link_to_unknown_booking_is_imported_as_linked(container, calendar):
    calendar.add_event(
        ROOM_CALENDAR,
        _event("ext-2", NOW + timedelta(hours=1), private_properties={PRIVATE_BOOKING_ID_KEY: "gone"}),
    )

    container.sync.sync_room("room-1")

    [booking] = _room_bookings(container)
    assert booking.external_origin is None
    assert booking.id != "gone"


def test_recurring_instances_match_series_members(container, calendar):
    series = container.lifecycle.create_recurring_booking(
        RecurringBookingRequest(
            room_id="room-1",
            start_time=NOW,
            end_time=NOW + timedelta(hours=1),
            recurrence_rule=RecurrenceRule(type=RecurrenceType.weekly, days_of_week=(1,)),
            recurrence_end_date=NOW.date() + timedelta(weeks=2),
            host_user_id="u1",
        )
    )
    master_id = series.parent.external_event_id
    link = {PRIVATE_BOOKING_ID_KEY: series.parent.id}
    second, third = series.occurrences
    calendar.add_event(
        ROOM_CALENDAR,
        _event(
            f"{master_id}_2",
            second.start_time,
            minutes=60,
            recurring_event_id=master_id,
            original_start=second.start_time,
            private_properties=link,
        ),
    )
    # Third occurrence moved half an hour later in the calendar.
    calendar.add_event(
        ROOM_CALENDAR,
        _event(
            f"{master_id}_3",
            third.start_time + timedelta(minutes=30),
            minutes=60,
            recurring_event_id=master_id,
            original_start=third.start_time,
            private_properties=link,
        ),
    )

    result = container.sync.sync_room("room-1")

    assert result.inserted == 0
    assert result.updated == 3
    members = {b.id: b for b in container.store.list_bookings(BookingQuery(series_id=series.parent.id))}
    assert len(members) == 3
    assert members[series.parent.id].external_event_id == master_id
    assert members[second.id].external_event_id == f"{master_id}_2"
    assert members[third.id].start_time == third.start_time + timedelta(minutes=30)


def test_row_outside_window_updated_not_duplicated(container, calendar, store):
    old_start = NOW - timedelta(days=3)
    store.insert(
        Booking(
            id="old",
            room_id="room-1",
            start_time=old_start,
            end_time=old_start + timedelta(minutes=30),
            external_event_id="ext-9",
            external_calendar_id=ROOM_CALENDAR,
        )
    )
    calendar.add_event(ROOM_CALENDAR, _event("ext-9", NOW + timedelta(hours=1)))

    result = container.sync.sync_room("room-1")

    assert (result.inserted, result.updated) == (0, 1)
    assert store.get("old").start_time == NOW + timedelta(hours=1)


def test_tombstoned_rows_purged_and_not_reimported(container, calendar, store):
    store.insert(
        Booking(
            id="zombie",
            room_id="room-1",
            start_time=NOW + timedelta(hours=1),
            end_time=NOW + timedelta(hours=2),
            external_event_id="ext-5",
            external_calendar_id=ROOM_CALENDAR,
        )
    )
    store.tombstone_event(ROOM_CALENDAR, "ext-5")
    calendar.add_event(ROOM_CALENDAR, _event("ext-5", NOW + timedelta(hours=1)))

    result = container.sync.sync_room("room-1")

    assert result.purged == 1
    assert result.inserted == 0
    assert _room_bookings(container) == []


# ----------------------------------------------------------------------
# Failures and edge rooms
# ----------------------------------------------------------------------


def test_list_failure_raises_and_does_not_mark_synced(container, calendar):
    calendar.fail("list_events")

    with pytest.raises(ExternalSyncError):
        container.sync.sync_room("room-1")
    assert container.sync.rate_limiter.last_synced("room-1") is None

    calendar.recover()
    assert container.sync.sync_room("room-1").skipped_reason is None


def test_unmanaged_room_is_a_no_op(container):
    result = container.sync.sync_room("room-3")
    assert result.skipped_reason == "unmanaged"
    assert container.sync.rate_limiter.last_synced("room-3") == NOW


def test_unknown_room(container):
    with pytest.raises(NotFoundError):
        container.sync.sync_room("missing")

from __future__ import annotations

from datetime import timedelta

from roombooking.application.dto.booking_requests import CreateBookingRequest, RecurringBookingRequest
from roombooking.application.use_cases.external_effects import EffectKind, ExternalEffectExecutor
from roombooking.application.use_cases.no_show import NoShowScanner
from roombooking.domain.entities.activity import ActivityAction
from roombooking.domain.entities.booking import BookingStatus, RecurrenceRule, RecurrenceType

from conftest import NOW, ROOM_CALENDAR


def _book(container, start, room_id="room-1", host_user_id="u1"):
    return container.lifecycle.create_booking(
        CreateBookingRequest(
            room_id=room_id,
            start_time=start,
            end_time=start + timedelta(minutes=30),
            host_user_id=host_user_id,
        )
    ).booking


def test_grace_boundary(container, calendar, clock):
    """Eleven minutes past start is a no-show; nine minutes past is left alone."""
    late = _book(container, NOW)
    recent = _book(container, NOW + timedelta(minutes=2), room_id="room-2")
    clock.advance(minutes=11)

    result = container.no_show.scan()

    assert result.updated_count == 1
    assert result.grace_minutes == 10
    assert result.booking_ids == [late.id]
    assert container.store.get(late.id).status == BookingStatus.no_show
    assert container.store.get(recent.id).status == BookingStatus.scheduled

    [record] = [r for r in container.activity_log.list_for_booking(late.id) if r.action == ActivityAction.no_show]
    assert record.metadata["grace_minutes"] == 10
    assert late.external_event_id not in {e.id for e in calendar.events(ROOM_CALENDAR)}


def test_checked_in_bookings_are_skipped(container, clock):
    booking = _book(container, NOW)
    container.lifecycle.check_in(booking.id)
    clock.advance(minutes=30)

    assert container.no_show.scan().updated_count == 0
    assert container.store.get(booking.id).status == BookingStatus.in_progress


def test_scan_scoped_to_room(container, clock):
    in_room = _book(container, NOW)
    elsewhere = _book(container, NOW, room_id="room-2")
    clock.advance(minutes=15)

    result = container.no_show.scan(room_id="room-1")

    assert result.booking_ids == [in_room.id]
    assert container.store.get(elsewhere.id).status == BookingStatus.scheduled


def test_custom_grace(container, clock):
    booking = _book(container, NOW)
    clock.advance(minutes=6)

    assert container.no_show.scan(grace_minutes=10).updated_count == 0
    result = container.no_show.scan(grace_minutes=5)
    assert result.booking_ids == [booking.id]
    assert result.grace_minutes == 5


def test_global_scan_limit(container, calendar, clock):
    _book(container, NOW)
    _book(container, NOW, room_id="room-2")
    clock.advance(minutes=20)

    scanner = NoShowScanner(
        store=container.store,
        activity_log=container.activity_log,
        effects=ExternalEffectExecutor(calendar, container.store),
        scan_limit=1,
        clock=clock,
    )
    assert scanner.scan().updated_count == 1
    assert scanner.scan().updated_count == 1
    assert scanner.scan().updated_count == 0


def test_calendar_delete_failure_does_not_stop_scan(container, calendar, clock):
    _book(container, NOW)
    _book(container, NOW, room_id="room-2")
    clock.advance(minutes=20)
    calendar.fail("delete_event")

    result = container.no_show.scan()

    assert result.updated_count == 2
    assert [o.ok for o in result.effects] == [False, False]


def test_no_show_on_series_start_frees_only_that_date(container, calendar, clock):
    series = container.lifecycle.create_recurring_booking(
        RecurringBookingRequest(
            room_id="room-1",
            start_time=NOW,
            end_time=NOW + timedelta(minutes=30),
            recurrence_rule=RecurrenceRule(type=RecurrenceType.weekly, days_of_week=(1,)),
            recurrence_end_date=(NOW + timedelta(weeks=2)).date(),
            host_user_id="u1",
        )
    )
    clock.advance(minutes=11)

    result = container.no_show.scan()

    assert result.booking_ids == [series.parent.id]
    [outcome] = result.effects
    assert outcome.effect.kind == EffectKind.delete_instance
    busy = calendar.check_free_busy([ROOM_CALENDAR], NOW, NOW + timedelta(weeks=3))[ROOM_CALENDAR]
    assert sorted(b.start for b in busy) == [b.start_time for b in series.occurrences]

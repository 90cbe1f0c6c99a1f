from __future__ import annotations

from datetime import datetime, timedelta, timezone

from roombooking.application.use_cases.availability import AvailabilityChecker, resolve_calendar_id
from roombooking.domain.entities.room import Room
from roombooking.infrastructure.calendar.in_memory_calendar import InMemoryCalendar

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def test_calendar_id_preferred_over_resource_id():
    room = Room(id="r", name="R", calendar_id="cal@example.com", resource_id="res@example.com")
    assert resolve_calendar_id(room) == "cal@example.com"


def test_resource_id_used_when_it_looks_like_a_calendar():
    room = Room(id="r", name="R", resource_id="res@example.com")
    assert resolve_calendar_id(room) == "res@example.com"


def test_numeric_resource_id_is_unmanaged():
    """A bare directory number cannot be queried and is treated as no calendar."""
    room = Room(id="r", name="R", resource_id="1234567890")
    assert resolve_calendar_id(room) is None
    assert resolve_calendar_id(Room(id="r", name="R")) is None


def test_no_calendar_is_always_available():
    checker = AvailabilityChecker(InMemoryCalendar())
    result = checker.check_availability(None, START, START + timedelta(hours=1))
    assert result.is_available is True
    assert result.conflicts == []


def test_conflicts_sorted_by_start():
    calendar = InMemoryCalendar()
    calendar.add_busy("cal", START + timedelta(minutes=40), START + timedelta(minutes=50))
    calendar.add_busy("cal", START + timedelta(minutes=10), START + timedelta(minutes=20))
    checker = AvailabilityChecker(calendar)

    result = checker.check_availability("cal", START, START + timedelta(hours=1))

    assert result.is_available is False
    assert [c.start for c in result.conflicts] == [START + timedelta(minutes=10), START + timedelta(minutes=40)]


def test_touching_intervals_do_not_conflict():
    calendar = InMemoryCalendar()
    calendar.add_busy("cal", START - timedelta(hours=1), START)
    checker = AvailabilityChecker(calendar)
    assert checker.check_availability("cal", START, START + timedelta(hours=1)).is_available is True

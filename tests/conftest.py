from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from roombooking.core.config import Settings
from roombooking.domain.entities.room import Room
from roombooking.domain.entities.user import User
from roombooking.infrastructure.calendar.in_memory_calendar import InMemoryCalendar
from roombooking.infrastructure.store.memory_store import (
    MemoryActivityLog,
    MemoryBookingStore,
    MemoryRoomDirectory,
    MemoryUserDirectory,
)
from roombooking.wiring.dependencies import Container, build_container

# Monday
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
ROOM_CALENDAR = "room-1@resource.example.com"


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def calendar() -> InMemoryCalendar:
    return InMemoryCalendar(service_account_email="rooms@example.com")


@pytest.fixture
def store() -> MemoryBookingStore:
    return MemoryBookingStore()


@pytest.fixture
def container(clock: FixedClock, calendar: InMemoryCalendar, store: MemoryBookingStore) -> Container:
    rooms = MemoryRoomDirectory(
        [
            Room(id="room-1", name="Atlas", calendar_id=ROOM_CALENDAR),
            Room(id="room-2", name="Boreal", calendar_id="room-2@resource.example.com", max_booking_duration_minutes=60),
            Room(id="room-3", name="Cove", resource_id="12345"),
            Room(id="room-4", name="Dune", calendar_id="room-4@resource.example.com", allow_walk_up_booking=False),
        ]
    )
    users = MemoryUserDirectory(
        [
            User(id="u1", email="alice@example.com", name="Alice"),
            User(id="u2", email="bob@example.com", name="Bob", status="inactive"),
            User(id="u3", email="carol@example.com", name="Carol"),
        ]
    )
    return build_container(
        config=Settings(_env_file=None),
        store=store,
        activity_log=MemoryActivityLog(),
        rooms=rooms,
        users=users,
        calendar=calendar,
        clock=clock,
    )


@pytest.fixture
def make_container(clock: FixedClock, calendar: InMemoryCalendar, container: Container):
    """Container sharing the default directories, with a custom store or calendar."""

    def factory(store=None, calendar_override=None) -> Container:
        return build_container(
            config=Settings(_env_file=None),
            store=store or MemoryBookingStore(),
            activity_log=MemoryActivityLog(),
            rooms=container.rooms,
            users=container.users,
            calendar=calendar_override or calendar,
            clock=clock,
        )

    return factory

from __future__ import annotations

from roombooking.application.ports.booking_store import ActivityLogPort, BookingQuery, BookingStorePort
from roombooking.application.ports.directory import RoomDirectoryPort, UserDirectoryPort
from roombooking.domain.entities.activity import ActivityRecord
from roombooking.domain.entities.booking import Booking
from roombooking.domain.entities.room import Room
from roombooking.domain.entities.user import User


def matches_query(booking: Booking, query: BookingQuery) -> bool:
    if query.room_id is not None and booking.room_id != query.room_id:
        return False
    if query.statuses is not None and booking.status not in query.statuses:
        return False
    if query.ends_after is not None and booking.end_time < query.ends_after:
        return False
    if query.starts_before is not None and booking.start_time > query.starts_before:
        return False
    if query.checked_in is not None and (booking.check_in_time is not None) != query.checked_in:
        return False
    if query.series_id is not None and booking.series_id != query.series_id:
        return False
    if query.host_user_id is not None and booking.host_user_id != query.host_user_id:
        return False
    if query.reminder_sent is not None and (booking.overdue_reminder_sent_at is not None) != query.reminder_sent:
        return False
    return True


def apply_query(bookings: list[Booking], query: BookingQuery) -> list[Booking]:
    selected = sorted((b for b in bookings if matches_query(b, query)), key=lambda b: (b.start_time, b.id))
    if query.limit is not None:
        selected = selected[: query.limit]
    return selected


class MemoryBookingStore(BookingStorePort):
    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._tombstones: set[tuple[str | None, str]] = set()

    def get(self, booking_id: str) -> Booking | None:
        return self._bookings.get(booking_id)

    def list_bookings(self, query: BookingQuery) -> list[Booking]:
        return apply_query(list(self._bookings.values()), query)

    def insert(self, booking: Booking) -> Booking:
        if booking.id in self._bookings:
            raise KeyError(f"Booking {booking.id} already exists")
        self._bookings[booking.id] = booking
        return booking

    def insert_many(self, bookings: list[Booking]) -> list[Booking]:
        duplicates = [b.id for b in bookings if b.id in self._bookings]
        if duplicates:
            raise KeyError(f"Bookings already exist: {', '.join(duplicates)}")
        for booking in bookings:
            self._bookings[booking.id] = booking
        return list(bookings)

    def update(self, booking: Booking) -> Booking:
        if booking.id not in self._bookings:
            raise KeyError(f"Booking {booking.id} not found")
        self._bookings[booking.id] = booking
        return booking

    def update_many(self, bookings: list[Booking]) -> list[Booking]:
        return [self.update(b) for b in bookings]

    def upsert_many(self, bookings: list[Booking]) -> list[Booking]:
        for booking in bookings:
            self._bookings[booking.id] = booking
        return list(bookings)

    def delete(self, booking_id: str) -> None:
        self._bookings.pop(booking_id, None)

    def find_by_external_event(self, calendar_id: str, event_id: str) -> Booking | None:
        for booking in self._bookings.values():
            if booking.external_event_id == event_id and booking.external_calendar_id in (calendar_id, None):
                return booking
        return None

    def find_by_action_token(self, token: str) -> Booking | None:
        for booking in self._bookings.values():
            if booking.action_token == token:
                return booking
        return None

    def tombstone_event(self, calendar_id: str | None, event_id: str) -> None:
        self._tombstones.add((calendar_id, event_id))

    def list_tombstones(self) -> set[tuple[str | None, str]]:
        return set(self._tombstones)


class MemoryActivityLog(ActivityLogPort):
    def __init__(self) -> None:
        self._records: list[ActivityRecord] = []

    def append(self, record: ActivityRecord) -> None:
        self._records.append(record)

    def list_for_booking(self, booking_id: str) -> list[ActivityRecord]:
        return [r for r in self._records if r.booking_id == booking_id]


class MemoryRoomDirectory(RoomDirectoryPort):
    def __init__(self, rooms: list[Room] | None = None) -> None:
        self._rooms = {room.id: room for room in rooms or []}

    def add(self, room: Room) -> None:
        self._rooms[room.id] = room

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)


class MemoryUserDirectory(UserDirectoryPort):
    def __init__(self, users: list[User] | None = None) -> None:
        self._users = {user.id: user for user in users or []}

    def add(self, user: User) -> None:
        self._users[user.id] = user

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def find_by_email(self, email: str) -> User | None:
        wanted = email.strip().lower()
        for user in self._users.values():
            if user.email.lower() == wanted:
                return user
        return None

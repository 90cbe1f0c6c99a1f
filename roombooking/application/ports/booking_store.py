from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from roombooking.domain.entities.activity import ActivityRecord
from roombooking.domain.entities.booking import Booking, BookingStatus


@dataclass(frozen=True)
class BookingQuery:
    room_id: str | None = None
    statuses: frozenset[BookingStatus] | None = None
    # Overlap window: end_time >= ends_after and start_time <= starts_before
    ends_after: datetime | None = None
    starts_before: datetime | None = None
    checked_in: bool | None = None
    series_id: str | None = None  # parent id; matches the parent and its occurrences
    host_user_id: str | None = None
    reminder_sent: bool | None = None
    limit: int | None = None


class BookingStorePort(ABC):
    @abstractmethod
    def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def list_bookings(self, query: BookingQuery) -> list[Booking]:
        """Matching bookings ordered by start_time ascending."""
        raise NotImplementedError

    @abstractmethod
    def insert(self, booking: Booking) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def insert_many(self, bookings: list[Booking]) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def update(self, booking: Booking) -> Booking:
        """Replace the stored row with the same id. Raises KeyError if missing."""
        raise NotImplementedError

    @abstractmethod
    def update_many(self, bookings: list[Booking]) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def upsert_many(self, bookings: list[Booking]) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def delete(self, booking_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def find_by_external_event(self, calendar_id: str, event_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def find_by_action_token(self, token: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def tombstone_event(self, calendar_id: str | None, event_id: str) -> None:
        """Remember an admin-deleted external event so sync never re-imports it."""
        raise NotImplementedError

    @abstractmethod
    def list_tombstones(self) -> set[tuple[str | None, str]]:
        """(calendar_id, event_id) pairs; calendar_id None matches any calendar."""
        raise NotImplementedError


class ActivityLogPort(ABC):
    @abstractmethod
    def append(self, record: ActivityRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_for_booking(self, booking_id: str) -> list[ActivityRecord]:
        raise NotImplementedError

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from roombooking.application.exceptions import BookingError, NotFoundError
from roombooking.application.ports.booking_store import BookingQuery, BookingStorePort
from roombooking.application.ports.directory import RoomDirectoryPort, UserDirectoryPort
from roombooking.application.use_cases.no_show import NoShowScanner
from roombooking.application.use_cases.reconciliation import ReconciliationSync
from roombooking.application.utils.clock import Clock, utc_now
from roombooking.application.utils.host_resolution import display_name, resolve_host
from roombooking.domain.entities.booking import Booking, BookingStatus

CHECKIN_WINDOW_MINUTES = 10


@dataclass(frozen=True)
class BookingSummary:
    id: str
    title: str
    host_name: str | None
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class RoomStatus:
    room_id: str
    room_name: str
    is_occupied: bool
    ui_state: str  # "busy", "checkin", "free"
    current_booking: BookingSummary | None = None
    next_bookings: list[BookingSummary] = field(default_factory=list)
    available_until: datetime | None = None


class RoomStatusUseCase:
    def __init__(
        self,
        store: BookingStorePort,
        rooms: RoomDirectoryPort,
        users: UserDirectoryPort,
        sync: ReconciliationSync,
        no_show: NoShowScanner,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._rooms = rooms
        self._users = users
        self._sync = sync
        self._no_show = no_show
        self._clock = clock or utc_now
        self._logger = logging.getLogger(__name__)

    def get_room_status(self, room_id: str) -> RoomStatus:
        room = self._rooms.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found", {"room_id": room_id})

        # A stale view beats no view; sync problems only get logged here.
        try:
            self._sync.sync_room(room_id)
        except BookingError as e:
            self._logger.warning("Room sync failed", extra={"room_id": room_id, "error": e.message})

        self._no_show.scan(room_id=room_id)

        now = self._clock()
        current = self._store.list_bookings(
            BookingQuery(room_id=room_id, statuses=frozenset({BookingStatus.in_progress}), limit=1)
        )
        upcoming = self._store.list_bookings(
            BookingQuery(room_id=room_id, statuses=frozenset({BookingStatus.scheduled}), ends_after=now)
        )

        current_booking = current[0] if current else None
        is_occupied = current_booking is not None
        available_until = upcoming[0].start_time if upcoming and not is_occupied else None

        ui_state = "busy" if is_occupied else "free"
        if not is_occupied and upcoming:
            if abs(upcoming[0].start_time - now) <= timedelta(minutes=CHECKIN_WINDOW_MINUTES):
                ui_state = "checkin"

        return RoomStatus(
            room_id=room.id,
            room_name=room.name,
            is_occupied=is_occupied,
            ui_state=ui_state,
            current_booking=self._summarize(current_booking) if current_booking else None,
            next_bookings=[self._summarize(b) for b in upcoming],
            available_until=available_until,
        )

    def _summarize(self, booking: Booking) -> BookingSummary:
        return BookingSummary(
            id=booking.id,
            title=booking.title,
            host_name=display_name(resolve_host(booking, self._users)),
            start_time=booking.start_time,
            end_time=booking.end_time,
        )

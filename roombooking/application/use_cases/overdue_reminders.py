from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, replace
from datetime import timedelta

from roombooking.application.exceptions import (
    BookingValidationError,
    InvalidStateError,
    NotAvailableError,
    NotFoundError,
)
from roombooking.application.ports.booking_store import BookingQuery, BookingStorePort
from roombooking.application.use_cases.booking_lifecycle import BookingLifecycleUseCase, BookingResult
from roombooking.application.utils.clock import Clock, utc_now
from roombooking.domain.entities.booking import Booking, BookingStatus

ACTIONS = ("extend", "release")


@dataclass(frozen=True)
class ReminderTicket:
    booking: Booking
    action_token: str


class OverdueReminderUseCase:
    """
    Finds meetings still running long after their start and hands the host a
    single-use token to either extend or release the room.
    """

    def __init__(
        self,
        store: BookingStorePort,
        lifecycle: BookingLifecycleUseCase,
        grace_minutes: int = 30,
        extend_minutes: int = 30,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._lifecycle = lifecycle
        self._grace = timedelta(minutes=grace_minutes)
        self._extend_minutes = extend_minutes
        self._clock = clock or utc_now
        self._logger = logging.getLogger(__name__)

    def find_overdue_bookings(self, room_id: str | None = None) -> list[Booking]:
        cutoff = self._clock() - self._grace
        candidates = self._store.list_bookings(
            BookingQuery(
                room_id=room_id,
                statuses=frozenset({BookingStatus.in_progress}),
                starts_before=cutoff,
                reminder_sent=False,
            )
        )
        return [b for b in candidates if b.host_user_id]

    def issue_reminder(self, booking_id: str) -> ReminderTicket:
        booking = self._store.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found", {"booking_id": booking_id})
        if booking.status != BookingStatus.in_progress:
            raise InvalidStateError(
                f"Cannot remind about a booking that is {booking.status.value}",
                {"status": booking.status.value},
            )

        token = secrets.token_urlsafe(32)
        now = self._clock()
        stored = self._store.update(
            replace(booking, action_token=token, overdue_reminder_sent_at=now, updated_at=now)
        )
        self._logger.info("Overdue reminder issued", extra={"booking_id": booking_id, "room_id": booking.room_id})
        return ReminderTicket(booking=stored, action_token=token)

    def get_booking_by_action_token(self, token: str) -> Booking:
        booking = self._store.find_by_action_token(token) if token else None
        if booking is None:
            raise NotFoundError("Invalid or expired action link")
        return booking

    def perform_action(self, token: str, action: str) -> BookingResult:
        if action not in ACTIONS:
            raise BookingValidationError(f"Unknown action: {action}", {"allowed": list(ACTIONS)})

        booking = self.get_booking_by_action_token(token)
        if booking.status.is_terminal:
            raise InvalidStateError(
                f"Booking is already {booking.status.value}",
                {"status": booking.status.value},
            )

        if action == "release":
            result = self._lifecycle.end_booking(booking.id, booking.host_user_id)
        else:
            check = self._lifecycle.check_extension(booking.id, self._extend_minutes)
            if not check.can_extend:
                details: dict[str, object] = {"new_end_time": check.new_end_time.isoformat()}
                if check.conflict is not None:
                    details["conflict"] = {
                        "start": check.conflict.start.isoformat(),
                        "end": check.conflict.end.isoformat(),
                        "booking_id": check.conflict.booking_id,
                        "title": check.conflict.title,
                        "organizer": check.conflict.organizer,
                    }
                raise NotAvailableError("Room is booked right after this meeting", details)
            result = self._lifecycle.extend_booking(booking.id, self._extend_minutes, booking.host_user_id)

        # Single use: the link stops working once an action went through.
        current = self._store.get(booking.id) or result.booking
        stored = self._store.update(replace(current, action_token=None))
        self._logger.info("Reminder action performed", extra={"booking_id": booking.id, "action": action})
        return BookingResult(booking=stored, effects=result.effects)

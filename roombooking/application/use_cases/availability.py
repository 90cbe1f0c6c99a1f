from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from roombooking.application.ports.calendar import CalendarPort
from roombooking.domain.entities.calendar_event import BusyInterval
from roombooking.domain.entities.room import Room

_NUMERIC_ID = re.compile(r"^[0-9]+$")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityResult:
    is_available: bool
    conflicts: list[BusyInterval]


class AvailabilityChecker:
    def __init__(self, calendar: CalendarPort) -> None:
        self._calendar = calendar

    def check_availability(
        self,
        calendar_id: str | None,
        start: datetime,
        end: datetime,
    ) -> AvailabilityResult:
        """
        Free/busy check for a single calendar.
        Rooms without a calendar are always available; provider errors propagate.
        """
        if not calendar_id:
            return AvailabilityResult(is_available=True, conflicts=[])

        busy_by_calendar = self._calendar.check_free_busy([calendar_id], start, end)
        busy = sorted(busy_by_calendar.get(calendar_id) or [], key=lambda b: (b.start, b.end))
        return AvailabilityResult(is_available=not busy, conflicts=busy)


def resolve_calendar_id(room: Room) -> str | None:
    """
    Prefer the explicit calendar id. The directory resource id is only usable
    when it already looks like a calendar address; a bare number is the
    directory's internal id and cannot be queried.
    """
    if room.calendar_id:
        return room.calendar_id
    if not room.resource_id:
        return None
    if _NUMERIC_ID.match(room.resource_id):
        logger.warning(
            "Room has numeric resource id and no calendar id; treating as unmanaged",
            extra={"room_id": room.id, "resource_id": room.resource_id},
        )
        return None
    return room.resource_id

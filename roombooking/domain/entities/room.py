from dataclasses import dataclass


@dataclass(frozen=True)
class Room:
    id: str
    name: str
    calendar_id: str | None = None  # external calendar address
    resource_id: str | None = None  # directory resource id, may double as calendar address
    timezone: str = "UTC"
    max_booking_duration_minutes: int | None = None
    allow_walk_up_booking: bool = True

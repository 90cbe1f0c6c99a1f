from __future__ import annotations

from datetime import datetime

from roombooking.domain.entities.booking import Booking, BookingStatus


def normalize_booking_status(booking: Booking, now: datetime) -> str:
    """Display status: in_use, upcoming, completed, cancelled or no_show."""
    if booking.status == BookingStatus.cancelled:
        return "cancelled"
    if booking.status == BookingStatus.no_show:
        return "no_show"
    if booking.status == BookingStatus.ended or booking.end_time <= now:
        return "completed"
    if booking.status == BookingStatus.in_progress:
        return "in_use"
    return "upcoming"


def bucket_bookings(bookings: list[Booking], now: datetime) -> dict[str, list[Booking]]:
    buckets: dict[str, list[Booking]] = {"in_use": [], "upcoming": [], "completed_cancelled": []}
    for booking in bookings:
        status = normalize_booking_status(booking, now)
        if status == "in_use":
            buckets["in_use"].append(booking)
        elif status == "upcoming":
            buckets["upcoming"].append(booking)
        else:
            buckets["completed_cancelled"].append(booking)
    return buckets

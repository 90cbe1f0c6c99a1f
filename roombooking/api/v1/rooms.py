from fastapi import APIRouter, Depends

from roombooking.api.v1.errors import http_error
from roombooking.api.v1.schemas import (
    BookingSchema,
    BookingSummarySchema,
    NoShowScanResponseSchema,
    NoShowScanSchema,
    ReminderSchema,
    RoomBookingsSchema,
    RoomStatusSchema,
    SyncResponseSchema,
)
from roombooking.application.exceptions import BookingError, NotFoundError
from roombooking.application.ports.booking_store import BookingQuery
from roombooking.application.use_cases.room_status import BookingSummary
from roombooking.application.utils.booking_status import bucket_bookings
from roombooking.wiring.dependencies import Container, get_container

router = APIRouter()


def _summary(summary: BookingSummary) -> BookingSummarySchema:
    return BookingSummarySchema(
        id=summary.id,
        title=summary.title,
        host_name=summary.host_name,
        start_time=summary.start_time,
        end_time=summary.end_time,
    )


@router.get("/rooms/{room_id}/status", response_model=RoomStatusSchema)
def get_room_status(room_id: str, container: Container = Depends(get_container)):
    try:
        status = container.room_status.get_room_status(room_id)
    except BookingError as e:
        raise http_error(e)
    return RoomStatusSchema(
        room_id=status.room_id,
        room_name=status.room_name,
        is_occupied=status.is_occupied,
        ui_state=status.ui_state,
        current_booking=_summary(status.current_booking) if status.current_booking else None,
        next_bookings=[_summary(b) for b in status.next_bookings],
        available_until=status.available_until,
    )


@router.get("/rooms/{room_id}/bookings", response_model=RoomBookingsSchema)
def list_room_bookings(room_id: str, container: Container = Depends(get_container)):
    if container.rooms.get_room(room_id) is None:
        raise http_error(NotFoundError("Room not found", {"room_id": room_id}))
    buckets = bucket_bookings(container.store.list_bookings(BookingQuery(room_id=room_id)), container.clock())
    return RoomBookingsSchema(
        **{name: [BookingSchema.from_booking(b) for b in bookings] for name, bookings in buckets.items()}
    )


@router.post("/rooms/{room_id}/sync", response_model=SyncResponseSchema)
def sync_room(room_id: str, force: bool = False, container: Container = Depends(get_container)):
    try:
        result = container.sync.sync_room(room_id, force=force)
    except BookingError as e:
        raise http_error(e)
    return SyncResponseSchema(
        room_id=result.room_id,
        synced=result.synced,
        inserted=result.inserted,
        updated=result.updated,
        purged=result.purged,
        skipped_reason=result.skipped_reason,
    )


@router.post("/admin/no-show-scan", response_model=NoShowScanResponseSchema)
def no_show_scan(req: NoShowScanSchema | None = None, container: Container = Depends(get_container)):
    req = req or NoShowScanSchema()
    if req.room_id and container.rooms.get_room(req.room_id) is None:
        raise http_error(NotFoundError("Room not found", {"room_id": req.room_id}))
    result = container.no_show.scan(room_id=req.room_id, grace_minutes=req.grace_minutes)
    return NoShowScanResponseSchema(
        updated_count=result.updated_count,
        grace_minutes=result.grace_minutes,
        booking_ids=result.booking_ids,
    )


@router.post("/admin/overdue-reminders", response_model=list[ReminderSchema])
def send_overdue_reminders(container: Container = Depends(get_container)):
    # Delivery of the links is left to the caller.
    tickets = []
    for booking in container.reminders.find_overdue_bookings():
        try:
            ticket = container.reminders.issue_reminder(booking.id)
        except BookingError as e:
            raise http_error(e)
        tickets.append(
            ReminderSchema(
                booking_id=ticket.booking.id,
                host_user_id=ticket.booking.host_user_id,
                action_token=ticket.action_token,
            )
        )
    return tickets

from fastapi import APIRouter, Depends, Query

from roombooking.api.v1.errors import http_error
from roombooking.api.v1.schemas import (
    ActionSchema,
    ActorSchema,
    BookingResponseSchema,
    BookingSchema,
    ConflictSchema,
    CreateBookingSchema,
    EffectSchema,
    ExtendSchema,
    ExtensionCheckSchema,
    QuickBookingSchema,
    RecurringBookingSchema,
    SeriesCancelSchema,
    SeriesDetailsSchema,
    SeriesResponseSchema,
)
from roombooking.application.dto.booking_requests import (
    CreateBookingRequest,
    QuickBookingRequest,
    RecurringBookingRequest,
)
from roombooking.application.exceptions import BookingError, NotFoundError
from roombooking.application.use_cases.booking_lifecycle import BookingResult
from roombooking.application.use_cases.external_effects import EffectOutcome
from roombooking.domain.entities.booking import RecurrenceRule
from roombooking.wiring.dependencies import Container, get_container

router = APIRouter()


def _effects(outcomes: list[EffectOutcome]) -> list[EffectSchema]:
    return [
        EffectSchema(
            kind=o.effect.kind.value,
            ok=o.ok,
            event_id=o.event_id,
            fallback_used=o.fallback_used,
            error=o.error.message if o.error else None,
        )
        for o in outcomes
    ]


def _booking_response(result: BookingResult) -> BookingResponseSchema:
    return BookingResponseSchema(booking=BookingSchema.from_booking(result.booking), sync=_effects(result.effects))


@router.post("/bookings", response_model=BookingResponseSchema, status_code=201)
def create_booking(req: CreateBookingSchema, container: Container = Depends(get_container)):
    try:
        result = container.lifecycle.create_booking(
            CreateBookingRequest(
                room_id=req.room_id,
                start_time=req.start_time,
                end_time=req.end_time,
                source=req.source,
                title=req.title,
                description=req.description,
                host_user_id=req.host_user_id,
                attendee_emails=tuple(req.attendee_emails),
            )
        )
    except BookingError as e:
        raise http_error(e)
    return _booking_response(result)


@router.post("/bookings/quick", response_model=BookingResponseSchema, status_code=201)
def create_quick_booking(req: QuickBookingSchema, container: Container = Depends(get_container)):
    try:
        result = container.lifecycle.create_quick_booking(
            QuickBookingRequest(room_id=req.room_id, duration_minutes=req.duration_minutes, source=req.source)
        )
    except BookingError as e:
        raise http_error(e)
    return _booking_response(result)


@router.post("/bookings/recurring", response_model=SeriesResponseSchema, status_code=201)
def create_recurring_booking(req: RecurringBookingSchema, container: Container = Depends(get_container)):
    try:
        result = container.lifecycle.create_recurring_booking(
            RecurringBookingRequest(
                room_id=req.room_id,
                start_time=req.start_time,
                end_time=req.end_time,
                recurrence_rule=RecurrenceRule(
                    type=req.recurrence_rule.type,
                    days_of_week=tuple(req.recurrence_rule.days_of_week),
                    day_of_month=req.recurrence_rule.day_of_month,
                ),
                recurrence_end_date=req.recurrence_end_date,
                source=req.source,
                title=req.title,
                description=req.description,
                host_user_id=req.host_user_id,
                attendee_emails=tuple(req.attendee_emails),
            )
        )
    except BookingError as e:
        raise http_error(e)
    return SeriesResponseSchema(
        parent=BookingSchema.from_booking(result.parent),
        occurrences=[BookingSchema.from_booking(b) for b in result.occurrences],
        sync=_effects(result.effects),
    )


@router.get("/bookings/{booking_id}", response_model=BookingSchema)
def get_booking(booking_id: str, container: Container = Depends(get_container)):
    booking = container.store.get(booking_id)
    if booking is None:
        raise http_error(NotFoundError("Booking not found", {"booking_id": booking_id}))
    return BookingSchema.from_booking(booking)


@router.post("/bookings/{booking_id}/check-in", response_model=BookingResponseSchema)
def check_in(booking_id: str, req: ActorSchema | None = None, container: Container = Depends(get_container)):
    try:
        result = container.lifecycle.check_in(booking_id, req.user_id if req else None)
    except BookingError as e:
        raise http_error(e)
    return _booking_response(result)


@router.post("/bookings/{booking_id}/extend", response_model=BookingResponseSchema)
def extend_booking(booking_id: str, req: ExtendSchema, container: Container = Depends(get_container)):
    try:
        result = container.lifecycle.extend_booking(booking_id, req.additional_minutes, req.user_id)
    except BookingError as e:
        raise http_error(e)
    return _booking_response(result)


@router.get("/bookings/{booking_id}/extension-check", response_model=ExtensionCheckSchema)
def check_extension(
    booking_id: str,
    minutes: int = Query(gt=0),
    container: Container = Depends(get_container),
):
    try:
        check = container.lifecycle.check_extension(booking_id, minutes)
    except BookingError as e:
        raise http_error(e)
    conflict = check.conflict
    return ExtensionCheckSchema(
        can_extend=check.can_extend,
        new_end_time=check.new_end_time,
        conflict=(
            ConflictSchema(
                start=conflict.start,
                end=conflict.end,
                booking_id=conflict.booking_id,
                title=conflict.title,
                organizer=conflict.organizer,
            )
            if conflict
            else None
        ),
    )


@router.post("/bookings/{booking_id}/end", response_model=BookingResponseSchema)
def end_booking(booking_id: str, req: ActorSchema | None = None, container: Container = Depends(get_container)):
    try:
        result = container.lifecycle.end_booking(booking_id, req.user_id if req else None)
    except BookingError as e:
        raise http_error(e)
    return _booking_response(result)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponseSchema)
def cancel_booking(booking_id: str, req: ActorSchema | None = None, container: Container = Depends(get_container)):
    try:
        result = container.lifecycle.cancel_booking(booking_id, req.user_id if req else None)
    except BookingError as e:
        raise http_error(e)
    return _booking_response(result)


@router.delete("/bookings/{booking_id}", response_model=BookingResponseSchema)
def delete_booking(booking_id: str, user_id: str | None = None, container: Container = Depends(get_container)):
    try:
        result = container.lifecycle.delete_booking(booking_id, user_id)
    except BookingError as e:
        raise http_error(e)
    return _booking_response(result)


@router.get("/series/{series_id}", response_model=SeriesDetailsSchema)
def get_series(series_id: str, container: Container = Depends(get_container)):
    try:
        details = container.lifecycle.get_series(series_id)
    except BookingError as e:
        raise http_error(e)
    return SeriesDetailsSchema(
        parent=BookingSchema.from_booking(details.parent),
        occurrences=[BookingSchema.from_booking(b) for b in details.occurrences],
        status_summary=details.status_summary,
        next_occurrence=details.next_occurrence,
    )


@router.post("/series/{series_id}/cancel", response_model=SeriesCancelSchema)
def cancel_series(series_id: str, req: ActorSchema | None = None, container: Container = Depends(get_container)):
    try:
        result = container.lifecycle.cancel_series(series_id, req.user_id if req else None)
    except BookingError as e:
        raise http_error(e)
    return SeriesCancelSchema(
        series_id=result.series_id,
        cancelled_count=result.cancelled_count,
        cancelled_ids=result.cancelled_ids,
        sync=_effects(result.effects),
    )


@router.get("/actions/{token}", response_model=BookingSchema)
def get_action_booking(token: str, container: Container = Depends(get_container)):
    try:
        booking = container.reminders.get_booking_by_action_token(token)
    except BookingError as e:
        raise http_error(e)
    return BookingSchema.from_booking(booking)


@router.post("/actions/{token}", response_model=BookingResponseSchema)
def perform_action(token: str, req: ActionSchema, container: Container = Depends(get_container)):
    try:
        result = container.reminders.perform_action(token, req.action)
    except BookingError as e:
        raise http_error(e)
    return _booking_response(result)

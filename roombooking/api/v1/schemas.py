from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from roombooking.domain.entities.booking import Booking, BookingSource, RecurrenceType


class CreateBookingSchema(BaseModel):
    room_id: str
    start_time: datetime
    end_time: datetime
    source: BookingSource = BookingSource.web
    title: str | None = None
    description: str | None = None
    host_user_id: str | None = None
    attendee_emails: list[str] = Field(default_factory=list)


class QuickBookingSchema(BaseModel):
    room_id: str
    duration_minutes: int
    source: BookingSource = BookingSource.tablet


class RecurrenceRuleSchema(BaseModel):
    type: RecurrenceType
    days_of_week: list[int] = Field(default_factory=list)
    day_of_month: int | None = None


class RecurringBookingSchema(CreateBookingSchema):
    recurrence_rule: RecurrenceRuleSchema
    recurrence_end_date: date


class ActorSchema(BaseModel):
    user_id: str | None = None


class ExtendSchema(ActorSchema):
    additional_minutes: int


class NoShowScanSchema(BaseModel):
    room_id: str | None = None
    grace_minutes: int | None = Field(default=None, ge=0)


class ActionSchema(BaseModel):
    action: Literal["extend", "release"]


class BookingSchema(BaseModel):
    id: str
    room_id: str
    start_time: datetime
    end_time: datetime
    status: str
    title: str
    description: str | None = None
    source: str
    host_user_id: str | None = None
    organizer_email: str | None = None
    attendee_emails: list[str] = Field(default_factory=list)
    external_event_id: str | None = None
    external_calendar_id: str | None = None
    external_origin: str | None = None
    is_recurring: bool = False
    recurring_parent_id: str | None = None
    check_in_time: datetime | None = None
    extension_count: int = 0
    last_synced_at: datetime | None = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingSchema":
        return cls(
            id=booking.id,
            room_id=booking.room_id,
            start_time=booking.start_time,
            end_time=booking.end_time,
            status=booking.status.value,
            title=booking.title,
            description=booking.description,
            source=booking.source.value,
            host_user_id=booking.host_user_id,
            organizer_email=booking.organizer_email,
            attendee_emails=list(booking.attendee_emails),
            external_event_id=booking.external_event_id,
            external_calendar_id=booking.external_calendar_id,
            external_origin=booking.external_origin,
            is_recurring=booking.is_recurring,
            recurring_parent_id=booking.recurring_parent_id,
            check_in_time=booking.check_in_time,
            extension_count=booking.extension_count,
            last_synced_at=booking.last_synced_at,
        )


class EffectSchema(BaseModel):
    kind: str
    ok: bool
    event_id: str | None = None
    fallback_used: bool = False
    error: str | None = None


class BookingResponseSchema(BaseModel):
    booking: BookingSchema
    sync: list[EffectSchema] = Field(default_factory=list)


class SeriesResponseSchema(BaseModel):
    parent: BookingSchema
    occurrences: list[BookingSchema]
    sync: list[EffectSchema] = Field(default_factory=list)


class SeriesDetailsSchema(BaseModel):
    parent: BookingSchema
    occurrences: list[BookingSchema]
    status_summary: dict[str, int]
    next_occurrence: datetime | None = None


class SeriesCancelSchema(BaseModel):
    series_id: str
    cancelled_count: int
    cancelled_ids: list[str]
    sync: list[EffectSchema] = Field(default_factory=list)


class ConflictSchema(BaseModel):
    start: datetime
    end: datetime
    booking_id: str | None = None
    title: str | None = None
    organizer: str | None = None


class ExtensionCheckSchema(BaseModel):
    can_extend: bool
    new_end_time: datetime
    conflict: ConflictSchema | None = None


class NoShowScanResponseSchema(BaseModel):
    updated_count: int
    grace_minutes: int
    booking_ids: list[str]


class SyncResponseSchema(BaseModel):
    room_id: str
    synced: int
    inserted: int
    updated: int
    purged: int
    skipped_reason: str | None = None


class BookingSummarySchema(BaseModel):
    id: str
    title: str
    host_name: str | None = None
    start_time: datetime
    end_time: datetime


class RoomStatusSchema(BaseModel):
    room_id: str
    room_name: str
    is_occupied: bool
    ui_state: str
    current_booking: BookingSummarySchema | None = None
    next_bookings: list[BookingSummarySchema] = Field(default_factory=list)
    available_until: datetime | None = None


class RoomBookingsSchema(BaseModel):
    in_use: list[BookingSchema]
    upcoming: list[BookingSchema]
    completed_cancelled: list[BookingSchema]


class ReminderSchema(BaseModel):
    booking_id: str
    host_user_id: str | None = None
    action_token: str


class ErrorSchema(BaseModel):
    error: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)

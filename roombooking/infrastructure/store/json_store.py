from __future__ import annotations

import json
import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any

from roombooking.application.ports.booking_store import ActivityLogPort, BookingQuery, BookingStorePort
from roombooking.domain.entities.activity import ActivityAction, ActivityRecord
from roombooking.domain.entities.booking import (
    Booking,
    BookingSource,
    BookingStatus,
    RecurrenceRule,
    RecurrenceType,
)
from roombooking.domain.entities.room import Room
from roombooking.domain.entities.user import User
from roombooking.infrastructure.store.memory_store import (
    MemoryRoomDirectory,
    MemoryUserDirectory,
    apply_query,
)

logger = logging.getLogger(__name__)


def _write_atomic(file_path: Path, data: dict[str, Any]) -> None:
    """Save JSON to file_path via a temp file and rename."""
    temp_path = file_path.with_suffix(".json.tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        temp_path.replace(file_path)
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def _read_json(file_path: Path, default: dict[str, Any]) -> dict[str, Any]:
    if not file_path.exists():
        return default
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        logger.error("Corrupted data file", extra={"path": str(file_path), "error": str(e)})
        raise


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def serialize_booking(booking: Booking) -> dict[str, Any]:
    rule = booking.recurrence_rule
    return {
        "id": booking.id,
        "room_id": booking.room_id,
        "start_time": booking.start_time.isoformat(),
        "end_time": booking.end_time.isoformat(),
        "status": booking.status.value,
        "title": booking.title,
        "description": booking.description,
        "source": booking.source.value,
        "host_user_id": booking.host_user_id,
        "organizer_email": booking.organizer_email,
        "attendee_emails": list(booking.attendee_emails),
        "attendee_response_statuses": dict(booking.attendee_response_statuses),
        "external_event_id": booking.external_event_id,
        "external_calendar_id": booking.external_calendar_id,
        "external_origin": booking.external_origin,
        "is_recurring": booking.is_recurring,
        "recurrence_rule": (
            {
                "type": rule.type.value,
                "days_of_week": list(rule.days_of_week),
                "day_of_month": rule.day_of_month,
            }
            if rule
            else None
        ),
        "recurrence_end_date": _iso(booking.recurrence_end_date),
        "recurring_parent_id": booking.recurring_parent_id,
        "check_in_time": _iso(booking.check_in_time),
        "extension_count": booking.extension_count,
        "last_synced_at": _iso(booking.last_synced_at),
        "action_token": booking.action_token,
        "overdue_reminder_sent_at": _iso(booking.overdue_reminder_sent_at),
        "created_at": _iso(booking.created_at),
        "updated_at": _iso(booking.updated_at),
    }


def deserialize_booking(data: dict[str, Any]) -> Booking:
    rule_data = data.get("recurrence_rule")
    rule = None
    if rule_data:
        rule = RecurrenceRule(
            type=RecurrenceType(rule_data["type"]),
            days_of_week=tuple(rule_data.get("days_of_week") or ()),
            day_of_month=rule_data.get("day_of_month"),
        )
    end_date = data.get("recurrence_end_date")
    return Booking(
        id=data["id"],
        room_id=data["room_id"],
        start_time=datetime.fromisoformat(data["start_time"]),
        end_time=datetime.fromisoformat(data["end_time"]),
        status=BookingStatus(data.get("status", "scheduled")),
        title=data.get("title") or "Conference Room Booking",
        description=data.get("description"),
        source=BookingSource(data.get("source", "web")),
        host_user_id=data.get("host_user_id"),
        organizer_email=data.get("organizer_email"),
        attendee_emails=tuple(data.get("attendee_emails") or ()),
        attendee_response_statuses=dict(data.get("attendee_response_statuses") or {}),
        external_event_id=data.get("external_event_id"),
        external_calendar_id=data.get("external_calendar_id"),
        external_origin=data.get("external_origin"),
        is_recurring=data.get("is_recurring", False),
        recurrence_rule=rule,
        recurrence_end_date=date.fromisoformat(end_date) if end_date else None,
        recurring_parent_id=data.get("recurring_parent_id"),
        check_in_time=_parse_datetime(data.get("check_in_time")),
        extension_count=data.get("extension_count", 0),
        last_synced_at=_parse_datetime(data.get("last_synced_at")),
        action_token=data.get("action_token"),
        overdue_reminder_sent_at=_parse_datetime(data.get("overdue_reminder_sent_at")),
        created_at=_parse_datetime(data.get("created_at")),
        updated_at=_parse_datetime(data.get("updated_at")),
    )


class JsonBookingStore(BookingStorePort):
    """Bookings and tombstones in a single JSON document, rewritten atomically on each change."""

    def __init__(self, data_dir: str = "./data/bookings") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._data_dir / "bookings.json"
        self._lock = threading.RLock()

    def _load(self) -> dict[str, Any]:
        data = _read_json(self._file_path, {"bookings": {}, "tombstones": [], "version": 1})
        data.setdefault("bookings", {})
        data.setdefault("tombstones", [])
        data.setdefault("version", 1)
        return data

    def _bookings(self) -> dict[str, Booking]:
        return {key: deserialize_booking(value) for key, value in self._load()["bookings"].items()}

    def get(self, booking_id: str) -> Booking | None:
        with self._lock:
            raw = self._load()["bookings"].get(booking_id)
            return deserialize_booking(raw) if raw else None

    def list_bookings(self, query: BookingQuery) -> list[Booking]:
        with self._lock:
            return apply_query(list(self._bookings().values()), query)

    def insert(self, booking: Booking) -> Booking:
        return self.insert_many([booking])[0]

    def insert_many(self, bookings: list[Booking]) -> list[Booking]:
        with self._lock:
            data = self._load()
            duplicates = [b.id for b in bookings if b.id in data["bookings"]]
            if duplicates:
                raise KeyError(f"Bookings already exist: {', '.join(duplicates)}")
            for booking in bookings:
                data["bookings"][booking.id] = serialize_booking(booking)
            _write_atomic(self._file_path, data)
        return list(bookings)

    def update(self, booking: Booking) -> Booking:
        return self.update_many([booking])[0]

    def update_many(self, bookings: list[Booking]) -> list[Booking]:
        with self._lock:
            data = self._load()
            missing = [b.id for b in bookings if b.id not in data["bookings"]]
            if missing:
                raise KeyError(f"Bookings not found: {', '.join(missing)}")
            for booking in bookings:
                data["bookings"][booking.id] = serialize_booking(booking)
            _write_atomic(self._file_path, data)
        return list(bookings)

    def upsert_many(self, bookings: list[Booking]) -> list[Booking]:
        with self._lock:
            data = self._load()
            for booking in bookings:
                data["bookings"][booking.id] = serialize_booking(booking)
            _write_atomic(self._file_path, data)
        return list(bookings)

    def delete(self, booking_id: str) -> None:
        with self._lock:
            data = self._load()
            if data["bookings"].pop(booking_id, None) is not None:
                _write_atomic(self._file_path, data)

    def find_by_external_event(self, calendar_id: str, event_id: str) -> Booking | None:
        with self._lock:
            for booking in self._bookings().values():
                if booking.external_event_id == event_id and booking.external_calendar_id in (calendar_id, None):
                    return booking
        return None

    def find_by_action_token(self, token: str) -> Booking | None:
        with self._lock:
            for booking in self._bookings().values():
                if booking.action_token == token:
                    return booking
        return None

    def tombstone_event(self, calendar_id: str | None, event_id: str) -> None:
        with self._lock:
            data = self._load()
            entry = {"calendar_id": calendar_id, "event_id": event_id}
            if entry not in data["tombstones"]:
                data["tombstones"].append(entry)
                _write_atomic(self._file_path, data)

    def list_tombstones(self) -> set[tuple[str | None, str]]:
        with self._lock:
            return {(t.get("calendar_id"), t["event_id"]) for t in self._load()["tombstones"]}


class JsonActivityLog(ActivityLogPort):
    def __init__(self, data_dir: str = "./data/bookings") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._data_dir / "activity.json"
        self._lock = threading.Lock()

    def append(self, record: ActivityRecord) -> None:
        with self._lock:
            data = _read_json(self._file_path, {"records": [], "version": 1})
            data.setdefault("records", []).append(
                {
                    "booking_id": record.booking_id,
                    "action": record.action.value,
                    "created_at": record.created_at.isoformat(),
                    "performed_by_user_id": record.performed_by_user_id,
                    "metadata": record.metadata,
                }
            )
            _write_atomic(self._file_path, data)

    def list_for_booking(self, booking_id: str) -> list[ActivityRecord]:
        with self._lock:
            data = _read_json(self._file_path, {"records": [], "version": 1})
        return [
            ActivityRecord(
                booking_id=r["booking_id"],
                action=ActivityAction(r["action"]),
                created_at=datetime.fromisoformat(r["created_at"]),
                performed_by_user_id=r.get("performed_by_user_id"),
                metadata=r.get("metadata") or {},
            )
            for r in data.get("records", [])
            if r["booking_id"] == booking_id
        ]


def load_directory(path: str) -> tuple[MemoryRoomDirectory, MemoryUserDirectory]:
    """Rooms and users from a JSON file shaped like {"rooms": [...], "users": [...]}."""
    data = _read_json(Path(path), {"rooms": [], "users": []})
    rooms = [Room(**room) for room in data.get("rooms", [])]
    users = [User(**user) for user in data.get("users", [])]
    logger.info("Directory loaded", extra={"path": path, "rooms": len(rooms), "users": len(users)})
    return MemoryRoomDirectory(rooms), MemoryUserDirectory(users)

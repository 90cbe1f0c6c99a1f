from __future__ import annotations

import logging
from dataclasses import dataclass

from roombooking.application.ports.booking_store import ActivityLogPort, BookingStorePort
from roombooking.application.ports.calendar import CalendarPort
from roombooking.application.ports.directory import RoomDirectoryPort, UserDirectoryPort
from roombooking.application.use_cases.availability import AvailabilityChecker
from roombooking.application.use_cases.booking_lifecycle import BookingLifecycleUseCase
from roombooking.application.use_cases.external_effects import ExternalEffectExecutor
from roombooking.application.use_cases.no_show import NoShowScanner
from roombooking.application.use_cases.overdue_reminders import OverdueReminderUseCase
from roombooking.application.use_cases.reconciliation import ReconciliationSync, SyncRateLimiter
from roombooking.application.use_cases.room_status import RoomStatusUseCase
from roombooking.application.utils.clock import Clock, utc_now
from roombooking.core.config import Settings, settings
from roombooking.infrastructure.calendar.in_memory_calendar import InMemoryCalendar
from roombooking.infrastructure.store.json_store import JsonActivityLog, JsonBookingStore, load_directory
from roombooking.infrastructure.store.memory_store import (
    MemoryActivityLog,
    MemoryBookingStore,
    MemoryRoomDirectory,
    MemoryUserDirectory,
)

logger = logging.getLogger(__name__)


@dataclass
class Container:
    store: BookingStorePort
    activity_log: ActivityLogPort
    rooms: RoomDirectoryPort
    users: UserDirectoryPort
    calendar: CalendarPort
    lifecycle: BookingLifecycleUseCase
    no_show: NoShowScanner
    sync: ReconciliationSync
    reminders: OverdueReminderUseCase
    room_status: RoomStatusUseCase
    clock: Clock = utc_now


def build_container(
    config: Settings = settings,
    store: BookingStorePort | None = None,
    activity_log: ActivityLogPort | None = None,
    rooms: RoomDirectoryPort | None = None,
    users: UserDirectoryPort | None = None,
    calendar: CalendarPort | None = None,
    clock: Clock = utc_now,
) -> Container:
    if store is None or activity_log is None:
        if config.STORE_PROVIDER.lower() == "json":
            store = store or JsonBookingStore(data_dir=config.DATA_DIR)
            activity_log = activity_log or JsonActivityLog(data_dir=config.DATA_DIR)
        else:
            store = store or MemoryBookingStore()
            activity_log = activity_log or MemoryActivityLog()

    if rooms is None or users is None:
        if config.DIRECTORY_FILE:
            loaded_rooms, loaded_users = load_directory(config.DIRECTORY_FILE)
        else:
            loaded_rooms, loaded_users = MemoryRoomDirectory(), MemoryUserDirectory()
        rooms = rooms or loaded_rooms
        users = users or loaded_users

    calendar = calendar or InMemoryCalendar(service_account_email=config.SERVICE_ACCOUNT_EMAIL)

    effects = ExternalEffectExecutor(calendar=calendar, store=store)
    lifecycle = BookingLifecycleUseCase(
        store=store,
        activity_log=activity_log,
        rooms=rooms,
        users=users,
        availability=AvailabilityChecker(calendar),
        effects=effects,
        default_max_duration_minutes=config.DEFAULT_MAX_BOOKING_DURATION_MINUTES,
        auto_check_in_window_seconds=config.AUTO_CHECK_IN_WINDOW_SECONDS,
        max_extension_minutes=config.MAX_EXTENSION_MINUTES,
        max_occurrences=config.RECURRENCE_MAX_OCCURRENCES,
        clock=clock,
    )
    no_show = NoShowScanner(
        store=store,
        activity_log=activity_log,
        effects=effects,
        grace_minutes=config.NO_SHOW_GRACE_MINUTES,
        scan_limit=config.NO_SHOW_SCAN_LIMIT,
        clock=clock,
    )
    sync = ReconciliationSync(
        store=store,
        rooms=rooms,
        calendar=calendar,
        rate_limiter=SyncRateLimiter(config.SYNC_MIN_INTERVAL_SECONDS, clock=clock),
        window_past_minutes=config.SYNC_WINDOW_PAST_MINUTES,
        window_future_days=config.SYNC_WINDOW_FUTURE_DAYS,
        clock=clock,
    )
    reminders = OverdueReminderUseCase(
        store=store,
        lifecycle=lifecycle,
        grace_minutes=config.OVERDUE_REMINDER_GRACE_MINUTES,
        extend_minutes=config.ACTION_EXTEND_MINUTES,
        clock=clock,
    )
    room_status = RoomStatusUseCase(
        store=store,
        rooms=rooms,
        users=users,
        sync=sync,
        no_show=no_show,
        clock=clock,
    )
    logger.info(
        "Container built",
        extra={"store": type(store).__name__, "calendar": type(calendar).__name__},
    )
    return Container(
        store=store,
        activity_log=activity_log,
        rooms=rooms,
        users=users,
        calendar=calendar,
        lifecycle=lifecycle,
        no_show=no_show,
        sync=sync,
        reminders=reminders,
        room_status=room_status,
        clock=clock,
    )


_container: Container | None = None


def get_container() -> Container:
    global _container
    if _container is None:
        _container = build_container()
    return _container

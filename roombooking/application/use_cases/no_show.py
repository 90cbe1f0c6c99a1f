from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import timedelta

from roombooking.application.ports.booking_store import ActivityLogPort, BookingQuery, BookingStorePort
from roombooking.application.use_cases.external_effects import EffectOutcome, ExternalEffectExecutor, release_effects
from roombooking.application.utils.clock import Clock, utc_now
from roombooking.domain.entities.activity import ActivityAction, ActivityRecord
from roombooking.domain.entities.booking import BookingStatus


@dataclass(frozen=True)
class NoShowScanResult:
    updated_count: int
    grace_minutes: int
    booking_ids: list[str] = field(default_factory=list)
    effects: list[EffectOutcome] = field(default_factory=list)


class NoShowScanner:
    def __init__(
        self,
        store: BookingStorePort,
        activity_log: ActivityLogPort,
        effects: ExternalEffectExecutor,
        grace_minutes: int = 10,
        scan_limit: int = 500,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._activity_log = activity_log
        self._effects = effects
        self._grace_minutes = grace_minutes
        self._scan_limit = scan_limit
        self._clock = clock or utc_now
        self._logger = logging.getLogger(__name__)

    def scan(self, room_id: str | None = None, grace_minutes: int | None = None) -> NoShowScanResult:
        """
        Mark scheduled bookings nobody checked in to as no-shows once the grace
        window after their start has passed. Scoped to one room when room_id is
        given, otherwise global and capped at scan_limit rows per pass.
        """
        grace = self._grace_minutes if grace_minutes is None else grace_minutes
        now = self._clock()
        cutoff = now - timedelta(minutes=grace)

        candidates = self._store.list_bookings(
            BookingQuery(
                room_id=room_id,
                statuses=frozenset({BookingStatus.scheduled}),
                starts_before=cutoff,
                checked_in=False,
                limit=None if room_id else self._scan_limit,
            )
        )
        if not candidates:
            return NoShowScanResult(updated_count=0, grace_minutes=grace)

        updated = self._store.update_many(
            [replace(b, status=BookingStatus.no_show, updated_at=now) for b in candidates]
        )
        outcomes: list[EffectOutcome] = []
        for booking in updated:
            self._activity_log.append(
                ActivityRecord(
                    booking_id=booking.id,
                    action=ActivityAction.no_show,
                    created_at=now,
                    metadata={"grace_minutes": grace, "start_time": booking.start_time.isoformat()},
                )
            )
            # Executor swallows per-row failures so one bad call does not block the batch.
            outcomes.extend(self._effects.execute(release_effects(booking, self._store)))

        self._logger.info(
            "No-show scan complete",
            extra={"room_id": room_id, "updated_count": len(updated), "grace_minutes": grace},
        )
        return NoShowScanResult(
            updated_count=len(updated),
            grace_minutes=grace,
            booking_ids=[b.id for b in updated],
            effects=outcomes,
        )

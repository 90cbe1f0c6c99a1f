from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ActivityAction(str, Enum):
    created = "created"
    checked_in = "checked_in"
    extended = "extended"
    ended_early = "ended_early"
    cancelled = "cancelled"
    no_show = "no_show"
    deleted = "deleted"


@dataclass(frozen=True)
class ActivityRecord:
    booking_id: str
    action: ActivityAction
    created_at: datetime
    performed_by_user_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

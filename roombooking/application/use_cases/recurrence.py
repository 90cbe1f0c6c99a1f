from __future__ import annotations

from datetime import date, datetime, time
from itertools import islice

from dateutil.rrule import FR, MO, MONTHLY, SA, SU, TH, TU, WE, WEEKLY, rrule

from roombooking.application.exceptions import BookingValidationError
from roombooking.domain.entities.booking import RecurrenceRule, RecurrenceType

MAX_OCCURRENCES = 200

_RRULE_DAYS = ("SU", "MO", "TU", "WE", "TH", "FR", "SA")
_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)


def validate_rule(rule: RecurrenceRule) -> None:
    if rule.type == RecurrenceType.weekly:
        if not rule.days_of_week:
            raise BookingValidationError("Weekly recurrence needs at least one weekday")
        if any(day < 0 or day > 6 for day in rule.days_of_week):
            raise BookingValidationError(
                "Weekdays must be between 0 (Sunday) and 6 (Saturday)",
                {"days_of_week": list(rule.days_of_week)},
            )
        return
    if rule.type == RecurrenceType.monthly:
        if rule.day_of_month is None or not 1 <= rule.day_of_month <= 31:
            raise BookingValidationError(
                "Monthly recurrence needs a day of month between 1 and 31",
                {"day_of_month": rule.day_of_month},
            )
        return
    raise BookingValidationError(f"Unsupported recurrence type: {rule.type}")


def sunday_based_weekday(day: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def expand_occurrences(
    first_start: datetime,
    recurrence_end: date,
    rule: RecurrenceRule,
    max_occurrences: int = MAX_OCCURRENCES,
) -> list[datetime]:
    """
    Occurrence start times from first_start through recurrence_end (inclusive).
    Time of day and tzinfo always come from first_start. Never more than
    max_occurrences, and never more than MAX_OCCURRENCES whatever the caller asks.
    """
    validate_rule(rule)
    limit = min(max_occurrences, MAX_OCCURRENCES)
    dates = islice(_date_rule(rule, first_start.date(), recurrence_end), limit)
    time_of_day = first_start.timetz()
    return [datetime.combine(day.date(), time_of_day) for day in dates]


def _date_rule(rule: RecurrenceRule, start: date, end: date) -> rrule:
    # Expanded on naive dates; wall-clock time and zone are applied afterwards.
    dtstart = datetime.combine(start, time.min)
    until = datetime.combine(end, time.max)
    if rule.type == RecurrenceType.weekly:
        days = [_WEEKDAYS[d] for d in sorted(set(rule.days_of_week))]
        return rrule(WEEKLY, dtstart=dtstart, until=until, byweekday=days)

    # Last existing day among 28..day, so short months clip instead of being skipped.
    day = rule.day_of_month or 1
    return rrule(
        MONTHLY,
        dtstart=dtstart,
        until=until,
        bymonthday=tuple(range(min(day, 28), day + 1)),
        bysetpos=-1,
    )


def to_rrule(rule: RecurrenceRule, count: int) -> str:
    """Native calendar recurrence line, bounded by COUNT to match local expansion."""
    if rule.type == RecurrenceType.weekly:
        days = ",".join(_RRULE_DAYS[d] for d in sorted(set(rule.days_of_week)))
        return f"RRULE:FREQ=WEEKLY;BYDAY={days};COUNT={count}"

    day = rule.day_of_month or 1
    if day <= 28:
        return f"RRULE:FREQ=MONTHLY;BYMONTHDAY={day};COUNT={count}"
    # Last existing day among 28..day, so short months clip instead of being skipped.
    candidates = ",".join(str(d) for d in range(28, day + 1))
    return f"RRULE:FREQ=MONTHLY;BYMONTHDAY={candidates};BYSETPOS=-1;COUNT={count}"

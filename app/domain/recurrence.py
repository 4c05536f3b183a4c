"""
Deterministic recurrence predicate for recurring schedules.

Uses date only (no timezone). The same predicate drives every projection
(rolling window, end of month, calendar) and the daily processor, so a date
is "due" in exactly one way everywhere.

Frequencies:
- daily: every day
- weekly: one weekday (Sunday = 0 .. Saturday = 6)
- monthly: one day of month, clamped to the last day of shorter months
- yearly: one month + day of month, clamped the same way (Feb 29 -> Feb 28)
"""
import calendar
from datetime import date, timedelta
from typing import Iterator

from app.domain.recurring_schedule import (
    RecurringSchedule,
    FREQ_DAILY, FREQ_WEEKLY, FREQ_MONTHLY, FREQ_YEARLY,
)


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(d: date, n: int) -> date:
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    last = last_day_of_month(year, month)
    day = min(d.day, last)
    return date(year, month, day)


def sunday_based_weekday(d: date) -> int:
    """Weekday with Sunday = 0, Monday = 1 .. Saturday = 6."""
    return (d.weekday() + 1) % 7


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day in [start, end] (inclusive), ascending."""
    # never computes a date past ``end``
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


def _matches_day_of_month(day_of_month: int, d: date) -> bool:
    last = last_day_of_month(d.year, d.month)
    if day_of_month > last:
        return d.day == last
    return d.day == day_of_month


def occurs_on(schedule: RecurringSchedule, d: date) -> bool:
    """True if the schedule's frequency rule fires on ``d``.

    Pure function of (schedule, date): activity, creation date and
    termination limits are applied by the projector, not here.
    """
    if schedule.frequency == FREQ_DAILY:
        return True
    if schedule.frequency == FREQ_WEEKLY:
        return sunday_based_weekday(d) == schedule.day_of_week
    if schedule.frequency == FREQ_MONTHLY:
        return _matches_day_of_month(schedule.day_of_month, d)
    if schedule.frequency == FREQ_YEARLY:
        if d.month != schedule.target_month:
            return False
        return _matches_day_of_month(schedule.day_of_month, d)
    return False


def count_occurrences(schedule: RecurringSchedule, start: date, end: date) -> int:
    """Number of days in [start, end] (inclusive) the schedule fires on."""
    return sum(1 for d in iter_days(start, end) if occurs_on(schedule, d))

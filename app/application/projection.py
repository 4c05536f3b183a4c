"""
Horizon Projector - walks recurring schedules forward over a date window.

Pure read-layer: no I/O, no mutation. ``today`` is always passed in explicitly.

Termination rules applied on top of the recurrence predicate:
  1. never before the schedule's creation date
  2. never on or before last_processed_date (already materialized)
  3. stop after end_date
  4. stop once the occurrence index exceeds remaining_occurrences. The
     index counts firings from the day after last_processed_date (or from
     the creation date), plus one for the firing materialized on
     last_processed_date itself: that firing is still part of the
     remaining budget until the processor decrements it.
When both end_date and remaining_occurrences are set, both apply.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from app.domain.recurring_schedule import RecurringSchedule
from app.domain.recurrence import occurs_on, count_occurrences, iter_days, last_day_of_month

logger = logging.getLogger(__name__)

DEFAULT_ROLLING_DAYS = 30


@dataclass(frozen=True)
class Occurrence:
    schedule: RecurringSchedule
    date: date
    amount: Decimal


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------

def rolling_window(today: date, days: int = DEFAULT_ROLLING_DAYS) -> tuple[date, date]:
    """[today, today + days] inclusive."""
    return today, today + timedelta(days=days)


def month_end_window(today: date) -> tuple[date, date]:
    """[today, last day of today's month]."""
    return today, today.replace(day=last_day_of_month(today.year, today.month))


def month_view_window(year: int, month: int, today: date) -> tuple[date, date] | None:
    """Projectable part of a displayed month: past days are never projected.

    Returns None when the whole month lies before ``today``.
    """
    month_start = date(year, month, 1)
    month_end = date(year, month, last_day_of_month(year, month))
    if month_end < today:
        return None
    return max(today, month_start), month_end


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

def counting_start(schedule: RecurringSchedule) -> date:
    """First day counted against remaining_occurrences."""
    if schedule.last_processed_date is not None:
        return schedule.last_processed_date + timedelta(days=1)
    return schedule.created_at


def occurrence_index(schedule: RecurringSchedule, d: date) -> int:
    """Position of a firing on ``d`` within the remaining_occurrences budget."""
    processed = 1 if schedule.last_processed_date is not None else 0
    return processed + count_occurrences(schedule, counting_start(schedule), d)


def project(schedule: RecurringSchedule, anchor: date, horizon_end: date) -> list[Occurrence]:
    """Firing dates of one schedule in [anchor, horizon_end], strictly ascending.

    Inactive schedules yield nothing. The occurrence index used for
    remaining_occurrences is tracked incrementally and always equals
    ``occurrence_index(schedule, d)``.
    """
    if not schedule.is_active or anchor > horizon_end:
        return []

    count_from = counting_start(schedule)
    index = 0
    if schedule.remaining_occurrences is not None:
        index = 1 if schedule.last_processed_date is not None else 0
        if anchor > count_from:
            index = occurrence_index(schedule, anchor - timedelta(days=1))

    out: list[Occurrence] = []
    for d in iter_days(anchor, horizon_end):
        fires = occurs_on(schedule, d)
        if fires and d >= count_from:
            index += 1

        if (
            fires
            and d >= schedule.created_at
            and (schedule.last_processed_date is None or d > schedule.last_processed_date)
        ):
            if schedule.end_date is not None and d > schedule.end_date:
                break
            if schedule.remaining_occurrences is not None and index > schedule.remaining_occurrences:
                break
            out.append(Occurrence(schedule=schedule, date=d, amount=schedule.amount))

    logger.debug(
        "Schedule %s: %d occurrence(s) in [%s, %s]",
        schedule.id, len(out), anchor.isoformat(), horizon_end.isoformat(),
    )
    return out


def fires_on(schedule: RecurringSchedule, d: date) -> bool:
    """Single-day projection: would ``d`` produce an occurrence?"""
    return bool(project(schedule, d, d))


def project_all(
    schedules: Iterable[RecurringSchedule],
    anchor: date,
    horizon_end: date,
) -> list[Occurrence]:
    """Occurrences of all active schedules, sorted by date (input order within a day)."""
    out: list[Occurrence] = []
    for schedule in schedules:
        out.extend(project(schedule, anchor, horizon_end))
    out.sort(key=lambda occ: occ.date)
    return out


def next_occurrence(
    schedule: RecurringSchedule,
    today: date,
    lookahead_days: int = 366,
) -> date | None:
    """First projected date on or after ``today``; None if nothing within the lookahead."""
    lookahead_days = min(lookahead_days, (date.max - today).days)
    occurrences = project(schedule, today, today + timedelta(days=lookahead_days))
    if not occurrences:
        return None
    return occurrences[0].date

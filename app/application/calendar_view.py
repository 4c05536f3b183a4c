"""
Calendar Builder - day grid of scheduled firings for the recurring-schedules calendar.

Two modes:
- rolling: 31 consecutive days starting at the anchor (anchor .. anchor + 30)
- month: every day of the anchor's month

Both are padded at the front with blank cells so the first day lands in its
weekday column of a Monday-first week. Days before ``today`` are rendered as
past days and never carry entries.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from app.domain.recurring_schedule import RecurringSchedule, MONTH_NAMES
from app.domain.recurrence import add_months, iter_days, last_day_of_month
from app.application.projection import fires_on, month_view_window, DEFAULT_ROLLING_DAYS

MODE_ROLLING = "rolling"
MODE_MONTH = "month"
VALID_MODES = frozenset({MODE_ROLLING, MODE_MONTH})


@dataclass(frozen=True)
class CalendarEntry:
    schedule: RecurringSchedule
    amount: Decimal
    description: str


@dataclass
class CalendarDay:
    date: date
    is_past: bool
    month_label: str | None = None
    entries: list[CalendarEntry] = field(default_factory=list)

    @property
    def day_number(self) -> int:
        return self.date.day

    @property
    def total(self) -> Decimal:
        return sum((e.amount for e in self.entries), Decimal("0"))


@dataclass
class CalendarGrid:
    mode: str
    label: str
    start: date
    end: date
    cells: list[CalendarDay | None]  # None = blank padding cell


def _month_year(d: date) -> str:
    return f"{MONTH_NAMES[d.month - 1]} {d.year}"


def _short_month(d: date) -> str:
    return MONTH_NAMES[d.month - 1][:3]


def entries_for_day(schedules: Iterable[RecurringSchedule], d: date) -> list[CalendarEntry]:
    return [
        CalendarEntry(schedule=s, amount=s.amount, description=s.display_description)
        for s in schedules
        if fires_on(s, d)
    ]


def _build_cells(
    schedules: list[RecurringSchedule],
    start: date,
    end: date,
    today: date,
    projectable: tuple[date, date] | None,
    with_month_labels: bool,
) -> list[CalendarDay | None]:
    """Grid cells for [start, end]; only days inside ``projectable`` get entries."""
    # Monday = column 0
    cells: list[CalendarDay | None] = [None] * start.weekday()
    last_month = None
    for d in iter_days(start, end):
        month_label = None
        if with_month_labels and d.month != last_month:
            month_label = _short_month(d)
            last_month = d.month
        projected = projectable is not None and projectable[0] <= d <= projectable[1]
        cells.append(CalendarDay(
            date=d,
            is_past=d < today,
            month_label=month_label,
            entries=entries_for_day(schedules, d) if projected else [],
        ))
    return cells


def build_rolling_calendar(
    schedules: Iterable[RecurringSchedule],
    anchor: date,
    today: date,
    days: int = DEFAULT_ROLLING_DAYS,
) -> CalendarGrid:
    schedules = [s for s in schedules if s.is_active]
    end = anchor + timedelta(days=days)
    projectable = (max(today, anchor), end) if end >= today else None
    return CalendarGrid(
        mode=MODE_ROLLING,
        label=f"{_month_year(anchor)} - {_month_year(end)}",
        start=anchor,
        end=end,
        cells=_build_cells(schedules, anchor, end, today, projectable, with_month_labels=True),
    )


def build_month_calendar(
    schedules: Iterable[RecurringSchedule],
    anchor: date,
    today: date,
) -> CalendarGrid:
    schedules = [s for s in schedules if s.is_active]
    start = anchor.replace(day=1)
    end = anchor.replace(day=last_day_of_month(anchor.year, anchor.month))
    return CalendarGrid(
        mode=MODE_MONTH,
        label=_month_year(start),
        start=start,
        end=end,
        cells=_build_cells(
            schedules, start, end, today,
            month_view_window(start.year, start.month, today),
            with_month_labels=False,
        ),
    )


def build_calendar(
    schedules: Iterable[RecurringSchedule],
    mode: str,
    anchor: date,
    today: date,
    days: int = DEFAULT_ROLLING_DAYS,
) -> CalendarGrid:
    if mode == MODE_ROLLING:
        return build_rolling_calendar(schedules, anchor, today, days)
    if mode == MODE_MONTH:
        return build_month_calendar(schedules, anchor, today)
    raise ValueError(f"invalid calendar mode: {mode}")


def shift_anchor(mode: str, anchor: date, step: int, days: int = DEFAULT_ROLLING_DAYS) -> date:
    """Previous / next page of the calendar (step = -1 / +1)."""
    if mode == MODE_ROLLING:
        return anchor + timedelta(days=days * step)
    if mode == MODE_MONTH:
        return add_months(anchor.replace(day=1), step)
    raise ValueError(f"invalid calendar mode: {mode}")

"""
Projection API endpoints - recurring schedule forecasts as JSON
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from app.config import Settings, get_settings, local_today
from app.domain.account import AccountValidationError
from app.domain.recurring_schedule import (
    ScheduleValidationError, format_frequency, format_limit, schedule_to_dict,
)
from app.application.projection import project_all, rolling_window, next_occurrence
from app.application.impact import (
    UpcomingImpact, EndOfMonthProjection,
    calculate_upcoming_impact, calculate_end_of_month_projection,
)
from app.application.calendar_view import (
    CalendarGrid, VALID_MODES, MODE_ROLLING, build_calendar, shift_anchor,
)
from app.application.schedule_processing import process_schedules
from app.application.snapshot import Snapshot, parse_snapshot, load_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/projections", tags=["projections"])

MAX_HORIZON_DAYS = 366


# === Request/Response models ===

class ScheduleIn(BaseModel):
    id: str
    type: str
    frequency: str
    account_id: str
    amount: Any
    created_at: Any
    is_active: bool = True
    day_of_week: int | None = None
    day_of_month: int | None = None
    month: int | None = None
    to_account_id: str | None = None
    category_id: str | None = None
    amount_to: Any = None
    description: str | None = None
    last_processed_date: str | None = None
    remaining_occurrences: int | None = None
    end_date: str | None = None


class AccountIn(BaseModel):
    id: str
    name: str = ""
    type: str
    balance: Any = 0
    currency: str
    exclude_from_net_worth: bool = False
    exclude_from_cash_balance: bool = False


class SnapshotRequest(BaseModel):
    schedules: list[ScheduleIn] = Field(default_factory=list)
    accounts: list[AccountIn] = Field(default_factory=list)
    today: date | None = None  # defaults to the local date in TIMEZONE


class OccurrencesRequest(SnapshotRequest):
    anchor: date | None = None
    horizon_end: date | None = None


class UpcomingRequest(SnapshotRequest):
    days: int | None = Field(default=None, ge=1, le=MAX_HORIZON_DAYS)


class EndOfMonthRequest(SnapshotRequest):
    rates: dict[str, Decimal] | None = None  # currency -> units per one base unit

    @field_validator("rates")
    @classmethod
    def validate_rates(cls, v: dict[str, Decimal] | None) -> dict[str, Decimal] | None:
        if v is None:
            return v
        for currency, rate in v.items():
            if not rate.is_finite() or rate <= 0:
                raise ValueError(f"rate for {currency} must be positive")
        return v


class CalendarRequest(SnapshotRequest):
    mode: str = MODE_ROLLING
    anchor: date | None = None
    step: int = 0  # -1 / +1 pages relative to anchor

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        if v not in VALID_MODES:
            raise ValueError(f"mode must be one of {sorted(VALID_MODES)}")
        return v


class OccurrenceResponse(BaseModel):
    schedule_id: str
    date: date
    amount: str  # Decimal as string
    description: str


class AccountImpactResponse(BaseModel):
    account_id: str
    debits: str
    credits: str
    currency: str


class UpcomingEntryResponse(BaseModel):
    date: date
    description: str
    amount: str
    account_name: str
    schedule_id: str


class UpcomingImpactResponse(BaseModel):
    window_start: date
    window_end: date
    per_account_impact: list[AccountImpactResponse]
    total_expenses: str
    total_income: str
    insufficient_account_ids: list[str]
    next_transactions: list[UpcomingEntryResponse]


class EndOfMonthResponse(BaseModel):
    month_end: date
    currency: str
    projected_cash: str
    projected_net_worth: str
    cash_change: str
    net_worth_change: str


class CalendarEntryResponse(BaseModel):
    schedule_id: str
    amount: str
    description: str


class CalendarCellResponse(BaseModel):
    date: date
    day_number: int
    is_past: bool
    month_label: str | None
    entries: list[CalendarEntryResponse]


class CalendarResponse(BaseModel):
    mode: str
    label: str
    start: date
    end: date
    cells: list[CalendarCellResponse | None]


class ScheduleSummaryResponse(BaseModel):
    schedule_id: str
    frequency_label: str
    limit_label: str | None
    next_date: date | None


class PlannedTransactionResponse(BaseModel):
    id: str
    account_id: str
    amount: str
    description: str
    date: date
    schedule_id: str
    category_id: str | None
    linked_transaction_id: str | None


class ProcessResponse(BaseModel):
    today: date
    transactions: list[PlannedTransactionResponse]
    updated_schedules: list[dict[str, Any]]
    balances: dict[str, str]
    processed_ids: list[str]
    failed_ids: list[str]


class DashboardResponse(BaseModel):
    today: date
    loaded: bool
    upcoming: UpcomingImpactResponse
    end_of_month: EndOfMonthResponse
    calendar: CalendarResponse
    schedules: list[ScheduleSummaryResponse]


# === Helper functions ===

def _snapshot_from_request(req: SnapshotRequest) -> Snapshot:
    """Parse request payload into domain objects (422 on malformed records)"""
    try:
        return parse_snapshot(
            [s.model_dump() for s in req.schedules],
            [a.model_dump() for a in req.accounts],
        )
    except (ScheduleValidationError, AccountValidationError) as e:
        raise HTTPException(status_code=422, detail=str(e))


def _today(req: SnapshotRequest) -> date:
    return req.today or local_today()


def _upcoming_response(result: UpcomingImpact) -> UpcomingImpactResponse:
    return UpcomingImpactResponse(
        window_start=result.window_start,
        window_end=result.window_end,
        per_account_impact=[
            AccountImpactResponse(
                account_id=account_id,
                debits=str(impact.debits),
                credits=str(impact.credits),
                currency=impact.currency,
            )
            for account_id, impact in result.per_account_impact.items()
        ],
        total_expenses=str(result.total_expenses),
        total_income=str(result.total_income),
        insufficient_account_ids=[a.id for a in result.insufficient_accounts],
        next_transactions=[
            UpcomingEntryResponse(
                date=e.date,
                description=e.description,
                amount=str(e.amount),
                account_name=e.account_name,
                schedule_id=e.schedule_id,
            )
            for e in result.next_transactions
        ],
    )


def _end_of_month_response(result: EndOfMonthProjection) -> EndOfMonthResponse:
    return EndOfMonthResponse(
        month_end=result.month_end,
        currency=result.currency,
        projected_cash=str(result.projected_cash),
        projected_net_worth=str(result.projected_net_worth),
        cash_change=str(result.cash_change),
        net_worth_change=str(result.net_worth_change),
    )


def _calendar_response(grid: CalendarGrid) -> CalendarResponse:
    cells: list[CalendarCellResponse | None] = []
    for cell in grid.cells:
        if cell is None:
            cells.append(None)
            continue
        cells.append(CalendarCellResponse(
            date=cell.date,
            day_number=cell.day_number,
            is_past=cell.is_past,
            month_label=cell.month_label,
            entries=[
                CalendarEntryResponse(
                    schedule_id=e.schedule.id,
                    amount=str(e.amount),
                    description=e.description,
                )
                for e in cell.entries
            ],
        ))
    return CalendarResponse(
        mode=grid.mode,
        label=grid.label,
        start=grid.start,
        end=grid.end,
        cells=cells,
    )


def _rates(raw: dict[str, Decimal] | None) -> dict[str, Decimal] | None:
    if raw is None:
        return None
    return {currency.upper(): rate for currency, rate in raw.items()}


# === Endpoints ===

@router.post("/occurrences", response_model=list[OccurrenceResponse])
def list_occurrences(req: OccurrencesRequest, settings: Settings = Depends(get_settings)):
    """Projected firing dates of all active schedules (default: rolling window)"""
    snapshot = _snapshot_from_request(req)
    today = _today(req)
    anchor, horizon_end = rolling_window(today, settings.ROLLING_WINDOW_DAYS)
    anchor = req.anchor or anchor
    horizon_end = req.horizon_end or horizon_end
    if anchor > horizon_end:
        raise HTTPException(status_code=422, detail="anchor must be <= horizon_end")
    if (horizon_end - anchor).days > MAX_HORIZON_DAYS:
        raise HTTPException(status_code=422, detail=f"horizon must not exceed {MAX_HORIZON_DAYS} days")

    return [
        OccurrenceResponse(
            schedule_id=occ.schedule.id,
            date=occ.date,
            amount=str(occ.amount),
            description=occ.schedule.display_description,
        )
        for occ in project_all(snapshot.schedules, anchor, horizon_end)
    ]


@router.post("/upcoming", response_model=UpcomingImpactResponse)
def upcoming_impact(req: UpcomingRequest, settings: Settings = Depends(get_settings)):
    """Per-account impact of the next N days"""
    snapshot = _snapshot_from_request(req)
    result = calculate_upcoming_impact(
        snapshot.schedules, snapshot.accounts, _today(req),
        days=req.days or settings.ROLLING_WINDOW_DAYS,
    )
    return _upcoming_response(result)


@router.post("/end-of-month", response_model=EndOfMonthResponse)
def end_of_month(req: EndOfMonthRequest, settings: Settings = Depends(get_settings)):
    """Projected cash and net worth at the end of the current month"""
    snapshot = _snapshot_from_request(req)
    result = calculate_end_of_month_projection(
        snapshot.schedules, snapshot.accounts, _today(req),
        base_currency=settings.BASE_CURRENCY,
        rates=_rates(req.rates),
    )
    return _end_of_month_response(result)


@router.post("/calendar", response_model=CalendarResponse)
def calendar(req: CalendarRequest, settings: Settings = Depends(get_settings)):
    """Calendar grid (rolling 30 days or a calendar month)"""
    snapshot = _snapshot_from_request(req)
    today = _today(req)
    anchor = req.anchor or today
    try:
        if req.step:
            anchor = shift_anchor(req.mode, anchor, req.step, settings.ROLLING_WINDOW_DAYS)
        grid = build_calendar(snapshot.schedules, req.mode, anchor, today, settings.ROLLING_WINDOW_DAYS)
    except (OverflowError, ValueError):
        raise HTTPException(status_code=422, detail="anchor out of range")
    return _calendar_response(grid)


@router.post("/process", response_model=ProcessResponse)
def process(req: SnapshotRequest):
    """Dry run of the daily processor: what would be materialized today"""
    snapshot = _snapshot_from_request(req)
    run = process_schedules(snapshot.schedules, snapshot.accounts, _today(req))
    return ProcessResponse(
        today=run.today,
        transactions=[
            PlannedTransactionResponse(
                id=tx.id,
                account_id=tx.account_id,
                amount=str(tx.amount),
                description=tx.description,
                date=tx.date,
                schedule_id=tx.schedule_id,
                category_id=tx.category_id,
                linked_transaction_id=tx.linked_transaction_id,
            )
            for tx in run.transactions
        ],
        updated_schedules=[schedule_to_dict(s) for s in run.updated_schedules],
        balances={account_id: str(balance) for account_id, balance in run.balances.items()},
        processed_ids=run.processed_ids,
        failed_ids=run.failed_ids,
    )


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(settings: Settings = Depends(get_settings)):
    """Everything the recurring-schedules panel shows, from the backend snapshot"""
    snapshot = load_snapshot()
    today = local_today()

    upcoming = calculate_upcoming_impact(
        snapshot.schedules, snapshot.accounts, today, days=settings.ROLLING_WINDOW_DAYS,
    )
    eom = calculate_end_of_month_projection(
        snapshot.schedules, snapshot.accounts, today, base_currency=settings.BASE_CURRENCY,
    )
    grid = build_calendar(snapshot.schedules, MODE_ROLLING, today, today, settings.ROLLING_WINDOW_DAYS)

    return DashboardResponse(
        today=today,
        loaded=snapshot.loaded,
        upcoming=_upcoming_response(upcoming),
        end_of_month=_end_of_month_response(eom),
        calendar=_calendar_response(grid),
        schedules=[
            ScheduleSummaryResponse(
                schedule_id=s.id,
                frequency_label=format_frequency(s),
                limit_label=format_limit(s),
                next_date=next_occurrence(s, today),
            )
            for s in snapshot.schedules
        ],
    )

"""
RecurringSchedule domain entity.

A schedule is an immutable snapshot of what the backend stores: it describes
when a transaction (or a transfer between two accounts) repeats and how the
repetition ends. The projection engine never mutates a schedule; the daily
processor derives updated copies with ``dataclasses.replace``.

Wire format (as returned by ``GET /recurring-schedules``):
- day_of_week: 0..6, Sunday = 0 (weekly only)
- day_of_month: 1..31, clamped to the month end (monthly / yearly)
- month: 0..11 (yearly only, defaults to the creation month)
- created_at: epoch milliseconds or ISO string
- last_processed_date / end_date: 'YYYY-MM-DD'
"""
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict
from zoneinfo import ZoneInfo

from app.utils.validation import parse_amount, parse_iso_date


TYPE_TRANSACTION = "transaction"
TYPE_TRANSFER = "transfer"
VALID_TYPES = frozenset({TYPE_TRANSACTION, TYPE_TRANSFER})

FREQ_DAILY = "daily"
FREQ_WEEKLY = "weekly"
FREQ_MONTHLY = "monthly"
FREQ_YEARLY = "yearly"
VALID_FREQ = frozenset({FREQ_DAILY, FREQ_WEEKLY, FREQ_MONTHLY, FREQ_YEARLY})

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class ScheduleValidationError(ValueError):
    pass


@dataclass(frozen=True)
class RecurringSchedule:
    id: str
    type: str  # transaction | transfer
    frequency: str  # daily | weekly | monthly | yearly
    account_id: str
    amount: Decimal  # negative = debit from account_id
    created_at: date
    is_active: bool = True
    day_of_week: int | None = None  # weekly only, Sunday = 0
    day_of_month: int | None = None  # monthly / yearly, 1..31
    month: int | None = None  # yearly only, 0..11
    to_account_id: str | None = None  # transfer only
    category_id: str | None = None  # transaction only
    amount_to: Decimal | None = None  # transfer only, destination currency
    description: str | None = None
    last_processed_date: date | None = None
    remaining_occurrences: int | None = None
    end_date: date | None = None

    @property
    def is_transfer(self) -> bool:
        return self.type == TYPE_TRANSFER

    @property
    def target_month(self) -> int:
        """Calendar month (1..12) a yearly schedule fires in."""
        if self.month is not None:
            return self.month + 1
        return self.created_at.month

    @property
    def transfer_amount_to(self) -> Decimal:
        """Amount credited to the destination account of a transfer (always positive)."""
        if self.amount_to:
            return abs(self.amount_to)
        return abs(self.amount)

    @property
    def display_description(self) -> str:
        if self.description:
            return self.description
        return "Transfer" if self.is_transfer else "Transaction"


def validate_schedule(schedule: RecurringSchedule) -> None:
    """Check the invariants the backend enforces on create/update.

    Raises:
        ScheduleValidationError: on the first violated rule
    """
    if schedule.type not in VALID_TYPES:
        raise ScheduleValidationError(f"Invalid type: {schedule.type}")
    if schedule.frequency not in VALID_FREQ:
        raise ScheduleValidationError(f"Invalid frequency: {schedule.frequency}")

    if schedule.frequency == FREQ_WEEKLY:
        if schedule.day_of_week is None or not 0 <= schedule.day_of_week <= 6:
            raise ScheduleValidationError("day_of_week must be between 0-6 for weekly frequency")
    elif schedule.day_of_week is not None:
        raise ScheduleValidationError("day_of_week is only allowed for weekly frequency")

    if schedule.frequency in (FREQ_MONTHLY, FREQ_YEARLY):
        if schedule.day_of_month is None or not 1 <= schedule.day_of_month <= 31:
            raise ScheduleValidationError(
                f"day_of_month must be between 1-31 for {schedule.frequency} frequency"
            )
    elif schedule.day_of_month is not None:
        raise ScheduleValidationError("day_of_month is only allowed for monthly and yearly frequency")

    if schedule.frequency == FREQ_YEARLY:
        if schedule.month is not None and not 0 <= schedule.month <= 11:
            raise ScheduleValidationError("month must be between 0-11 for yearly frequency")
    elif schedule.month is not None:
        raise ScheduleValidationError("month is only allowed for yearly frequency")

    if not schedule.account_id:
        raise ScheduleValidationError("account_id is required")
    if schedule.amount == 0:
        raise ScheduleValidationError("amount must not be zero")

    if schedule.type == TYPE_TRANSACTION:
        if not schedule.category_id:
            raise ScheduleValidationError("category_id is required for transaction type")
        if schedule.to_account_id is not None:
            raise ScheduleValidationError("to_account_id is only allowed for transfer type")
    else:
        if not schedule.to_account_id:
            raise ScheduleValidationError("to_account_id is required for transfer type")
        if schedule.to_account_id == schedule.account_id:
            raise ScheduleValidationError("Cannot transfer to same account")

    if schedule.remaining_occurrences is not None and schedule.remaining_occurrences < 0:
        raise ScheduleValidationError("remaining_occurrences must be >= 0")


def parse_created_at(value: Any, tz: ZoneInfo) -> date:
    """Creation timestamp → local calendar date.

    Numbers are epoch milliseconds; strings are ISO dates or datetimes.
    """
    if isinstance(value, bool):
        raise ScheduleValidationError(f"Invalid created_at: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).astimezone(tz).date()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        if len(raw) == 10:
            return date.fromisoformat(raw)
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            return parsed.date()
        return parsed.astimezone(tz).date()
    raise ScheduleValidationError(f"Invalid created_at: {value!r}")


def _optional_int(row: Dict[str, Any], key: str) -> int | None:
    value = row.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ScheduleValidationError(f"{key} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ScheduleValidationError(f"{key} must be an integer") from e


def schedule_from_dict(row: Dict[str, Any], tz: ZoneInfo) -> RecurringSchedule:
    """Build a validated RecurringSchedule from a backend JSON record.

    Fields that do not apply to the record's frequency or type are ignored:
    the backend keeps them around after a schedule is edited.

    Raises:
        ScheduleValidationError: if the record is malformed
    """
    try:
        frequency = row["frequency"]
        is_transfer = row["type"] == TYPE_TRANSFER
        amount = parse_amount(row["amount"])
        amount_to = parse_amount(row["amount_to"]) if row.get("amount_to") is not None else None
        last_processed = parse_iso_date(row.get("last_processed_date"))
        end_date = parse_iso_date(row.get("end_date"))
        schedule = RecurringSchedule(
            id=str(row["id"]),
            type=row["type"],
            frequency=frequency,
            account_id=str(row["account_id"]),
            amount=amount,
            created_at=parse_created_at(row["created_at"], tz),
            is_active=bool(row.get("is_active", True)),
            day_of_week=_optional_int(row, "day_of_week") if frequency == FREQ_WEEKLY else None,
            day_of_month=(
                _optional_int(row, "day_of_month") if frequency in (FREQ_MONTHLY, FREQ_YEARLY) else None
            ),
            month=_optional_int(row, "month") if frequency == FREQ_YEARLY else None,
            to_account_id=str(row["to_account_id"]) if is_transfer and row.get("to_account_id") else None,
            category_id=str(row["category_id"]) if row.get("category_id") else None,
            amount_to=amount_to,
            description=row.get("description") or None,
            last_processed_date=last_processed,
            remaining_occurrences=_optional_int(row, "remaining_occurrences"),
            end_date=end_date,
        )
    except KeyError as e:
        raise ScheduleValidationError(f"Missing field: {e.args[0]}") from e
    except ScheduleValidationError:
        raise
    except ValueError as e:
        raise ScheduleValidationError(str(e)) from e

    validate_schedule(schedule)
    return schedule


def schedule_to_dict(schedule: RecurringSchedule) -> Dict[str, Any]:
    """Serialize back to the wire format (dates as ISO strings, amounts as strings)."""
    return {
        "id": schedule.id,
        "type": schedule.type,
        "frequency": schedule.frequency,
        "day_of_week": schedule.day_of_week,
        "day_of_month": schedule.day_of_month,
        "month": schedule.month,
        "account_id": schedule.account_id,
        "to_account_id": schedule.to_account_id,
        "category_id": schedule.category_id,
        "amount": str(schedule.amount),
        "amount_to": str(schedule.amount_to) if schedule.amount_to is not None else None,
        "description": schedule.description,
        "is_active": schedule.is_active,
        "created_at": schedule.created_at.isoformat(),
        "last_processed_date": (
            schedule.last_processed_date.isoformat() if schedule.last_processed_date else None
        ),
        "remaining_occurrences": schedule.remaining_occurrences,
        "end_date": schedule.end_date.isoformat() if schedule.end_date else None,
    }


def format_frequency(schedule: RecurringSchedule) -> str:
    """Human-readable frequency, e.g. 'Weekly on Monday' or 'Yearly on February 29'."""
    if schedule.frequency == FREQ_DAILY:
        return "Daily"
    if schedule.frequency == FREQ_WEEKLY:
        day = WEEKDAY_NAMES[schedule.day_of_week] if schedule.day_of_week is not None else "Unknown"
        return f"Weekly on {day}"
    if schedule.frequency == FREQ_MONTHLY:
        return f"Monthly on day {schedule.day_of_month}"
    if schedule.frequency == FREQ_YEARLY:
        return f"Yearly on {MONTH_NAMES[schedule.target_month - 1]} {schedule.day_of_month}"
    return schedule.frequency


def format_limit(schedule: RecurringSchedule) -> str | None:
    """Termination summary shown next to the frequency."""
    parts = []
    if schedule.remaining_occurrences is not None:
        parts.append(f"{schedule.remaining_occurrences} remaining")
    if schedule.end_date is not None:
        parts.append(f"until {schedule.end_date.isoformat()}")
    return ", ".join(parts) or None

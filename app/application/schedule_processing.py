"""
Daily schedule processor - decides which transactions the backend materializes today.

Runs once per calendar day. A schedule is processed on ``today`` exactly when
the projector would show an occurrence on ``today``, so projected and actual
firings cannot drift apart.

The processor is pure: it returns the transactions to create, the updated
schedules and the new account balances; writing them is the caller's job.

Schedule update after a firing:
- last_processed_date = today
- remaining_occurrences keeps counting the firing on last_processed_date
  (see app.application.projection), so it is decremented only when an
  earlier firing drops out of the budget, i.e. when the schedule had
  already been processed before
- is_active = False once no firing is left in the budget or end_date is reached
"""
import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable

from app.domain.account import Account
from app.domain.recurring_schedule import RecurringSchedule, TYPE_TRANSACTION, TYPE_TRANSFER
from app.application.projection import fires_on
from app.utils.money import format_money, format_rate

logger = logging.getLogger(__name__)


class ScheduleProcessingError(ValueError):
    pass


@dataclass(frozen=True)
class PlannedTransaction:
    id: str
    account_id: str
    amount: Decimal
    description: str
    date: date
    schedule_id: str
    category_id: str | None = None
    linked_transaction_id: str | None = None


@dataclass
class ProcessingRun:
    today: date
    transactions: list[PlannedTransaction] = field(default_factory=list)
    updated_schedules: list[RecurringSchedule] = field(default_factory=list)
    balances: dict[str, Decimal] = field(default_factory=dict)
    processed_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)


def _new_id() -> str:
    return str(uuid.uuid4())


def advance_schedule(schedule: RecurringSchedule, today: date) -> RecurringSchedule:
    """Schedule state after it fired on ``today``."""
    remaining = schedule.remaining_occurrences
    if remaining is not None and schedule.last_processed_date is not None:
        remaining = max(remaining - 1, 0)
    exhausted = (
        # nothing left in the budget besides today's firing
        (remaining is not None and remaining <= 1)
        or (schedule.end_date is not None and schedule.end_date <= today)
    )
    return dataclasses.replace(
        schedule,
        last_processed_date=today,
        remaining_occurrences=remaining,
        is_active=schedule.is_active and not exhausted,
    )


def build_transactions(
    schedule: RecurringSchedule,
    accounts_by_id: dict[str, Account],
    today: date,
    new_id: Callable[[], str] = _new_id,
) -> list[PlannedTransaction]:
    """Transactions one firing of ``schedule`` creates.

    Raises:
        ScheduleProcessingError: if a referenced account does not exist
    """
    if schedule.type == TYPE_TRANSACTION:
        if schedule.account_id not in accounts_by_id:
            raise ScheduleProcessingError(
                f"Account {schedule.account_id} not found for recurring schedule {schedule.id}"
            )
        return [PlannedTransaction(
            id=new_id(),
            account_id=schedule.account_id,
            amount=schedule.amount,
            description=schedule.description or "",
            date=today,
            schedule_id=schedule.id,
            category_id=schedule.category_id,
        )]

    if schedule.type != TYPE_TRANSFER:
        raise ScheduleProcessingError(f"Unknown schedule type: {schedule.type}")

    source = accounts_by_id.get(schedule.account_id)
    destination = accounts_by_id.get(schedule.to_account_id)
    if source is None or destination is None:
        raise ScheduleProcessingError(f"Account(s) not found for recurring transfer {schedule.id}")

    amount_from = abs(schedule.amount)
    amount_to = schedule.transfer_amount_to

    outgoing_desc = f"Transfer to {destination.name}"
    incoming_desc = f"Transfer from {source.name}"
    if source.currency != destination.currency and schedule.amount_to:
        rate = format_rate(amount_to / amount_from)
        outgoing_desc += f" ({format_money(amount_to, destination.currency)} @ {rate})"
        incoming_desc += f" ({format_money(amount_from, source.currency)} @ {rate})"
    if schedule.description:
        outgoing_desc += f" - {schedule.description}"
        incoming_desc += f" - {schedule.description}"

    outgoing_id = new_id()
    incoming_id = new_id()
    return [
        PlannedTransaction(
            id=outgoing_id,
            account_id=source.id,
            amount=-amount_from,
            description=outgoing_desc,
            date=today,
            schedule_id=schedule.id,
            linked_transaction_id=incoming_id,
        ),
        PlannedTransaction(
            id=incoming_id,
            account_id=destination.id,
            amount=amount_to,
            description=incoming_desc,
            date=today,
            schedule_id=schedule.id,
            linked_transaction_id=outgoing_id,
        ),
    ]


def process_schedules(
    schedules: Iterable[RecurringSchedule],
    accounts: Iterable[Account],
    today: date,
    new_id: Callable[[], str] = _new_id,
) -> ProcessingRun:
    """Process every schedule due on ``today``.

    Running twice for the same day is a no-op the second time, as long as
    the updated schedules from the first run were stored.
    """
    accounts_by_id = {a.id: a for a in accounts}
    run = ProcessingRun(today=today, balances={a.id: a.balance for a in accounts_by_id.values()})

    for schedule in schedules:
        if not fires_on(schedule, today):
            continue
        try:
            transactions = build_transactions(schedule, accounts_by_id, today, new_id)
        except ScheduleProcessingError:
            logger.exception("Failed to process recurring schedule %s", schedule.id)
            run.failed_ids.append(schedule.id)
            continue

        for tx in transactions:
            run.balances[tx.account_id] += tx.amount
        run.transactions.extend(transactions)
        run.updated_schedules.append(advance_schedule(schedule, today))
        run.processed_ids.append(schedule.id)
        logger.info("Processed recurring schedule %s for %s", schedule.id, today.isoformat())

    return run

"""
Impact Aggregator - rolls projected occurrences up into account and portfolio summaries.

Two views:
- upcoming impact over the rolling window (per-account debits/credits,
  headline expense/income totals, insufficient-balance warnings, a flat
  "coming up" list)
- end-of-month projection of total cash and net worth

Transfers move money between accounts: they never count toward
total_expenses / total_income.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping

from app.domain.account import Account
from app.domain.recurring_schedule import RecurringSchedule, TYPE_TRANSACTION, TYPE_TRANSFER
from app.application.projection import (
    Occurrence, project_all, rolling_window, month_end_window, DEFAULT_ROLLING_DAYS,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class AccountImpact:
    debits: Decimal = ZERO
    credits: Decimal = ZERO
    currency: str = ""

    @property
    def net(self) -> Decimal:
        return self.credits - self.debits


@dataclass(frozen=True)
class UpcomingEntry:
    date: date
    description: str
    amount: Decimal  # signed
    account_name: str
    schedule_id: str


@dataclass
class UpcomingImpact:
    window_start: date
    window_end: date
    per_account_impact: dict[str, AccountImpact] = field(default_factory=dict)
    total_expenses: Decimal = ZERO
    total_income: Decimal = ZERO
    insufficient_accounts: list[Account] = field(default_factory=list)
    next_transactions: list[UpcomingEntry] = field(default_factory=list)


@dataclass(frozen=True)
class EndOfMonthProjection:
    month_end: date
    currency: str
    current_cash: Decimal
    current_net_worth: Decimal
    cash_change: Decimal
    net_worth_change: Decimal

    @property
    def projected_cash(self) -> Decimal:
        return self.current_cash + self.cash_change

    @property
    def projected_net_worth(self) -> Decimal:
        return self.current_net_worth + self.net_worth_change


# ---------------------------------------------------------------------------
# Currency conversion
# ---------------------------------------------------------------------------

def convert_to_base(
    amount: Decimal,
    currency: str,
    rates: Mapping[str, Decimal] | None,
    base_currency: str | None = None,
) -> Decimal:
    """Convert ``amount`` into the base currency.

    ``rates`` maps a currency to how many units of it one base unit buys,
    so conversion divides. No table means no conversion; a missing rate
    leaves the amount as is. Amounts already in ``base_currency`` are
    never converted.
    """
    if rates is None or currency == base_currency:
        return amount
    rate = rates.get(currency)
    if not rate:
        logger.warning("Exchange rate not available for %s, using original value", currency)
        return amount
    return amount / Decimal(rate)


# ---------------------------------------------------------------------------
# Upcoming impact (rolling window)
# ---------------------------------------------------------------------------

def aggregate_occurrences(
    occurrences: Iterable[Occurrence],
    accounts: Iterable[Account],
    window_start: date,
    window_end: date,
) -> UpcomingImpact:
    """Reduce occurrences of any window into an UpcomingImpact."""
    accounts_by_id = {a.id: a for a in accounts}
    result = UpcomingImpact(
        window_start=window_start,
        window_end=window_end,
        per_account_impact={a.id: AccountImpact(currency=a.currency) for a in accounts_by_id.values()},
    )
    impact = result.per_account_impact

    for occ in occurrences:
        schedule = occ.schedule
        if schedule.type == TYPE_TRANSACTION:
            account = accounts_by_id.get(schedule.account_id)
            if account is None:
                logger.warning("Schedule %s references unknown account %s", schedule.id, schedule.account_id)
                continue
            if occ.amount < 0:
                impact[account.id].debits += abs(occ.amount)
                result.total_expenses += abs(occ.amount)
            else:
                impact[account.id].credits += occ.amount
                result.total_income += occ.amount
            result.next_transactions.append(UpcomingEntry(
                date=occ.date,
                description=schedule.description or "Recurring transaction",
                amount=occ.amount,
                account_name=account.name,
                schedule_id=schedule.id,
            ))
        elif schedule.type == TYPE_TRANSFER:
            source = accounts_by_id.get(schedule.account_id)
            destination = accounts_by_id.get(schedule.to_account_id)
            if source is None or destination is None:
                logger.warning(
                    "Transfer schedule %s references unknown account(s) %s -> %s",
                    schedule.id, schedule.account_id, schedule.to_account_id,
                )
                continue
            impact[source.id].debits += abs(occ.amount)
            impact[destination.id].credits += schedule.transfer_amount_to
            result.next_transactions.append(UpcomingEntry(
                date=occ.date,
                description=f"{schedule.description or 'Transfer'} ({source.name})",
                amount=-abs(occ.amount),
                account_name=source.name,
                schedule_id=schedule.id,
            ))

    # stable: same-day entries keep schedule order
    result.next_transactions.sort(key=lambda e: e.date)
    result.insufficient_accounts = find_insufficient_accounts(accounts_by_id.values(), impact)
    return result


def find_insufficient_accounts(
    accounts: Iterable[Account],
    impact: Mapping[str, AccountImpact],
) -> list[Account]:
    """Cash accounts whose balance would drop below zero. A warning, not an error."""
    out = []
    for account in accounts:
        if not account.is_cash or account.id not in impact:
            continue
        acc_impact = impact[account.id]
        if account.balance - acc_impact.debits + acc_impact.credits < 0:
            out.append(account)
    return out


def calculate_upcoming_impact(
    schedules: Iterable[RecurringSchedule],
    accounts: Iterable[Account],
    today: date,
    days: int = DEFAULT_ROLLING_DAYS,
) -> UpcomingImpact:
    """Impact of every active schedule over [today, today + days]."""
    window_start, window_end = rolling_window(today, days)
    occurrences = project_all(schedules, window_start, window_end)
    return aggregate_occurrences(occurrences, list(accounts), window_start, window_end)


# ---------------------------------------------------------------------------
# End-of-month projection
# ---------------------------------------------------------------------------

def calculate_end_of_month_projection(
    schedules: Iterable[RecurringSchedule],
    accounts: Iterable[Account],
    today: date,
    base_currency: str,
    rates: Mapping[str, Decimal] | None = None,
) -> EndOfMonthProjection:
    """Cash and net worth at the end of today's month.

    Cash counts cash accounts unless excluded from both totals; net worth
    counts every account not flagged exclude_from_net_worth. Each leg of a
    transfer only moves a total its account belongs to.
    """
    accounts = list(accounts)
    accounts_by_id = {a.id: a for a in accounts}
    window_start, window_end = month_end_window(today)

    # per account net signed change in the account's own currency
    deltas: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for occ in project_all(schedules, window_start, window_end):
        schedule = occ.schedule
        if schedule.type == TYPE_TRANSACTION:
            deltas[schedule.account_id] += occ.amount
        elif schedule.type == TYPE_TRANSFER:
            deltas[schedule.account_id] -= abs(occ.amount)
            deltas[schedule.to_account_id] += schedule.transfer_amount_to

    cash_change = ZERO
    net_worth_change = ZERO
    for account_id, delta in deltas.items():
        account = accounts_by_id.get(account_id)
        if account is None:
            logger.warning("Projection references unknown account %s", account_id)
            continue
        converted = convert_to_base(delta, account.currency, rates, base_currency)
        if account.counts_toward_cash:
            cash_change += converted
        if account.counts_toward_net_worth:
            net_worth_change += converted

    balances = {a.id: convert_to_base(a.balance, a.currency, rates, base_currency) for a in accounts}
    current_cash = sum((balances[a.id] for a in accounts if a.counts_toward_cash), ZERO)
    current_net_worth = sum((balances[a.id] for a in accounts if a.counts_toward_net_worth), ZERO)

    return EndOfMonthProjection(
        month_end=window_end,
        currency=base_currency,
        current_cash=current_cash,
        current_net_worth=current_net_worth,
        cash_change=cash_change,
        net_worth_change=net_worth_change,
    )

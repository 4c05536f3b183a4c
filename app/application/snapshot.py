"""
Snapshot loading - schedules and accounts fetched once per projection run.

Fails closed: if anything about the fetch or the records is wrong, the
snapshot is empty and every projection downstream is all-zero. Projections
never run against a partial snapshot.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable

from app.config import get_settings
from app.domain.account import Account, AccountValidationError, account_from_dict
from app.domain.recurring_schedule import (
    RecurringSchedule, ScheduleValidationError, schedule_from_dict,
)
from app.infrastructure.backend_client import BackendClient, BackendClientError

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    schedules: list[RecurringSchedule] = field(default_factory=list)
    accounts: list[Account] = field(default_factory=list)
    loaded: bool = False

    @property
    def active_schedules(self) -> list[RecurringSchedule]:
        return [s for s in self.schedules if s.is_active]


def parse_snapshot(
    schedule_rows: Iterable[Dict[str, Any]],
    account_rows: Iterable[Dict[str, Any]],
) -> Snapshot:
    """Parse raw backend records.

    Raises:
        ScheduleValidationError / AccountValidationError: on the first malformed record
    """
    tz = get_settings().get_tz()
    return Snapshot(
        schedules=[schedule_from_dict(row, tz) for row in schedule_rows],
        accounts=[account_from_dict(row) for row in account_rows],
        loaded=True,
    )


def load_snapshot(client: BackendClient | None = None) -> Snapshot:
    """Fetch and parse schedules + accounts; empty snapshot on any failure."""
    client = client or BackendClient()
    try:
        schedule_rows = client.fetch_schedules()
        account_rows = client.fetch_accounts()
    except BackendClientError:
        logger.exception("Failed to load recurring schedules snapshot")
        return Snapshot()

    try:
        snapshot = parse_snapshot(schedule_rows, account_rows)
    except (ScheduleValidationError, AccountValidationError) as e:
        logger.warning("Malformed backend record, projecting with no schedules: %s", e)
        return Snapshot()

    logger.info(
        "Loaded snapshot: %d schedule(s), %d account(s)",
        len(snapshot.schedules), len(snapshot.accounts),
    )
    return snapshot

"""
Pytest fixtures for testing
"""
import dataclasses
from datetime import date
from decimal import Decimal

import pytest

from app.domain.account import Account
from app.domain.recurring_schedule import RecurringSchedule


# Wednesday
TODAY = date(2024, 1, 17)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def make_schedule():
    """Factory for schedules: a monthly -50 expense on account "checking" by default"""
    base = RecurringSchedule(
        id="s1",
        type="transaction",
        frequency="monthly",
        account_id="checking",
        category_id="groceries",
        amount=Decimal("-50"),
        created_at=date(2023, 6, 1),
        day_of_month=20,
    )

    def _make(**changes) -> RecurringSchedule:
        return dataclasses.replace(base, **changes)

    return _make


@pytest.fixture
def accounts():
    return [
        Account(id="checking", name="Checking", type="cash", balance=Decimal("1000"), currency="USD"),
        Account(id="savings", name="Savings", type="cash", balance=Decimal("500"), currency="USD"),
        Account(id="brokerage", name="Brokerage", type="investment", balance=Decimal("2000"), currency="USD"),
    ]

"""Tests for Account parsing and balance-total membership"""
from decimal import Decimal

import pytest

from app.domain.account import Account, AccountValidationError, account_from_dict


def _account(**overrides):
    data = dict(id="a", name="A", type="cash", balance=Decimal("10"), currency="USD")
    data.update(overrides)
    return Account(**data)


class TestMembership:
    def test_plain_cash_account_counts_everywhere(self):
        a = _account()
        assert a.counts_toward_cash
        assert a.counts_toward_net_worth

    def test_investment_is_never_cash(self):
        a = _account(type="investment")
        assert not a.counts_toward_cash
        assert a.counts_toward_net_worth

    def test_excluded_from_net_worth_still_cash(self):
        a = _account(exclude_from_net_worth=True)
        assert a.counts_toward_cash
        assert not a.counts_toward_net_worth

    def test_cash_flag_alone_has_no_effect(self):
        a = _account(exclude_from_cash_balance=True)
        assert a.counts_toward_cash

    def test_both_flags_hide_account(self):
        a = _account(exclude_from_net_worth=True, exclude_from_cash_balance=True)
        assert not a.counts_toward_cash
        assert not a.counts_toward_net_worth


class TestAccountFromDict:
    def test_parses_record(self):
        a = account_from_dict({
            "id": 7, "name": "Wallet", "type": "cash", "balance": "1200,50",
            "currency": "eur", "exclude_from_net_worth": True,
        })
        assert a.id == "7"
        assert a.balance == Decimal("1200.50")
        assert a.currency == "EUR"
        assert a.exclude_from_net_worth is True
        assert a.exclude_from_cash_balance is False

    def test_missing_type(self):
        with pytest.raises(AccountValidationError, match="type"):
            account_from_dict({"id": "x", "currency": "USD"})

    def test_unknown_type(self):
        with pytest.raises(AccountValidationError, match="Invalid account type"):
            account_from_dict({"id": "x", "type": "credit", "currency": "USD"})

    def test_bad_balance(self):
        with pytest.raises(AccountValidationError):
            account_from_dict({"id": "x", "type": "cash", "balance": "n/a", "currency": "USD"})

"""
Account domain entity - referenced by schedules, never owned by them
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

from app.utils.validation import parse_amount

ACCOUNT_TYPE_CASH = "cash"
ACCOUNT_TYPE_INVESTMENT = "investment"
VALID_ACCOUNT_TYPES = frozenset({ACCOUNT_TYPE_CASH, ACCOUNT_TYPE_INVESTMENT})


class AccountValidationError(ValueError):
    pass


@dataclass(frozen=True)
class Account:
    """
    Snapshot of an account as returned by ``GET /accounts``.

    Exclusion flags:
    - exclude_from_net_worth: balance is left out of net worth
    - exclude_from_cash_balance: only takes effect together with
      exclude_from_net_worth; an account excluded from one total alone
      still counts toward the other
    """
    id: str
    name: str
    type: str  # cash | investment
    balance: Decimal
    currency: str
    exclude_from_net_worth: bool = False
    exclude_from_cash_balance: bool = False

    @property
    def is_cash(self) -> bool:
        return self.type == ACCOUNT_TYPE_CASH

    @property
    def counts_toward_cash(self) -> bool:
        return self.is_cash and not (self.exclude_from_cash_balance and self.exclude_from_net_worth)

    @property
    def counts_toward_net_worth(self) -> bool:
        return not self.exclude_from_net_worth


def account_from_dict(row: Dict[str, Any]) -> Account:
    """Build an Account from a backend JSON record.

    Raises:
        AccountValidationError: if the record is malformed
    """
    try:
        account = Account(
            id=str(row["id"]),
            name=row.get("name") or "",
            type=row["type"],
            balance=parse_amount(row.get("balance", 0)),
            currency=(row.get("currency") or "").upper(),
            exclude_from_net_worth=bool(row.get("exclude_from_net_worth", False)),
            exclude_from_cash_balance=bool(row.get("exclude_from_cash_balance", False)),
        )
    except KeyError as e:
        raise AccountValidationError(f"Missing field: {e.args[0]}") from e
    except ValueError as e:
        raise AccountValidationError(str(e)) from e

    if account.type not in VALID_ACCOUNT_TYPES:
        raise AccountValidationError(f"Invalid account type: {account.type}")
    return account

"""
Validation utilities
"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation


def normalize_decimal_input(value: str) -> str:
    """
    Normalize an amount typed by a user: comma becomes a dot

    Example:
        >>> normalize_decimal_input("100,50")
        "100.50"
        >>> normalize_decimal_input(" 100.50 ")
        "100.50"
    """
    return value.strip().replace(",", ".")


def parse_amount(value) -> Decimal:
    """
    Convert an amount coming from JSON (int / float / str / Decimal) to Decimal.

    Floats go through ``str`` so that 0.1 stays 0.1 instead of its binary expansion.

    Raises:
        ValueError: if the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(normalize_decimal_input(value))
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {value!r}") from e
    else:
        raise ValueError(f"Invalid amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


def parse_iso_date(value) -> date | None:
    """
    Parse 'YYYY-MM-DD' (or a longer ISO datetime string) into a date.

    None and empty strings mean "not set".
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as e:
            raise ValueError(f"Invalid date: {value!r}") from e
    raise ValueError(f"Invalid date: {value!r}")

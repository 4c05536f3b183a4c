"""
Money helpers shared by the processor and the read views.

Usage:
    from app.utils.money import format_money, format_rate

    format_money(Decimal("1500"), "USD")    -> "1,500.00 USD"
    format_rate(Decimal("0.9213456"))       -> "0.9213"
"""
from decimal import Decimal, ROUND_HALF_UP

RATE_PRECISION = Decimal("0.0001")


def format_money(amount, currency: str, decimals: int = 2) -> str:
    """
    Format an amount with thousands separators and the ISO currency code.

    Args:
        amount: int / float / Decimal / str
        currency: ISO currency code (USD, EUR ...)
        decimals: digits after the decimal point
    """
    if isinstance(amount, str):
        amount = Decimal(amount)
    fmt = f"{{:,.{decimals}f}}"
    return f"{fmt.format(amount)} {currency}"


def format_rate(rate: Decimal) -> str:
    return str(rate.quantize(RATE_PRECISION, rounding=ROUND_HALF_UP))

"""
Currency formatting and parsing.

Amounts are integer minor units (1/100 of a baht). Display and input
conversions go through Decimal so no float ever touches a stored amount.
"""

import re
from decimal import ROUND_FLOOR, Decimal

CURRENCY_SYMBOL = "฿"

_DISALLOWED = re.compile(r"[^\d.\-]")
_LEADING_NUMBER = re.compile(r"^-?(\d+\.?\d*|\.\d+)")
_HUNDRED = Decimal(100)


def format_currency(amount: int, symbol: str = CURRENCY_SYMBOL) -> str:
    """
    Render minor units as display currency.

    >>> format_currency(123456789)
    '฿1,234,567.89'
    >>> format_currency(-5000)
    '-฿50.00'
    """
    sign = "-" if amount < 0 else ""
    major = Decimal(abs(amount)) / _HUNDRED
    return f"{sign}{symbol}{major:,.2f}"


def parse_currency(value: str) -> int:
    """
    Parse user input into minor units.

    Everything but digits, '-' and '.' is stripped, the leading number is
    read and value * 100 is rounded half up. Malformed input yields 0.
    """
    cleaned = _DISALLOWED.sub("", value or "")
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0
    scaled = Decimal(match.group(0)) * _HUNDRED
    return int((scaled + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


def format_amount(amount: int) -> str:
    """Plain two-decimal amount without symbol or grouping, e.g. '100.00'."""
    return f"{Decimal(amount) / _HUNDRED:.2f}"

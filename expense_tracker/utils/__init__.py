"""Formatting and environment helpers."""

from expense_tracker.utils.currency import (
    CURRENCY_SYMBOL,
    format_amount,
    format_currency,
    parse_currency,
)
from expense_tracker.utils.dates import (
    format_date,
    format_date_for_display,
    format_date_key,
    get_date_ranges,
    get_today_key,
    to_date,
)

__all__ = [
    "CURRENCY_SYMBOL",
    "format_amount",
    "format_currency",
    "parse_currency",
    "format_date",
    "format_date_for_display",
    "format_date_key",
    "get_date_ranges",
    "get_today_key",
    "to_date",
]

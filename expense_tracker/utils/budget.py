"""
Daily budget helpers.

The budget is configured in display units (THB) through DAILY_BUDGET and
used in minor units everywhere else.
"""

import re
from decimal import Decimal
from typing import Optional

import structlog

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.config.settings import DEFAULT_DAILY_BUDGET_THB
from expense_tracker.utils.currency import CURRENCY_SYMBOL

logger = structlog.get_logger(__name__)

_LEADING_NUMBER = re.compile(r"^[-+]?(\d+\.?\d*|\.\d+)")


def get_daily_budget(settings: Optional[AppSettings] = None) -> int:
    """Daily budget in minor units, falling back to the default on bad config."""
    settings = settings or get_settings().app
    default = int(Decimal(str(DEFAULT_DAILY_BUDGET_THB)) * 100)

    raw = (settings.daily_budget or "").strip()
    if not raw:
        return default

    # Leading number only, so "2500 THB" reads as 2500
    match = _LEADING_NUMBER.match(raw)
    budget = Decimal(match.group(0)) if match else None

    if budget is None or budget <= 0:
        logger.warning(
            "invalid_daily_budget",
            value=raw,
            default=f"{CURRENCY_SYMBOL}{DEFAULT_DAILY_BUDGET_THB:,.0f}",
        )
        return default

    return int(budget * 100)


def get_daily_budget_thb(settings: Optional[AppSettings] = None) -> Decimal:
    return Decimal(get_daily_budget(settings)) / 100


def format_daily_budget(
    settings: Optional[AppSettings] = None,
    symbol: str = CURRENCY_SYMBOL,
) -> str:
    """e.g. '฿2,000' (fraction shown only when present)."""
    budget = get_daily_budget_thb(settings)
    if budget == budget.to_integral_value():
        return f"{symbol}{int(budget):,}"
    return f"{symbol}{budget:,.2f}"

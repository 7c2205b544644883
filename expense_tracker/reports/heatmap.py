"""
Spending Heatmap

Turns a sparse sequence of day totals into one cell per day for the last
365 days, most recent first, with an intensity band measured against
the daily budget.

Days without a day-total record count as zero spend for display but are
left out of the savings figure: savings only accumulate over days that
were actually tracked.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from expense_tracker.models.expense import PeriodTotal
from expense_tracker.utils.budget import get_daily_budget
from expense_tracker.utils.currency import CURRENCY_SYMBOL, format_currency
from expense_tracker.utils.dates import format_date, format_date_for_display

HEATMAP_DAYS = 365
ROUNDING_UNIT = 10000  # ฿100 in minor units


class Intensity(str, Enum):
    EMPTY = "empty"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"


INTENSITY_COLORS: dict[Intensity, str] = {
    Intensity.EMPTY: "#f5f5f5",
    Intensity.LOW: "#dcfce7",
    Intensity.MEDIUM: "#86efac",
    Intensity.HIGH: "#22c55e",
    Intensity.VERY_HIGH: "#16a34a",
}


class HeatmapCell(BaseModel):
    day: date
    amount: int = Field(..., description="Day total rounded to the nearest ฿100")
    intensity: Intensity

    @property
    def label(self) -> str:
        """Jan 05, 2025: ฿1,200.00"""
        return f"{format_date_for_display(self.day)}: {format_currency(self.amount)}"


class Heatmap(BaseModel):
    """A year of cells plus the budget summary shown above the grid."""

    cells: list[HeatmapCell]
    daily_budget: int
    total_savings: int = Field(
        ...,
        description="Sum of (budget - amount) over tracked days; negative means overspent"
    )

    def cell_for(self, day: date) -> Optional[HeatmapCell]:
        for cell in self.cells:
            if cell.day == day:
                return cell
        return None

    def savings_label(self, symbol: str = CURRENCY_SYMBOL) -> str:
        prefix = "Saved: " if self.total_savings >= 0 else "Overspent: "
        return prefix + format_currency(abs(self.total_savings), symbol)


def round_to_display_unit(amount: int, unit: int = ROUNDING_UNIT) -> int:
    """Round half up to a multiple of unit."""
    return (amount + unit // 2) // unit * unit


def get_intensity(amount: int, budget: int) -> Intensity:
    if amount == 0:
        return Intensity.EMPTY
    if amount * 4 < budget:
        return Intensity.LOW
    if amount * 2 < budget:
        return Intensity.MEDIUM
    if amount < budget:
        return Intensity.HIGH
    return Intensity.VERY_HIGH


def calculate_savings(period_totals: Iterable[PeriodTotal], budget: int) -> int:
    """Sum of (budget - unrounded amount) over the given day totals."""
    return sum(budget - total.total_amount for total in period_totals)


def heatmap_range(today: Optional[date] = None, days: int = HEATMAP_DAYS) -> tuple[date, date]:
    """(start, end) of the heatmap window, both inclusive."""
    end = today or date.today()
    return end - timedelta(days=days - 1), end


def build_heatmap(
    period_totals: Iterable[PeriodTotal],
    today: Optional[date] = None,
    budget: Optional[int] = None,
    days: int = HEATMAP_DAYS,
) -> Heatmap:
    """
    Build the heatmap for the window ending today.

    Args:
        period_totals: Sparse day totals, any order
        today: Last day of the window
        budget: Daily budget in minor units; read from settings if None
        days: Window length

    Returns:
        Heatmap with cells most recent first
    """
    budget = get_daily_budget() if budget is None else budget
    start, end = heatmap_range(today, days)

    in_window = [
        total for total in period_totals
        if format_date(start) <= total.date <= format_date(end)
    ]
    amounts = {total.date: round_to_display_unit(total.total_amount) for total in in_window}

    cells = []
    for offset in range(days):
        day = end - timedelta(days=offset)
        amount = amounts.get(format_date(day), 0)
        cells.append(HeatmapCell(day=day, amount=amount, intensity=get_intensity(amount, budget)))

    return Heatmap(
        cells=cells,
        daily_budget=budget,
        total_savings=calculate_savings(in_window, budget),
    )

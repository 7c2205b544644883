"""Tests for the spending heatmap."""

from datetime import date

import pytest

from expense_tracker.models.expense import PeriodTotal
from expense_tracker.reports import (
    INTENSITY_COLORS,
    Intensity,
    build_heatmap,
    calculate_savings,
    get_intensity,
    heatmap_range,
    round_to_display_unit,
)

TODAY = date(2025, 1, 10)
BUDGET = 200000  # ฿2,000


class TestRounding:
    """Tests for rounding to ฿100."""

    @pytest.mark.parametrize("amount,expected", [
        (0, 0),
        (4999, 0),
        (5000, 10000),
        (123456, 120000),
        (125000, 130000),
        (199999, 200000),
    ])
    def test_round_to_display_unit(self, amount, expected):
        """Test half-up rounding to the nearest ฿100."""
        assert round_to_display_unit(amount) == expected


class TestIntensity:
    """Tests for budget bands."""

    @pytest.mark.parametrize("amount,expected", [
        (0, Intensity.EMPTY),
        (10000, Intensity.LOW),
        (49999, Intensity.LOW),
        (50000, Intensity.MEDIUM),
        (99999, Intensity.MEDIUM),
        (100000, Intensity.HIGH),
        (199999, Intensity.HIGH),
        (200000, Intensity.VERY_HIGH),
        (500000, Intensity.VERY_HIGH),
    ])
    def test_get_intensity(self, amount, expected):
        """Test the quarter, half and full budget boundaries."""
        assert get_intensity(amount, BUDGET) == expected

    def test_every_intensity_has_a_color(self):
        """Test the palette covers all bands."""
        assert set(INTENSITY_COLORS) == set(Intensity)


class TestSavings:
    """Tests for the savings figure."""

    def test_calculate_savings(self):
        """Test savings sum budget minus the unrounded amount."""
        totals = [
            PeriodTotal(date="2025-01-01", total_amount=150000),
            PeriodTotal(date="2025-01-02", total_amount=250049),
        ]
        assert calculate_savings(totals, BUDGET) == 50000 - 50049

    def test_no_tracked_days(self):
        """Test an empty history saves nothing."""
        assert calculate_savings([], BUDGET) == 0


class TestBuildHeatmap:
    """Tests for the full grid."""

    def test_range(self):
        """Test the window spans 365 days ending today."""
        start, end = heatmap_range(TODAY)
        assert end == TODAY
        assert (end - start).days == 364

    def test_cells_most_recent_first(self):
        """Test one cell per day, newest first."""
        heatmap = build_heatmap([], today=TODAY, budget=BUDGET)
        assert len(heatmap.cells) == 365
        assert heatmap.cells[0].day == TODAY
        assert heatmap.cells[-1].day == heatmap_range(TODAY)[0]
        assert all(cell.intensity == Intensity.EMPTY for cell in heatmap.cells)
        assert heatmap.total_savings == 0

    def test_cells_use_rounded_amounts(self):
        """Test amounts are rounded and banded against the budget."""
        totals = [
            PeriodTotal(date="2025-01-09", total_amount=123456),
            PeriodTotal(date="2025-01-10", total_amount=210000),
        ]
        heatmap = build_heatmap(totals, today=TODAY, budget=BUDGET)

        yesterday = heatmap.cell_for(date(2025, 1, 9))
        assert yesterday.amount == 120000
        assert yesterday.intensity == Intensity.HIGH
        assert yesterday.label == "Jan 09, 2025: ฿1,200.00"
        assert heatmap.cell_for(TODAY).intensity == Intensity.VERY_HIGH

    def test_savings_ignore_untracked_and_out_of_window_days(self):
        """Test only tracked days inside the window count toward savings."""
        totals = [
            PeriodTotal(date="2023-01-01", total_amount=0),
            PeriodTotal(date="2025-01-05", total_amount=50000),
            PeriodTotal(date="2025-01-06", total_amount=300000),
        ]
        heatmap = build_heatmap(totals, today=TODAY, budget=BUDGET)
        assert heatmap.total_savings == 150000 - 100000
        assert heatmap.savings_label() == "Saved: ฿500.00"

    def test_overspent_label(self):
        """Test a negative balance is shown as overspent."""
        totals = [PeriodTotal(date="2025-01-10", total_amount=250000)]
        heatmap = build_heatmap(totals, today=TODAY, budget=BUDGET)
        assert heatmap.total_savings == -50000
        assert heatmap.savings_label() == "Overspent: ฿500.00"

    def test_cell_for_outside_window(self):
        """Test lookups outside the window return None."""
        heatmap = build_heatmap([], today=TODAY, budget=BUDGET)
        assert heatmap.cell_for(date(2020, 1, 1)) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

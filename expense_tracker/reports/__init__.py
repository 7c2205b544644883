"""Presentation helpers for period totals."""

from expense_tracker.reports.heatmap import (
    HEATMAP_DAYS,
    INTENSITY_COLORS,
    Heatmap,
    HeatmapCell,
    Intensity,
    build_heatmap,
    calculate_savings,
    get_intensity,
    heatmap_range,
    round_to_display_unit,
)

__all__ = [
    "HEATMAP_DAYS",
    "INTENSITY_COLORS",
    "Heatmap",
    "HeatmapCell",
    "Intensity",
    "build_heatmap",
    "calculate_savings",
    "get_intensity",
    "heatmap_range",
    "round_to_display_unit",
]

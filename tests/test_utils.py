"""Tests for currency, date, budget and device helpers."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from expense_tracker.config import AppSettings
from expense_tracker.utils.budget import (
    format_daily_budget,
    get_daily_budget,
    get_daily_budget_thb,
)
from expense_tracker.utils.currency import format_amount, format_currency, parse_currency
from expense_tracker.utils.dates import (
    format_date,
    format_date_for_display,
    format_date_key,
    get_date_ranges,
    get_today_key,
    to_date,
)
from expense_tracker.utils.device import (
    default_view,
    get_device_type,
    is_mobile_user_agent,
    is_tablet_user_agent,
)


IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
DESKTOP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
ANDROID_TABLET_UA = "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36"


class TestFormatCurrency:
    """Tests for rendering minor units."""

    @pytest.mark.parametrize("amount,expected", [
        (10000, "฿100.00"),
        (0, "฿0.00"),
        (-5000, "-฿50.00"),
        (123456789, "฿1,234,567.89"),
        (5, "฿0.05"),
        (100000, "฿1,000.00"),
    ])
    def test_format_currency(self, amount, expected):
        """Test two decimals, grouping and sign placement."""
        assert format_currency(amount) == expected

    def test_format_currency_custom_symbol(self):
        """Test the symbol can be configured."""
        assert format_currency(10000, symbol="THB ") == "THB 100.00"

    def test_format_amount(self):
        """Test the plain amount without symbol or grouping."""
        assert format_amount(10000) == "100.00"
        assert format_amount(123456) == "1234.56"


class TestParseCurrency:
    """Tests for parsing user input into minor units."""

    @pytest.mark.parametrize("text,expected", [
        ("฿1,000.00", 100000),
        ("", 0),
        ("abc", 0),
        ("100", 10000),
        ("100.5", 10050),
        ("-50.00", -5000),
        ("invalid123", 12300),
        ("0.005", 1),
        (".5", 50),
    ])
    def test_parse_currency(self, text, expected):
        """Test stripping, leading-number parsing and rounding."""
        assert parse_currency(text) == expected

    @pytest.mark.parametrize("amount", [0, 1, 99, 10000, 123456789])
    def test_parse_inverts_format(self, amount):
        """Test parse_currency(format_currency(a)) == a for non-negative a."""
        assert parse_currency(format_currency(amount)) == amount


class TestDates:
    """Tests for date formatting helpers."""

    def test_format_date(self):
        """Test ISO formatting from several input types."""
        assert format_date(date(2025, 1, 5)) == "2025-01-05"
        assert format_date(datetime(2025, 1, 5, 23, 59)) == "2025-01-05"
        assert format_date("2025-01-05T10:00:00") == "2025-01-05"

    def test_format_date_for_display(self):
        """Test the display form."""
        assert format_date_for_display(date(2025, 1, 5)) == "Jan 05, 2025"

    def test_format_date_key(self):
        """Test the compact day key."""
        assert format_date_key("2025-01-05") == "20250105"

    def test_get_today_key(self):
        """Test today's key matches today's date."""
        assert get_today_key() == date.today().strftime("%Y%m%d")

    def test_to_date_passthrough(self):
        """Test dates pass through unchanged."""
        day = date(2025, 1, 5)
        assert to_date(day) is day

    def test_get_date_ranges(self):
        """Test ranges for a Wednesday; weeks start on Sunday."""
        ranges = get_date_ranges(date(2025, 1, 15))
        assert ranges["day"] == {"start": date(2025, 1, 15), "end": date(2025, 1, 15)}
        assert ranges["week"] == {"start": date(2025, 1, 12), "end": date(2025, 1, 18)}
        assert ranges["month"] == {"start": date(2025, 1, 1), "end": date(2025, 1, 31)}
        assert ranges["year"] == {"start": date(2025, 1, 1), "end": date(2025, 12, 31)}

    def test_get_date_ranges_on_sunday(self):
        """Test a Sunday starts its own week."""
        ranges = get_date_ranges(date(2025, 1, 12))
        assert ranges["week"]["start"] == date(2025, 1, 12)

    def test_get_date_ranges_february_leap_year(self):
        """Test month end in a leap year."""
        ranges = get_date_ranges(date(2024, 2, 10))
        assert ranges["month"]["end"] == date(2024, 2, 29)


class TestBudget:
    """Tests for the configured daily budget."""

    def test_default_budget(self):
        """Test the default of ฿2,000."""
        settings = AppSettings()
        assert get_daily_budget(settings) == 200000
        assert format_daily_budget(settings) == "฿2,000"

    def test_configured_budget(self):
        """Test a configured budget in THB."""
        settings = AppSettings(daily_budget="1500.50")
        assert get_daily_budget(settings) == 150050
        assert get_daily_budget_thb(settings) == Decimal("1500.50")
        assert format_daily_budget(settings) == "฿1,500.50"

    @pytest.mark.parametrize("raw", ["abc", "-100", "0", ""])
    def test_invalid_budget_falls_back(self, raw):
        """Test invalid or non-positive values use the default."""
        assert get_daily_budget(AppSettings(daily_budget=raw)) == 200000

    def test_budget_from_environment(self, monkeypatch):
        """Test DAILY_BUDGET is read from the environment."""
        monkeypatch.setenv("DAILY_BUDGET", "3000")
        assert get_daily_budget(AppSettings()) == 300000


class TestDeviceDetection:
    """Tests for user-agent based defaults."""

    def test_mobile_user_agent(self):
        """Test phones are detected."""
        assert is_mobile_user_agent(IPHONE_UA) is True
        assert get_device_type(IPHONE_UA) == "mobile"

    def test_desktop_user_agent(self):
        """Test desktops are not mobile."""
        assert is_mobile_user_agent(DESKTOP_UA) is False
        assert get_device_type(DESKTOP_UA) == "desktop"

    def test_missing_user_agent(self):
        """Test an unknown agent is treated as desktop."""
        assert is_mobile_user_agent(None) is False
        assert is_mobile_user_agent("") is False

    def test_tablet_user_agent(self):
        """Test Android tablets without 'mobile' are tablets."""
        assert is_tablet_user_agent(ANDROID_TABLET_UA) is True
        assert is_tablet_user_agent(IPHONE_UA) is False

    def test_default_view(self):
        """Test phones default to expenses and everything else to the heatmap."""
        assert default_view(IPHONE_UA) == "expenses"
        assert default_view(DESKTOP_UA) == "heatmap"
        assert default_view(None) == "heatmap"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DAILY_BUDGET_THB = 2000.0


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AuthSettings(BaseSettings):
    """Local authentication provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        extra="ignore"
    )

    min_password_length: int = Field(
        default=6,
        ge=1,
        description="Passwords shorter than this are rejected as weak"
    )
    max_failed_attempts: int = Field(
        default=5,
        ge=1,
        description="Failed sign-ins allowed per email inside the lockout window"
    )
    lockout_window_seconds: int = Field(
        default=300,
        ge=1,
        description="Window over which failed sign-ins are counted"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    storage_backend: Literal["memory", "google_sheets"] = Field(
        default="memory",
        description="Document store backing the expense and day collections"
    )

    # Money
    currency_symbol: str = Field(
        default="฿",
        description="Symbol prefixed to formatted amounts"
    )
    # Kept as a raw string so a malformed value falls back to the default
    # instead of failing startup.
    daily_budget: str = Field(
        default=str(DEFAULT_DAILY_BUDGET_THB),
        description="Daily budget in THB (display units)"
    )
    max_expense_amount: int = Field(
        default=100_000_000,
        ge=1,
        description="Amounts above this (minor units) are flagged as suspicious"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        description="How many days in the future an expense date can be"
    )

    # Quick add
    quick_add_unit_amount: int = Field(
        default=10000,
        description="Amount added per quick-add tap, in minor units"
    )
    quick_add_window_seconds: float = Field(
        default=1.0,
        gt=0.0,
        le=10.0,
        description="Quiescence window for coalescing quick-add taps"
    )
    quick_add_description: str = Field(
        default="Quick expense",
        description="Description used for quick-add expenses"
    )
    quick_add_category: str = Field(
        default="Other",
        description="Category used for quick-add expenses"
    )

    # Listing
    recent_expenses_limit: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Number of expenses in the recent list"
    )

    # Local preferences
    preferences_path: str = Field(
        default=".expense_tracker/preferences.json",
        description="File where the last-selected view is remembered"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.auth
        results["auth"] = True
    except Exception as e:
        results["auth"] = False
        results["auth_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results

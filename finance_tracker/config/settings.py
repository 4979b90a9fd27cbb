"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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

    # One worksheet per table
    users_sheet_name: str = Field(default="users")
    incomes_sheet_name: str = Field(default="incomes")
    expenses_sheet_name: str = Field(default="expenses")
    expense_items_sheet_name: str = Field(default="expense_items")
    audit_sheet_name: str = Field(
        default="audit_log",
        description="Name of the sheet for audit logs"
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
    storage_backend: str = Field(
        default="google_sheets",
        pattern="^(google_sheets|memory)$",
        description="Where ledger records are persisted"
    )
    cache_path: str = Field(
        default=".finance_tracker_cache.json",
        description="JSON file holding the current user and offline snapshots"
    )

    # Display
    currency_symbol: str = Field(default="Rp")
    thousands_separator: str = Field(default=".", max_length=1)
    currency_decimals: int = Field(default=0, ge=0, le=4)
    month_locale: str = Field(
        default="en",
        pattern="^(en|id)$",
        description="Language used for month names"
    )

    # Analytics
    savings_keywords: str = Field(
        default="savings,tabungan",
        description="Comma-separated label keywords that mark an item as savings"
    )
    top_categories_limit: int = Field(default=5, ge=1, le=20)
    trend_threshold_percent: float = Field(
        default=10.0,
        ge=0.0,
        description="Month-over-month change that triggers a suggestion"
    )
    overspend_ratio: float = Field(
        default=1.2,
        ge=1.0,
        description="Current month vs. average ratio that triggers a warning"
    )

    # Sanity limits for form input
    max_amount: Decimal = Field(
        default=Decimal("1000000000000"),
        description="Largest amount accepted by the forms"
    )

    @property
    def savings_keywords_list(self) -> list[str]:
        """Get savings keywords as a lowercase list."""
        return [
            kw.strip().lower()
            for kw in self.savings_keywords.split(",")
            if kw.strip()
        ]


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results

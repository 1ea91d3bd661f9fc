"""
Configuration Management for Expense Calendar

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CalendarSettings(BaseSettings):
    """
    Occurrence expansion and reminder configuration.

    The horizon bounds how far a recurring series is ever expanded.
    With `horizon_anchor=series_start` a series stops producing occurrences
    `horizon_days` after its first one; `window_start` rolls the cap forward.
    """

    model_config = SettingsConfigDict(
        env_prefix="CALENDAR_",
        extra="ignore"
    )

    horizon_days: int = Field(
        default=365,
        ge=1,
        description="Maximum number of days a recurring series is expanded"
    )
    horizon_anchor: str = Field(
        default="series_start",
        pattern="^(series_start|window_start)$",
        description="Measure the horizon from the series anchor or the query window start"
    )
    dashboard_window_days: int = Field(
        default=30,
        ge=1,
        description="How far ahead the dashboard looks for reminders"
    )
    local_timezone: Optional[str] = Field(
        default=None,
        description="IANA timezone defining 'today' for reminders (default: system local)"
    )

    @field_validator('local_timezone')
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Fail at startup on unknown zone names."""
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

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

    # Sheet names within the spreadsheet
    events_sheet_name: str = Field(
        default="CalendarEvents",
        description="Name of the sheet for calendar events"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Where calendar events are persisted"
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
    def calendar(self) -> CalendarSettings:
        return CalendarSettings()

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

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, Union[bool, str]]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus `<name>_error`
    entries describing each failure. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("calendar", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

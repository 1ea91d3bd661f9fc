"""Tests for configuration loading and application wiring."""

import pytest

from pydantic import ValidationError

from expense_calendar.config import get_settings, validate_all_settings
from expense_calendar.config.settings import AppSettings, CalendarSettings
from expense_calendar.models.calendar import HorizonAnchor
from expense_calendar.orchestrator import create_app_components
from expense_calendar.services import CalendarService


class TestCalendarSettings:
    """Tests for CalendarSettings."""

    def test_defaults(self):
        settings = CalendarSettings()
        assert settings.horizon_days == 365
        assert settings.horizon_anchor == "series_start"
        assert settings.dashboard_window_days == 30
        assert settings.local_timezone is None

    def test_loaded_from_environment(self, monkeypatch):
        monkeypatch.setenv("CALENDAR_HORIZON_DAYS", "90")
        monkeypatch.setenv("CALENDAR_HORIZON_ANCHOR", "window_start")
        monkeypatch.setenv("CALENDAR_LOCAL_TIMEZONE", "Europe/Berlin")

        settings = CalendarSettings()

        assert settings.horizon_days == 90
        assert settings.horizon_anchor == "window_start"
        assert settings.local_timezone == "Europe/Berlin"

    def test_rejects_unknown_anchor(self, monkeypatch):
        monkeypatch.setenv("CALENDAR_HORIZON_ANCHOR", "forever")
        with pytest.raises(ValidationError):
            CalendarSettings()

    def test_rejects_unknown_timezone(self, monkeypatch):
        monkeypatch.setenv("CALENDAR_LOCAL_TIMEZONE", "Mars/Olympus_Mons")
        with pytest.raises(ValidationError, match="Unknown timezone"):
            CalendarSettings()

    def test_rejects_zero_horizon(self, monkeypatch):
        monkeypatch.setenv("CALENDAR_HORIZON_DAYS", "0")
        with pytest.raises(ValidationError):
            CalendarSettings()


class TestAppSettings:

    def test_rejects_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValidationError):
            AppSettings()


class TestValidateAllSettings:
    """Tests for the startup check."""

    def test_reports_missing_google_sheets(self):
        results = validate_all_settings()

        assert results["calendar"] is True
        assert results["app"] is True
        assert results["google_sheets"] is False
        assert isinstance(results["google_sheets_error"], str)
        assert results["google_sheets_error"]

    def test_reports_bad_calendar_settings(self, monkeypatch):
        monkeypatch.setenv("CALENDAR_HORIZON_ANCHOR", "forever")

        results = validate_all_settings()

        assert results["calendar"] is False
        assert "calendar_error" in results

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()


class TestCreateAppComponents:
    """Tests for the application factory."""

    def test_memory_components(self):
        service, sheets_client = create_app_components(use_storage=False)

        assert isinstance(service, CalendarService)
        assert sheets_client is None

    def test_horizon_follows_settings(self, monkeypatch):
        monkeypatch.setenv("CALENDAR_HORIZON_DAYS", "30")
        monkeypatch.setenv("CALENDAR_HORIZON_ANCHOR", "window_start")

        service, _ = create_app_components(use_storage=False)

        assert service.horizon.days == 30
        assert service.horizon.relative_to == HorizonAnchor.WINDOW_START

    def test_google_sheets_without_credentials_falls_back_to_memory(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "google_sheets")

        service, sheets_client = create_app_components()

        assert isinstance(service, CalendarService)
        assert sheets_client is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

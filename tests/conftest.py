"""Shared fixtures: every test sees a clean environment and fresh settings."""

import pytest

from expense_calendar.config import get_settings


_ENV_VARS = [
    "CALENDAR_HORIZON_DAYS",
    "CALENDAR_HORIZON_ANCHOR",
    "CALENDAR_DASHBOARD_WINDOW_DAYS",
    "CALENDAR_LOCAL_TIMEZONE",
    "GOOGLE_SHEETS_CREDENTIALS_PATH",
    "GOOGLE_SHEETS_SPREADSHEET_ID",
    "STORAGE_BACKEND",
    "APP_ENVIRONMENT",
    "DEBUG_MODE",
]


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch, tmp_path):
    # No .env in the working directory either
    monkeypatch.chdir(tmp_path)
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

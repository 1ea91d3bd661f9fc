"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Non-technical users can view their reminders directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (last writer wins)
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing calendar logic.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_calendar.config import get_settings
from expense_calendar.config.settings import GoogleSheetsSettings
from expense_calendar.models.audit import AUDIT_COLUMNS, AuditEvent
from expense_calendar.models.calendar import (
    AlertType,
    CalendarEvent,
    RecurrenceType,
)
from expense_calendar.services.storage.interface import (
    AuditStorageInterface,
    CalendarEventStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings for the CalendarEvents sheet
EVENT_COLUMNS = [
    "id",
    "user_id",
    "title",
    "notes",
    "event_type",
    "scheduled_at",
    "reminder_offset_seconds",
    "recurrence",
    "linked_expense_id",
    "dismissed_until_utc",
    "created_at",
    "updated_at",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_events_sheet(self) -> gspread.Worksheet:
        """Get or create the CalendarEvents worksheet."""
        return self._get_or_create_sheet(
            self._settings.events_sheet_name, EVENT_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _optional_iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


class GoogleSheetsCalendarEventStorage(CalendarEventStorageInterface):
    """
    Google Sheets implementation of calendar event storage.

    One event per row. Instants are stored as ISO-8601 with offset,
    reminder offsets as whole seconds.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _event_to_row(self, event: CalendarEvent) -> list:
        """Convert a CalendarEvent to a spreadsheet row."""
        return [
            str(event.id),
            str(event.user_id),
            event.title,
            event.notes or "",
            event.event_type.value,
            event.scheduled_at.isoformat(),
            str(int(event.reminder_offset.total_seconds())) if event.reminder_offset is not None else "",
            event.recurrence.value,
            str(event.linked_expense_id) if event.linked_expense_id else "",
            _optional_iso(event.dismissed_until_utc),
            event.created_at.isoformat(),
            event.updated_at.isoformat(),
        ]

    def _row_to_event(self, row: list) -> CalendarEvent:
        """Convert a spreadsheet row to a CalendarEvent."""
        # Handle missing columns gracefully
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return CalendarEvent(
            id=UUID(safe_get(0)),
            user_id=UUID(safe_get(1)),
            title=safe_get(2),
            notes=safe_get(3) or None,
            event_type=AlertType(safe_get(4, AlertType.CUSTOM.value)),
            scheduled_at=datetime.fromisoformat(safe_get(5)),
            reminder_offset=timedelta(seconds=int(safe_get(6))) if safe_get(6) else None,
            recurrence=RecurrenceType(safe_get(7, RecurrenceType.NONE.value)),
            linked_expense_id=UUID(safe_get(8)) if safe_get(8) else None,
            dismissed_until_utc=datetime.fromisoformat(safe_get(9)) if safe_get(9) else None,
            created_at=datetime.fromisoformat(safe_get(10)),
            updated_at=datetime.fromisoformat(safe_get(11)),
        )

    def _load_events(self) -> list[CalendarEvent]:
        """All parseable events in the sheet."""
        sheet = self._client.get_events_sheet()
        all_rows = sheet.get_all_values()

        events = []
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, TypeError) as e:
                logger.warning("calendar_row_malformed", row_number=idx, error=str(e))
        return events

    async def list_single_events(
        self,
        user_id: UUID,
        from_utc: datetime,
        to_utc: datetime,
    ) -> list[CalendarEvent]:
        """List non-recurring events anchored in the window."""
        try:
            return [
                event for event in self._load_events()
                if event.user_id == user_id
                and event.recurrence == RecurrenceType.NONE
                and from_utc <= event.scheduled_at <= to_utc
            ]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list calendar events: {e}")

    async def list_recurring_events(
        self,
        user_id: UUID,
        until_utc: datetime,
    ) -> list[CalendarEvent]:
        """List recurring events anchored at or before `until_utc`."""
        try:
            return [
                event for event in self._load_events()
                if event.user_id == user_id
                and event.recurrence != RecurrenceType.NONE
                and event.scheduled_at <= until_utc
            ]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list calendar events: {e}")

    async def get_event(
        self,
        user_id: UUID,
        event_id: UUID,
    ) -> Optional[CalendarEvent]:
        """Retrieve one of a user's events."""
        try:
            for event in self._load_events():
                if event.id == event_id:
                    return event if event.user_id == user_id else None
            return None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get calendar event: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def add_event(self, event: CalendarEvent) -> bool:
        """Append a new event row."""
        try:
            sheet = self._client.get_events_sheet()
            if any(row and row[0] == str(event.id) for row in sheet.get_all_values()[1:]):
                raise DuplicateError(f"Calendar event already exists: {event.id}")
            sheet.append_row(self._event_to_row(event), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save calendar event: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def save_event(self, event: CalendarEvent) -> bool:
        """Rewrite the row holding this event."""
        try:
            sheet = self._client.get_events_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(event.id):
                    # One RAW write so the row matches what add_event stored
                    sheet.update(
                        range_name=f"A{idx}",
                        values=[self._event_to_row(event)],
                        value_input_option="RAW",
                    )
                    return True

            raise NotFoundError(f"Calendar event not found: {event.id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update calendar event: {e}")

    async def delete_event(self, user_id: UUID, event_id: UUID) -> bool:
        """Delete one of a user's events."""
        try:
            sheet = self._client.get_events_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(event_id):
                    if len(row) < 2 or row[1] != str(user_id):
                        return False
                    sheet.delete_rows(idx)
                    return True

            return False
        except Exception as e:
            raise StorageError(f"Failed to delete calendar event: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _load_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(AuditEvent.from_sheets_row(row))
            except (ValueError, TypeError) as e:
                logger.warning("audit_row_malformed", error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = [
                event for event in self._load_events()
                if event.entity_type == entity_type and event.entity_id == entity_id
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._load_events()
            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

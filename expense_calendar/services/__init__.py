"""Services package."""

from expense_calendar.services.storage import (
    AuditStorageInterface,
    CalendarEventStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsCalendarEventStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryCalendarEventStorage,
    NotFoundError,
    StorageError,
)
from expense_calendar.services.calendar_service import CalendarService

__all__ = [
    # Calendar service
    "CalendarService",
    # Storage services
    "AuditStorageInterface",
    "CalendarEventStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCalendarEventStorage",
    "GoogleSheetsClient",
    "InMemoryAuditStorage",
    "InMemoryCalendarEventStorage",
    "NotFoundError",
    "StorageError",
]

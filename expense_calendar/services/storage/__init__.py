"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Ships an in-memory backend and a Google Sheets backend, both swappable
behind the same interface.
"""

from expense_calendar.services.storage.interface import (
    AuditStorageInterface,
    CalendarEventStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)
from expense_calendar.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryCalendarEventStorage,
)
from expense_calendar.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsCalendarEventStorage,
    GoogleSheetsClient,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CalendarEventStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryCalendarEventStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCalendarEventStorage",
    "GoogleSheetsClient",
]

"""
Application Wiring for Expense Calendar

Builds the calendar service together with its storage backend and
audit logger, based on configuration.

DESIGN DECISION: The UI layer never constructs storage or audit objects
itself. It asks for components here and talks only to CalendarService.
"""

from typing import Optional

import structlog

from expense_calendar.audit import AuditLogger
from expense_calendar.config import get_settings
from expense_calendar.services import (
    CalendarService,
    GoogleSheetsAuditStorage,
    GoogleSheetsCalendarEventStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryCalendarEventStorage,
)


logger = structlog.get_logger(__name__)


def create_app_components(
    use_storage: bool = True,
) -> tuple[CalendarService, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured storage backend.
                    Set to False to run purely in memory (tests, demos).

    Returns:
        (calendar_service, sheets_client)

    sheets_client is None unless Google Sheets storage is active.
    """
    sheets_client = None
    backend = get_settings().app.storage_backend if use_storage else "memory"

    if backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            event_storage = GoogleSheetsCalendarEventStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("google_sheets_unavailable", error=str(e))
            sheets_client = None
            backend = "memory"

    if backend == "memory":
        event_storage = InMemoryCalendarEventStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    calendar_service = CalendarService(
        storage=event_storage,
        audit_logger=audit_logger,
    )

    return calendar_service, sheets_client

"""
Data Models Package

This package contains all Pydantic models used in the Expense Calendar system.
All data flowing through the system must conform to these schemas.
"""

from expense_calendar.models.calendar import (
    AlertType,
    CalendarEvent,
    CalendarEventItem,
    CalendarEventOccurrenceItem,
    CreateCalendarEventRequest,
    DashboardAlertItem,
    DismissCalendarEventRequest,
    HorizonAnchor,
    RecurrenceHorizon,
    RecurrenceType,
    UpdateCalendarEventRequest,
    normalize_to_utc,
    utc_now,
)
from expense_calendar.models.audit import (
    AUDIT_COLUMNS,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Calendar models
    "AlertType",
    "CalendarEvent",
    "CalendarEventItem",
    "CalendarEventOccurrenceItem",
    "CreateCalendarEventRequest",
    "DashboardAlertItem",
    "DismissCalendarEventRequest",
    "HorizonAnchor",
    "RecurrenceHorizon",
    "RecurrenceType",
    "UpdateCalendarEventRequest",
    "normalize_to_utc",
    "utc_now",
    # Audit models
    "AUDIT_COLUMNS",
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

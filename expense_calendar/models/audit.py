"""
Audit Models for Expense Calendar

Every write against the calendar is logged for audit purposes:
1. Who scheduled, changed or removed which event
2. When reminders were dismissed and when dismissals were reset
3. Why a request was rejected

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from expense_calendar.models.calendar import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Calendar event lifecycle
    EVENT_CREATED = "event_created"
    EVENT_UPDATED = "event_updated"
    EVENT_DELETED = "event_deleted"

    # Reminder suppression
    OCCURRENCE_DISMISSED = "occurrence_dismissed"
    DISMISSAL_RESET = "dismissal_reset"

    # Rejections
    VALIDATION_FAILED = "validation_failed"
    EVENT_NOT_FOUND = "event_not_found"

    # System events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique audit event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about, and whose is it?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'calendar_event')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    user_id: Optional[UUID] = Field(
        default=None,
        description="User the entity belongs to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one editor session)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "user_id": str(self.user_id) if self.user_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Columns follow AUDIT_COLUMNS.
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.user_id) if self.user_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]

    @classmethod
    def from_sheets_row(cls, row: list) -> "AuditEvent":
        """Inverse of to_sheets_row. Missing trailing cells read as empty."""
        def cell(index: int) -> str:
            return row[index] if index < len(row) else ""

        return cls(
            event_id=UUID(cell(0)),
            timestamp=datetime.fromisoformat(cell(1)),
            event_type=AuditEventType(cell(2)),
            severity=AuditSeverity(cell(3)),
            entity_type=cell(4) or None,
            entity_id=UUID(cell(5)) if cell(5) else None,
            user_id=UUID(cell(6)) if cell(6) else None,
            correlation_id=UUID(cell(7)) if cell(7) else None,
            description=cell(8),
            details=json.loads(cell(9)) if cell(9) else {},
            error_message=cell(10) or None,
            is_user_action=cell(11).lower() == "true",
        )


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.event_created(event_id, user_id, title, ...)
        event = AuditEventBuilder.occurrence_dismissed(event_id, user_id, until, ...)
    """

    @staticmethod
    def event_created(
        event_id: UUID,
        user_id: UUID,
        title: str,
        scheduled_at: datetime,
        recurrence: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_CREATED,
            entity_type="calendar_event",
            entity_id=event_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Calendar event scheduled: {title}",
            details={
                "scheduled_at": scheduled_at.isoformat(),
                "recurrence": recurrence,
            },
            is_user_action=True,
        )

    @staticmethod
    def event_updated(
        event_id: UUID,
        user_id: UUID,
        title: str,
        scheduled_at: datetime,
        recurrence: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_UPDATED,
            entity_type="calendar_event",
            entity_id=event_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Calendar event updated: {title}",
            details={
                "scheduled_at": scheduled_at.isoformat(),
                "recurrence": recurrence,
            },
            is_user_action=True,
        )

    @staticmethod
    def event_deleted(
        event_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_DELETED,
            entity_type="calendar_event",
            entity_id=event_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Calendar event deleted",
            is_user_action=True,
        )

    @staticmethod
    def occurrence_dismissed(
        event_id: UUID,
        user_id: UUID,
        dismissed_until: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCCURRENCE_DISMISSED,
            entity_type="calendar_event",
            entity_id=event_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Reminders dismissed until {dismissed_until.isoformat()}",
            details={
                "dismissed_until_utc": dismissed_until.isoformat(),
            },
            is_user_action=True,
        )

    @staticmethod
    def dismissal_reset(
        event_id: UUID,
        user_id: UUID,
        previous_watermark: datetime,
        new_anchor: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DISMISSAL_RESET,
            entity_type="calendar_event",
            entity_id=event_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Dismissal cleared after the event was rescheduled",
            details={
                "previous_dismissed_until_utc": previous_watermark.isoformat(),
                "new_scheduled_at": new_anchor.isoformat(),
            },
        )

    @staticmethod
    def validation_failed(
        operation: str,
        user_id: UUID,
        issues: list[dict],
        event_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="calendar_event",
            entity_id=event_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{operation.capitalize()} rejected with {len(issues)} issues",
            details={
                "operation": operation,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def event_not_found(
        operation: str,
        event_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="calendar_event",
            entity_id=event_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{operation.capitalize()} targeted a missing event",
            details={
                "operation": operation,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        event_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="calendar_event",
            entity_id=event_id,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )


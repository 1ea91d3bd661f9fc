"""
Audit Logger

DESIGN DECISION: Every write against the calendar is logged.
This provides:
1. Complete traceability of who changed which reminder
2. Debugging capability when a reminder "disappears" after a dismissal
3. User can see history of their interactions

The audit logger:
- Is async so it composes with the async calendar service
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_calendar.models.audit import AuditEvent, AuditEventBuilder
from expense_calendar.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility), if configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_calendar.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_event_created(
        self,
        event_id: UUID,
        user_id: UUID,
        title: str,
        scheduled_at: datetime,
        recurrence: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a newly scheduled event."""
        await self.log(AuditEventBuilder.event_created(
            event_id=event_id,
            user_id=user_id,
            title=title,
            scheduled_at=scheduled_at,
            recurrence=recurrence,
            correlation_id=correlation_id,
        ))

    async def log_event_updated(
        self,
        event_id: UUID,
        user_id: UUID,
        title: str,
        scheduled_at: datetime,
        recurrence: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an event rewrite."""
        await self.log(AuditEventBuilder.event_updated(
            event_id=event_id,
            user_id=user_id,
            title=title,
            scheduled_at=scheduled_at,
            recurrence=recurrence,
            correlation_id=correlation_id,
        ))

    async def log_event_deleted(
        self,
        event_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an event removal."""
        await self.log(AuditEventBuilder.event_deleted(
            event_id=event_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_occurrence_dismissed(
        self,
        event_id: UUID,
        user_id: UUID,
        dismissed_until: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a dismissal watermark being set."""
        await self.log(AuditEventBuilder.occurrence_dismissed(
            event_id=event_id,
            user_id=user_id,
            dismissed_until=dismissed_until,
            correlation_id=correlation_id,
        ))

    async def log_dismissal_reset(
        self,
        event_id: UUID,
        user_id: UUID,
        previous_watermark: datetime,
        new_anchor: datetime,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a watermark cleared by a reschedule."""
        await self.log(AuditEventBuilder.dismissal_reset(
            event_id=event_id,
            user_id=user_id,
            previous_watermark=previous_watermark,
            new_anchor=new_anchor,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        operation: str,
        user_id: UUID,
        issues: list[dict],
        event_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected create/update."""
        await self.log(AuditEventBuilder.validation_failed(
            operation=operation,
            user_id=user_id,
            issues=issues,
            event_id=event_id,
            correlation_id=correlation_id,
        ))

    async def log_event_not_found(
        self,
        operation: str,
        event_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a write that targeted a missing or foreign event."""
        await self.log(AuditEventBuilder.event_not_found(
            operation=operation,
            event_id=event_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        event_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage failure before it propagates."""
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            event_id=event_id,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., an editor session)
    and pass it through all subsequent operations.
    """
    return uuid4()

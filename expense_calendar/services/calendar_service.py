"""
Calendar Query Service

Orchestrates storage fetches, occurrence expansion and calendar writes.

READ PATH:
1. Fetch non-recurring events anchored inside the window
2. Fetch recurring events anchored at or before the window end (no lower
   bound - an old series can still land in the window)
3. Expand every event through the occurrence engine
4. Sort by (occurrence instant, title) and map to the requested item shape

DESIGN DECISION: Both read shapes (event items and occurrence items) are
mappings over ONE expansion step. Window and horizon handling can't drift
apart between the two.

WRITE PATH:
- Validation failures raise (and are audited first)
- "Not found" is a False return, never an exception
- Storage failures propagate unchanged; nothing is retried here
"""

from datetime import datetime, time, timedelta, tzinfo
from typing import TYPE_CHECKING, Callable, Optional
from uuid import UUID
from zoneinfo import ZoneInfo

import structlog
from dateutil.tz import tzlocal
from pydantic import ValidationError

from expense_calendar.config import get_settings
from expense_calendar.models.calendar import (
    CalendarEvent,
    CalendarEventItem,
    CalendarEventOccurrenceItem,
    CreateCalendarEventRequest,
    DashboardAlertItem,
    DismissCalendarEventRequest,
    HorizonAnchor,
    RecurrenceHorizon,
    UpdateCalendarEventRequest,
    normalize_to_utc,
    utc_now,
)
from expense_calendar.occurrences import iter_occurrences
from expense_calendar.services.storage.interface import (
    CalendarEventStorageInterface,
    NotFoundError,
    StorageError,
)

if TYPE_CHECKING:
    from expense_calendar.audit import AuditLogger


logger = structlog.get_logger(__name__)

Occurrence = tuple[CalendarEvent, datetime]


def _validation_issues(error: ValidationError) -> list[dict]:
    return [
        {
            "field": ".".join(str(part) for part in issue["loc"]),
            "message": issue["msg"],
        }
        for issue in error.errors()
    ]


class CalendarService:
    """
    Calendar reads and writes for one storage backend.

    All public instants are UTC. Naive datetimes passed in are treated
    as UTC; aware ones are converted.
    """

    def __init__(
        self,
        storage: CalendarEventStorageInterface,
        audit_logger: Optional["AuditLogger"] = None,
        horizon: Optional[RecurrenceHorizon] = None,
        dashboard_window_days: Optional[int] = None,
        local_timezone: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the service.

        Args:
            storage: Calendar event storage backend
            audit_logger: Audit trail for writes. If None, writes aren't audited.
            horizon: Recurrence horizon. Defaults to the configured one.
            dashboard_window_days: Look-ahead for dashboard reminders.
            local_timezone: Zone that defines "today". Defaults to the
                configured zone, else the system zone.
            clock: Returns the current UTC instant. Injected by tests.
        """
        settings = get_settings().calendar

        self._storage = storage
        self._audit_logger = audit_logger
        self._horizon = horizon or RecurrenceHorizon(
            days=settings.horizon_days,
            relative_to=HorizonAnchor(settings.horizon_anchor),
        )
        if dashboard_window_days is None:
            dashboard_window_days = settings.dashboard_window_days
        self._dashboard_window = timedelta(days=dashboard_window_days)
        if local_timezone is None:
            local_timezone = (
                ZoneInfo(settings.local_timezone)
                if settings.local_timezone
                else tzlocal()
            )
        self._local_timezone = local_timezone
        self._clock = clock or utc_now

    @property
    def horizon(self) -> RecurrenceHorizon:
        return self._horizon

    # =========================================================================
    # READS
    # =========================================================================

    async def get_upcoming_events(
        self,
        user_id: UUID,
        from_utc: datetime,
        to_utc: datetime,
    ) -> list[CalendarEventItem]:
        """One item per occurrence in `[from_utc, to_utc]`, carrying the event's fields."""
        expanded = await self._expand(user_id, from_utc, to_utc)
        return [self._to_event_item(event, occurs_at) for event, occurs_at in expanded]

    async def get_upcoming_occurrences(
        self,
        user_id: UUID,
        from_utc: datetime,
        to_utc: datetime,
    ) -> list[CalendarEventOccurrenceItem]:
        """Lightweight occurrence records in `[from_utc, to_utc]`, for alerts."""
        expanded = await self._expand(user_id, from_utc, to_utc)
        return [self._to_occurrence_item(event, occurs_at) for event, occurs_at in expanded]

    async def get_dashboard_reminders(self, user_id: UUID) -> list[DashboardAlertItem]:
        """
        Reminders due today.

        Looks ahead over the dashboard window starting now, then keeps only
        occurrences inside the local calendar day.
        """
        now_utc = self._clock()
        today_start, today_end = self.today_bounds_utc(now_utc)

        upcoming = await self.get_upcoming_occurrences(
            user_id, now_utc, now_utc + self._dashboard_window
        )

        return [
            DashboardAlertItem(
                event_id=item.event_id,
                title=item.title,
                occurs_at=item.occurs_at,
                alert_type=item.event_type,
                is_recurring=item.is_recurring,
                is_dismissed=item.is_dismissed,
            )
            for item in upcoming
            if today_start <= item.occurs_at < today_end
        ]

    def today_bounds_utc(self, now_utc: datetime) -> tuple[datetime, datetime]:
        """UTC bounds `[start, end)` of the local calendar day containing `now_utc`."""
        local_now = normalize_to_utc(now_utc).astimezone(self._local_timezone)
        start_local = datetime.combine(local_now.date(), time.min, tzinfo=self._local_timezone)
        end_local = datetime.combine(
            local_now.date() + timedelta(days=1), time.min, tzinfo=self._local_timezone
        )
        return normalize_to_utc(start_local), normalize_to_utc(end_local)

    async def _expand(
        self,
        user_id: UUID,
        from_utc: datetime,
        to_utc: datetime,
    ) -> list[Occurrence]:
        from_utc = normalize_to_utc(from_utc)
        to_utc = normalize_to_utc(to_utc)
        if to_utc < from_utc:
            return []

        single_events = await self._storage.list_single_events(user_id, from_utc, to_utc)
        recurring_events = await self._storage.list_recurring_events(user_id, to_utc)

        expanded: list[Occurrence] = [
            (event, occurs_at)
            for event in single_events + recurring_events
            for occurs_at in iter_occurrences(event, from_utc, to_utc, self._horizon)
        ]
        expanded.sort(key=lambda pair: (pair[1], pair[0].title))

        logger.debug(
            "calendar_window_expanded",
            user_id=str(user_id),
            from_utc=from_utc.isoformat(),
            to_utc=to_utc.isoformat(),
            single_events=len(single_events),
            recurring_events=len(recurring_events),
            occurrences=len(expanded),
        )
        return expanded

    @staticmethod
    def _to_event_item(event: CalendarEvent, occurs_at: datetime) -> CalendarEventItem:
        return CalendarEventItem(
            id=event.id,
            title=event.title,
            notes=event.notes,
            scheduled_at=occurs_at,
            reminder_offset=event.reminder_offset,
            recurrence=event.recurrence,
            linked_expense_id=event.linked_expense_id,
            event_type=event.event_type,
            dismissed_until_utc=event.dismissed_until_utc,
        )

    @staticmethod
    def _to_occurrence_item(
        event: CalendarEvent,
        occurs_at: datetime,
    ) -> CalendarEventOccurrenceItem:
        return CalendarEventOccurrenceItem(
            event_id=event.id,
            title=event.title,
            occurs_at=occurs_at,
            event_type=event.event_type,
            recurrence=event.recurrence,
            is_recurring=event.is_recurring,
            is_dismissed=False,
        )

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create_event(
        self,
        request: CreateCalendarEventRequest,
        correlation_id: Optional[UUID] = None,
    ) -> UUID:
        """
        Schedule a new event and return its ID.

        Raises:
            pydantic.ValidationError: If the title is empty
            StorageError: If the write fails
        """
        try:
            event = CalendarEvent.create(
                user_id=request.user_id,
                title=request.title,
                event_type=request.event_type,
                scheduled_at=request.scheduled_at,
                notes=request.notes,
                reminder_offset=request.reminder_offset,
                linked_expense_id=request.linked_expense_id,
                recurrence=request.recurrence,
            )
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    operation="create",
                    user_id=request.user_id,
                    issues=_validation_issues(e),
                    correlation_id=correlation_id,
                )
            raise

        try:
            await self._storage.add_event(event)
        except StorageError as e:
            await self._report_storage_error("create", e, event.id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_event_created(
                event_id=event.id,
                user_id=event.user_id,
                title=event.title,
                scheduled_at=event.scheduled_at,
                recurrence=event.recurrence.value,
                correlation_id=correlation_id,
            )

        return event.id

    async def update_event(
        self,
        request: UpdateCalendarEventRequest,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Rewrite an event's mutable fields.

        Returns False if the event doesn't exist for this user.

        Raises:
            pydantic.ValidationError: If the title is empty
            StorageError: If the write fails
        """
        existing = await self._storage.get_event(request.user_id, request.event_id)
        if existing is None:
            await self._report_not_found("update", request.event_id, request.user_id, correlation_id)
            return False

        try:
            updated = existing.with_details(
                title=request.title,
                event_type=request.event_type,
                scheduled_at=request.scheduled_at,
                notes=request.notes,
                reminder_offset=request.reminder_offset,
                recurrence=request.recurrence,
                linked_expense_id=request.linked_expense_id,
            )
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    operation="update",
                    user_id=request.user_id,
                    issues=_validation_issues(e),
                    event_id=request.event_id,
                    correlation_id=correlation_id,
                )
            raise

        try:
            await self._storage.save_event(updated)
        except NotFoundError:
            # Deleted between read and write
            await self._report_not_found("update", request.event_id, request.user_id, correlation_id)
            return False
        except StorageError as e:
            await self._report_storage_error("update", e, updated.id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_event_updated(
                event_id=updated.id,
                user_id=updated.user_id,
                title=updated.title,
                scheduled_at=updated.scheduled_at,
                recurrence=updated.recurrence.value,
                correlation_id=correlation_id,
            )
            if existing.dismissed_until_utc is not None and updated.dismissed_until_utc is None:
                await self._audit_logger.log_dismissal_reset(
                    event_id=updated.id,
                    user_id=updated.user_id,
                    previous_watermark=existing.dismissed_until_utc,
                    new_anchor=updated.scheduled_at,
                    correlation_id=correlation_id,
                )

        return True

    async def delete_event(
        self,
        user_id: UUID,
        event_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Remove an event.

        Returns False if the event doesn't exist for this user.
        """
        try:
            deleted = await self._storage.delete_event(user_id, event_id)
        except StorageError as e:
            await self._report_storage_error("delete", e, event_id, correlation_id)
            raise

        if not deleted:
            await self._report_not_found("delete", event_id, user_id, correlation_id)
            return False

        if self._audit_logger:
            await self._audit_logger.log_event_deleted(
                event_id=event_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return True

    async def dismiss_occurrence(
        self,
        request: DismissCalendarEventRequest,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Suppress every occurrence of the event up to and including `occurrence_utc`.

        Returns False if the event doesn't exist for this user.
        """
        existing = await self._storage.get_event(request.user_id, request.event_id)
        if existing is None:
            await self._report_not_found("dismiss", request.event_id, request.user_id, correlation_id)
            return False

        dismissed = existing.with_dismissal(request.occurrence_utc)

        try:
            await self._storage.save_event(dismissed)
        except NotFoundError:
            await self._report_not_found("dismiss", request.event_id, request.user_id, correlation_id)
            return False
        except StorageError as e:
            await self._report_storage_error("dismiss", e, dismissed.id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_occurrence_dismissed(
                event_id=dismissed.id,
                user_id=dismissed.user_id,
                dismissed_until=dismissed.dismissed_until_utc,
                correlation_id=correlation_id,
            )
        return True

    async def _report_not_found(
        self,
        operation: str,
        event_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_event_not_found(
                operation=operation,
                event_id=event_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )

    async def _report_storage_error(
        self,
        operation: str,
        error: StorageError,
        event_id: Optional[UUID],
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                event_id=event_id,
                correlation_id=correlation_id,
            )

"""
Calendar Data Models for Expense Calendar

These models define the schemas for calendar events and everything derived
from them: requests coming in from the UI layer, occurrence items going out,
and the horizon policy used when expanding recurring series.

DESIGN DECISION: CalendarEvent is an immutable value.
State changes go through explicit transition functions (create, with_details,
with_dismissal) that return new values. The expansion engine and the storage
layer only ever see plain, comparable records.

All instants are stored in UTC. Naive datetimes are taken to already be UTC;
timezone-aware datetimes are converted.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def utc_now() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_to_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC instant.

    - Aware values are converted to UTC.
    - Naive values are assumed to already be UTC.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class AlertType(str, Enum):
    """
    Classification of a calendar event.

    Opaque to the expansion engine; only the presentation layer cares.
    """
    BUDGET_LIMIT = "budget_limit"
    PAYMENT_REMINDER = "payment_reminder"
    RECURRING_EXPENSE = "recurring_expense"
    UPCOMING_BILL = "upcoming_bill"
    CUSTOM = "custom"


class RecurrenceType(str, Enum):
    """How often a calendar event repeats."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class HorizonAnchor(str, Enum):
    """
    What the recurrence horizon is measured from.

    SERIES_START caps a series at a fixed distance past its anchor, so a
    series older than the horizon stops producing occurrences.
    WINDOW_START rolls the cap forward with the requested window.
    """
    SERIES_START = "series_start"
    WINDOW_START = "window_start"


class RecurrenceHorizon(BaseModel):
    """Upper bound on how far a recurring series is ever expanded."""
    model_config = ConfigDict(frozen=True)

    days: int = Field(
        default=365,
        ge=1,
        description="Maximum number of days a series is expanded"
    )
    relative_to: HorizonAnchor = Field(
        default=HorizonAnchor.SERIES_START,
        description="Whether the cap is measured from the anchor or the window start"
    )

    def upper_bound(self, anchor: datetime, window_start: datetime) -> datetime:
        """Latest instant a series anchored at `anchor` may produce."""
        if self.relative_to == HorizonAnchor.WINDOW_START:
            return window_start + timedelta(days=self.days)
        return anchor + timedelta(days=self.days)


# =============================================================================
# CALENDAR EVENT AGGREGATE
# =============================================================================

class CalendarEvent(BaseModel):
    """
    A calendar event, optionally recurring.

    For non-recurring events `scheduled_at` is the only occurrence.
    For recurring events it is the first occurrence of the series.

    `dismissed_until_utc` is a high-water mark: every occurrence at or
    before it is suppressed.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique event ID"
    )
    user_id: UUID = Field(
        ...,
        description="Owner of the event"
    )

    title: str = Field(
        ...,
        max_length=200,
        description="Event title (required)"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Free-form notes"
    )
    event_type: AlertType = Field(
        default=AlertType.CUSTOM,
        description="Event classification"
    )

    # Schedule
    scheduled_at: datetime = Field(
        ...,
        description="Anchor occurrence (UTC)"
    )
    reminder_offset: Optional[timedelta] = Field(
        default=None,
        description="How long before an occurrence the user wants a reminder"
    )
    recurrence: RecurrenceType = Field(
        default=RecurrenceType.NONE,
        description="Recurrence rule"
    )

    linked_expense_id: Optional[UUID] = None
    dismissed_until_utc: Optional[datetime] = Field(
        default=None,
        description="Occurrences at or before this instant are suppressed"
    )

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject blank titles."""
        if not v:
            raise ValueError("Title cannot be empty")
        return v

    @field_validator('notes')
    @classmethod
    def blank_notes_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator('scheduled_at', 'dismissed_until_utc', 'created_at', 'updated_at')
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store every instant as aware UTC."""
        if v is None:
            return None
        return normalize_to_utc(v)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence != RecurrenceType.NONE

    @property
    def is_dismissed(self) -> bool:
        return self.dismissed_until_utc is not None

    @classmethod
    def create(
        cls,
        user_id: UUID,
        title: str,
        event_type: AlertType,
        scheduled_at: datetime,
        notes: Optional[str] = None,
        reminder_offset: Optional[timedelta] = None,
        linked_expense_id: Optional[UUID] = None,
        recurrence: RecurrenceType = RecurrenceType.NONE,
    ) -> "CalendarEvent":
        """
        Factory for a brand new event.

        Raises:
            pydantic.ValidationError: If the title is empty
        """
        now = utc_now()
        return cls(
            user_id=user_id,
            title=title,
            notes=notes,
            event_type=event_type,
            scheduled_at=scheduled_at,
            reminder_offset=reminder_offset,
            recurrence=recurrence,
            linked_expense_id=linked_expense_id,
            created_at=now,
            updated_at=now,
        )

    def with_details(
        self,
        title: str,
        event_type: AlertType,
        scheduled_at: datetime,
        notes: Optional[str],
        reminder_offset: Optional[timedelta],
        recurrence: RecurrenceType,
        linked_expense_id: Optional[UUID],
    ) -> "CalendarEvent":
        """
        Return a copy with every mutable field rewritten.

        The dismissal watermark is cleared when the event is moved past it:
        - non-recurring: watermark <= new anchor
        - recurring: watermark < new anchor

        Raises:
            pydantic.ValidationError: If the title is empty
        """
        scheduled_at = normalize_to_utc(scheduled_at)
        dismissed_until = self.dismissed_until_utc

        if dismissed_until is not None:
            if recurrence == RecurrenceType.NONE and dismissed_until <= scheduled_at:
                dismissed_until = None
            elif recurrence != RecurrenceType.NONE and dismissed_until < scheduled_at:
                dismissed_until = None

        return self._evolve(
            title=title,
            notes=notes,
            event_type=event_type,
            scheduled_at=scheduled_at,
            reminder_offset=reminder_offset,
            recurrence=recurrence,
            linked_expense_id=linked_expense_id,
            dismissed_until_utc=dismissed_until,
        )

    def with_dismissal(self, occurrence_utc: datetime) -> "CalendarEvent":
        """Return a copy whose occurrences up to `occurrence_utc` are suppressed."""
        return self._evolve(dismissed_until_utc=normalize_to_utc(occurrence_utc))

    def _evolve(self, **changes: Any) -> "CalendarEvent":
        # Re-validate rather than model_copy so the title rule still applies
        data = self.model_dump()
        data.update(changes)
        data["updated_at"] = utc_now()
        return type(self).model_validate(data)


# =============================================================================
# REQUESTS (inbound from the UI layer)
# =============================================================================

class CreateCalendarEventRequest(BaseModel):
    """Everything needed to schedule a new event."""

    user_id: UUID
    title: str
    notes: Optional[str] = None
    scheduled_at: datetime
    reminder_offset: Optional[timedelta] = None
    recurrence: RecurrenceType = RecurrenceType.NONE
    linked_expense_id: Optional[UUID] = None
    event_type: AlertType = AlertType.CUSTOM


class UpdateCalendarEventRequest(BaseModel):
    """Full rewrite of an existing event's mutable fields."""

    event_id: UUID
    user_id: UUID
    title: str
    notes: Optional[str] = None
    scheduled_at: datetime
    reminder_offset: Optional[timedelta] = None
    recurrence: RecurrenceType = RecurrenceType.NONE
    linked_expense_id: Optional[UUID] = None
    event_type: AlertType = AlertType.CUSTOM


class DismissCalendarEventRequest(BaseModel):
    """Suppress an event's occurrences up to and including `occurrence_utc`."""

    user_id: UUID
    event_id: UUID
    occurrence_utc: datetime


# =============================================================================
# OUTPUT ITEMS (outbound to the UI layer)
# =============================================================================

class CalendarEventItem(BaseModel):
    """
    One materialized occurrence of an event.

    `scheduled_at` is the concrete occurrence instant, not the series anchor.
    """

    id: UUID
    title: str
    notes: Optional[str] = None
    scheduled_at: datetime
    reminder_offset: Optional[timedelta] = None
    recurrence: RecurrenceType
    linked_expense_id: Optional[UUID] = None
    event_type: AlertType
    dismissed_until_utc: Optional[datetime] = None


class CalendarEventOccurrenceItem(BaseModel):
    """Lightweight occurrence record used for alerts and reminders."""

    event_id: UUID
    title: str
    occurs_at: datetime
    event_type: AlertType
    recurrence: RecurrenceType
    is_recurring: bool
    is_dismissed: bool = False


class DashboardAlertItem(BaseModel):
    """A reminder due today, as shown on the dashboard."""

    event_id: UUID
    title: str
    occurs_at: datetime
    alert_type: AlertType
    is_recurring: bool
    is_dismissed: bool = False

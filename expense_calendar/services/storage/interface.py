"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep calendar logic decoupled from storage implementation

The interface is intentionally small - just the fetches the occurrence
queries need and single-record writes.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from expense_calendar.models.audit import AuditEvent
from expense_calendar.models.calendar import CalendarEvent


class CalendarEventStorageInterface(ABC):
    """
    Abstract interface for calendar event storage.

    Any storage implementation (Google Sheets, SQLite, in-memory, etc.)
    must implement these methods. All instants are UTC.
    """

    @abstractmethod
    async def list_single_events(
        self,
        user_id: UUID,
        from_utc: datetime,
        to_utc: datetime,
    ) -> list[CalendarEvent]:
        """
        List a user's non-recurring events anchored inside a window.

        Args:
            user_id: Owner of the events
            from_utc: Inclusive lower bound on scheduled_at
            to_utc: Inclusive upper bound on scheduled_at

        Returns:
            Matching events, in no particular order
        """
        pass

    @abstractmethod
    async def list_recurring_events(
        self,
        user_id: UUID,
        until_utc: datetime,
    ) -> list[CalendarEvent]:
        """
        List a user's recurring events anchored at or before `until_utc`.

        There is no lower bound: a series anchored long ago may still
        produce occurrences inside the caller's window.
        """
        pass

    @abstractmethod
    async def get_event(
        self,
        user_id: UUID,
        event_id: UUID,
    ) -> Optional[CalendarEvent]:
        """
        Retrieve one of a user's events.

        Returns:
            The event if it exists and belongs to the user, None otherwise
        """
        pass

    @abstractmethod
    async def add_event(self, event: CalendarEvent) -> bool:
        """
        Insert a new event.

        Raises:
            DuplicateError: If an event with the same ID exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def save_event(self, event: CalendarEvent) -> bool:
        """
        Replace a stored event with a new version.

        Raises:
            NotFoundError: If the event doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_event(self, user_id: UUID, event_id: UUID) -> bool:
        """
        Delete one of a user's events.

        Returns:
            True if deleted, False if no such event for that user
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass

"""
In-Memory Storage Implementation

Keeps calendar events and audit events in process memory.
Used by the test suite and for local runs without Google Sheets.

Events are immutable values, so handing them out directly is safe:
callers can't change what's stored without going through save_event.
"""

import asyncio
from datetime import datetime
from typing import Optional
from uuid import UUID

from expense_calendar.models.audit import AuditEvent
from expense_calendar.models.calendar import CalendarEvent, RecurrenceType
from expense_calendar.services.storage.interface import (
    AuditStorageInterface,
    CalendarEventStorageInterface,
    DuplicateError,
    NotFoundError,
)


class InMemoryCalendarEventStorage(CalendarEventStorageInterface):
    """Dict-backed calendar event storage guarded by an asyncio lock."""

    def __init__(self, events: Optional[list[CalendarEvent]] = None):
        self._events: dict[UUID, CalendarEvent] = {
            event.id: event for event in events or []
        }
        self._lock = asyncio.Lock()

    async def list_single_events(
        self,
        user_id: UUID,
        from_utc: datetime,
        to_utc: datetime,
    ) -> list[CalendarEvent]:
        async with self._lock:
            return [
                event for event in self._events.values()
                if event.user_id == user_id
                and event.recurrence == RecurrenceType.NONE
                and from_utc <= event.scheduled_at <= to_utc
            ]

    async def list_recurring_events(
        self,
        user_id: UUID,
        until_utc: datetime,
    ) -> list[CalendarEvent]:
        async with self._lock:
            return [
                event for event in self._events.values()
                if event.user_id == user_id
                and event.recurrence != RecurrenceType.NONE
                and event.scheduled_at <= until_utc
            ]

    async def get_event(
        self,
        user_id: UUID,
        event_id: UUID,
    ) -> Optional[CalendarEvent]:
        async with self._lock:
            event = self._events.get(event_id)
        if event is None or event.user_id != user_id:
            return None
        return event

    async def add_event(self, event: CalendarEvent) -> bool:
        async with self._lock:
            if event.id in self._events:
                raise DuplicateError(f"Calendar event already exists: {event.id}")
            self._events[event.id] = event
        return True

    async def save_event(self, event: CalendarEvent) -> bool:
        async with self._lock:
            if event.id not in self._events:
                raise NotFoundError(f"Calendar event not found: {event.id}")
            self._events[event.id] = event
        return True

    async def delete_event(self, user_id: UUID, event_id: UUID) -> bool:
        async with self._lock:
            event = self._events.get(event_id)
            if event is None or event.user_id != user_id:
                return False
            del self._events[event_id]
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            event for event in self._events
            if event.entity_type == entity_type and event.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        # Appended in order, so newest is last
        return list(reversed(self._events))[:limit]

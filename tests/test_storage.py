"""
Tests for storage backends

Google Sheets is replaced by an in-process fake worksheet; no API calls.
"""

import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from expense_calendar.models.audit import AuditEventBuilder
from expense_calendar.models.calendar import (
    AlertType,
    CalendarEvent,
    RecurrenceType,
)
from expense_calendar.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsCalendarEventStorage,
    InMemoryAuditStorage,
    InMemoryCalendarEventStorage,
    NotFoundError,
)
from expense_calendar.services.storage.google_sheets import EVENT_COLUMNS
from expense_calendar.models.audit import AUDIT_COLUMNS


T = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_event(user_id=None, scheduled_at=T, recurrence=RecurrenceType.NONE, **overrides) -> CalendarEvent:
    return CalendarEvent.create(
        user_id=user_id or uuid4(),
        title=overrides.pop("title", "Internet bill"),
        event_type=overrides.pop("event_type", AlertType.UPCOMING_BILL),
        scheduled_at=scheduled_at,
        recurrence=recurrence,
        **overrides,
    )


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, header: list[str]):
        self.rows: list[list[str]] = [list(header)]
        self.input_options: list[str] = []

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.input_options.append(value_input_option)
        self.rows.append([str(value) for value in row])

    def update(self, range_name: str, values, value_input_option=None):
        # Only single-row writes anchored at column A
        assert range_name.startswith("A") and len(values) == 1
        self.input_options.append(value_input_option)
        self.rows[int(range_name[1:]) - 1] = [str(value) for value in values[0]]

    def delete_rows(self, index: int):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.events_sheet = FakeWorksheet(EVENT_COLUMNS)
        self.audit_sheet = FakeWorksheet(AUDIT_COLUMNS)

    def get_events_sheet(self):
        return self.events_sheet

    def get_audit_sheet(self):
        return self.audit_sheet


class TestInMemoryCalendarEventStorage:
    """Tests for the dict-backed store."""

    @pytest.mark.asyncio
    async def test_single_events_filtered_by_window(self):
        user_id = uuid4()
        inside = make_event(user_id, scheduled_at=T + timedelta(days=1))
        outside = make_event(user_id, scheduled_at=T + timedelta(days=10))
        recurring = make_event(user_id, recurrence=RecurrenceType.DAILY)
        storage = InMemoryCalendarEventStorage([inside, outside, recurring])

        result = await storage.list_single_events(user_id, T, T + timedelta(days=5))

        assert [event.id for event in result] == [inside.id]

    @pytest.mark.asyncio
    async def test_recurring_events_have_no_lower_bound(self):
        user_id = uuid4()
        old = make_event(user_id, scheduled_at=T - timedelta(days=500), recurrence=RecurrenceType.MONTHLY)
        future = make_event(user_id, scheduled_at=T + timedelta(days=50), recurrence=RecurrenceType.WEEKLY)
        storage = InMemoryCalendarEventStorage([old, future])

        result = await storage.list_recurring_events(user_id, T + timedelta(days=5))

        assert [event.id for event in result] == [old.id]

    @pytest.mark.asyncio
    async def test_get_event_scoped_to_user(self):
        event = make_event()
        storage = InMemoryCalendarEventStorage([event])

        assert await storage.get_event(event.user_id, event.id) == event
        assert await storage.get_event(uuid4(), event.id) is None

    @pytest.mark.asyncio
    async def test_add_duplicate_raises(self):
        event = make_event()
        storage = InMemoryCalendarEventStorage([event])

        with pytest.raises(DuplicateError):
            await storage.add_event(event)

    @pytest.mark.asyncio
    async def test_save_missing_raises(self):
        storage = InMemoryCalendarEventStorage()

        with pytest.raises(NotFoundError):
            await storage.save_event(make_event())

    @pytest.mark.asyncio
    async def test_delete_scoped_to_user(self):
        event = make_event()
        storage = InMemoryCalendarEventStorage([event])

        assert await storage.delete_event(uuid4(), event.id) is False
        assert await storage.delete_event(event.user_id, event.id) is True
        assert await storage.get_event(event.user_id, event.id) is None


class TestInMemoryAuditStorage:

    @pytest.mark.asyncio
    async def test_recent_events_newest_first(self):
        storage = InMemoryAuditStorage()
        first = AuditEventBuilder.event_deleted(event_id=uuid4(), user_id=uuid4())
        second = AuditEventBuilder.event_deleted(event_id=uuid4(), user_id=uuid4())
        await storage.append_event(first)
        await storage.append_event(second)

        assert await storage.get_recent_events() == [second, first]
        assert await storage.get_recent_events(limit=1) == [second]


class TestGoogleSheetsCalendarEventStorage:
    """Tests for the sheet-backed store against a fake worksheet."""

    @pytest.mark.asyncio
    async def test_add_and_read_back(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsCalendarEventStorage(client)
        event = make_event(
            notes="autopay",
            reminder_offset=timedelta(hours=6),
            linked_expense_id=uuid4(),
            recurrence=RecurrenceType.QUARTERLY,
        )

        assert await storage.add_event(event) is True
        loaded = await storage.get_event(event.user_id, event.id)

        assert loaded == event
        assert loaded.reminder_offset == timedelta(hours=6)
        assert client.events_sheet.rows[1][6] == "21600"

    @pytest.mark.asyncio
    async def test_add_duplicate_raises(self):
        storage = GoogleSheetsCalendarEventStorage(FakeSheetsClient())
        event = make_event()
        await storage.add_event(event)

        with pytest.raises(DuplicateError):
            await storage.add_event(event)

    @pytest.mark.asyncio
    async def test_save_rewrites_row(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsCalendarEventStorage(client)
        event = make_event()
        await storage.add_event(event)

        dismissed = event.with_dismissal(T)
        assert await storage.save_event(dismissed) is True

        loaded = await storage.get_event(event.user_id, event.id)
        assert loaded.dismissed_until_utc == T
        assert len(client.events_sheet.rows) == 2

    @pytest.mark.asyncio
    async def test_save_writes_whole_row_raw(self):
        """Updates use the same RAW input mode as inserts, so text isn't parsed as a formula."""
        client = FakeSheetsClient()
        storage = GoogleSheetsCalendarEventStorage(client)
        event = make_event(title="=Rent", notes="+44 landlord")
        await storage.add_event(event)

        assert await storage.save_event(event.with_dismissal(T)) is True

        assert client.events_sheet.input_options == ["RAW", "RAW"]
        loaded = await storage.get_event(event.user_id, event.id)
        assert loaded.title == "=Rent"
        assert loaded.notes == "+44 landlord"
        assert loaded.dismissed_until_utc == T

    @pytest.mark.asyncio
    async def test_save_missing_raises(self):
        storage = GoogleSheetsCalendarEventStorage(FakeSheetsClient())

        with pytest.raises(NotFoundError):
            await storage.save_event(make_event())

    @pytest.mark.asyncio
    async def test_list_queries(self):
        user_id = uuid4()
        storage = GoogleSheetsCalendarEventStorage(FakeSheetsClient())
        single = make_event(user_id, scheduled_at=T + timedelta(days=1))
        recurring = make_event(user_id, scheduled_at=T - timedelta(days=30), recurrence=RecurrenceType.MONTHLY)
        foreign = make_event(scheduled_at=T + timedelta(days=1))
        for event in (single, recurring, foreign):
            await storage.add_event(event)

        singles = await storage.list_single_events(user_id, T, T + timedelta(days=2))
        series = await storage.list_recurring_events(user_id, T + timedelta(days=2))

        assert [event.id for event in singles] == [single.id]
        assert [event.id for event in series] == [recurring.id]

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsCalendarEventStorage(client)
        event = make_event()
        await storage.add_event(event)
        client.events_sheet.rows.append(["not-a-uuid", "also-bad", "Broken"])
        client.events_sheet.rows.append([])

        result = await storage.list_single_events(event.user_id, T, T)

        assert [e.id for e in result] == [event.id]

    @pytest.mark.asyncio
    async def test_delete_checks_owner(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsCalendarEventStorage(client)
        event = make_event()
        await storage.add_event(event)

        assert await storage.delete_event(uuid4(), event.id) is False
        assert await storage.delete_event(event.user_id, event.id) is True
        assert len(client.events_sheet.rows) == 1


class TestGoogleSheetsAuditStorage:

    @pytest.mark.asyncio
    async def test_append_and_query_by_entity(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsAuditStorage(client)
        event_id = uuid4()
        created = AuditEventBuilder.event_created(
            event_id=event_id,
            user_id=uuid4(),
            title="Rent",
            scheduled_at=T,
            recurrence="monthly",
        )
        unrelated = AuditEventBuilder.event_deleted(event_id=uuid4(), user_id=uuid4())

        await storage.append_event(created)
        await storage.append_event(unrelated)

        trail = await storage.get_events_by_entity("calendar_event", event_id)
        assert [e.event_id for e in trail] == [created.event_id]
        assert trail[0].details["recurrence"] == "monthly"
        assert len(client.audit_sheet.rows) == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Occurrence Expansion Engine

Turns a calendar event definition plus a time window into the concrete
occurrence instants that fall inside the window.

DESIGN DECISION: Expansion is a pure function.
No I/O, no shared state, no clock. Identical inputs always produce the
same ordered output, so it is safe to call from any thread.

Recurring series are conceptually infinite. Two bounds keep expansion finite:
1. The caller's window
2. The recurrence horizon (default: 365 days past the series anchor)

Occurrence k of a series is always computed as `anchor + k * unit` using
calendar arithmetic (dateutil.relativedelta). Day-of-month clamping therefore
never drifts: Jan 31 -> Feb 29 -> Mar 31 -> Apr 30.
"""

from datetime import datetime, timedelta
from typing import Iterator, Optional

from dateutil.relativedelta import relativedelta

from expense_calendar.models.calendar import (
    CalendarEvent,
    RecurrenceHorizon,
    RecurrenceType,
    normalize_to_utc,
)


DEFAULT_HORIZON = RecurrenceHorizon()

# Fixed-length periods
_PERIODS: dict[RecurrenceType, timedelta] = {
    RecurrenceType.DAILY: timedelta(days=1),
    RecurrenceType.WEEKLY: timedelta(days=7),
}

# Calendar periods, in months
_MONTH_STEPS: dict[RecurrenceType, int] = {
    RecurrenceType.MONTHLY: 1,
    RecurrenceType.QUARTERLY: 3,
}


def is_suppressed(event: CalendarEvent, occurrence_utc: datetime) -> bool:
    """True if the occurrence is at or before the event's dismissal watermark."""
    if event.dismissed_until_utc is None:
        return False
    return occurrence_utc <= event.dismissed_until_utc


def occurrence_at(anchor: datetime, recurrence: RecurrenceType, index: int) -> datetime:
    """The `index`-th occurrence of a series (index 0 is the anchor)."""
    if recurrence in _PERIODS:
        return anchor + _PERIODS[recurrence] * index
    if recurrence in _MONTH_STEPS:
        return anchor + relativedelta(months=_MONTH_STEPS[recurrence] * index)
    if recurrence == RecurrenceType.YEARLY:
        return anchor + relativedelta(years=index)
    return anchor


def align_index(anchor: datetime, recurrence: RecurrenceType, from_utc: datetime) -> int:
    """
    Index of the first occurrence at or after `from_utc`.

    Jumps straight to the right neighbourhood instead of stepping through
    every skipped occurrence, then walks forward a bounded number of steps
    to absorb month-length and time-of-day differences.
    """
    if anchor >= from_utc or recurrence == RecurrenceType.NONE:
        return 0

    if recurrence in _PERIODS:
        # Ceiling division on timedeltas stays exact to the microsecond
        return -((anchor - from_utc) // _PERIODS[recurrence])

    if recurrence in _MONTH_STEPS:
        step = _MONTH_STEPS[recurrence]
        months = (from_utc.year - anchor.year) * 12 + from_utc.month - anchor.month
        if from_utc.day > anchor.day:
            months += 1
        index = max(0, -(-months // step))
    else:
        # (month, day) rather than day-of-year so leap years don't skew it
        years = from_utc.year - anchor.year
        if (from_utc.month, from_utc.day) > (anchor.month, anchor.day):
            years += 1
        index = max(0, years)

    while occurrence_at(anchor, recurrence, index) < from_utc:
        index += 1
    return index


def iter_occurrences(
    event: CalendarEvent,
    from_utc: datetime,
    to_utc: datetime,
    horizon: Optional[RecurrenceHorizon] = None,
) -> Iterator[datetime]:
    """
    Lazily yield the event's unsuppressed occurrences in `[from_utc, to_utc]`.

    Yields nothing (no error) when `to_utc < from_utc`.
    """
    from_utc = normalize_to_utc(from_utc)
    to_utc = normalize_to_utc(to_utc)
    if to_utc < from_utc:
        return

    anchor = event.scheduled_at

    if event.recurrence == RecurrenceType.NONE:
        if from_utc <= anchor <= to_utc and not is_suppressed(event, anchor):
            yield anchor
        return

    horizon = horizon or DEFAULT_HORIZON
    upper = min(to_utc, horizon.upper_bound(anchor, from_utc))

    index = align_index(anchor, event.recurrence, from_utc)
    current = occurrence_at(anchor, event.recurrence, index)

    while current <= upper:
        if current >= from_utc and not is_suppressed(event, current):
            yield current

        index += 1
        following = occurrence_at(anchor, event.recurrence, index)
        if following <= current:
            break
        current = following


def occurrences(
    event: CalendarEvent,
    from_utc: datetime,
    to_utc: datetime,
    horizon: Optional[RecurrenceHorizon] = None,
) -> list[datetime]:
    """Ascending list of the event's unsuppressed occurrences in the window."""
    return list(iter_occurrences(event, from_utc, to_utc, horizon))

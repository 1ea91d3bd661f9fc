"""Occurrence expansion package."""

from expense_calendar.occurrences.engine import (
    DEFAULT_HORIZON,
    align_index,
    is_suppressed,
    iter_occurrences,
    occurrence_at,
    occurrences,
)

__all__ = [
    "DEFAULT_HORIZON",
    "align_index",
    "is_suppressed",
    "iter_occurrences",
    "occurrence_at",
    "occurrences",
]

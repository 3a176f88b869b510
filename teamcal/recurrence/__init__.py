"""Recurrence patterns and expansion."""

from .patterns import (
    NoRecurrence,
    DailyPattern,
    WeeklyPattern,
    MonthlyDaysPattern,
    MonthlyOrdinalPattern,
    CustomPattern,
    RecurrencePattern,
    parse_recurrence,
    pattern_for,
)
from .expander import OccurrenceSequence, expand, occurrence_end

__all__ = [
    'NoRecurrence',
    'DailyPattern',
    'WeeklyPattern',
    'MonthlyDaysPattern',
    'MonthlyOrdinalPattern',
    'CustomPattern',
    'RecurrencePattern',
    'parse_recurrence',
    'pattern_for',
    'OccurrenceSequence',
    'expand',
    'occurrence_end',
]

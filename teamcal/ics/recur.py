"""Translate recurrence patterns into iCalendar RRULE values."""

from datetime import datetime
from typing import Any, Dict, Optional

from ..recurrence.patterns import (
    NoRecurrence,
    DailyPattern,
    WeeklyPattern,
    MonthlyDaysPattern,
    MonthlyOrdinalPattern,
    CustomPattern,
    RecurrencePattern,
    WEEKDAY_CODES,
)


def _shift(day: int, day_shift: int) -> int:
    return (day + day_shift) % 7


def recurrence_rule(pattern: RecurrencePattern, until: Optional[datetime] = None,
                    day_shift: int = 0) -> Optional[Dict[str, Any]]:
    """
    Build the RRULE mapping for ``icalendar``'s vRecur.

    Args:
        pattern: Parsed recurrence pattern
        until: UNTIL value (naive for floating, aware UTC for ``Z`` form)
        day_shift: Days to rotate weekday codes by when DTSTART is written in
            a zone whose date differs from the team-local start date

    Returns:
        Mapping of RRULE parts, or None for a single occurrence
    """
    rule: Dict[str, Any]
    if isinstance(pattern, NoRecurrence):
        return None
    if isinstance(pattern, DailyPattern):
        rule = {'FREQ': 'DAILY'}
        if pattern.interval != 1:
            rule['INTERVAL'] = pattern.interval
    elif isinstance(pattern, WeeklyPattern):
        rule = {'FREQ': 'WEEKLY'}
        if pattern.interval != 1:
            rule['INTERVAL'] = pattern.interval
        if pattern.days_of_week:
            rule['BYDAY'] = [WEEKDAY_CODES[_shift(d, day_shift)] for d in pattern.days_of_week]
    elif isinstance(pattern, MonthlyDaysPattern):
        rule = {'FREQ': 'MONTHLY'}
        if pattern.interval != 1:
            rule['INTERVAL'] = pattern.interval
        if pattern.days_of_month:
            rule['BYMONTHDAY'] = list(pattern.days_of_month)
    elif isinstance(pattern, MonthlyOrdinalPattern):
        rule = {'FREQ': 'MONTHLY'}
        if pattern.interval != 1:
            rule['INTERVAL'] = pattern.interval
        # The ordinal still counts within the UTC month, so month-edge dates can drift
        rule['BYDAY'] = [f"{pattern.ordinal}{WEEKDAY_CODES[_shift(pattern.weekday, day_shift)]}"]
    elif isinstance(pattern, CustomPattern):
        if pattern.frequency is None:
            return None
        rule = {'FREQ': pattern.frequency.upper()}
        if pattern.interval != 1:
            rule['INTERVAL'] = pattern.interval
        if pattern.days_of_week:
            rule['BYDAY'] = [WEEKDAY_CODES[_shift(d, day_shift)] for d in pattern.days_of_week]
        if pattern.days_of_month:
            rule['BYMONTHDAY'] = list(pattern.days_of_month)
    else:
        return None

    if until is not None:
        rule['UNTIL'] = until
    return rule

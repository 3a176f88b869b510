"""Recurrence pattern definitions.

A pattern is one of a closed set of frozen dataclasses. ``parse_recurrence``
builds one from the persisted ``(recurrence_type, recurrence_pattern)``
pair; everything downstream (expansion, iCalendar encoding) dispatches on
the dataclass type rather than on raw JSON.

Weekdays are numbered 0=Sunday .. 6=Saturday throughout.

Persisted JSON shapes accepted:
    daily:   {"interval": 2}
    weekly:  {"daysOfWeek": [1, 3]}  or legacy "MO,WE"
    monthly: {"daysOfMonth": [1, 15]}, {"pattern": "first-tuesday"},
             {"ordinal": -1, "dayOfWeek": 5}, or legacy "15" / "-1FR"
    custom:  {"frequency": "weekly", "interval": 2, "daysOfWeek": [...],
              "daysOfMonth": [...]}
"""

import re
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from ..errors import ValidationError

WEEKDAY_CODES = ('SU', 'MO', 'TU', 'WE', 'TH', 'FR', 'SA')
WEEKDAY_NAMES = ('sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday')
ORDINAL_NAMES = {'first': 1, 'second': 2, 'third': 3, 'fourth': 4, 'fifth': 5, 'last': -1}
CUSTOM_FREQUENCIES = ('daily', 'weekly', 'monthly', 'yearly')

_ORDINAL_CODE = re.compile(r'^(-1|[1-5])(SU|MO|TU|WE|TH|FR|SA)$')


@dataclass(frozen=True)
class NoRecurrence:
    pass


@dataclass(frozen=True)
class DailyPattern:
    interval: int = 1


@dataclass(frozen=True)
class WeeklyPattern:
    """Empty ``days_of_week`` means the weekday of the event start."""
    days_of_week: Tuple[int, ...] = ()
    interval: int = 1


@dataclass(frozen=True)
class MonthlyDaysPattern:
    """Empty ``days_of_month`` means the day of the event start."""
    days_of_month: Tuple[int, ...] = ()
    interval: int = 1


@dataclass(frozen=True)
class MonthlyOrdinalPattern:
    """The Nth (1-5) or last (-1) given weekday of each month."""
    ordinal: int
    weekday: int
    interval: int = 1


@dataclass(frozen=True)
class CustomPattern:
    """Free-form rule; ``frequency`` None means a single occurrence."""
    frequency: Optional[str] = None
    interval: int = 1
    days_of_week: Tuple[int, ...] = ()
    days_of_month: Tuple[int, ...] = ()


RecurrencePattern = Union[
    NoRecurrence,
    DailyPattern,
    WeeklyPattern,
    MonthlyDaysPattern,
    MonthlyOrdinalPattern,
    CustomPattern,
]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _interval(raw: Any) -> int:
    if not isinstance(raw, dict) or raw.get('interval') is None:
        return 1
    value = raw['interval']
    if not _is_int(value) or value < 1:
        raise ValidationError(f"Recurrence interval must be a positive integer, got {value!r}")
    return value


def _weekday(value: Any) -> int:
    if _is_int(value) and 0 <= value <= 6:
        return value
    if isinstance(value, str):
        text = value.strip().upper()
        if text in WEEKDAY_CODES:
            return WEEKDAY_CODES.index(text)
        if text.lower() in WEEKDAY_NAMES:
            return WEEKDAY_NAMES.index(text.lower())
    raise ValidationError(f"Invalid day of week: {value!r}")


def _day_of_month(value: Any) -> int:
    if _is_int(value) and 1 <= value <= 31:
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return _day_of_month(int(value.strip()))
    raise ValidationError(f"Invalid day of month: {value!r}")


def _sorted_unique(values) -> Tuple[int, ...]:
    return tuple(sorted(set(values)))


def _parse_weekly(raw: Any) -> WeeklyPattern:
    if raw is None:
        return WeeklyPattern()
    if isinstance(raw, str):
        days = [part for part in raw.split(',') if part.strip()]
        return WeeklyPattern(days_of_week=_sorted_unique(_weekday(day) for day in days))
    if isinstance(raw, (list, tuple)):
        return WeeklyPattern(days_of_week=_sorted_unique(_weekday(day) for day in raw))
    if isinstance(raw, dict):
        days = raw.get('daysOfWeek') or []
        if not isinstance(days, (list, tuple)):
            raise ValidationError("daysOfWeek must be a list")
        return WeeklyPattern(
            days_of_week=_sorted_unique(_weekday(day) for day in days),
            interval=_interval(raw),
        )
    raise ValidationError(f"Invalid weekly recurrence pattern: {raw!r}")


def _parse_ordinal_name(text: str) -> MonthlyOrdinalPattern:
    """'first-tuesday', 'last-friday'."""
    parts = text.strip().lower().split('-')
    if len(parts) == 2 and parts[0] in ORDINAL_NAMES and parts[1] in WEEKDAY_NAMES:
        return MonthlyOrdinalPattern(
            ordinal=ORDINAL_NAMES[parts[0]],
            weekday=WEEKDAY_NAMES.index(parts[1]),
        )
    raise ValidationError(f"Invalid monthly pattern: {text!r}")


def _parse_monthly(raw: Any) -> Union[MonthlyDaysPattern, MonthlyOrdinalPattern]:
    if raw is None:
        return MonthlyDaysPattern()
    if isinstance(raw, str):
        text = raw.strip().upper()
        match = _ORDINAL_CODE.match(text)
        if match:
            return MonthlyOrdinalPattern(
                ordinal=int(match.group(1)),
                weekday=WEEKDAY_CODES.index(match.group(2)),
            )
        if '-' in text and not text.startswith('-'):
            return _parse_ordinal_name(raw)
        days = [part for part in text.split(',') if part.strip()]
        return MonthlyDaysPattern(days_of_month=_sorted_unique(_day_of_month(day) for day in days))
    if isinstance(raw, dict):
        interval = _interval(raw)
        if raw.get('daysOfMonth'):
            days = raw['daysOfMonth']
            if not isinstance(days, (list, tuple)):
                raise ValidationError("daysOfMonth must be a list")
            return MonthlyDaysPattern(
                days_of_month=_sorted_unique(_day_of_month(day) for day in days),
                interval=interval,
            )
        if raw.get('pattern'):
            if not isinstance(raw['pattern'], str):
                raise ValidationError("Monthly pattern must be a string like 'first-tuesday'")
            parsed = _parse_ordinal_name(raw['pattern'])
            return MonthlyOrdinalPattern(parsed.ordinal, parsed.weekday, interval)
        if raw.get('ordinal') is not None or raw.get('dayOfWeek') is not None:
            ordinal = raw.get('ordinal')
            if isinstance(ordinal, str) and ordinal.lower() in ORDINAL_NAMES:
                ordinal = ORDINAL_NAMES[ordinal.lower()]
            if not _is_int(ordinal) or ordinal not in (1, 2, 3, 4, 5, -1):
                raise ValidationError(f"Invalid monthly ordinal: {raw.get('ordinal')!r}")
            return MonthlyOrdinalPattern(ordinal, _weekday(raw.get('dayOfWeek')), interval)
        return MonthlyDaysPattern(interval=interval)
    raise ValidationError(f"Invalid monthly recurrence pattern: {raw!r}")


def _parse_custom(raw: Any) -> CustomPattern:
    """Best effort: fields that cannot be used are dropped, never rejected."""
    if not isinstance(raw, dict):
        return CustomPattern()

    frequency = raw.get('frequency')
    if not isinstance(frequency, str) or frequency.lower() not in CUSTOM_FREQUENCIES:
        frequency = None
    else:
        frequency = frequency.lower()

    interval = raw.get('interval')
    if not _is_int(interval) or interval < 1:
        interval = 1

    days_of_week = []
    for day in raw.get('daysOfWeek') or []:
        try:
            days_of_week.append(_weekday(day))
        except ValidationError:
            continue

    days_of_month = []
    for day in raw.get('daysOfMonth') or []:
        try:
            days_of_month.append(_day_of_month(day))
        except ValidationError:
            continue

    return CustomPattern(
        frequency=frequency,
        interval=interval,
        days_of_week=_sorted_unique(days_of_week),
        days_of_month=_sorted_unique(days_of_month),
    )


def parse_recurrence(recurrence_type: Optional[str], raw: Any) -> RecurrencePattern:
    """
    Build a pattern from the persisted recurrence type and JSON payload.

    Args:
        recurrence_type: 'none', 'daily', 'weekly', 'monthly' or 'custom'
        raw: The persisted pattern payload (dict, legacy string or None)

    Returns:
        One of the pattern dataclasses

    Raises:
        ValidationError: For an unknown type or a malformed non-custom payload
    """
    kind = (recurrence_type or 'none').lower()
    if kind == 'none':
        return NoRecurrence()
    if kind == 'daily':
        if raw is not None and not isinstance(raw, dict):
            raise ValidationError(f"Invalid daily recurrence pattern: {raw!r}")
        return DailyPattern(interval=_interval(raw))
    if kind == 'weekly':
        return _parse_weekly(raw)
    if kind == 'monthly':
        return _parse_monthly(raw)
    if kind == 'custom':
        return _parse_custom(raw)
    raise ValidationError(f"Unknown recurrence type: {recurrence_type!r}")


def pattern_for(event) -> RecurrencePattern:
    """Pattern of a TeamEvent (or any object with the same two attributes)."""
    return parse_recurrence(event.recurrence_type, event.recurrence_pattern)

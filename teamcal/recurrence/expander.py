"""Recurrence expansion in team-local wall-clock time.

Occurrences are generated with ``dateutil.rrule`` on the naive local start
time, so "every Tuesday at 18:00" stays at 18:00 local across DST changes.
Each local occurrence is then converted to its UTC instant.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, List, Optional

from dateutil.rrule import rrule, DAILY, WEEKLY, MONTHLY, YEARLY, weekdays

from .patterns import (
    NoRecurrence,
    DailyPattern,
    WeeklyPattern,
    MonthlyDaysPattern,
    MonthlyOrdinalPattern,
    CustomPattern,
    RecurrencePattern,
    pattern_for,
)
from ..utils.timezone import ensure_utc, parse_wall_clock, to_local
from ..errors import ValidationError

logger = logging.getLogger(__name__)

_FREQUENCIES = {'daily': DAILY, 'weekly': WEEKLY, 'monthly': MONTHLY, 'yearly': YEARLY}

# Slack around the local window so conversions near DST edges are not clipped
_WINDOW_SLACK = timedelta(days=1)


def dateutil_weekday(day: int):
    """Map 0=Sunday..6=Saturday onto dateutil's MO..SU weekday objects."""
    return weekdays[(day + 6) % 7]


def build_rule(pattern: RecurrencePattern, start_local: datetime,
               until_local: Optional[datetime] = None) -> Optional[rrule]:
    """
    Build the dateutil rule for a pattern.

    Returns None for patterns that describe a single occurrence.
    """
    if isinstance(pattern, NoRecurrence):
        return None
    if isinstance(pattern, DailyPattern):
        return rrule(DAILY, interval=pattern.interval, dtstart=start_local, until=until_local)
    if isinstance(pattern, WeeklyPattern):
        days = pattern.days_of_week or ((start_local.weekday() + 1) % 7,)
        return rrule(
            WEEKLY,
            interval=pattern.interval,
            byweekday=[dateutil_weekday(day) for day in days],
            dtstart=start_local,
            until=until_local,
        )
    if isinstance(pattern, MonthlyDaysPattern):
        days = pattern.days_of_month or (start_local.day,)
        return rrule(
            MONTHLY,
            interval=pattern.interval,
            bymonthday=list(days),
            dtstart=start_local,
            until=until_local,
        )
    if isinstance(pattern, MonthlyOrdinalPattern):
        return rrule(
            MONTHLY,
            interval=pattern.interval,
            byweekday=dateutil_weekday(pattern.weekday)(pattern.ordinal),
            dtstart=start_local,
            until=until_local,
        )
    if isinstance(pattern, CustomPattern):
        if pattern.frequency is None:
            return None
        kwargs = {'interval': pattern.interval, 'dtstart': start_local, 'until': until_local}
        if pattern.days_of_week:
            kwargs['byweekday'] = [dateutil_weekday(day) for day in pattern.days_of_week]
        if pattern.days_of_month:
            kwargs['bymonthday'] = list(pattern.days_of_month)
        return rrule(_FREQUENCIES[pattern.frequency], **kwargs)
    raise ValidationError(f"Unsupported recurrence pattern: {pattern!r}")


class OccurrenceSequence:
    """
    Lazy, restartable sequence of occurrence start instants.

    Every iteration re-runs the rule from scratch, so the sequence can be
    consumed more than once and never caches state.
    """

    def __init__(self, event, window_start: datetime, window_end: datetime,
                 timezone: str, excluded_dates: Iterable[date] = (),
                 pattern: Optional[RecurrencePattern] = None):
        self.event = event
        self.window_start = ensure_utc(window_start)
        self.window_end = ensure_utc(window_end)
        self.timezone = timezone
        self.excluded_dates = frozenset(excluded_dates)
        self.pattern = pattern if pattern is not None else pattern_for(event)
        self.start_at = ensure_utc(event.start_at)
        self.recurrence_end_at = (
            ensure_utc(event.recurrence_end_at) if event.recurrence_end_at else None
        )

    def _in_window(self, instant: datetime) -> bool:
        return self.window_start <= instant < self.window_end

    def _single(self) -> Iterator[datetime]:
        local = to_local(self.start_at, self.timezone)
        if self._in_window(self.start_at) and local.date() not in self.excluded_dates:
            yield self.start_at

    def __iter__(self) -> Iterator[datetime]:
        if self.window_start >= self.window_end:
            return

        start_local = to_local(self.start_at, self.timezone)
        until_local = (
            to_local(self.recurrence_end_at, self.timezone)
            if self.recurrence_end_at else None
        )
        rule = build_rule(self.pattern, start_local, until_local)
        if rule is None:
            yield from self._single()
            return

        local_from = to_local(self.window_start, self.timezone) - _WINDOW_SLACK
        local_to = to_local(self.window_end, self.timezone) + _WINDOW_SLACK

        for local in rule.xafter(max(local_from, start_local), inc=True):
            if local > local_to:
                break
            if local.date() in self.excluded_dates:
                continue
            instant = parse_wall_clock(local, self.timezone)
            if self.recurrence_end_at is not None and instant > self.recurrence_end_at:
                break
            if self._in_window(instant):
                yield instant

    def to_list(self) -> List[datetime]:
        return list(self)

    def __repr__(self) -> str:
        return (
            f"OccurrenceSequence(event={getattr(self.event, 'id', None)}, "
            f"window=[{self.window_start.isoformat()}, {self.window_end.isoformat()}))"
        )


def expand(event, window_start: datetime, window_end: datetime, timezone: str,
           excluded_dates: Iterable[date] = ()) -> OccurrenceSequence:
    """
    Expand an event into its occurrences within ``[window_start, window_end)``.

    Args:
        event: TeamEvent (anything with start_at, recurrence_type,
            recurrence_pattern and recurrence_end_at)
        window_start: Inclusive lower bound (instant)
        window_end: Exclusive upper bound (instant)
        timezone: IANA zone the event's wall-clock times are expressed in
        excluded_dates: Civil dates whose occurrences are cancelled

    Returns:
        OccurrenceSequence yielding aware UTC datetimes in ascending order

    Raises:
        ValidationError: If the event's recurrence pattern is malformed
        InvalidTimezone: If the zone is unknown
    """
    return OccurrenceSequence(event, window_start, window_end, timezone, excluded_dates)


def occurrence_end(event, occurrence_start: datetime, timezone: str) -> Optional[datetime]:
    """End instant of an occurrence, keeping the event's wall-clock duration."""
    if event.end_at is None:
        return None
    local_duration = to_local(event.end_at, timezone) - to_local(event.start_at, timezone)
    return parse_wall_clock(to_local(occurrence_start, timezone) + local_duration, timezone)

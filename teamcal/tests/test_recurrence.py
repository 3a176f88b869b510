"""Tests for recurrence pattern parsing and expansion."""

from datetime import date
from types import SimpleNamespace

import pytest

from teamcal.errors import ValidationError
from teamcal.recurrence import (
    CustomPattern,
    DailyPattern,
    MonthlyDaysPattern,
    MonthlyOrdinalPattern,
    NoRecurrence,
    WeeklyPattern,
    expand,
    occurrence_end,
    parse_recurrence,
)
from teamcal.utils.timezone import civil_date_of, parse_wall_clock
from teamcal.tests.conftest import TZ, utc


def event(start_local, recurrence_type='none', pattern=None, end_local=None, until_local=None):
    return SimpleNamespace(
        id='evt',
        start_at=parse_wall_clock(start_local, TZ),
        end_at=parse_wall_clock(end_local, TZ) if end_local else None,
        recurrence_type=recurrence_type,
        recurrence_pattern=pattern,
        recurrence_end_at=parse_wall_clock(until_local, TZ) if until_local else None,
    )


def local_window(start_local, end_local):
    return parse_wall_clock(start_local, TZ), parse_wall_clock(end_local, TZ)


def civil_dates(occurrences):
    return [civil_date_of(o, TZ) for o in occurrences]


class TestParseRecurrence:
    def test_none(self):
        assert parse_recurrence('none', {'daysOfWeek': [1]}) == NoRecurrence()
        assert parse_recurrence(None, None) == NoRecurrence()

    def test_daily(self):
        assert parse_recurrence('daily', {'interval': 2}) == DailyPattern(2)
        assert parse_recurrence('daily', None) == DailyPattern(1)

    def test_weekly_object_and_legacy_string(self):
        assert parse_recurrence('weekly', {'daysOfWeek': [4, 2, 2]}) == WeeklyPattern((2, 4))
        assert parse_recurrence('weekly', 'MO,WE,FR') == WeeklyPattern((1, 3, 5))

    def test_monthly_days(self):
        assert parse_recurrence('monthly', {'daysOfMonth': [15, 1]}) == MonthlyDaysPattern((1, 15))
        assert parse_recurrence('monthly', '15') == MonthlyDaysPattern((15,))

    def test_monthly_ordinal_forms(self):
        assert parse_recurrence('monthly', {'pattern': 'first-tuesday'}) == MonthlyOrdinalPattern(1, 2)
        assert parse_recurrence('monthly', {'pattern': 'last-friday'}) == MonthlyOrdinalPattern(-1, 5)
        assert parse_recurrence('monthly', '-1FR') == MonthlyOrdinalPattern(-1, 5)
        assert parse_recurrence('monthly', {'ordinal': 'second', 'dayOfWeek': 4}) == MonthlyOrdinalPattern(2, 4)

    def test_custom_drops_what_it_cannot_use(self):
        pattern = parse_recurrence('custom', {
            'frequency': 'Weekly', 'interval': 'often', 'daysOfWeek': [1, 'bogus', 9],
        })
        assert pattern == CustomPattern(frequency='weekly', interval=1, days_of_week=(1,))

    def test_custom_without_frequency(self):
        assert parse_recurrence('custom', {'interval': 3}) == CustomPattern()
        assert parse_recurrence('custom', 'every so often') == CustomPattern()

    @pytest.mark.parametrize("recurrence_type, raw", [
        ('daily', {'interval': 0}),
        ('daily', {'interval': True}),
        ('daily', 'every day'),
        ('weekly', {'daysOfWeek': [7]}),
        ('weekly', {'daysOfWeek': 'MO'}),
        ('monthly', {'daysOfMonth': [32]}),
        ('monthly', {'pattern': 'sixth-monday'}),
        ('monthly', {'ordinal': 9, 'dayOfWeek': 1}),
        ('yearly', None),
    ])
    def test_malformed(self, recurrence_type, raw):
        with pytest.raises(ValidationError):
            parse_recurrence(recurrence_type, raw)


class TestExpand:
    def test_weekly_with_exclusion(self):
        # Saturdays 15, 22, 29 November 2025; the 22nd is cancelled
        evt = event("2025-11-15T14:30:00", 'weekly', {'daysOfWeek': [6]})
        occurrences = expand(evt, utc(2025, 11, 14), utc(2025, 11, 30), TZ,
                             excluded_dates={date(2025, 11, 22)})
        assert list(occurrences) == [utc(2025, 11, 15, 19, 30), utc(2025, 11, 29, 19, 30)]

    def test_local_time_kept_across_dst_change(self):
        evt = event("2025-10-25T18:00:00", 'weekly', {'daysOfWeek': [6]})
        occurrences = expand(evt, utc(2025, 10, 25), utc(2025, 11, 9), TZ)
        assert list(occurrences) == [
            utc(2025, 10, 25, 22, 0),   # EDT
            utc(2025, 11, 1, 22, 0),    # EDT, last day before the change
            utc(2025, 11, 8, 23, 0),    # EST
        ]

    def test_non_recurring_single_occurrence(self):
        evt = event("2025-11-15T14:30:00")
        assert list(expand(evt, utc(2025, 11, 1), utc(2025, 12, 1), TZ)) == [utc(2025, 11, 15, 19, 30)]
        assert list(expand(evt, utc(2025, 12, 1), utc(2026, 1, 1), TZ)) == []

    def test_non_recurring_excluded(self):
        evt = event("2025-11-15T14:30:00")
        assert list(expand(evt, utc(2025, 11, 1), utc(2025, 12, 1), TZ,
                           excluded_dates={date(2025, 11, 15)})) == []

    def test_window_is_half_open(self):
        evt = event("2025-06-01T08:00:00", 'daily')
        start, end = utc(2025, 6, 2, 12, 0), utc(2025, 6, 4, 12, 0)  # 08:00 EDT on both days
        assert list(expand(evt, start, end, TZ)) == [utc(2025, 6, 2, 12, 0), utc(2025, 6, 3, 12, 0)]

    def test_daily_interval(self):
        evt = event("2025-06-01T08:00:00", 'daily', {'interval': 2})
        start, end = local_window("2025-06-01T00:00:00", "2025-06-08T00:00:00")
        assert civil_dates(expand(evt, start, end, TZ)) == [
            date(2025, 6, 1), date(2025, 6, 3), date(2025, 6, 5), date(2025, 6, 7),
        ]

    def test_recurrence_end_is_inclusive(self):
        evt = event("2025-06-01T08:00:00", 'daily', until_local="2025-06-03T08:00:00")
        start, end = local_window("2025-05-01T00:00:00", "2025-07-01T00:00:00")
        assert civil_dates(expand(evt, start, end, TZ)) == [
            date(2025, 6, 1), date(2025, 6, 2), date(2025, 6, 3),
        ]

    def test_monthly_day_missing_from_month_is_skipped(self):
        evt = event("2025-01-31T10:00:00", 'monthly', {'daysOfMonth': [31]})
        start, end = local_window("2025-01-01T00:00:00", "2025-06-01T00:00:00")
        assert civil_dates(expand(evt, start, end, TZ)) == [
            date(2025, 1, 31), date(2025, 3, 31), date(2025, 5, 31),
        ]

    def test_monthly_last_friday(self):
        evt = event("2025-01-01T09:00:00", 'monthly', {'pattern': 'last-friday'})
        start, end = local_window("2025-01-01T00:00:00", "2025-04-01T00:00:00")
        # The start date (a Wednesday) does not match the pattern, so it is not an occurrence
        assert civil_dates(expand(evt, start, end, TZ)) == [
            date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 28),
        ]

    def test_monthly_first_tuesday_legacy(self):
        evt = event("2025-01-01T19:00:00", 'monthly', '1TU')
        start, end = local_window("2025-01-01T00:00:00", "2025-04-01T00:00:00")
        assert civil_dates(expand(evt, start, end, TZ)) == [
            date(2025, 1, 7), date(2025, 2, 4), date(2025, 3, 4),
        ]

    def test_weekly_two_days_over_four_weeks(self):
        evt = event("2025-11-04T18:00:00", 'weekly', {'daysOfWeek': [2, 4]})
        start, end = local_window("2025-11-03T00:00:00", "2025-12-01T00:00:00")
        dates = civil_dates(expand(evt, start, end, TZ))
        assert len(dates) == 8
        weeks = [d.isocalendar()[1] for d in dates]
        assert all(weeks.count(week) == 2 for week in set(weeks))
        assert {d.weekday() for d in dates} == {1, 3}

    def test_weekly_defaults_to_start_weekday(self):
        evt = event("2025-11-15T14:30:00", 'weekly', {})
        start, end = local_window("2025-11-01T00:00:00", "2025-12-01T00:00:00")
        assert civil_dates(expand(evt, start, end, TZ)) == [
            date(2025, 11, 15), date(2025, 11, 22), date(2025, 11, 29),
        ]

    def test_custom_without_frequency_is_single(self):
        evt = event("2025-11-15T14:30:00", 'custom', {'interval': 2})
        assert list(expand(evt, utc(2025, 11, 1), utc(2026, 1, 1), TZ)) == [utc(2025, 11, 15, 19, 30)]

    def test_custom_weekly_with_interval(self):
        evt = event("2025-11-03T18:00:00", 'custom',
                    {'frequency': 'weekly', 'interval': 2, 'daysOfWeek': [1]})
        start, end = local_window("2025-11-01T00:00:00", "2025-12-15T00:00:00")
        assert civil_dates(expand(evt, start, end, TZ)) == [
            date(2025, 11, 3), date(2025, 11, 17), date(2025, 12, 1),
        ]

    def test_sequence_is_restartable(self):
        evt = event("2025-11-15T14:30:00", 'weekly', {'daysOfWeek': [6]})
        occurrences = expand(evt, utc(2025, 11, 1), utc(2025, 12, 1), TZ)
        first = list(occurrences)
        assert first == list(occurrences)
        assert len(first) == 3

    def test_empty_window(self):
        evt = event("2025-11-15T14:30:00", 'daily')
        assert list(expand(evt, utc(2025, 12, 1), utc(2025, 11, 1), TZ)) == []

    def test_window_long_after_start(self):
        evt = event("2020-01-06T18:00:00", 'weekly', {'daysOfWeek': [1]})
        start, end = local_window("2025-11-01T00:00:00", "2025-11-15T00:00:00")
        assert civil_dates(expand(evt, start, end, TZ)) == [date(2025, 11, 3), date(2025, 11, 10)]

    def test_malformed_pattern_raises(self):
        evt = event("2025-11-15T14:30:00", 'weekly', {'daysOfWeek': ['funday']})
        with pytest.raises(ValidationError):
            expand(evt, utc(2025, 11, 1), utc(2025, 12, 1), TZ)


class TestOccurrenceEnd:
    def test_keeps_wall_clock_duration_across_dst(self):
        evt = event("2025-10-25T18:00:00", 'weekly', {'daysOfWeek': [6]},
                    end_local="2025-10-25T20:00:00")
        assert occurrence_end(evt, utc(2025, 11, 8, 23, 0), TZ) == utc(2025, 11, 9, 1, 0)

    def test_no_end(self):
        evt = event("2025-10-25T18:00:00")
        assert occurrence_end(evt, evt.start_at, TZ) is None

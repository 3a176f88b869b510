"""Tests for wall-clock <-> instant conversion."""

from datetime import date, datetime

import pytest

from teamcal.errors import InvalidTimezone, ValidationError
from teamcal.utils.timezone import (
    civil_date_of,
    civil_midnight,
    format_wall_clock,
    parse_civil_date,
    parse_wall_clock,
    to_instant,
)
from teamcal.tests.conftest import TZ, utc


class TestParseWallClock:
    def test_standard_time(self):
        assert parse_wall_clock("2025-11-15T14:30:00", TZ) == utc(2025, 11, 15, 19, 30)

    def test_daylight_time(self):
        assert parse_wall_clock(datetime(2025, 7, 4, 9, 0), TZ) == utc(2025, 7, 4, 13, 0)

    def test_ambiguous_time_resolves_to_earliest_instant(self):
        # 01:30 happens twice in New York on 2025-11-02
        assert parse_wall_clock("2025-11-02T01:30:00", TZ) == utc(2025, 11, 2, 5, 30)

    def test_ambiguous_time_in_europe(self):
        assert parse_wall_clock("2025-10-26T02:30:00", "Europe/Berlin") == utc(2025, 10, 26, 0, 30)

    def test_nonexistent_time_moves_forward_by_gap(self):
        # 02:30 never happens in New York on 2025-03-09; read as 03:30 EDT
        result = parse_wall_clock("2025-03-09T02:30:00", TZ)
        assert result == utc(2025, 3, 9, 7, 30)
        assert format_wall_clock(result, TZ).time == "03:30:00"

    def test_southern_hemisphere(self):
        # Sydney is on daylight time (UTC+11) in January
        assert parse_wall_clock("2025-01-10T12:00:00", "Australia/Sydney") == utc(2025, 1, 10, 1, 0)

    def test_unknown_zone(self):
        with pytest.raises(InvalidTimezone):
            parse_wall_clock("2025-11-15T14:30:00", "Mars/Olympus_Mons")

    def test_empty_zone(self):
        with pytest.raises(InvalidTimezone):
            parse_wall_clock("2025-11-15T14:30:00", "")

    def test_offset_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_wall_clock("2025-11-15T14:30:00+01:00", TZ)

    def test_garbage_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_wall_clock("next tuesday", TZ)

    @pytest.mark.parametrize("instant", [
        utc(2025, 1, 15, 12, 0),
        utc(2025, 6, 30, 23, 59, 59),
        utc(2025, 11, 2, 7, 0),
    ])
    def test_round_trip_outside_transitions(self, instant):
        local = format_wall_clock(instant, TZ).date_time
        assert parse_wall_clock(local, TZ) == instant


class TestFormatWallClock:
    def test_parts(self):
        wall = format_wall_clock(utc(2025, 11, 15, 19, 30), TZ)
        assert wall.date == "2025-11-15"
        assert wall.time == "14:30:00"
        assert wall.date_time == "2025-11-15T14:30:00"

    def test_crosses_midnight(self):
        wall = format_wall_clock(utc(2025, 11, 16, 2, 0), TZ)
        assert wall.date == "2025-11-15"
        assert wall.time == "21:00:00"

    def test_naive_input_is_utc(self):
        assert format_wall_clock(datetime(2025, 11, 15, 19, 30), TZ).time == "14:30:00"

    def test_unknown_zone(self):
        with pytest.raises(InvalidTimezone):
            format_wall_clock(utc(2025, 11, 15), "Nowhere/Special")


class TestOccurrenceIdentity:
    def test_civil_midnight_from_date(self):
        assert civil_midnight(date(2025, 11, 22), TZ) == utc(2025, 11, 22, 5, 0)

    def test_civil_midnight_from_string(self):
        assert civil_midnight("2025-07-04", TZ) == utc(2025, 7, 4, 4, 0)

    def test_civil_midnight_from_instant_uses_local_date(self):
        # 02:00Z on the 16th is still the 15th in New York
        assert civil_midnight(utc(2025, 11, 16, 2, 0), TZ) == utc(2025, 11, 15, 5, 0)

    def test_same_day_times_share_identity(self):
        morning = civil_midnight(utc(2025, 11, 22, 13, 0), TZ)
        evening = civil_midnight(utc(2025, 11, 23, 1, 0), TZ)
        assert morning == evening

    def test_civil_date_of(self):
        assert civil_date_of(utc(2025, 11, 16, 2, 0), TZ) == date(2025, 11, 15)

    def test_parse_civil_date_rejects_garbage(self):
        with pytest.raises(ValidationError):
            parse_civil_date("22/11/2025", TZ)


class TestToInstant:
    def test_naive_string_is_wall_clock(self):
        assert to_instant("2025-11-15T14:30:00", TZ) == utc(2025, 11, 15, 19, 30)

    def test_zulu_string_is_instant(self):
        assert to_instant("2025-11-15T19:30:00Z", TZ) == utc(2025, 11, 15, 19, 30)

    def test_offset_string_is_instant(self):
        assert to_instant("2025-11-15T20:30:00+01:00", TZ) == utc(2025, 11, 15, 19, 30)

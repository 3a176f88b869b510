"""Tests for the calendar feed and single-event messages."""

from datetime import date
from types import SimpleNamespace

import pytest

from teamcal.config.calendar import CalendarConfig
from teamcal.errors import ValidationError
from teamcal.ics import MessageMethod, generate_feed, generate_single_event_message
from teamcal.tests.conftest import TZ, utc

CONFIG = CalendarConfig(prodid='-//Test//Team Calendar//EN', uid_domain='teamcal.test')
STAMP = utc(2025, 11, 1, 12, 0)


def event(**values):
    defaults = dict(
        id='evt-1',
        name='Build night',
        description=None,
        location=None,
        start_at=utc(2025, 11, 15, 19, 30),
        end_at=None,
        recurrence_type='none',
        recurrence_pattern=None,
        recurrence_end_at=None,
    )
    defaults.update(values)
    return SimpleNamespace(**defaults)


def lines(document: bytes):
    return document.decode('utf-8').replace('\r\n ', '').split('\r\n')


def lines_starting(document: bytes, prefix: str):
    return [line for line in lines(document) if line.startswith(prefix)]


TEAM = SimpleNamespace(name='Robotics', timezone=TZ)


class TestFeed:
    def test_calendar_header(self):
        output = lines(generate_feed(TEAM, [], {}, config=CONFIG, now=STAMP))
        assert output[0] == 'BEGIN:VCALENDAR'
        assert 'PRODID:-//Test//Team Calendar//EN' in output
        assert 'VERSION:2.0' in output
        assert 'METHOD:PUBLISH' in output
        assert 'X-WR-CALNAME:Robotics Calendar' in output
        assert 'X-WR-TIMEZONE:America/New_York' in output
        assert 'BEGIN:VEVENT' not in output

    def test_event_in_local_floating_time(self):
        document = generate_feed(TEAM, [event()], {}, config=CONFIG, now=STAMP)
        output = lines(document)
        assert 'UID:evt-1@teamcal.test' in output
        assert 'DTSTART:20251115T143000' in output
        # No end time: one hour
        assert 'DTEND:20251115T153000' in output
        assert 'SUMMARY:Build night' in output
        assert not lines_starting(document, 'RRULE')

    def test_weekly_rule_with_exclusions(self):
        weekly = event(recurrence_type='weekly', recurrence_pattern={'daysOfWeek': [6]})
        exclusions = {'evt-1': {date(2025, 11, 29), date(2025, 11, 22)}}
        document = generate_feed(TEAM, [weekly], exclusions, config=CONFIG, now=STAMP)
        assert lines_starting(document, 'RRULE') == ['RRULE:FREQ=WEEKLY;BYDAY=SA']
        assert lines_starting(document, 'EXDATE') == ['EXDATE:20251122T143000,20251129T143000']

    def test_rule_until_in_local_time(self):
        weekly = event(
            recurrence_type='weekly',
            recurrence_pattern={'daysOfWeek': [2, 4], 'interval': 2},
            recurrence_end_at=utc(2026, 1, 1, 4, 59, 59),
        )
        document = generate_feed(TEAM, [weekly], {}, config=CONFIG, now=STAMP)
        assert lines_starting(document, 'RRULE') == [
            'RRULE:FREQ=WEEKLY;UNTIL=20251231T235959;INTERVAL=2;BYDAY=TU,TH'
        ]

    def test_monthly_ordinal_rule(self):
        monthly = event(recurrence_type='monthly', recurrence_pattern={'pattern': 'last-friday'})
        document = generate_feed(TEAM, [monthly], {}, config=CONFIG, now=STAMP)
        assert lines_starting(document, 'RRULE') == ['RRULE:FREQ=MONTHLY;BYDAY=-1FR']

    def test_one_block_per_event(self):
        events = [
            event(id='evt-1'),
            event(id='evt-2', name='Outreach', recurrence_type='weekly',
                  recurrence_pattern={'daysOfWeek': [6]}),
            event(id='evt-3', name='Kickoff', start_at=utc(2026, 1, 10, 15, 0)),
        ]
        document = generate_feed(TEAM, events, {'evt-2': {date(2025, 11, 22)}}, config=CONFIG, now=STAMP)
        output = lines(document)
        assert output.count('BEGIN:VEVENT') == 3
        assert output.count('END:VEVENT') == 3
        assert lines_starting(document, 'UID') == [
            'UID:evt-1@teamcal.test', 'UID:evt-2@teamcal.test', 'UID:evt-3@teamcal.test',
        ]
        assert len(lines_starting(document, 'RRULE')) == 1
        assert len(lines_starting(document, 'EXDATE')) == 1

    def test_exclusions_ignored_for_single_events(self):
        document = generate_feed(TEAM, [event()], {'evt-1': {date(2025, 11, 15)}},
                                 config=CONFIG, now=STAMP)
        assert not lines_starting(document, 'EXDATE')

    def test_text_is_escaped(self):
        noisy = event(description="Bring tools; snacks, and\r\nwater\\", location='Shop, Room 2')
        output = lines(generate_feed(TEAM, [noisy], {}, config=CONFIG, now=STAMP))
        assert 'DESCRIPTION:Bring tools\\; snacks\\, and\\nwater\\\\' in output
        assert 'LOCATION:Shop\\, Room 2' in output

    def test_malformed_pattern_fails_whole_feed(self):
        broken = event(id='evt-2', recurrence_type='weekly', recurrence_pattern={'daysOfWeek': [9]})
        with pytest.raises(ValidationError):
            generate_feed(TEAM, [event(), broken], {}, config=CONFIG, now=STAMP)


class TestSingleEventMessage:
    def test_invite(self):
        document = generate_single_event_message(event(end_at=utc(2025, 11, 15, 21, 0)),
                                                 MessageMethod.INVITE, 0, TZ,
                                                 config=CONFIG, now=STAMP)
        output = lines(document)
        assert 'METHOD:REQUEST' in output
        assert 'DTSTART:20251115T193000Z' in output
        assert 'DTEND:20251115T210000Z' in output
        assert 'SEQUENCE:0' in output
        assert 'STATUS:CONFIRMED' in output
        assert 'UID:evt-1@teamcal.test' in output

    def test_cancel_sequence_is_at_least_one(self):
        output = lines(generate_single_event_message(event(), 'cancel', 0, TZ,
                                                     config=CONFIG, now=STAMP))
        assert 'METHOD:CANCEL' in output
        assert 'SEQUENCE:1' in output
        assert 'STATUS:CANCELLED' in output
        assert 'DTSTART:20251115T193000Z' in output
        assert 'DTEND:20251115T203000Z' in output

    def test_cancel_keeps_higher_sequence(self):
        output = lines(generate_single_event_message(event(), MessageMethod.CANCEL, 4, TZ,
                                                     config=CONFIG, now=STAMP))
        assert 'SEQUENCE:4' in output

    def test_negative_sequence(self):
        with pytest.raises(ValidationError):
            generate_single_event_message(event(), MessageMethod.INVITE, -1, TZ, config=CONFIG)

    def test_unknown_method(self):
        with pytest.raises(ValidationError):
            generate_single_event_message(event(), 'PUBLISH', 0, TZ, config=CONFIG)

    def test_weekday_follows_utc_start_date(self):
        # Saturday 20:00 in New York is Sunday 01:00 UTC
        evening = event(
            start_at=utc(2025, 11, 16, 1, 0),
            recurrence_type='weekly',
            recurrence_pattern={'daysOfWeek': [6]},
        )
        document = generate_single_event_message(evening, MessageMethod.INVITE, 0, TZ,
                                                 config=CONFIG, now=STAMP)
        assert lines_starting(document, 'RRULE') == ['RRULE:FREQ=WEEKLY;BYDAY=SU']

    def test_ordinal_weekday_follows_utc_start_date(self):
        # Last Friday of January, 20:00 EST, is 1 February 01:00 UTC
        monthly = event(
            start_at=utc(2025, 2, 1, 1, 0),
            recurrence_type='monthly',
            recurrence_pattern={'pattern': 'last-friday'},
        )
        document = generate_single_event_message(monthly, MessageMethod.INVITE, 0, TZ,
                                                 config=CONFIG, now=STAMP)
        assert 'DTSTART:20250201T010000Z' in lines(document)
        assert lines_starting(document, 'RRULE') == ['RRULE:FREQ=MONTHLY;BYDAY=-1SA']

    def test_exclusions_as_utc_instants(self):
        weekly = event(recurrence_type='weekly', recurrence_pattern={'daysOfWeek': [6]})
        document = generate_single_event_message(weekly, MessageMethod.INVITE, 2, TZ,
                                                 config=CONFIG, excluded_dates=[date(2025, 11, 22)],
                                                 now=STAMP)
        exdates = lines_starting(document, 'EXDATE')
        assert len(exdates) == 1
        assert exdates[0].endswith('20251122T193000Z')

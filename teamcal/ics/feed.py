"""Subscribable team calendar feed (METHOD:PUBLISH)."""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, Mapping, Optional

from icalendar import Calendar, Event as ICalEvent

from .recur import recurrence_rule
from .text import clean_text
from ..config.calendar import CalendarConfig
from ..recurrence.patterns import pattern_for
from ..utils.timezone import now_utc, to_local

logger = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(hours=1)


def event_uid(event, config: CalendarConfig) -> str:
    return f"{event.id}@{config.uid_domain}"


def _feed_event(event, timezone: str, excluded: Iterable[date], config: CalendarConfig,
                stamp: datetime) -> ICalEvent:
    start_local = to_local(event.start_at, timezone)
    end_local = to_local(event.end_at, timezone) if event.end_at else start_local + DEFAULT_DURATION

    cal_event = ICalEvent()
    cal_event.add('uid', event_uid(event, config))
    cal_event.add('dtstamp', stamp)
    # Floating times: clients read them in the calendar's X-WR-TIMEZONE
    cal_event.add('dtstart', start_local)
    cal_event.add('dtend', end_local)
    cal_event.add('summary', clean_text(event.name))

    if event.description:
        cal_event.add('description', clean_text(event.description))

    if event.location:
        cal_event.add('location', clean_text(event.location))

    until = to_local(event.recurrence_end_at, timezone) if event.recurrence_end_at else None
    rule = recurrence_rule(pattern_for(event), until=until)
    if rule is not None:
        cal_event.add('rrule', rule)
        excluded_starts = sorted(
            datetime.combine(day, start_local.time()) for day in set(excluded)
        )
        if excluded_starts:
            cal_event.add('exdate', excluded_starts)

    return cal_event


def generate_feed(team, events: Iterable, exclusions_by_event: Mapping[str, Iterable[date]],
                  config: Optional[CalendarConfig] = None,
                  now: Optional[datetime] = None) -> bytes:
    """
    Build the full calendar document for a team.

    The document is assembled in memory; any failure raises before a single
    byte is returned.

    Args:
        team: Team with ``name`` and ``timezone``
        events: The team's events
        exclusions_by_event: Excluded civil dates keyed by event id
        config: Calendar settings (PRODID, UID domain)
        now: DTSTAMP override

    Returns:
        Serialized VCALENDAR bytes

    Raises:
        ValidationError: If an event carries a malformed recurrence pattern
        InvalidTimezone: If the team's timezone is unknown
    """
    config = config or CalendarConfig()
    stamp = now or now_utc()

    cal = Calendar()
    cal.add('prodid', config.prodid)
    cal.add('version', '2.0')
    cal.add('calscale', 'GREGORIAN')
    cal.add('method', 'PUBLISH')
    cal.add('x-wr-calname', f"{team.name} Calendar")
    cal.add('x-wr-timezone', team.timezone)
    cal.add('x-wr-caldesc', f"Calendar for team {team.name}")

    count = 0
    for event in events:
        excluded = exclusions_by_event.get(event.id, ())
        cal.add_component(_feed_event(event, team.timezone, excluded, config, stamp))
        count += 1

    logger.info(f"Generated calendar feed for team {team.name} with {count} events")
    return cal.to_ical()

"""Single-event iCalendar messages for invites and cancellations (iTIP)."""

from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional, Union

from icalendar import Calendar, Event as ICalEvent

from .feed import DEFAULT_DURATION, event_uid
from .recur import recurrence_rule
from .text import clean_text
from ..config.calendar import CalendarConfig
from ..errors import ValidationError
from ..recurrence.patterns import pattern_for
from ..utils.timezone import ensure_utc, now_utc, parse_wall_clock, to_local


class MessageMethod(Enum):
    INVITE = 'REQUEST'
    CANCEL = 'CANCEL'

    @classmethod
    def coerce(cls, value: Union['MessageMethod', str]) -> 'MessageMethod':
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        for member in cls:
            if text in (member.name, member.value):
                return member
        raise ValidationError(f"Unknown message method: {value!r}")


def generate_single_event_message(event, method: Union[MessageMethod, str], sequence: int,
                                  timezone: str, config: Optional[CalendarConfig] = None,
                                  excluded_dates: Iterable[date] = (),
                                  now: Optional[datetime] = None) -> bytes:
    """
    Build a one-event calendar message to attach to an invite or cancellation.

    Times are written as UTC instants. A cancellation always carries a
    SEQUENCE of at least 1 so clients treat it as newer than the invite.

    Args:
        event: The TeamEvent
        method: MessageMethod.INVITE (REQUEST) or MessageMethod.CANCEL
        sequence: Event revision number (0 for a new event)
        timezone: Team zone, used for recurrence and exclusion dates
        config: Calendar settings
        excluded_dates: Cancelled civil dates of a recurring event
        now: DTSTAMP override

    Returns:
        Serialized VCALENDAR bytes

    Raises:
        ValidationError: If ``sequence`` is negative or the pattern is malformed
    """
    method = MessageMethod.coerce(method)
    if sequence is None or sequence < 0:
        raise ValidationError(f"Sequence must be non-negative, got {sequence!r}")
    config = config or CalendarConfig()

    effective_sequence = max(sequence, 1) if method is MessageMethod.CANCEL else sequence

    start = ensure_utc(event.start_at)
    end = ensure_utc(event.end_at) if event.end_at else start + DEFAULT_DURATION
    start_local = to_local(start, timezone)

    cal = Calendar()
    cal.add('prodid', config.prodid)
    cal.add('version', '2.0')
    cal.add('calscale', 'GREGORIAN')
    cal.add('method', method.value)

    cal_event = ICalEvent()
    cal_event.add('uid', event_uid(event, config))
    cal_event.add('dtstamp', now or now_utc())
    cal_event.add('dtstart', start)
    cal_event.add('dtend', end)
    cal_event.add('summary', clean_text(event.name))
    cal_event.add('sequence', effective_sequence)

    if event.description:
        cal_event.add('description', clean_text(event.description))

    if event.location:
        cal_event.add('location', clean_text(event.location))

    cal_event.add('status', 'CANCELLED' if method is MessageMethod.CANCEL else 'CONFIRMED')

    until = ensure_utc(event.recurrence_end_at) if event.recurrence_end_at else None
    # BYDAY is evaluated against the UTC DTSTART, whose date can differ from the local one
    day_shift = (start.date() - start_local.date()).days
    rule = recurrence_rule(pattern_for(event), until=until, day_shift=day_shift)
    if rule is not None:
        cal_event.add('rrule', rule)
        excluded_starts = sorted(
            parse_wall_clock(datetime.combine(day, start_local.time()), timezone)
            for day in set(excluded_dates)
        )
        if excluded_starts:
            cal_event.add('exdate', excluded_starts)

    cal.add_component(cal_event)
    return cal.to_ical()

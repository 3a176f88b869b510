"""Wall-clock <-> instant conversion for IANA timezones.

Team events are entered as local wall-clock times ("14:30 in the team's
zone") but stored as absolute UTC instants. Conversion in the local -> UTC
direction is done by iterative offset resolution: start from the local time
read as if it were UTC, look at what civil time that instant shows in the
zone, shift by the difference and repeat until the civil time matches.

DST edge cases:
    - A civil time that occurs twice ("fall back") resolves to the earliest
      instant, i.e. the pre-transition offset.
    - A civil time that never occurs ("spring forward") is interpreted with
      the pre-transition offset, which moves it forward by the gap length.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from functools import lru_cache
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..errors import InvalidTimezone, ValidationError

UTC = dt_timezone.utc

_MAX_RESOLUTION_STEPS = 4


@dataclass(frozen=True)
class WallClock:
    """Civil representation of an instant in a zone."""
    date: str       # YYYY-MM-DD
    time: str       # HH:MM:SS
    date_time: str  # YYYY-MM-DDTHH:MM:SS


@lru_cache(maxsize=128)
def get_zone(timezone: str) -> ZoneInfo:
    """Look up an IANA zone, raising InvalidTimezone for unknown names."""
    if not timezone or not isinstance(timezone, str):
        raise InvalidTimezone(f"Invalid timezone: {timezone!r}")
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezone(f"Unknown timezone: {timezone}") from e


def now_utc() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _to_naive_local(local: Union[str, datetime]) -> datetime:
    if isinstance(local, str):
        try:
            local = datetime.fromisoformat(local)
        except ValueError as e:
            raise ValidationError(f"Invalid local date-time: {local!r}") from e
    if not isinstance(local, datetime):
        raise ValidationError(f"Invalid local date-time: {local!r}")
    if local.tzinfo is not None:
        raise ValidationError("Wall-clock times must not carry a UTC offset")
    return local


def _civil(instant: datetime, zone: ZoneInfo) -> datetime:
    return instant.astimezone(zone).replace(tzinfo=None)


def parse_wall_clock(local: Union[str, datetime], timezone: str) -> datetime:
    """Convert a civil date-time in ``timezone`` to the UTC instant it denotes.

    Args:
        local: Naive datetime or ISO string without offset
        timezone: IANA zone name

    Returns:
        Aware datetime in UTC

    Raises:
        InvalidTimezone: If the zone is unknown
        ValidationError: If ``local`` cannot be read as a civil date-time
    """
    zone = get_zone(timezone)
    target = _to_naive_local(local)

    guess = target.replace(tzinfo=UTC)
    for _ in range(_MAX_RESOLUTION_STEPS):
        delta = target - _civil(guess, zone)
        if not delta:
            break
        guess = guess + delta

    # The loop can settle on either side of a transition; check every offset
    # in effect around the guess and keep the ones that round-trip.
    offsets = {
        (guess + timedelta(days=shift)).astimezone(zone).utcoffset()
        for shift in (-1, 0, 1)
    }
    candidates = sorted(
        (target - offset).replace(tzinfo=UTC) for offset in offsets
    )
    matching = [c for c in candidates if _civil(c, zone) == target]
    if matching:
        return matching[0]

    # Nonexistent local time: apply the offset in effect before the gap
    before = (guess - timedelta(days=1)).astimezone(zone).utcoffset()
    return (target - before).replace(tzinfo=UTC)


def format_wall_clock(instant: datetime, timezone: str) -> WallClock:
    """Civil date/time strings of ``instant`` in ``timezone``."""
    zone = get_zone(timezone)
    local = ensure_utc(instant).astimezone(zone)
    return WallClock(
        date=local.strftime('%Y-%m-%d'),
        time=local.strftime('%H:%M:%S'),
        date_time=local.strftime('%Y-%m-%dT%H:%M:%S'),
    )


def to_local(instant: datetime, timezone: str) -> datetime:
    """Naive civil datetime of ``instant`` in ``timezone``."""
    return _civil(ensure_utc(instant), get_zone(timezone))


def civil_date_of(instant: datetime, timezone: str) -> date:
    return to_local(instant, timezone).date()


def parse_civil_date(value: Union[str, date, datetime], timezone: str) -> date:
    """Read an occurrence identifier as a civil date.

    Accepts a ``date``, a ``YYYY-MM-DD`` string, a naive datetime (its civil
    date) or an aware datetime (its civil date in ``timezone``).
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return civil_date_of(value, timezone)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return parse_civil_date(datetime.fromisoformat(text.replace('Z', '+00:00')), timezone)
        except ValueError as e:
            raise ValidationError(f"Invalid occurrence date: {value!r}") from e
    raise ValidationError(f"Invalid occurrence date: {value!r}")


def civil_midnight(value: Union[str, date, datetime], timezone: str) -> datetime:
    """UTC instant of civil midnight on the occurrence's date in ``timezone``.

    This is the stored identity of an occurrence for exclusions and
    attendance records.
    """
    civil = parse_civil_date(value, timezone)
    return parse_wall_clock(datetime.combine(civil, time()), timezone)


def to_instant(value: Union[str, datetime], timezone: str) -> datetime:
    """Interpret API input: offset-bearing values are instants, naive ones wall clock."""
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            value = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(f"Invalid date-time: {value!r}") from e
    if value.tzinfo is not None:
        return value.astimezone(UTC)
    return parse_wall_clock(value, timezone)

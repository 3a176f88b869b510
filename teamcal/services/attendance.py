"""Per-occurrence attendance tracking."""

import logging
from datetime import date, datetime
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import Conflict, NotFound, ValidationError
from ..models import ATTENDANCE_STATUSES, EventAttendance, TeamEvent
from ..utils.timezone import civil_midnight, ensure_utc

logger = logging.getLogger(__name__)

OccurrenceRef = Union[str, date, datetime]

DEFAULT_STATUS = 'not-sure'

_CYCLE = {
    'yes': 'not-sure',
    'not-sure': 'no',
    'no': 'yes',
}


def cycle_status(status: Optional[str]) -> str:
    """Next status in the yes -> not-sure -> no -> yes rotation."""
    return _CYCLE.get(status, DEFAULT_STATUS)


class AttendanceTracker:
    """Reads and writes attendance records keyed by (event, user, occurrence)."""

    def __init__(self, session: Session):
        self.session = session

    def _event(self, event_id: str) -> TeamEvent:
        event = self.session.get(TeamEvent, event_id)
        if event is None:
            raise NotFound(f"Event {event_id} not found")
        return event

    def _occurrence_at(self, event: TeamEvent, occurrence: OccurrenceRef) -> datetime:
        return civil_midnight(occurrence, event.team.timezone)

    def _find(self, event_id: str, user_id: str, occurrence_at: datetime) -> Optional[EventAttendance]:
        return self.session.query(EventAttendance).filter(
            EventAttendance.event_id == event_id,
            EventAttendance.user_id == user_id,
            EventAttendance.occurrence_at == occurrence_at,
        ).first()

    def get_or_create(self, user_id: str, event_id: str, occurrence: OccurrenceRef) -> EventAttendance:
        """
        Return the user's record for an occurrence, creating 'not-sure' if absent.

        Raises:
            NotFound: If the event does not exist
        """
        event = self._event(event_id)
        occurrence_at = self._occurrence_at(event, occurrence)

        record = self._find(event_id, user_id, occurrence_at)
        if record is not None:
            return record

        record = EventAttendance(
            event_id=event_id,
            user_id=user_id,
            occurrence_at=occurrence_at,
            status=DEFAULT_STATUS,
        )
        try:
            with self.session.begin_nested():
                self.session.add(record)
        except IntegrityError as e:
            # A concurrent request created the record first; use theirs
            existing = self._find(event_id, user_id, occurrence_at)
            if existing is None:
                raise Conflict(f"Could not create attendance for event {event_id}") from e
            return existing
        return record

    def update(self, user_id: str, event_id: str, occurrence: OccurrenceRef, status: str) -> EventAttendance:
        """Set the user's status for an occurrence, creating the record if needed."""
        if status not in ATTENDANCE_STATUSES:
            raise ValidationError(
                f"Invalid attendance status {status!r}; expected one of {', '.join(ATTENDANCE_STATUSES)}"
            )
        record = self.get_or_create(user_id, event_id, occurrence)
        record.status = status
        self.session.flush()
        logger.info(f"Attendance for user {user_id} on event {event_id} set to {status}")
        return record

    def cycle(self, user_id: str, event_id: str, occurrence: OccurrenceRef) -> EventAttendance:
        """Advance the user's status one step in the rotation."""
        record = self.get_or_create(user_id, event_id, occurrence)
        record.status = cycle_status(record.status)
        self.session.flush()
        return record

    def for_range(self, user_id: str, team_id: str, start: datetime, end: datetime) -> List[EventAttendance]:
        """The user's records for the team's occurrences in ``[start, end)``."""
        return self.session.query(EventAttendance).join(TeamEvent).filter(
            TeamEvent.team_id == team_id,
            EventAttendance.user_id == user_id,
            EventAttendance.occurrence_at >= ensure_utc(start),
            EventAttendance.occurrence_at < ensure_utc(end),
        ).order_by(EventAttendance.occurrence_at).all()

    def for_occurrence(self, event_id: str, occurrence: OccurrenceRef) -> List[EventAttendance]:
        """Every user's record for one occurrence."""
        event = self._event(event_id)
        occurrence_at = self._occurrence_at(event, occurrence)
        return self.session.query(EventAttendance).filter(
            EventAttendance.event_id == event_id,
            EventAttendance.occurrence_at == occurrence_at,
        ).order_by(EventAttendance.user_id).all()

"""Per-occurrence cancellations of recurring events."""

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Set, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import Conflict, NotFound
from ..models import EventExclusion, TeamEvent
from ..utils.timezone import civil_date_of, civil_midnight

logger = logging.getLogger(__name__)

OccurrenceRef = Union[str, date, datetime]


class ExclusionStore:
    """
    Session-bound store of excluded occurrences.

    An occurrence is identified by the instant of civil midnight of its date
    in the team's timezone, so the identity survives edits to the event's
    time of day.
    """

    def __init__(self, session: Session):
        self.session = session

    def _event(self, event_id: str) -> TeamEvent:
        event = self.session.get(TeamEvent, event_id)
        if event is None:
            raise NotFound(f"Event {event_id} not found")
        return event

    def _find(self, event_id: str, excluded_at: datetime):
        return self.session.query(EventExclusion).filter(
            EventExclusion.event_id == event_id,
            EventExclusion.excluded_at == excluded_at,
        ).first()

    def add(self, event_id: str, occurrence: OccurrenceRef) -> EventExclusion:
        """
        Exclude one occurrence.

        Raises:
            NotFound: If the event does not exist
            Conflict: If the occurrence is already excluded
        """
        event = self._event(event_id)
        excluded_at = civil_midnight(occurrence, event.team.timezone)

        if self._find(event_id, excluded_at) is not None:
            raise Conflict(f"Occurrence {excluded_at.isoformat()} of event {event_id} is already excluded")

        exclusion = EventExclusion(event_id=event_id, excluded_at=excluded_at)
        try:
            # Savepoint so a lost race leaves the outer transaction usable
            with self.session.begin_nested():
                self.session.add(exclusion)
        except IntegrityError as e:
            # Lost a race with a concurrent insert of the same occurrence
            raise Conflict(f"Occurrence of event {event_id} is already excluded") from e

        logger.info(f"Excluded occurrence {excluded_at.isoformat()} of event {event_id}")
        return exclusion

    def remove(self, event_id: str, occurrence: OccurrenceRef) -> None:
        """Restore a previously excluded occurrence."""
        event = self._event(event_id)
        excluded_at = civil_midnight(occurrence, event.team.timezone)
        exclusion = self._find(event_id, excluded_at)
        if exclusion is None:
            raise NotFound(f"Occurrence {excluded_at.isoformat()} of event {event_id} is not excluded")
        self.session.delete(exclusion)
        self.session.flush()
        logger.info(f"Restored occurrence {excluded_at.isoformat()} of event {event_id}")

    def list_for_event(self, event_id: str) -> List[EventExclusion]:
        return self.session.query(EventExclusion).filter(
            EventExclusion.event_id == event_id
        ).order_by(EventExclusion.excluded_at).all()

    def excluded_dates(self, event_id: str) -> Set[date]:
        """Civil dates of the excluded occurrences of one event."""
        event = self._event(event_id)
        return {
            civil_date_of(exclusion.excluded_at, event.team.timezone)
            for exclusion in self.list_for_event(event_id)
        }

    def excluded_dates_by_event(self, event_ids: Iterable[str], timezone: str) -> Dict[str, Set[date]]:
        """Civil dates of exclusions for many events of the same team."""
        ids = list(event_ids)
        result: Dict[str, Set[date]] = {event_id: set() for event_id in ids}
        if not ids:
            return result
        rows = self.session.query(EventExclusion).filter(
            EventExclusion.event_id.in_(ids)
        ).all()
        for exclusion in rows:
            result[exclusion.event_id].add(civil_date_of(exclusion.excluded_at, timezone))
        return result

"""Event lifecycle and occurrence listing for a team."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .exclusion_store import ExclusionStore
from .membership import MembershipDirectory
from ..errors import Conflict, NotFound, ValidationError
from ..models import RECURRENCE_TYPES, TeamEvent, UserGroup
from ..recurrence import expand, occurrence_end, parse_recurrence
from ..utils.timezone import ensure_utc
from ..visibility import MembershipFacts, matches_facts

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 200
MAX_LOCATION_LENGTH = 300

UPDATABLE_FIELDS = (
    'name', 'description', 'location', 'start_at', 'end_at',
    'recurrence_type', 'recurrence_pattern', 'recurrence_end_at', 'user_group_id',
)


@dataclass(frozen=True)
class Occurrence:
    event: TeamEvent
    start: datetime
    end: Optional[datetime]


class EventService:
    """Create, update, delete and expand a team's events within one session."""

    def __init__(self, session: Session):
        self.session = session
        self.directory = MembershipDirectory(session)
        self.exclusions = ExclusionStore(session)

    # -- validation -------------------------------------------------------

    def _validate(self, team_id: str, values: Dict[str, Any]) -> None:
        name = (values.get('name') or '').strip()
        if not name:
            raise ValidationError("Event name is required")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Event name must be at most {MAX_NAME_LENGTH} characters")
        values['name'] = name

        location = values.get('location')
        if location and len(location) > MAX_LOCATION_LENGTH:
            raise ValidationError(f"Location must be at most {MAX_LOCATION_LENGTH} characters")

        if values.get('start_at') is None:
            raise ValidationError("Event start is required")
        values['start_at'] = ensure_utc(values['start_at'])
        if values.get('end_at') is not None:
            values['end_at'] = ensure_utc(values['end_at'])
            if values['end_at'] < values['start_at']:
                raise ValidationError("Event end must not be before its start")

        recurrence_type = (values.get('recurrence_type') or 'none').lower()
        if recurrence_type not in RECURRENCE_TYPES:
            raise ValidationError(f"Unknown recurrence type: {recurrence_type!r}")
        values['recurrence_type'] = recurrence_type
        # Raises ValidationError for malformed non-custom patterns
        parse_recurrence(recurrence_type, values.get('recurrence_pattern'))

        if recurrence_type == 'none':
            values['recurrence_end_at'] = None
        elif values.get('recurrence_end_at') is not None:
            values['recurrence_end_at'] = ensure_utc(values['recurrence_end_at'])
            if values['recurrence_end_at'] < values['start_at']:
                raise ValidationError("Recurrence end must not be before the event start")

        group_id = values.get('user_group_id')
        if group_id:
            group = self.session.get(UserGroup, group_id)
            if group is None or group.team_id != team_id:
                raise ValidationError(f"User group {group_id} does not belong to this team")

    # -- lifecycle --------------------------------------------------------

    def get(self, team_id: str, event_id: str) -> TeamEvent:
        event = self.session.get(TeamEvent, event_id)
        if event is None or event.team_id != team_id:
            raise NotFound(f"Event {event_id} not found")
        return event

    def create(self, team_id: str, created_by: str, values: Dict[str, Any]) -> TeamEvent:
        """
        Create an event.

        Args:
            team_id: Owning team
            created_by: Acting user
            values: Field values; datetimes already resolved to instants

        Raises:
            NotFound: If the team does not exist
            ValidationError: If the values are invalid
        """
        self.directory.team(team_id)
        values = {key: values.get(key) for key in UPDATABLE_FIELDS}
        self._validate(team_id, values)

        event = TeamEvent(team_id=team_id, created_by=created_by, sequence=0, **values)
        self.session.add(event)
        self.session.flush()
        logger.info(f"Created event {event.id} ({event.name}) for team {team_id}")
        return event

    def update(self, team_id: str, event_id: str, changes: Dict[str, Any]) -> TeamEvent:
        """Apply a partial update and bump the event's sequence."""
        event = self.get(team_id, event_id)
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")

        values = {key: getattr(event, key) for key in UPDATABLE_FIELDS}
        values.update(changes)
        self._validate(team_id, values)

        for key, value in values.items():
            setattr(event, key, value)
        event.sequence = (event.sequence or 0) + 1
        self.session.flush()
        self.session.expire(event, ['user_group'])
        logger.info(f"Updated event {event.id} to sequence {event.sequence}")
        return event

    def delete_series(self, team_id: str, event_id: str) -> None:
        """Delete an event with its exclusions, attendance and reminder markers."""
        event = self.get(team_id, event_id)
        self.session.delete(event)
        self.session.flush()
        logger.info(f"Deleted event series {event_id}")

    def delete_occurrence(self, team_id: str, event_id: str, occurrence: date) -> bool:
        """
        Cancel one occurrence.

        Returns:
            True if an occurrence was excluded (or already was); False when the
            event is not recurring and the whole event was deleted instead
        """
        event = self.get(team_id, event_id)
        if not event.is_recurring:
            self.delete_series(team_id, event_id)
            return False
        try:
            self.exclusions.add(event_id, occurrence)
        except Conflict:
            logger.info(f"Occurrence {occurrence} of event {event_id} was already excluded")
        return True

    # -- listing ----------------------------------------------------------

    def _viewer_facts(self, team_id: str, viewer_id: Optional[str]) -> Optional[MembershipFacts]:
        if viewer_id is None:
            return None
        return self.directory.facts(team_id, viewer_id)

    @staticmethod
    def is_visible(event: TeamEvent, facts: Optional[MembershipFacts]) -> bool:
        if facts is None:
            return True
        rule_set = event.user_group.visibility_rules if event.user_group else None
        return matches_facts(facts, rule_set)

    def list_events(self, team_id: str, viewer_id: Optional[str] = None) -> List[TeamEvent]:
        """Team events ordered by start, hiding ones the viewer may not see."""
        self.directory.team(team_id)
        facts = self._viewer_facts(team_id, viewer_id)
        events = self.session.query(TeamEvent).filter(
            TeamEvent.team_id == team_id
        ).order_by(TeamEvent.start_at).all()
        return [event for event in events if self.is_visible(event, facts)]

    def occurrences(self, team_id: str, window_start: datetime, window_end: datetime,
                    viewer_id: Optional[str] = None, events: Optional[List[TeamEvent]] = None) -> List[Occurrence]:
        """Every occurrence in ``[window_start, window_end)`` across the team's events."""
        team = self.directory.team(team_id)
        if events is None:
            events = self.list_events(team_id, viewer_id)
        excluded = self.exclusions.excluded_dates_by_event([e.id for e in events], team.timezone)

        result = []
        for event in events:
            for start in expand(event, window_start, window_end, team.timezone, excluded[event.id]):
                result.append(Occurrence(event, start, occurrence_end(event, start, team.timezone)))
        result.sort(key=lambda occ: (occ.start, occ.event.name))
        return result

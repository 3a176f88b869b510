"""Request bodies and response serializers for the HTTP API.

Request fields use the camelCase names of the public API. Datetime fields
are accepted as strings: values carrying a UTC offset are instants, values
without one are wall-clock times in the team's timezone.
"""

from datetime import date, datetime, time
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ValidationError
from ..utils.timezone import (
    civil_date_of,
    civil_midnight,
    format_wall_clock,
    parse_wall_clock,
    to_instant,
)


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EventCreate(_ApiModel):
    name: str = Field(..., max_length=200)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=300)
    start_date_time: str = Field(..., alias='startDateTime')
    end_date_time: Optional[str] = Field(None, alias='endDateTime')
    recurrence_type: str = Field('none', alias='recurrenceType')
    recurrence_pattern: Optional[Any] = Field(None, alias='recurrencePattern')
    recurrence_end_date: Optional[str] = Field(None, alias='recurrenceEndDate')
    user_group_id: Optional[str] = Field(None, alias='userGroupId')


class EventUpdate(_ApiModel):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=300)
    start_date_time: Optional[str] = Field(None, alias='startDateTime')
    end_date_time: Optional[str] = Field(None, alias='endDateTime')
    recurrence_type: Optional[str] = Field(None, alias='recurrenceType')
    recurrence_pattern: Optional[Any] = Field(None, alias='recurrencePattern')
    recurrence_end_date: Optional[str] = Field(None, alias='recurrenceEndDate')
    user_group_id: Optional[str] = Field(None, alias='userGroupId')


class AttendanceUpdate(_ApiModel):
    instance_date: str = Field(..., alias='instanceDate')
    status: str


class UserGroupCreate(_ApiModel):
    name: str = Field(..., max_length=200)
    is_public: bool = Field(False, alias='isPublic')
    visibility_rules: Optional[Any] = Field(None, alias='visibilityRules')


class UserGroupUpdate(_ApiModel):
    name: Optional[str] = Field(None, max_length=200)
    is_public: Optional[bool] = Field(None, alias='isPublic')
    visibility_rules: Optional[Any] = Field(None, alias='visibilityRules')


# -- input conversion -----------------------------------------------------

def _is_bare_date(value: str) -> bool:
    return len(value.strip()) == 10


def recurrence_end_instant(value: Optional[str], timezone: str) -> Optional[datetime]:
    """A bare date means the end of that civil day."""
    if value is None:
        return None
    if _is_bare_date(value):
        try:
            day = date.fromisoformat(value.strip())
        except ValueError as e:
            raise ValidationError(f"Invalid recurrence end date: {value!r}") from e
        return parse_wall_clock(datetime.combine(day, time(23, 59, 59)), timezone)
    return to_instant(value, timezone)


def window_bound(value: str, timezone: str) -> datetime:
    """Listing window bound: a bare date is civil midnight starting that day."""
    if _is_bare_date(value):
        return civil_midnight(value, timezone)
    return to_instant(value, timezone)


_EVENT_FIELD_MAP = {
    'name': 'name',
    'description': 'description',
    'location': 'location',
    'recurrence_type': 'recurrence_type',
    'recurrence_pattern': 'recurrence_pattern',
    'user_group_id': 'user_group_id',
}


def event_values(body: BaseModel, timezone: str, partial: bool = False) -> Dict[str, Any]:
    """Map a create/update body onto TeamEvent field values."""
    data = body.model_dump(exclude_unset=partial)
    values: Dict[str, Any] = {}
    for source, target in _EVENT_FIELD_MAP.items():
        if source in data:
            values[target] = data[source]
    if 'start_date_time' in data:
        if data['start_date_time'] is None:
            raise ValidationError("Event start cannot be cleared")
        values['start_at'] = to_instant(data['start_date_time'], timezone)
    if 'end_date_time' in data:
        end = data['end_date_time']
        values['end_at'] = to_instant(end, timezone) if end else None
    if 'recurrence_end_date' in data:
        values['recurrence_end_at'] = recurrence_end_instant(data['recurrence_end_date'], timezone)
    return values


# -- serializers ------------------------------------------------------------

def _instant(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace('+00:00', 'Z')


def _wall(value: Optional[datetime], timezone: str) -> Optional[str]:
    if value is None:
        return None
    return format_wall_clock(value, timezone).date_time


def serialize_event(event, timezone: str) -> Dict[str, Any]:
    return {
        'id': event.id,
        'teamId': event.team_id,
        'name': event.name,
        'description': event.description,
        'location': event.location,
        'startDateTime': _instant(event.start_at),
        'endDateTime': _instant(event.end_at),
        'localStartDateTime': _wall(event.start_at, timezone),
        'localEndDateTime': _wall(event.end_at, timezone),
        'timezone': timezone,
        'recurrenceType': event.recurrence_type,
        'recurrencePattern': event.recurrence_pattern,
        'recurrenceEndDate': _instant(event.recurrence_end_at),
        'userGroupId': event.user_group_id,
        'sequence': event.sequence,
        'createdBy': event.created_by,
    }


def serialize_occurrence(occurrence, timezone: str) -> Dict[str, Any]:
    return {
        'eventId': occurrence.event.id,
        'name': occurrence.event.name,
        'location': occurrence.event.location,
        'instanceDate': civil_date_of(occurrence.start, timezone).isoformat(),
        'startDateTime': _instant(occurrence.start),
        'endDateTime': _instant(occurrence.end),
        'localStartDateTime': _wall(occurrence.start, timezone),
        'localEndDateTime': _wall(occurrence.end, timezone),
    }


def serialize_attendance(record, timezone: str) -> Dict[str, Any]:
    return {
        'id': record.id,
        'eventId': record.event_id,
        'userId': record.user_id,
        'instanceDate': civil_date_of(record.occurrence_at, timezone).isoformat(),
        'status': record.status,
    }


def serialize_exclusion(exclusion, timezone: str) -> Dict[str, Any]:
    return {
        'id': exclusion.id,
        'eventId': exclusion.event_id,
        'excludedDate': civil_date_of(exclusion.excluded_at, timezone).isoformat(),
    }


def serialize_group(group) -> Dict[str, Any]:
    return {
        'id': group.id,
        'teamId': group.team_id,
        'name': group.name,
        'isPublic': group.is_public,
        'createdBy': group.created_by,
        'visibilityRules': group.visibility_rules,
    }


def serialize_user(user) -> Dict[str, Any]:
    return {
        'id': user.id,
        'email': user.email,
        'firstName': user.first_name,
        'lastName': user.last_name,
    }

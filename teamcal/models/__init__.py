"""Models package initialization."""

from .base import Base, UTCDateTime
from .team import Team, TeamMember, Subteam, SubteamMember, SubteamLeadPosition
from .user import User
from .user_group import UserGroup
from .event import (
    TeamEvent,
    EventExclusion,
    EventAttendance,
    EventNotification,
    RECURRENCE_TYPES,
    ATTENDANCE_STATUSES,
    NOTIFICATION_METHODS,
)

__all__ = [
    'Base',
    'UTCDateTime',
    'Team',
    'TeamMember',
    'Subteam',
    'SubteamMember',
    'SubteamLeadPosition',
    'User',
    'UserGroup',
    'TeamEvent',
    'EventExclusion',
    'EventAttendance',
    'EventNotification',
    'RECURRENCE_TYPES',
    'ATTENDANCE_STATUSES',
    'NOTIFICATION_METHODS',
]

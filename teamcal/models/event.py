"""Team event and per-occurrence models."""

from sqlalchemy import (
    Column, Integer, String, Text, JSON, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, new_id
from ..utils.timezone import now_utc, ensure_utc

RECURRENCE_TYPES = ('none', 'daily', 'weekly', 'monthly', 'custom')
ATTENDANCE_STATUSES = ('yes', 'no', 'not-sure')
NOTIFICATION_METHODS = ('email', 'text')


class TeamEvent(Base):
    """
    A scheduled team event, possibly recurring.

    Fields:
        id: Unique identifier (also the stem of the iCalendar UID)
        team_id: Owning team; its timezone governs wall-clock expansion
        name: Event title (max 200)
        description: Free text (optional)
        location: Where the event takes place (optional, max 300)
        start_at: First occurrence start (UTC instant)
        end_at: First occurrence end (optional)
        recurrence_type: One of RECURRENCE_TYPES
        recurrence_pattern: JSON payload keyed by recurrence_type
        recurrence_end_at: Last instant an occurrence may start at (inclusive)
        user_group_id: Visibility rule set; null means all team members
        sequence: Revision counter emitted as iCalendar SEQUENCE
        created_by: User who created the event
    """
    __tablename__ = 'team_events'

    id = Column(String(36), primary_key=True, default=new_id)
    team_id = Column(String(36), ForeignKey('teams.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(300), nullable=True)
    start_at = Column(UTCDateTime, nullable=False)
    end_at = Column(UTCDateTime, nullable=True)
    recurrence_type = Column(String(20), nullable=False, default='none')
    recurrence_pattern = Column(JSON, nullable=True)
    recurrence_end_at = Column(UTCDateTime, nullable=True)
    user_group_id = Column(String(36), ForeignKey('user_groups.id', ondelete='SET NULL'), nullable=True)
    sequence = Column(Integer, nullable=False, default=0)
    created_by = Column(String(36), nullable=False)
    created_at = Column(UTCDateTime, default=now_utc)
    updated_at = Column(UTCDateTime, default=now_utc, onupdate=now_utc)

    team = relationship('Team')
    user_group = relationship('UserGroup')
    exclusions = relationship(
        'EventExclusion', back_populates='event',
        cascade='all, delete-orphan', passive_deletes=True
    )
    attendance = relationship(
        'EventAttendance', back_populates='event',
        cascade='all, delete-orphan', passive_deletes=True
    )
    notifications = relationship(
        'EventNotification', back_populates='event',
        cascade='all, delete-orphan', passive_deletes=True
    )

    def __init__(self, **kwargs):
        """Initialize TeamEvent, normalizing datetimes to UTC."""
        for key in ('start_at', 'end_at', 'recurrence_end_at'):
            if kwargs.get(key) is not None:
                kwargs[key] = ensure_utc(kwargs[key])
        kwargs.setdefault('recurrence_type', 'none')
        kwargs.setdefault('sequence', 0)
        super().__init__(**kwargs)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_type not in (None, 'none')

    def __str__(self) -> str:
        return f"TeamEvent(id={self.id}, name={self.name}, start_at={self.start_at})"


class EventExclusion(Base):
    """A cancelled occurrence, identified by the instant of its civil midnight."""
    __tablename__ = 'event_exclusions'
    __table_args__ = (
        UniqueConstraint('event_id', 'excluded_at', name='uq_event_exclusions_event_date'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    event_id = Column(String(36), ForeignKey('team_events.id', ondelete='CASCADE'), nullable=False, index=True)
    excluded_at = Column(UTCDateTime, nullable=False)
    created_at = Column(UTCDateTime, default=now_utc)

    event = relationship('TeamEvent', back_populates='exclusions')


class EventAttendance(Base):
    """A user's response for one occurrence of an event."""
    __tablename__ = 'event_attendance'
    __table_args__ = (
        UniqueConstraint('event_id', 'user_id', 'occurrence_at', name='uq_event_attendance_occurrence'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    event_id = Column(String(36), ForeignKey('team_events.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    occurrence_at = Column(UTCDateTime, nullable=False)
    status = Column(String(10), nullable=False, default='not-sure')
    created_at = Column(UTCDateTime, default=now_utc)
    updated_at = Column(UTCDateTime, default=now_utc, onupdate=now_utc)

    event = relationship('TeamEvent', back_populates='attendance')


class EventNotification(Base):
    """Marker that a reminder for (event, user, notification time) was claimed or sent."""
    __tablename__ = 'event_notifications'
    __table_args__ = (
        UniqueConstraint('event_id', 'user_id', 'notification_at', name='uq_event_notifications_marker'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    event_id = Column(String(36), ForeignKey('team_events.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    notification_at = Column(UTCDateTime, nullable=False)
    method = Column(String(10), nullable=False, default='email')
    sent_at = Column(UTCDateTime, default=now_utc)

    event = relationship('TeamEvent', back_populates='notifications')

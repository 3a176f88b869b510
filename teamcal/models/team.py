"""Team, membership and subteam models.

These rows are owned by the surrounding application (team management,
invitations, role administration). The scheduling core only reads them,
through ``teamcal.services.membership.MembershipDirectory``.
"""

from typing import List

from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, new_id
from ..utils.timezone import now_utc

DEFAULT_TEAM_TIMEZONE = 'America/New_York'
DEFAULT_TEAM_ROLES = 'Administrator,Mentor,Student,Parent'


def split_roles(value: str) -> List[str]:
    """Roles are persisted as a comma-separated string."""
    if not value:
        return []
    return [role.strip() for role in value.split(',') if role.strip()]


class Team(Base):
    """
    A team that owns events and members.

    Fields:
        id: Unique identifier
        team_number: Public number used in calendar feed URLs
        name: Display name
        timezone: IANA zone all event wall-clock times are expressed in
        roles: Comma-separated list of roles defined by the team
    """
    __tablename__ = 'teams'

    id = Column(String(36), primary_key=True, default=new_id)
    team_number = Column(Integer, nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TEAM_TIMEZONE)
    roles = Column(String(500), nullable=False, default=DEFAULT_TEAM_ROLES)
    created_at = Column(UTCDateTime, default=now_utc)

    members = relationship('TeamMember', back_populates='team', cascade='all, delete-orphan')
    subteams = relationship('Subteam', back_populates='team', cascade='all, delete-orphan')

    def __str__(self) -> str:
        return f"Team(id={self.id}, team_number={self.team_number}, name={self.name})"


class TeamMember(Base):
    """Membership of a user in a team, with the roles they hold there."""
    __tablename__ = 'user_teams'
    __table_args__ = (UniqueConstraint('team_id', 'user_id', name='uq_user_teams_team_user'),)

    id = Column(String(36), primary_key=True, default=new_id)
    team_id = Column(String(36), ForeignKey('teams.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    roles = Column(String(500), nullable=False, default='')
    status = Column(String(20), nullable=False, default='active')
    joined_at = Column(UTCDateTime, default=now_utc)

    team = relationship('Team', back_populates='members')
    user = relationship('User')

    @property
    def role_list(self) -> List[str]:
        return split_roles(self.roles)


class Subteam(Base):
    __tablename__ = 'subteams'

    id = Column(String(36), primary_key=True, default=new_id)
    team_id = Column(String(36), ForeignKey('teams.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    team = relationship('Team', back_populates='subteams')
    members = relationship('SubteamMember', back_populates='subteam', cascade='all, delete-orphan')
    lead_positions = relationship('SubteamLeadPosition', back_populates='subteam', cascade='all, delete-orphan')


class SubteamMember(Base):
    __tablename__ = 'subteam_members'
    __table_args__ = (UniqueConstraint('subteam_id', 'user_id', name='uq_subteam_members_subteam_user'),)

    id = Column(String(36), primary_key=True, default=new_id)
    subteam_id = Column(String(36), ForeignKey('subteams.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    subteam = relationship('Subteam', back_populates='members')


class SubteamLeadPosition(Base):
    """A named lead slot on a subteam; ``user_id`` is null while the slot is unfilled."""
    __tablename__ = 'subteam_lead_positions'

    id = Column(String(36), primary_key=True, default=new_id)
    subteam_id = Column(String(36), ForeignKey('subteams.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)

    subteam = relationship('Subteam', back_populates='lead_positions')

"""User group model: a named, persisted visibility rule set."""

from sqlalchemy import Column, String, Boolean, JSON, ForeignKey

from .base import Base, UTCDateTime, new_id
from ..utils.timezone import now_utc


class UserGroup(Base):
    """
    A visibility rule set that events (and messages) can be restricted to.

    Fields:
        id: Unique identifier
        team_id: Owning team
        name: Display name
        is_public: Whether other members may reuse the group
        created_by: Only this user may edit or delete the group
        visibility_rules: Persisted rule set, ``{"rows": [{"criteria": [...]}]}``
    """
    __tablename__ = 'user_groups'

    id = Column(String(36), primary_key=True, default=new_id)
    team_id = Column(String(36), ForeignKey('teams.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    is_public = Column(Boolean, nullable=False, default=False)
    created_by = Column(String(36), nullable=False)
    visibility_rules = Column(JSON, nullable=True)
    created_at = Column(UTCDateTime, default=now_utc)
    updated_at = Column(UTCDateTime, default=now_utc, onupdate=now_utc)

"""User model (read-only from the scheduling core's point of view)."""

from sqlalchemy import Column, String, JSON

from .base import Base, UTCDateTime, new_id
from ..utils.timezone import now_utc


class User(Base):
    """
    A person who can belong to teams and receive notifications.

    Fields:
        id: Unique identifier
        email: Delivery address for invites and reminders
        first_name / last_name: Display name parts
        event_notifications: Reminder preferences, a list of
            ``{"timeBefore": <minutes>, "method": "email" | "text"}``.
            Null means the default preference (one email a day before).
    """
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(320), nullable=False, unique=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(40), nullable=True)
    event_notifications = Column(JSON, nullable=True)
    created_at = Column(UTCDateTime, default=now_utc)

    @property
    def display_name(self) -> str:
        name = ' '.join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email

"""Calendar and reminder configuration."""

import os
from dataclasses import dataclass

from .environment import env_flag


@dataclass
class CalendarConfig:
    """Calendar publishing and reminder settings.

    Any field left at its empty value is loaded from the environment.
    """

    default_timezone: str = ""
    prodid: str = ""
    uid_domain: str = ""
    api_url: str = ""
    send_event_invites: bool = None
    reminder_interval_seconds: int = 0
    reminder_lookahead_days: int = 0
    default_reminder_minutes: int = 0

    def __post_init__(self):
        """Load settings from environment if not provided."""
        if not self.default_timezone:
            self.default_timezone = os.environ.get('DEFAULT_TIMEZONE', 'America/New_York')
        if not self.prodid:
            self.prodid = os.environ.get('CALENDAR_PRODID', '-//Xerosite//Team Calendar//EN')
        if not self.uid_domain:
            self.uid_domain = os.environ.get('CALENDAR_UID_DOMAIN', 'xerosite.app')
        if not self.api_url:
            self.api_url = os.environ.get('API_URL', 'http://localhost:8000')
        if self.send_event_invites is None:
            self.send_event_invites = env_flag('SEND_EVENT_INVITES', default=False)
        if not self.reminder_interval_seconds:
            self.reminder_interval_seconds = int(os.environ.get('REMINDER_INTERVAL_SECONDS', '300'))
        if not self.reminder_lookahead_days:
            self.reminder_lookahead_days = int(os.environ.get('REMINDER_LOOKAHEAD_DAYS', '30'))
        if not self.default_reminder_minutes:
            self.default_reminder_minutes = int(os.environ.get('DEFAULT_REMINDER_MINUTES', str(24 * 60)))

    def validate(self) -> bool:
        """Validate the configuration."""
        if self.reminder_interval_seconds <= 0:
            raise ValueError("REMINDER_INTERVAL_SECONDS must be positive")
        if self.reminder_lookahead_days <= 0:
            raise ValueError("REMINDER_LOOKAHEAD_DAYS must be positive")
        if self.default_reminder_minutes <= 0:
            raise ValueError("DEFAULT_REMINDER_MINUTES must be positive")
        return True


def get_calendar_config() -> CalendarConfig:
    """Get calendar configuration with validation."""
    config = CalendarConfig()
    config.validate()
    return config

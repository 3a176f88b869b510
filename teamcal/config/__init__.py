"""Configuration package."""

from .environment import IS_PRODUCTION_ENVIRONMENT
from .calendar import CalendarConfig, get_calendar_config
from .email import EmailConfig
from .admin import AdminConfig

__all__ = [
    'IS_PRODUCTION_ENVIRONMENT',
    'CalendarConfig',
    'get_calendar_config',
    'EmailConfig',
    'AdminConfig',
]

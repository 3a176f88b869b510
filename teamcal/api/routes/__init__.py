"""API route modules."""

from . import attendance, calendar, events, health, reminder_trigger, user_groups

__all__ = ['attendance', 'calendar', 'events', 'health', 'reminder_trigger', 'user_groups']

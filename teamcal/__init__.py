"""Team event scheduling: recurring events, calendar feeds, attendance and reminders."""

__version__ = "1.0.0"

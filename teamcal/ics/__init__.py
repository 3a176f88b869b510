"""iCalendar encoders: the team feed and single-event messages."""

from .feed import generate_feed, event_uid
from .message import MessageMethod, generate_single_event_message

__all__ = [
    'generate_feed',
    'event_uid',
    'MessageMethod',
    'generate_single_event_message',
]

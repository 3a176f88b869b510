"""Domain services operating on a database session."""

from .attendance import AttendanceTracker, cycle_status
from .events import EventService, Occurrence
from .exclusion_store import ExclusionStore
from .invitations import EventNotice, DeliveryResult, prepare_notice, deliver_notice
from .membership import MembershipDirectory
from .notifier import CalendarAttachment, Notifier, SmtpNotifier, get_notifier, set_notifier
from .reminders import ReminderScanner, TickResult, reminder_preferences
from .user_groups import UserGroupService

__all__ = [
    'AttendanceTracker',
    'cycle_status',
    'EventService',
    'Occurrence',
    'ExclusionStore',
    'EventNotice',
    'DeliveryResult',
    'prepare_notice',
    'deliver_notice',
    'MembershipDirectory',
    'CalendarAttachment',
    'Notifier',
    'SmtpNotifier',
    'get_notifier',
    'set_notifier',
    'ReminderScanner',
    'TickResult',
    'reminder_preferences',
    'UserGroupService',
]

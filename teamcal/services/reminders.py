"""Periodic reminder scan.

Each tick reads the current events, memberships and preferences from the
database, works out which reminders are due, and for each one claims a
sent-marker row before sending. The unique key on
(event, user, notification time) makes the claim the only coordination
point: overlapping ticks, restarts and multiple workers all skip a
reminder somebody else already claimed. A failed send releases its claim
so a later tick retries.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from .exclusion_store import ExclusionStore
from .membership import MembershipDirectory
from .notifier import Notifier, get_notifier
from .templates import render_reminder
from ..config.calendar import CalendarConfig
from ..db import Database, db as default_db, with_retry
from ..errors import Conflict, TeamCalendarError
from ..models import EventNotification, NOTIFICATION_METHODS, TeamEvent, User
from ..recurrence import expand, occurrence_end
from ..utils.timezone import ensure_utc, now_utc, to_local
from ..visibility import matches_facts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderPreference:
    minutes_before: int
    method: str = 'email'


@dataclass(frozen=True)
class DueReminder:
    """Snapshot of one reminder to deliver, detached from any session."""
    event_id: str
    event_name: str
    location: Optional[str]
    description: Optional[str]
    team_name: str
    timezone: str
    occurrence_start: datetime
    occurrence_end: Optional[datetime]
    user_id: str
    email: str
    recipient_name: str
    notification_at: datetime
    method: str


@dataclass
class TickResult:
    due: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0


def reminder_preferences(user: User, default_minutes: int) -> List[ReminderPreference]:
    """
    A user's reminder preferences.

    No stored preference means one email ``default_minutes`` before; an
    explicitly empty list means no reminders. Malformed entries are skipped.
    """
    raw = user.event_notifications
    if raw is None:
        return [ReminderPreference(default_minutes, 'email')]

    preferences = []
    for entry in raw if isinstance(raw, list) else []:
        if not isinstance(entry, dict):
            continue
        minutes = entry.get('timeBefore')
        method = entry.get('method', 'email')
        if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
            logger.warning(f"Ignoring reminder preference {entry!r} for user {user.id}")
            continue
        if method not in NOTIFICATION_METHODS:
            logger.warning(f"Ignoring reminder preference {entry!r} for user {user.id}")
            continue
        preferences.append(ReminderPreference(minutes, method))
    return preferences


class ReminderScanner:
    """Finds due reminders and delivers each exactly once."""

    def __init__(self, config: Optional[CalendarConfig] = None,
                 notifier: Optional[Notifier] = None,
                 database: Optional[Database] = None):
        self.config = config or CalendarConfig()
        self.notifier = notifier
        self.db = database or default_db

    def _candidate_events(self, session, now: datetime, horizon: datetime) -> List[TeamEvent]:
        return session.query(TeamEvent).filter(
            TeamEvent.start_at < horizon,
            or_(
                TeamEvent.recurrence_type != 'none',
                TeamEvent.start_at >= now,
            ),
            or_(
                TeamEvent.recurrence_end_at.is_(None),
                TeamEvent.recurrence_end_at >= now,
            ),
        ).all()

    @with_retry()
    def find_due(self, now: datetime) -> List[DueReminder]:
        """Collect every reminder whose time has come for an occurrence not yet started."""
        lookahead = timedelta(days=self.config.reminder_lookahead_days)
        due: List[DueReminder] = []

        with self.db.session() as session:
            directory = MembershipDirectory(session)
            exclusions = ExclusionStore(session)
            facts_by_team = {}

            for event in self._candidate_events(session, now, now + lookahead):
                team = event.team
                if team.id not in facts_by_team:
                    facts_by_team[team.id] = directory.all_facts(team.id)

                rule_set = event.user_group.visibility_rules if event.user_group else None
                recipient_ids = [f.user_id for f in facts_by_team[team.id] if matches_facts(f, rule_set)]
                if not recipient_ids:
                    continue
                users = session.query(User).filter(User.id.in_(recipient_ids)).all()

                recipients: List[Tuple[User, ReminderPreference]] = []
                for user in users:
                    for preference in reminder_preferences(user, self.config.default_reminder_minutes):
                        recipients.append((user, preference))
                if not recipients:
                    continue

                # Only occurrences closer than the largest preference can be due
                longest = max(timedelta(minutes=p.minutes_before) for _, p in recipients)
                window_end = now + min(longest, lookahead)
                try:
                    excluded = exclusions.excluded_dates(event.id)
                    starts = list(expand(event, now, window_end, team.timezone, excluded))
                except TeamCalendarError as e:
                    logger.error(f"Skipping reminders for event {event.id}: {e}")
                    continue

                for start in starts:
                    end = occurrence_end(event, start, team.timezone)
                    for user, preference in recipients:
                        notification_at = start - timedelta(minutes=preference.minutes_before)
                        if not (notification_at <= now < start):
                            continue
                        due.append(DueReminder(
                            event_id=event.id,
                            event_name=event.name,
                            location=event.location,
                            description=event.description,
                            team_name=team.name,
                            timezone=team.timezone,
                            occurrence_start=start,
                            occurrence_end=end,
                            user_id=user.id,
                            email=user.email,
                            recipient_name=user.display_name,
                            notification_at=notification_at,
                            method=preference.method,
                        ))

        return due

    def _claim(self, reminder: DueReminder) -> None:
        """Insert the sent-marker in its own transaction; Conflict if already claimed."""
        with self.db.session() as session:
            session.add(EventNotification(
                event_id=reminder.event_id,
                user_id=reminder.user_id,
                notification_at=reminder.notification_at,
                method=reminder.method,
            ))
            try:
                session.flush()
            except IntegrityError as e:
                raise Conflict("Reminder already claimed") from e

    @with_retry()
    def _release(self, reminder: DueReminder) -> None:
        with self.db.session() as session:
            session.query(EventNotification).filter(
                EventNotification.event_id == reminder.event_id,
                EventNotification.user_id == reminder.user_id,
                EventNotification.notification_at == reminder.notification_at,
            ).delete(synchronize_session=False)

    def _send(self, reminder: DueReminder) -> None:
        notifier = self.notifier or get_notifier()
        local_start = to_local(reminder.occurrence_start, reminder.timezone)
        local_end = to_local(reminder.occurrence_end, reminder.timezone) if reminder.occurrence_end else None
        html_body = render_reminder(
            reminder.team_name, reminder.event_name, local_start, local_end,
            reminder.timezone, reminder.location, reminder.description,
            recipient_name=reminder.recipient_name,
        )
        subject = f"Reminder: {reminder.event_name} on {local_start.strftime('%b %d at %I:%M %p')}"
        notifier.send_reminder(reminder.email, subject, html_body)

    def run_tick(self, now: Optional[datetime] = None) -> TickResult:
        """
        Run one scan.

        Args:
            now: Scan time override (defaults to the current time)

        Returns:
            TickResult with counts for this tick only
        """
        now = ensure_utc(now) if now else now_utc()
        result = TickResult()

        due = self.find_due(now)
        result.due = len(due)

        for reminder in due:
            try:
                self._claim(reminder)
            except Conflict:
                result.skipped += 1
                continue

            if reminder.method == 'text':
                logger.info(f"Text reminder for event {reminder.event_id} to user {reminder.user_id} "
                            f"not sent: text delivery is not available")
                result.skipped += 1
                continue

            try:
                self._send(reminder)
                result.sent += 1
            except Exception as e:
                result.failed += 1
                logger.error(f"Failed to send reminder for event {reminder.event_id} "
                             f"to user {reminder.user_id}: {e}")
                try:
                    self._release(reminder)
                except Exception as release_error:
                    logger.error(f"Could not release reminder claim for event {reminder.event_id} "
                                 f"and user {reminder.user_id}: {release_error}")

        logger.info(f"Reminder tick at {now.isoformat()}: {result.due} due, {result.sent} sent, "
                    f"{result.skipped} skipped, {result.failed} failed")
        return result

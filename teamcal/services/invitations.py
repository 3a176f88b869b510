"""Invite and cancellation fan-out for event changes.

Notices are prepared inside the request's database session (so a deleted
event can still be described) and delivered afterwards, typically from a
FastAPI background task. A failure for one recipient never stops the rest.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from .membership import MembershipDirectory
from .notifier import CalendarAttachment, Notifier, get_notifier
from .exclusion_store import ExclusionStore
from .templates import render_cancellation, render_invite
from ..config.calendar import CalendarConfig
from ..ics import MessageMethod, generate_single_event_message
from ..models import TeamEvent
from ..recurrence.expander import occurrence_end
from ..utils.timezone import to_local

logger = logging.getLogger(__name__)


@dataclass
class EventNotice:
    """A fully rendered notice and the addresses it goes to."""
    event_id: str
    method: MessageMethod
    subject: str
    html_body: str
    attachment: CalendarAttachment
    recipients: List[Tuple[str, str]] = field(default_factory=list)  # (user_id, email)


@dataclass
class DeliveryResult:
    sent: int = 0
    failed: int = 0


def _describe_recurrence(event: TeamEvent) -> Optional[str]:
    if not event.is_recurring:
        return None
    return event.recurrence_type.capitalize()


def prepare_notice(session: Session, event: TeamEvent, method: MessageMethod, sequence: int,
                   config: Optional[CalendarConfig] = None) -> EventNotice:
    """
    Render the notice for an event change and resolve its recipients.

    Recipients are the active team members selected by the event's user
    group (every member when the event has none).
    """
    config = config or CalendarConfig()
    team = event.team
    timezone = team.timezone

    excluded = ExclusionStore(session).excluded_dates(event.id) if event.is_recurring else set()
    content = generate_single_event_message(
        event, method, sequence, timezone, config, excluded_dates=excluded
    )

    local_start = to_local(event.start_at, timezone)
    if method is MessageMethod.CANCEL:
        subject = f"Event cancelled: {event.name}"
        html_body = render_cancellation(team.name, event.name, local_start, timezone)
    else:
        end = occurrence_end(event, event.start_at, timezone)
        subject = f"Event updated: {event.name}" if sequence > 0 else f"Event invitation: {event.name}"
        html_body = render_invite(
            team.name, event.name, local_start,
            to_local(end, timezone) if end else None,
            timezone, event.location, event.description,
            recurrence=_describe_recurrence(event),
            updated=sequence > 0,
        )

    rule_set = event.user_group.visibility_rules if event.user_group else None
    recipients = [
        (user.id, user.email)
        for user in MembershipDirectory(session).resolve_recipients(team.id, rule_set)
    ]

    return EventNotice(
        event_id=event.id,
        method=method,
        subject=subject,
        html_body=html_body,
        attachment=CalendarAttachment(content=content, method=method.value),
        recipients=recipients,
    )


def deliver_notice(notice: EventNotice, notifier: Optional[Notifier] = None) -> DeliveryResult:
    """Send a prepared notice to each recipient, isolating failures."""
    notifier = notifier or get_notifier()
    result = DeliveryResult()

    for user_id, address in notice.recipients:
        try:
            if notice.method is MessageMethod.CANCEL:
                notifier.send_cancellation(address, notice.subject, notice.html_body, notice.attachment)
            else:
                notifier.send_invite(address, notice.subject, notice.html_body, notice.attachment)
            result.sent += 1
        except Exception as e:
            result.failed += 1
            logger.error(f"Failed to send {notice.method.name.lower()} for event {notice.event_id} "
                         f"to user {user_id}: {e}")

    logger.info(f"Delivered {notice.method.name.lower()} for event {notice.event_id}: "
                f"{result.sent} sent, {result.failed} failed")
    return result

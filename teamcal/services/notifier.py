"""Outbound notification transport."""

import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from ..config.email import EmailConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarAttachment:
    """An iCalendar payload attached to an invite or cancellation."""
    content: bytes
    method: str
    filename: str = 'invite.ics'


class Notifier(ABC):
    """
    Base interface for delivering notifications to one recipient.

    Implementations raise on delivery failure; callers isolate failures per
    recipient.
    """

    @abstractmethod
    def send_invite(self, address: str, subject: str, html_body: str,
                    attachment: CalendarAttachment) -> None:
        """Deliver an event invite (or update) with its calendar attachment."""
        pass

    @abstractmethod
    def send_cancellation(self, address: str, subject: str, html_body: str,
                          attachment: CalendarAttachment) -> None:
        """Deliver an event cancellation with its calendar attachment."""
        pass

    @abstractmethod
    def send_reminder(self, address: str, subject: str, html_body: str) -> None:
        """Deliver an upcoming-event reminder."""
        pass


class SmtpNotifier(Notifier):
    """Sends mail through an SMTP relay configured by EmailConfig.

    ``EMAIL_DONT_SEND`` turns delivery into a log line and
    ``EMAIL_REDIRECT_TO`` sends every message to one address instead.
    """

    def __init__(self, config: Optional[EmailConfig] = None):
        self.config = config or EmailConfig()
        self.config.validate()

    def _recipient(self, address: str) -> str:
        if self.config.redirect_to:
            logger.info(f"Redirecting email for {address} to {self.config.redirect_to}")
            return self.config.redirect_to
        return address

    def _build(self, address: str, subject: str, html_body: str,
               attachment: Optional[CalendarAttachment] = None) -> MIMEMultipart:
        message = MIMEMultipart('mixed')
        message['From'] = self.config.from_address
        message['To'] = self._recipient(address)
        message['Subject'] = subject

        alternative = MIMEMultipart('alternative')
        alternative.attach(MIMEText(html_body, 'html', 'utf-8'))
        if attachment is not None:
            # Inline calendar part lets mail clients render accept/decline controls
            inline = MIMEText(attachment.content.decode('utf-8'), 'calendar', 'utf-8')
            inline.set_param('method', attachment.method)
            alternative.attach(inline)
        message.attach(alternative)

        if attachment is not None:
            part = MIMEApplication(attachment.content, 'ics', Name=attachment.filename)
            part['Content-Disposition'] = f'attachment; filename="{attachment.filename}"'
            message.attach(part)

        return message

    def _deliver(self, message: MIMEMultipart) -> None:
        if self.config.dont_send:
            logger.info(f"EMAIL_DONT_SEND set; not sending '{message['Subject']}' to {message['To']}")
            return

        with smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout) as smtp:
            if self.config.use_tls:
                smtp.starttls()
            if self.config.user:
                smtp.login(self.config.user, self.config.password)
            smtp.send_message(message)
        logger.info(f"Sent '{message['Subject']}' to {message['To']}")

    def send_invite(self, address, subject, html_body, attachment):
        self._deliver(self._build(address, subject, html_body, attachment))

    def send_cancellation(self, address, subject, html_body, attachment):
        self._deliver(self._build(address, subject, html_body, attachment))

    def send_reminder(self, address, subject, html_body):
        self._deliver(self._build(address, subject, html_body))


_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Module-level notifier, created on first use."""
    global _notifier
    if _notifier is None:
        _notifier = SmtpNotifier()
    return _notifier


def set_notifier(notifier: Optional[Notifier]) -> None:
    """Replace the module-level notifier (None resets to SMTP on next use)."""
    global _notifier
    _notifier = notifier

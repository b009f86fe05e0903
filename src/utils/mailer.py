"""Outbound email.

Managers never talk to a mail provider directly. They build an EmailMessage
and hand it to a ``notify`` callable; in HTTP requests that callable schedules
``deliver`` as a background task, so mail never blocks or fails a request.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

import resend

from config import MAIL_FROM, RESEND_API_KEY

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str


Notify = Callable[[EmailMessage], None]


class Mailer(ABC):
    """Sends a rendered message."""

    @abstractmethod
    def send(self, message: EmailMessage) -> None:
        """Send a message.

        Args:
            message: Rendered email.

        Raises:
            Exception: Whatever the transport raises. Callers go through
                ``deliver`` which absorbs it.
        """
        pass


class ResendMailer(Mailer):
    """Sends mail through the Resend API."""

    def __init__(self, api_key: Optional[str] = RESEND_API_KEY, sender: str = MAIL_FROM):
        if not api_key:
            raise ValueError("RESEND_API_KEY is not set")
        resend.api_key = api_key
        self.sender = sender

    def send(self, message: EmailMessage) -> None:
        params = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        # Emails.send is sync; background tasks already run it off the event loop
        result = resend.Emails.send(params)
        logger.info("Sent '%s' to %s (id=%s)", message.subject, message.to, result.get("id"))


class LoggingMailer(Mailer):
    """Development mailer: logs recipient and subject, never the body."""

    def send(self, message: EmailMessage) -> None:
        logger.info("Email to %s: %s (not sent, no RESEND_API_KEY)", message.to, message.subject)


class RecordingMailer(Mailer):
    """Keeps every message in memory."""

    def __init__(self):
        self.sent: List[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        self.sent.append(message)

    def last_to(self, to: str) -> Optional[EmailMessage]:
        for message in reversed(self.sent):
            if message.to == to:
                return message
        return None


def deliver(mailer: Mailer, message: EmailMessage) -> bool:
    """Best-effort send. Failures are logged and never raised.

    Returns:
        True if the mailer accepted the message.
    """
    try:
        mailer.send(message)
        return True
    except Exception:
        logger.exception("Failed to send '%s' to %s", message.subject, message.to)
        return False


def default_mailer() -> Mailer:
    if RESEND_API_KEY:
        return ResendMailer()
    return LoggingMailer()

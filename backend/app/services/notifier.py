"""Outbound email: the notifier port, its SMTP adapter and the dispatcher.

Notifications are best-effort. ``dispatch`` is the only place services hand
a message to a notifier; it logs failures and never raises, so a committed
state transition is never undone by a mail problem.
"""
import asyncio
import logging
import smtplib
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Protocol, Sequence

from app.config import settings
from app.services.errors import NotificationError

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    subject: str
    html_body: str
    recipients: list[str] = field(default_factory=list)


class Notifier(Protocol):
    async def send(self, subject: str, html_body: str, recipients: Sequence[str]) -> bool:
        ...


class SmtpNotifier:
    """Sends HTML mail through an SMTP relay configured in settings."""

    def __init__(
        self,
        host: str = settings.SMTP_HOST,
        port: int = settings.SMTP_PORT,
        username: str = settings.SMTP_USERNAME,
        password: str = settings.SMTP_PASSWORD,
        sender: str = settings.email_sender,
        sender_name: str = settings.EMAIL_FROM_NAME,
        use_tls: bool = settings.SMTP_USE_TLS,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.sender_name = sender_name
        self.use_tls = use_tls

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password and self.sender)

    def _build(self, subject: str, html_body: str, recipients: Sequence[str]) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self.sender_name, self.sender))
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject
        msg.attach(MIMEText(html_body, "html"))
        return msg

    def _deliver(self, msg: MIMEMultipart) -> None:
        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Could not send '{msg['Subject']}': {exc}") from exc

    async def send(self, subject: str, html_body: str, recipients: Sequence[str]) -> bool:
        if not self.configured:
            logger.warning("Email '%s' not sent: SMTP is not configured", subject)
            return False
        if not recipients:
            return False
        # smtplib blocks, so the delivery runs in a worker thread.
        await asyncio.to_thread(self._deliver, self._build(subject, html_body, recipients))
        logger.info("Email '%s' sent to %d recipient(s)", subject, len(recipients))
        return True


async def dispatch(notifier: Notifier, message: EmailMessage) -> bool:
    """Fire-and-forget delivery. Returns whether the notifier reported success."""
    recipients = [r for r in message.recipients if r]
    if not recipients:
        logger.info("Email '%s' skipped: no recipients", message.subject)
        return False
    try:
        sent = await notifier.send(message.subject, message.html_body, recipients)
    except NotificationError as exc:
        logger.warning("Notification failed: %s", exc.message)
        return False
    except Exception:
        # Runs after the caller's commit, so nothing may escape.
        logger.exception("Notifier crashed while sending '%s'", message.subject)
        return False
    if not sent:
        logger.warning("Notification '%s' was not delivered", message.subject)
    return sent


_default_notifier = SmtpNotifier()


def get_notifier() -> Notifier:
    """FastAPI dependency, overridden in tests."""
    return _default_notifier

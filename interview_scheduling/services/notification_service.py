import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Tuple

from interview_scheduling.base.exceptions import NotificationError
from interview_scheduling.base.metrics import notification_counter
from interview_scheduling.base.models import Contact, NotificationContext, NotificationResult

logger = logging.getLogger("notifications")


class NotificationDispatcher(ABC):
    """
    Outbound scheduling notices. Implementations report failures through the
    returned NotificationResult and never raise.
    """

    def notify_assigned(self, recipient: Contact, context: NotificationContext) -> NotificationResult:
        return self._dispatch("assigned", recipient, context)

    def notify_confirmed(self, recipient: Contact, context: NotificationContext) -> NotificationResult:
        return self._dispatch("confirmed", recipient, context)

    def notify_cancelled(self, recipient: Contact, context: NotificationContext) -> NotificationResult:
        return self._dispatch("cancelled", recipient, context)

    def _dispatch(self, kind: str, recipient: Contact, context: NotificationContext) -> NotificationResult:
        address = recipient.email if recipient else None
        if not address:
            notification_counter.labels(kind=kind, status="skipped").inc()
            return NotificationResult(kind=kind, recipient=None, status="skipped", error="No recipient address")

        try:
            delivered = self.deliver(kind, recipient, context)
        except NotificationError as e:
            logger.error(f"[Notify] {kind} notice to {address} for interview {context.interview_id} failed: {e.detail}")
            notification_counter.labels(kind=kind, status="failed").inc()
            return NotificationResult(kind=kind, recipient=address, status="failed", error=e.detail)

        status = "sent" if delivered else "skipped"
        notification_counter.labels(kind=kind, status=status).inc()
        return NotificationResult(kind=kind, recipient=address, status=status)

    @abstractmethod
    def deliver(self, kind: str, recipient: Contact, context: NotificationContext) -> bool:
        """Send one notice. Returns False when delivery is disabled; raises NotificationError on failure."""


class EmailNotificationDispatcher(NotificationDispatcher):
    def __init__(
        self,
        smtp_server: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        sender: str,
    ):
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.sender = sender

    @property
    def enabled(self) -> bool:
        return all([self.smtp_server, self.smtp_user, self.smtp_password])

    def deliver(self, kind: str, recipient: Contact, context: NotificationContext) -> bool:
        if not self.enabled:
            logger.info(f"[Email] SMTP disabled, skipping {kind} notice to {recipient.email}")
            return False

        subject, body = render_message(kind, recipient, context)
        message = MIMEMultipart()
        message["From"] = self.sender
        message["To"] = recipient.email
        message["Subject"] = subject
        message.attach(MIMEText(body, "plain"))

        try:
            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(str(e)) from e

        logger.info(f"[Email] {kind} notice sent to {recipient.email}")
        return True


def render_message(kind: str, recipient: Contact, context: NotificationContext) -> Tuple[str, str]:
    name = recipient.name or ("Tutor" if context.role == "tutor" else "Student")
    when = f"{context.scheduled_at:%A %d %B %Y, %H:%M} UTC" if context.scheduled_at else "to be confirmed"
    with_whom = f" with {context.counterpart_name}" if context.counterpart_name else ""
    link = _join_line(context.join_url)

    if kind == "assigned":
        subject = "New mock interview assigned"
        body = f"""
Hi {name},

A mock interview{with_whom} has been assigned to you.

Date & Time: {when}
Duration: {context.duration_minutes or 60} minutes
{link}
Interview reference: {context.interview_id}
"""
    elif kind == "confirmed":
        subject = "Your mock interview is confirmed"
        body = f"""
Hi {name},

Your mock interview{with_whom} is confirmed.

Date & Time: {when}
Duration: {context.duration_minutes or 60} minutes
{link}
Interview reference: {context.interview_id}
"""
    else:
        subject = "Mock interview cancelled"
        reason = f"\nReason: {context.reason}\n" if context.reason else ""
        body = f"""
Hi {name},

Your mock interview{with_whom} scheduled for {when} has been cancelled.
{reason}
We will be in touch to arrange a new time.

Interview reference: {context.interview_id}
"""
    return subject, body


def _join_line(join_url: Optional[str]) -> str:
    return f"Join link: {join_url}\n" if join_url else ""

"""
Division email copies.

Email is best-effort: callers log failures and never reject a report
because of them. SMTP is used when SMTP_HOST is configured, otherwise the
simulated sender only logs.
"""

from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Dict, List, Optional
import logging
import smtplib

from app.core.settings import settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 20


class EmailSender(ABC):

    @abstractmethod
    def send(self, recipient: str, subject: str, payload: str) -> None:
        """Deliver one plain-text email. Raises on failure."""
        raise NotImplementedError


class SmtpEmailSender(EmailSender):

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_ssl: bool = False,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.user = user
        self.password = password
        self.use_ssl = use_ssl

    def send(self, recipient: str, subject: str, payload: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content(payload)

        if self.use_ssl:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
                if self.user:
                    smtp.login(self.user, self.password or "")
                smtp.send_message(msg)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
                smtp.starttls()
                if self.user:
                    smtp.login(self.user, self.password or "")
                smtp.send_message(msg)

        logger.info(f"Email sent to {recipient}: {subject}")


class SimulatedEmailSender(EmailSender):

    def __init__(self):
        self.sent: List[Dict[str, str]] = []

    def send(self, recipient: str, subject: str, payload: str) -> None:
        self.sent.append({"recipient": recipient, "subject": subject, "payload": payload})
        logger.info(f"[SIMULATED] Email to {recipient}: {subject}")


# Global service instance (singleton pattern)
_email_sender: Optional[EmailSender] = None


def get_email_sender() -> EmailSender:
    global _email_sender
    if _email_sender is None:
        if settings.SMTP_HOST:
            _email_sender = SmtpEmailSender(
                host=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                sender=settings.EMAIL_FROM,
                user=settings.SMTP_USER,
                password=settings.SMTP_PASSWORD,
                use_ssl=settings.SMTP_USE_SSL,
            )
            logger.info(f"Email sender initialized: smtp ({settings.SMTP_HOST}:{settings.SMTP_PORT})")
        else:
            _email_sender = SimulatedEmailSender()
            logger.info("Email sender initialized: simulated")
    return _email_sender


def set_email_sender(sender: Optional[EmailSender]) -> None:
    global _email_sender
    _email_sender = sender

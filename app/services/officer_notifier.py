"""
Officer notification for new location reports.

Officers are messaged one after another, never in parallel. For each of the
first MAX_OFFICERS_TO_NOTIFY active officers the primary phone is tried
first and the alternate phone only if the primary is missing or failed. A
failure for one officer never stops attempts on the next.
"""

from dataclasses import dataclass
from typing import List, Optional
import logging

from app.core.errors import TransientDeliveryFailure
from app.core.settings import settings
from app.models.division import Division, Officer
from app.models.report import DeliveryStatus, OfficerNotification, Report
from app.services.messaging import MessageSender, get_message_sender
from app.utils.clock import Clock, utc_now
from app.utils.phone import format_phone_number

logger = logging.getLogger(__name__)


@dataclass
class OfficerOutcome:
    """Result of notifying one officer."""
    officer: Officer
    notification: Optional[OfficerNotification] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.notification is not None


def build_officer_message(report: Report, division: Division) -> str:
    address = report.location.address if report.location else None
    return (
        f"🚨 New Traffic Report in {division.name}\n\n"
        f"Type: {report.report_type.value}\n"
        f"Location: {address or 'See map link'}\n"
        f"Description: {report.description}\n\n"
        f"Reported by: {report.user_name}\n\n"
        f"To resolve this issue, click: {settings.SERVER_URL.rstrip('/')}/resolve.html?id={report.id}"
    )


class OfficerNotifier:
    def __init__(
        self,
        sender: Optional[MessageSender] = None,
        max_officers: Optional[int] = None,
        clock: Clock = utc_now,
    ):
        self._sender = sender
        self.max_officers = max_officers if max_officers is not None else settings.MAX_OFFICERS_TO_NOTIFY
        self.clock = clock

    @property
    def sender(self) -> MessageSender:
        if self._sender is None:
            self._sender = get_message_sender()
        return self._sender

    def notify(self, division: Division, message: str) -> List[OfficerOutcome]:
        """
        Message the division's active officers.

        Args:
            division: Resolved division with its officer roster
            message: Text to send to every officer

        Returns:
            One OfficerOutcome per attempted officer, in roster order
        """
        officers = division.active_officers(limit=self.max_officers)
        if not officers:
            logger.warning(f"No active officers to notify for division {division.name} ({division.id})")
            return []

        outcomes = [self._notify_officer(officer, message) for officer in officers]
        notified = sum(1 for outcome in outcomes if outcome.succeeded)
        logger.info(f"Notified {notified}/{len(outcomes)} officers of division {division.name}")
        return outcomes

    def _notify_officer(self, officer: Officer, message: str) -> OfficerOutcome:
        phones = [officer.phone]
        if officer.alternate_phone and officer.alternate_phone != officer.phone:
            phones.append(officer.alternate_phone)

        errors = []
        for label, phone in zip(("primary", "alternate"), phones):
            recipient = format_phone_number(phone)
            if recipient is None:
                continue
            try:
                sent = self.sender.send(recipient, message)
            except TransientDeliveryFailure as e:
                logger.warning(f"Error sending to {label} number for officer {officer.name}: {e.message}")
                errors.append(e.message)
                continue

            logger.info(f"Notification sent to {officer.name} ({recipient}, {label}) with id {sent.message_id}")
            return OfficerOutcome(
                officer=officer,
                notification=OfficerNotification(
                    officer_id=officer.id,
                    name=officer.name,
                    phone=recipient,
                    sent_at=self.clock(),
                    delivery_status=DeliveryStatus.QUEUED,
                    provider_message_id=sent.message_id,
                ),
            )

        return OfficerOutcome(officer=officer, error="; ".join(errors) or "No usable phone number")


# Global service instance (singleton pattern)
_officer_notifier: Optional[OfficerNotifier] = None


def get_officer_notifier() -> OfficerNotifier:
    global _officer_notifier
    if _officer_notifier is None:
        _officer_notifier = OfficerNotifier()
    return _officer_notifier

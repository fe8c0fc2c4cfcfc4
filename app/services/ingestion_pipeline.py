"""
Report ingestion pipeline.

Every submission, from chat or the web capture form, goes through submit().
The gates run in order and each one short-circuits:

1. Required fields: user and category always, plus name/email/phone for
   join requests and coordinates for location categories
2. Division: location categories must resolve to a division, otherwise
   OUTSIDE_JURISDICTION
3. Officers: at least one active officer of that division must be
   messaged, otherwise NOTIFICATION_FAILED
4. Persist
5. Acknowledge the submitter
6. Email copy to the division

Nothing is persisted for a location report that fails gate 2 or 3.
Acknowledgements and email copies are best-effort.
"""

from typing import List, Optional
import logging

from app.core.errors import TransientDeliveryFailure
from app.core.settings import settings
from app.models.division import Division
from app.models.report import (
    IngestionResult,
    Location,
    RejectionReason,
    Report,
    ReportDraft,
    ReportType,
)
from app.services.email_service import EmailSender, get_email_sender
from app.services.geocoding import GeocodingProvider, get_geocoding_provider
from app.services.localization import LocalizedText, get_localized_text
from app.services.messaging import MessageSender, get_message_sender
from app.services.officer_notifier import OfficerNotifier, build_officer_message, get_officer_notifier
from app.services.polygon_index import PolygonIndex, get_polygon_index
from app.services.storage import ReportRepository, get_repositories
from app.utils.clock import Clock, utc_now
from app.utils.phone import normalize_user_id

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT_KEYS = {
    ReportType.SUGGESTION: "SUGGESTION_RESPONSE",
    ReportType.JOIN_REQUEST: "JOIN_RESPONSE",
}


class ReportIngestionPipeline:
    def __init__(
        self,
        reports: Optional[ReportRepository] = None,
        polygon_index: Optional[PolygonIndex] = None,
        notifier: Optional[OfficerNotifier] = None,
        sender: Optional[MessageSender] = None,
        email_sender: Optional[EmailSender] = None,
        texts: Optional[LocalizedText] = None,
        geocoder: Optional[GeocodingProvider] = None,
        clock: Clock = utc_now,
    ):
        self.reports = reports or get_repositories().reports
        self.polygon_index = polygon_index or get_polygon_index()
        self.notifier = notifier or get_officer_notifier()
        self._sender = sender
        self._email_sender = email_sender
        self.texts = texts or get_localized_text()
        self.geocoder = geocoder or get_geocoding_provider()
        self.clock = clock

    @property
    def sender(self) -> MessageSender:
        if self._sender is None:
            self._sender = get_message_sender()
        return self._sender

    @property
    def email_sender(self) -> EmailSender:
        if self._email_sender is None:
            self._email_sender = get_email_sender()
        return self._email_sender

    def submit(self, draft: ReportDraft) -> IngestionResult:
        """
        Run one submission through the gates.

        Args:
            draft: Submission fields. deliver_acknowledgement=True makes the
                pipeline message the submitter itself (web form).

        Returns:
            IngestionResult. Rejections carry a reason and the localized
            user_message; they are never raised.
        """
        missing = self._missing_fields(draft)
        if missing:
            logger.warning(f"Submission rejected, missing fields: {missing}")
            return self._reject(draft, RejectionReason.MISSING_FIELDS, "MISSING_FIELDS", ", ".join(missing))

        if draft.report_type.requires_location:
            return self._submit_location_report(draft)
        return self._submit_divisionless(draft)

    # ------------------------------------------------------------------

    @staticmethod
    def _missing_fields(draft: ReportDraft) -> List[str]:
        missing = []
        if not draft.user_id or not draft.user_id.strip():
            missing.append("user_id")
        if draft.report_type is None:
            missing.append("report_type")
            return missing

        if draft.report_type == ReportType.JOIN_REQUEST:
            for field_name in ("name", "email", "phone"):
                value = getattr(draft, field_name)
                if not value or not value.strip():
                    missing.append(field_name)
        elif draft.report_type.requires_location:
            if draft.latitude is None:
                missing.append("latitude")
            if draft.longitude is None:
                missing.append("longitude")
        return missing

    def _submit_location_report(self, draft: ReportDraft) -> IngestionResult:
        division = self.polygon_index.resolve(draft.latitude, draft.longitude)
        if division is None:
            logger.info(f"Report from {draft.user_id} at {draft.latitude},{draft.longitude} is outside jurisdiction")
            return self._reject(draft, RejectionReason.OUTSIDE_JURISDICTION, "LOCATION_OUTSIDE_JURISDICTION")

        report = Report(
            id=self.reports.new_id(),
            user_id=normalize_user_id(draft.user_id),
            user_name=draft.user_name or "Anonymous",
            report_type=draft.report_type,
            description=draft.description or "No description provided",
            photo_url=draft.photo_url,
            location=Location(
                lat=draft.latitude,
                lng=draft.longitude,
                address=self._address_for(draft),
            ),
            division_id=division.id,
            division_name=division.name,
            created_at=self.clock(),
        )

        outcomes = self.notifier.notify(division, build_officer_message(report, division))
        notifications = [outcome.notification for outcome in outcomes if outcome.succeeded]
        if not notifications:
            logger.error(
                f"No officer of division {division.name} could be notified; report {report.id} discarded"
            )
            return self._reject(draft, RejectionReason.NOTIFICATION_FAILED, "NOTIFICATION_FAILED")

        report.division_notified = True
        report.officers_notified = notifications
        self.reports.save(report)
        logger.info(
            f"Report {report.id} ({report.report_type.value}) saved for division {division.name}, "
            f"{len(notifications)} officer(s) notified"
        )

        user_message = self.texts.get(
            "REPORT_RESPONSE", draft.language, report.report_type.value, division.name
        )
        if draft.deliver_acknowledgement:
            self._deliver(report.user_id, user_message)
        self._email_division(report, division)

        return IngestionResult(
            accepted=True,
            report_id=report.id,
            division_name=division.name,
            user_message=user_message,
        )

    def _submit_divisionless(self, draft: ReportDraft) -> IngestionResult:
        report = Report(
            id=self.reports.new_id(),
            user_id=normalize_user_id(draft.user_id),
            user_name=draft.user_name or "Anonymous",
            report_type=draft.report_type,
            description=draft.description or "No description provided",
            photo_url=draft.photo_url,
            name=draft.name,
            email=draft.email,
            phone=draft.phone,
            created_at=self.clock(),
        )
        self.reports.save(report)
        logger.info(f"{report.report_type.value} {report.id} saved for {report.user_id}")

        user_message = self.texts.get(ACKNOWLEDGEMENT_KEYS[report.report_type], draft.language)
        if draft.deliver_acknowledgement:
            self._deliver(report.user_id, user_message)
        self._email_division(report, None)

        return IngestionResult(accepted=True, report_id=report.id, user_message=user_message)

    def _address_for(self, draft: ReportDraft) -> str:
        if draft.address and draft.address.strip():
            return draft.address.strip()
        resolved = self.geocoder.reverse_geocode(draft.latitude, draft.longitude)
        return resolved.get("formatted_address") or f"{draft.latitude}, {draft.longitude}"

    def _reject(self, draft: ReportDraft, reason: RejectionReason, key: str, *args) -> IngestionResult:
        user_message = self.texts.get(key, draft.language, *args)
        if draft.deliver_acknowledgement and draft.user_id and reason != RejectionReason.MISSING_FIELDS:
            self._deliver(normalize_user_id(draft.user_id), user_message)
        return IngestionResult(accepted=False, reason=reason, user_message=user_message)

    def _deliver(self, recipient: str, body: str) -> bool:
        try:
            self.sender.send(recipient, body)
            return True
        except TransientDeliveryFailure as e:
            logger.warning(f"Acknowledgement to {recipient} not delivered: {e.message}")
        except Exception as e:
            logger.error(f"Unexpected error sending acknowledgement to {recipient}: {e}", exc_info=True)
        return False

    def _email_division(self, report: Report, division: Optional[Division]) -> None:
        recipient = (division.email if division else None) or settings.EMAIL_FALLBACK_RECIPIENT
        if not recipient:
            return

        subject = f"[{settings.APP_NAME}] {report.report_type.value}"
        if division:
            subject += f" in {division.name}"
        lines = [
            f"Report ID: {report.id}",
            f"Type: {report.report_type.value}",
            f"Reported by: {report.user_name} ({report.user_id})",
            f"Description: {report.description}",
        ]
        if report.location:
            lines.append(f"Location: {report.location.address} ({report.location.lat}, {report.location.lng})")
        if report.photo_url:
            lines.append(f"Photo: {report.photo_url}")
        if report.name or report.email or report.phone:
            lines.append(f"Contact: {report.name or ''} / {report.email or ''} / {report.phone or ''}")
        if division:
            lines.append(f"Resolve: {settings.SERVER_URL.rstrip('/')}/resolve.html?id={report.id}")

        try:
            self.email_sender.send(recipient, subject, "\n".join(lines))
        except Exception as e:
            logger.warning(f"Email copy of report {report.id} to {recipient} failed: {e}")


# Global service instance (singleton pattern)
_pipeline: Optional[ReportIngestionPipeline] = None


def get_ingestion_pipeline() -> ReportIngestionPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = ReportIngestionPipeline()
    return _pipeline

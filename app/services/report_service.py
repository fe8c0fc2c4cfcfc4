"""
Report service - web-form submissions and report lifecycle.

DESIGN NOTE:
- Web submissions go through the same ingestion pipeline as chat reports,
  with the pipeline itself acknowledging the citizen on WhatsApp
- A capture link is consumed before the report is processed, so one link
  yields at most one report
- Suggestions are accepted immediately and processed in the background;
  a failure there is logged and the suggestion is lost
- Citizen status notifications are best-effort
"""

from typing import Optional, Tuple
import logging

from app.core.errors import NotFoundError, TransientDeliveryFailure, ValidationError
from app.models.capture_link import LinkStatus
from app.models.report import (
    DeliveryStatus,
    IngestionResult,
    Report,
    ReportDraft,
    ReportStatus,
    ReportStatusUpdate,
    ReportType,
)
from app.models.session import Language
from app.services.ingestion_pipeline import ReportIngestionPipeline, get_ingestion_pipeline
from app.services.link_guard import LinkTokenGuard, get_link_guard
from app.services.localization import LocalizedText, get_localized_text
from app.services.messaging import MessageSender, get_message_sender
from app.services.object_store import ObjectStore, get_object_store
from app.services.storage import Repositories, get_repositories
from app.utils.clock import Clock, utc_now
from app.utils.geometry import to_float
from app.utils.phone import normalize_user_id

logger = logging.getLogger(__name__)

REPORT_IMAGE_FOLDER = "reports"

STATUS_MESSAGE_KEYS = {
    ReportStatus.IN_PROGRESS: "STATUS_IN_PROGRESS",
    ReportStatus.RESOLVED: "STATUS_RESOLVED",
    ReportStatus.REJECTED: "STATUS_REJECTED",
}


class ReportService:
    def __init__(
        self,
        repositories: Optional[Repositories] = None,
        pipeline: Optional[ReportIngestionPipeline] = None,
        link_guard: Optional[LinkTokenGuard] = None,
        object_store: Optional[ObjectStore] = None,
        sender: Optional[MessageSender] = None,
        texts: Optional[LocalizedText] = None,
        clock: Clock = utc_now,
    ):
        self.repositories = repositories or get_repositories()
        self._pipeline = pipeline
        self.link_guard = link_guard or get_link_guard()
        self._object_store = object_store
        self._sender = sender
        self.texts = texts or get_localized_text()
        self.clock = clock

    @property
    def pipeline(self) -> ReportIngestionPipeline:
        if self._pipeline is None:
            self._pipeline = get_ingestion_pipeline()
        return self._pipeline

    @property
    def object_store(self) -> ObjectStore:
        if self._object_store is None:
            self._object_store = get_object_store()
        return self._object_store

    @property
    def sender(self) -> MessageSender:
        if self._sender is None:
            self._sender = get_message_sender()
        return self._sender

    def _language_of(self, user_id: str) -> Language:
        session = self.repositories.sessions.get(normalize_user_id(user_id))
        return session.language if session else Language.EN

    def _user_name_of(self, user_id: str) -> Optional[str]:
        session = self.repositories.sessions.get(normalize_user_id(user_id))
        return session.user_name if session else None

    def submit_web_report(
        self,
        user_id: Optional[str],
        report_type: Optional[str],
        description: Optional[str] = None,
        latitude=None,
        longitude=None,
        address: Optional[str] = None,
        link_id: Optional[str] = None,
        image: Optional[Tuple[bytes, Optional[str]]] = None,
    ) -> IngestionResult:
        """
        Process a capture-form submission.

        Args:
            user_id: Chat identity in any accepted form
            report_type: Menu code ("1".."7") or category label
            description: Optional free text
            latitude: Coordinate as submitted (string or number)
            longitude: Coordinate as submitted (string or number)
            address: Optional readable address
            link_id: Capture link the form was opened from
            image: Optional (bytes, mime type) of the captured photo

        Returns:
            IngestionResult from the pipeline

        Raises:
            ValidationError: Missing fields, unknown category or a capture
                link that was already used
        """
        if not user_id or not report_type:
            raise ValidationError("Missing required fields: userId and reportType are required")

        parsed_type = ReportType.parse(report_type)
        if parsed_type is None:
            raise ValidationError(f"Unknown report type: {report_type}")

        if link_id:
            status = self.link_guard.consume(link_id, user_id)
            if status == LinkStatus.ALREADY_USED:
                raise ValidationError("This reporting link has already been used", reason="LINK_ALREADY_USED")
            if status == LinkStatus.NOT_FOUND:
                logger.warning(f"Report submitted with unknown link {link_id} for {user_id}")

        photo_url = self._upload_image(image)

        return self.pipeline.submit(
            ReportDraft(
                user_id=normalize_user_id(user_id),
                user_name=self._user_name_of(user_id),
                report_type=parsed_type,
                description=description,
                photo_url=photo_url,
                latitude=to_float(latitude),
                longitude=to_float(longitude),
                address=address,
                language=self._language_of(user_id).value,
                deliver_acknowledgement=True,
            )
        )

    def _upload_image(self, image: Optional[Tuple[bytes, Optional[str]]]) -> Optional[str]:
        if not image or not image[0]:
            return None
        data, mime_type = image
        try:
            return self.object_store.upload(data, mime_type, REPORT_IMAGE_FOLDER)
        except Exception as e:
            # No photo is better than no report
            logger.warning(f"Image upload failed, continuing without photo: {e}")
            return None

    def process_suggestion(self, user_id: str, description: str, link_id: Optional[str] = None) -> None:
        """
        Background half of a suggestion submission.

        Never raises: a failure is logged and the suggestion is dropped.
        """
        try:
            if link_id:
                status = self.link_guard.consume(link_id, user_id)
                if status != LinkStatus.VALID:
                    logger.info(f"Suggestion link {link_id} left unchanged ({status.value})")

            result = self.pipeline.submit(
                ReportDraft(
                    user_id=normalize_user_id(user_id),
                    user_name=self._user_name_of(user_id),
                    report_type=ReportType.SUGGESTION,
                    description=description,
                    language=self._language_of(user_id).value,
                    deliver_acknowledgement=True,
                )
            )
            if result.accepted:
                logger.info(f"Suggestion {result.report_id} from {user_id} processed")
            else:
                logger.warning(f"Suggestion from {user_id} rejected: {result.reason.value}")
        except Exception as e:
            logger.error(f"Background suggestion processing failed for {user_id}: {e}", exc_info=True)

    def get_report(self, report_id: str) -> Report:
        report = self.repositories.reports.get(report_id)
        if report is None:
            raise NotFoundError(f"Report {report_id} not found")
        return report

    def update_status(self, report_id: str, update: ReportStatusUpdate) -> Report:
        """
        Move a report to a new status and tell the citizen.

        Args:
            report_id: Report document ID
            update: New status and optional resolution note

        Returns:
            The updated report

        Raises:
            NotFoundError: No report with that ID
        """
        report = self.get_report(report_id)
        previous = report.status

        report.status = update.status
        if update.resolution_note:
            report.resolution_note = update.resolution_note
        if update.status == ReportStatus.RESOLVED:
            report.resolved_at = self.clock()

        self.repositories.reports.save(report)
        logger.info(f"Report {report_id} status {previous.value} -> {report.status.value}")

        if previous != report.status:
            self._notify_status(report)
        return report

    def _notify_status(self, report: Report) -> None:
        key = STATUS_MESSAGE_KEYS.get(report.status)
        if key is None:
            return

        language = self._language_of(report.user_id)
        note = report.resolution_note or "-"
        body = self.texts.get(key, language, report.report_type.value, note)
        try:
            self.sender.send(normalize_user_id(report.user_id), body)
        except TransientDeliveryFailure as e:
            logger.warning(f"Status update for report {report.id} not delivered: {e.message}")
        except Exception as e:
            logger.error(f"Unexpected error notifying citizen of report {report.id}: {e}", exc_info=True)

    def record_delivery_status(self, message_id: Optional[str], status: Optional[str]) -> bool:
        """
        Apply a Twilio status callback to the matching officer notification.

        Unknown statuses and unknown message IDs are logged and ignored.
        """
        if not message_id or not status:
            return False
        try:
            delivery_status = DeliveryStatus(status.lower())
        except ValueError:
            logger.info(f"Ignoring delivery status {status!r} for {message_id}")
            return False

        updated = self.repositories.reports.update_delivery_status(message_id, delivery_status, self.clock())
        if updated:
            logger.info(f"Delivery status of {message_id} is now {delivery_status.value}")
        else:
            logger.info(f"No officer notification found for message {message_id}")
        return updated


# Global service instance (singleton pattern)
_report_service: Optional[ReportService] = None


def get_report_service() -> ReportService:
    global _report_service
    if _report_service is None:
        _report_service = ReportService()
    return _report_service

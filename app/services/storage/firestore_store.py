"""
Firestore-backed repositories.

Collections:
- sessions:       one document per user, keyed by the digits of the chat address
- divisions:      read-only boundaries and officer rosters
- queries:        persisted reports
- report_links:   capture links, keyed by link_id
- team_applications
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import logging

from firebase_admin import firestore
from pydantic import BaseModel

from app.config.firebase import get_db
from app.core.errors import ConcurrentUpdateError
from app.models.capture_link import CaptureLink, LinkStatus
from app.models.division import Division
from app.models.report import DeliveryStatus, Report
from app.models.session import Session
from app.models.team_application import TeamApplication
from app.utils.firestore_helpers import where_filter
from app.utils.phone import normalize_user_id
from .base import (
    CaptureLinkRepository,
    DivisionRepository,
    ReportRepository,
    SessionRepository,
    TeamApplicationRepository,
)

logger = logging.getLogger(__name__)


def _encode(value: Any) -> Any:
    """Make a dumped model value storable in Firestore."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        # Firestore only stores full timestamps
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    return value


def to_document(model: BaseModel, exclude: Optional[set] = None) -> Dict[str, Any]:
    return _encode(model.model_dump(exclude=exclude))


class FirestoreSessionRepository(SessionRepository):

    COLLECTION = "sessions"

    def __init__(self):
        self.db = get_db()

    def _doc(self, user_id: str):
        return self.db.collection(self.COLLECTION).document(normalize_user_id(user_id, include_prefix=False))

    def get(self, user_id: str) -> Optional[Session]:
        snapshot = self._doc(user_id).get()
        if not snapshot.exists:
            return None
        return Session(**snapshot.to_dict())

    def compare_and_set(self, session: Session, expected_version: Optional[int]) -> Session:
        doc_ref = self._doc(session.user_id)
        stored = session.model_copy(deep=True)
        stored.version = (expected_version or 0) + 1
        data = to_document(stored)

        @firestore.transactional
        def _write(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            current_version = snapshot.to_dict().get("version", 0) if snapshot.exists else None
            if current_version != expected_version:
                raise ConcurrentUpdateError(
                    f"Session {session.user_id} changed (expected v{expected_version}, found v{current_version})"
                )
            transaction.set(doc_ref, data)

        _write(self.db.transaction())
        return stored


class FirestoreDivisionRepository(DivisionRepository):

    COLLECTION = "divisions"

    def __init__(self):
        self.db = get_db()

    @staticmethod
    def _from_snapshot(snapshot) -> Division:
        data = snapshot.to_dict() or {}
        data["id"] = snapshot.id
        # Legacy GeoJSON layout: {"boundaries": {"coordinates": [[...outer ring...]]}}
        if "boundary" not in data:
            coordinates = (data.get("boundaries") or {}).get("coordinates") or []
            data["boundary"] = coordinates[0] if coordinates else None
        return Division(**data)

    def list_all(self) -> List[Division]:
        return [self._from_snapshot(doc) for doc in self.db.collection(self.COLLECTION).stream()]

    def get(self, division_id: str) -> Optional[Division]:
        snapshot = self.db.collection(self.COLLECTION).document(division_id).get()
        if not snapshot.exists:
            return None
        return self._from_snapshot(snapshot)


class FirestoreReportRepository(ReportRepository):

    COLLECTION = "queries"

    def __init__(self):
        self.db = get_db()

    def new_id(self) -> str:
        return self.db.collection(self.COLLECTION).document().id

    def save(self, report: Report) -> Report:
        data = to_document(report)
        # Flat copy of provider IDs so the delivery callback can query with array_contains
        data["provider_message_ids"] = [
            n.provider_message_id for n in report.officers_notified if n.provider_message_id
        ]
        self.db.collection(self.COLLECTION).document(report.id).set(data)
        logger.info(f"Report saved to Firestore: {report.id}")
        return report

    def get(self, report_id: str) -> Optional[Report]:
        snapshot = self.db.collection(self.COLLECTION).document(report_id).get()
        if not snapshot.exists:
            return None
        data = snapshot.to_dict()
        data.pop("provider_message_ids", None)
        return Report(**data)

    def update_delivery_status(
        self, provider_message_id: str, status: DeliveryStatus, updated_at: datetime
    ) -> bool:
        query = where_filter(
            self.db.collection(self.COLLECTION), "provider_message_ids", "array_contains", provider_message_id
        ).limit(1)
        docs = list(query.stream())
        if not docs:
            return False

        doc = docs[0]
        notifications = doc.to_dict().get("officers_notified") or []
        for notification in notifications:
            if notification.get("provider_message_id") == provider_message_id:
                notification["delivery_status"] = status.value
                notification["status_updated_at"] = updated_at
        doc.reference.update({"officers_notified": notifications})
        return True


class FirestoreCaptureLinkRepository(CaptureLinkRepository):

    COLLECTION = "report_links"

    def __init__(self):
        self.db = get_db()

    def create(self, link: CaptureLink) -> CaptureLink:
        self.db.collection(self.COLLECTION).document(link.link_id).set(to_document(link))
        return link

    def find_by_id(self, link_id: str) -> Optional[CaptureLink]:
        snapshot = self.db.collection(self.COLLECTION).document(link_id).get()
        if not snapshot.exists:
            return None
        return CaptureLink(**snapshot.to_dict())

    def find(self, link_id: str, user_ids: Iterable[str]) -> Optional[CaptureLink]:
        link = self.find_by_id(link_id)
        if link is None or link.user_id not in set(user_ids):
            return None
        return link

    def mark_used(self, link_id: str, user_ids: Iterable[str], used_at: datetime) -> LinkStatus:
        user_ids = set(user_ids)
        doc_ref = self.db.collection(self.COLLECTION).document(link_id)

        @firestore.transactional
        def _flip(transaction) -> LinkStatus:
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                return LinkStatus.NOT_FOUND
            data = snapshot.to_dict()
            if data.get("user_id") not in user_ids:
                return LinkStatus.NOT_FOUND
            if data.get("used"):
                return LinkStatus.ALREADY_USED
            transaction.update(doc_ref, {"used": True, "used_at": used_at})
            return LinkStatus.VALID

        return _flip(self.db.transaction())


class FirestoreTeamApplicationRepository(TeamApplicationRepository):

    COLLECTION = "team_applications"

    def __init__(self):
        self.db = get_db()

    def new_id(self) -> str:
        return self.db.collection(self.COLLECTION).document().id

    def save(self, application: TeamApplication) -> TeamApplication:
        self.db.collection(self.COLLECTION).document(application.id).set(to_document(application))
        logger.info(f"Team application saved to Firestore: {application.id}")
        return application

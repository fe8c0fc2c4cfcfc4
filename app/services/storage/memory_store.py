"""
In-memory repositories.

Used when USE_MOCK_DB is set (local development without Firebase
credentials) and by the test suite. Every read and write hands out deep
copies so callers never share mutable state with the store.
"""

import logging
import threading
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from app.core.errors import ConcurrentUpdateError
from app.models.capture_link import CaptureLink, LinkStatus
from app.models.division import Division
from app.models.report import DeliveryStatus, Report
from app.models.session import Session
from app.models.team_application import TeamApplication
from .base import (
    CaptureLinkRepository,
    DivisionRepository,
    ReportRepository,
    SessionRepository,
    TeamApplicationRepository,
)

logger = logging.getLogger(__name__)


class InMemorySessionRepository(SessionRepository):

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(user_id)
            return session.model_copy(deep=True) if session else None

    def compare_and_set(self, session: Session, expected_version: Optional[int]) -> Session:
        with self._lock:
            current = self._sessions.get(session.user_id)
            current_version = current.version if current else None
            if current_version != expected_version:
                raise ConcurrentUpdateError(
                    f"Session {session.user_id} changed (expected v{expected_version}, found v{current_version})"
                )
            stored = session.model_copy(deep=True)
            stored.version = (expected_version or 0) + 1
            self._sessions[session.user_id] = stored
            return stored.model_copy(deep=True)


class InMemoryDivisionRepository(DivisionRepository):

    def __init__(self, divisions: Optional[List[Division]] = None):
        self._divisions: List[Division] = list(divisions or [])
        self.list_calls = 0

    def add(self, division: Division) -> None:
        self._divisions.append(division)

    def list_all(self) -> List[Division]:
        self.list_calls += 1
        return [division.model_copy(deep=True) for division in self._divisions]

    def get(self, division_id: str) -> Optional[Division]:
        for division in self._divisions:
            if division.id == division_id:
                return division.model_copy(deep=True)
        return None


class InMemoryReportRepository(ReportRepository):

    def __init__(self):
        self._reports: Dict[str, Report] = {}
        self._lock = threading.Lock()

    def new_id(self) -> str:
        return uuid.uuid4().hex

    def save(self, report: Report) -> Report:
        with self._lock:
            self._reports[report.id] = report.model_copy(deep=True)
        return report

    def get(self, report_id: str) -> Optional[Report]:
        with self._lock:
            report = self._reports.get(report_id)
            return report.model_copy(deep=True) if report else None

    def all(self) -> List[Report]:
        with self._lock:
            return [report.model_copy(deep=True) for report in self._reports.values()]

    def update_delivery_status(
        self, provider_message_id: str, status: DeliveryStatus, updated_at: datetime
    ) -> bool:
        with self._lock:
            for report in self._reports.values():
                for notification in report.officers_notified:
                    if notification.provider_message_id == provider_message_id:
                        notification.delivery_status = status
                        notification.status_updated_at = updated_at
                        return True
        return False


class InMemoryCaptureLinkRepository(CaptureLinkRepository):

    def __init__(self):
        self._links: Dict[str, CaptureLink] = {}
        self._lock = threading.Lock()

    def create(self, link: CaptureLink) -> CaptureLink:
        with self._lock:
            self._links[link.link_id] = link.model_copy(deep=True)
        return link

    def find(self, link_id: str, user_ids: Iterable[str]) -> Optional[CaptureLink]:
        link = self.find_by_id(link_id)
        if link is None or link.user_id not in set(user_ids):
            return None
        return link

    def find_by_id(self, link_id: str) -> Optional[CaptureLink]:
        with self._lock:
            link = self._links.get(link_id)
            return link.model_copy(deep=True) if link else None

    def mark_used(self, link_id: str, user_ids: Iterable[str], used_at: datetime) -> LinkStatus:
        user_ids = set(user_ids)
        with self._lock:
            link = self._links.get(link_id)
            if link is None or link.user_id not in user_ids:
                return LinkStatus.NOT_FOUND
            if link.used:
                return LinkStatus.ALREADY_USED
            link.used = True
            link.used_at = used_at
            return LinkStatus.VALID


class InMemoryTeamApplicationRepository(TeamApplicationRepository):

    def __init__(self):
        self.applications: Dict[str, TeamApplication] = {}

    def new_id(self) -> str:
        return uuid.uuid4().hex

    def save(self, application: TeamApplication) -> TeamApplication:
        self.applications[application.id] = application.model_copy(deep=True)
        return application

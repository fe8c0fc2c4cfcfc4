from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional
import logging

from app.models.capture_link import CaptureLink, LinkStatus
from app.models.division import Division
from app.models.report import DeliveryStatus, Report
from app.models.session import Session
from app.models.team_application import TeamApplication

logger = logging.getLogger(__name__)


class SessionRepository(ABC):
    """
    Keyed store of conversation sessions.

    Contract:
    - Key is the normalized chat address.
    - compare_and_set() writes only if the stored version still equals
      expected_version (None meaning "must not exist yet"), and bumps the
      version. A lost race raises ConcurrentUpdateError.
    """

    @abstractmethod
    def get(self, user_id: str) -> Optional[Session]:
        raise NotImplementedError

    @abstractmethod
    def compare_and_set(self, session: Session, expected_version: Optional[int]) -> Session:
        raise NotImplementedError


class DivisionRepository(ABC):
    """Read-only view of divisions, in storage order."""

    @abstractmethod
    def list_all(self) -> List[Division]:
        raise NotImplementedError

    @abstractmethod
    def get(self, division_id: str) -> Optional[Division]:
        raise NotImplementedError


class ReportRepository(ABC):

    @abstractmethod
    def new_id(self) -> str:
        """Reserve a document ID before the report is saved."""
        raise NotImplementedError

    @abstractmethod
    def save(self, report: Report) -> Report:
        raise NotImplementedError

    @abstractmethod
    def get(self, report_id: str) -> Optional[Report]:
        raise NotImplementedError

    @abstractmethod
    def update_delivery_status(
        self, provider_message_id: str, status: DeliveryStatus, updated_at: datetime
    ) -> bool:
        """Update the officer notification carrying this provider message ID."""
        raise NotImplementedError


class CaptureLinkRepository(ABC):

    @abstractmethod
    def create(self, link: CaptureLink) -> CaptureLink:
        raise NotImplementedError

    @abstractmethod
    def find(self, link_id: str, user_ids: Iterable[str]) -> Optional[CaptureLink]:
        """Return the link only if it belongs to one of the given user ID forms."""
        raise NotImplementedError

    @abstractmethod
    def find_by_id(self, link_id: str) -> Optional[CaptureLink]:
        raise NotImplementedError

    @abstractmethod
    def mark_used(self, link_id: str, user_ids: Iterable[str], used_at: datetime) -> LinkStatus:
        """
        Atomically flip used False -> True.

        Returns VALID when this call performed the flip, ALREADY_USED if
        another call got there first and NOT_FOUND if no such link exists
        for the user.
        """
        raise NotImplementedError


class TeamApplicationRepository(ABC):

    @abstractmethod
    def new_id(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def save(self, application: TeamApplication) -> TeamApplication:
        raise NotImplementedError

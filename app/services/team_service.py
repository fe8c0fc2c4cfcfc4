"""
Team service - volunteer applications from the web join-team form.
"""

from datetime import date
from typing import Optional, Tuple
import logging
import re

from app.core.errors import NotFoundError, TransientDeliveryFailure, ValidationError
from app.models.team_application import TeamApplication
from app.services.localization import LocalizedText, get_localized_text
from app.services.messaging import MessageSender, get_message_sender
from app.services.object_store import ObjectStore, get_object_store
from app.services.storage import Repositories, get_repositories
from app.utils.clock import Clock, utc_now
from app.utils.phone import normalize_user_id

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z\s.'()-]+$")
MINIMUM_AGE = 18
DOCUMENT_FOLDER = "team-documents"

REQUIRED_FIELDS = (
    "user_id",
    "session_id",
    "full_name",
    "division",
    "motivation",
    "address",
    "phone",
    "email",
    "aadhar_number",
    "profession",
)


def age_on(birth_date: date, today: date) -> int:
    """Completed years between birth_date and today."""
    had_birthday = (today.month, today.day) >= (birth_date.month, birth_date.day)
    return today.year - birth_date.year - (0 if had_birthday else 1)


class TeamService:
    def __init__(
        self,
        repositories: Optional[Repositories] = None,
        object_store: Optional[ObjectStore] = None,
        sender: Optional[MessageSender] = None,
        texts: Optional[LocalizedText] = None,
        clock: Clock = utc_now,
    ):
        self.repositories = repositories or get_repositories()
        self._object_store = object_store
        self._sender = sender
        self.texts = texts or get_localized_text()
        self.clock = clock

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

    def submit_application(
        self,
        fields: dict,
        date_of_birth: Optional[date],
        has_court_case: bool,
        court_case_description: Optional[str],
        document: Optional[Tuple[bytes, Optional[str]]],
    ) -> TeamApplication:
        """
        Validate and store a join-team application.

        Args:
            fields: The required text fields (see REQUIRED_FIELDS)
            date_of_birth: Applicant's date of birth
            has_court_case: Whether the applicant declared a court case
            court_case_description: Required when has_court_case is set
            document: (bytes, mime type) of the identity document

        Returns:
            The stored TeamApplication

        Raises:
            ValidationError: Any rule below is broken
            NotFoundError: The applicant has never chatted with the bot
        """
        values = {name: (fields.get(name) or "").strip() for name in REQUIRED_FIELDS}
        missing = [name for name, value in values.items() if not value]
        if missing or date_of_birth is None:
            raise ValidationError("All required fields must be filled")

        if not NAME_PATTERN.match(values["full_name"]):
            raise ValidationError("Name should only contain letters and basic characters")

        if age_on(date_of_birth, self.clock().date()) < MINIMUM_AGE:
            raise ValidationError(f"Applicants must be at least {MINIMUM_AGE} years old")

        description = (court_case_description or "").strip()
        if has_court_case and not description:
            raise ValidationError('Court case description is required when "Has court case" is selected')

        if not document or not document[0]:
            raise ValidationError("Aadhar document is required")

        user_id = normalize_user_id(values["user_id"])
        session = self.repositories.sessions.get(user_id)
        if session is None:
            raise NotFoundError(f"User {user_id} not found")

        data, mime_type = document
        document_url = self.object_store.upload(data, mime_type, DOCUMENT_FOLDER)

        application = TeamApplication(
            id=self.repositories.applications.new_id(),
            user_id=user_id,
            user_name=session.user_name or "Unknown",
            session_id=values["session_id"],
            full_name=values["full_name"],
            division=values["division"],
            motivation=values["motivation"],
            address=values["address"],
            phone=values["phone"],
            email=values["email"],
            aadhar_number=values["aadhar_number"],
            aadhar_document_url=document_url,
            profession=values["profession"],
            date_of_birth=date_of_birth,
            has_court_case=has_court_case,
            court_case_description=description if has_court_case else "",
            applied_at=self.clock(),
        )
        self.repositories.applications.save(application)
        logger.info(f"Team application {application.id} received from {user_id}")

        try:
            self.sender.send(
                user_id,
                self.texts.get("JOIN_APPLICATION_RECEIVED", session.language, application.full_name, application.id),
            )
        except TransientDeliveryFailure as e:
            logger.warning(f"Application confirmation to {user_id} not delivered: {e.message}")

        return application


# Global service instance (singleton pattern)
_team_service: Optional[TeamService] = None


def get_team_service() -> TeamService:
    global _team_service
    if _team_service is None:
        _team_service = TeamService()
    return _team_service

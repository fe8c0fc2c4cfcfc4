"""
Conversation session models.
One session per normalized WhatsApp identity.
"""

from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional
from enum import Enum

from app.models.report import ReportType


class ConversationState(str, Enum):
    LANGUAGE_SELECT = "LANGUAGE_SELECT"
    NAME_COLLECTION = "NAME_COLLECTION"
    MENU = "MENU"
    AWAITING_REPORT = "AWAITING_REPORT"
    AWAITING_LOCATION = "AWAITING_LOCATION"
    AWAITING_SUGGESTION_TEXT = "AWAITING_SUGGESTION_TEXT"
    AWAITING_JOIN = "AWAITING_JOIN"
    JOIN_TEAM_LINK_SENT = "JOIN_TEAM_LINK_SENT"


class Language(str, Enum):
    EN = "en"
    MR = "mr"


class Session(BaseModel):
    """
    Per-user conversation record.

    version is bumped on every successful save and is the compare-and-swap
    token that keeps two rapid messages from the same user from silently
    overwriting each other.
    """
    user_id: str = Field(..., description="Normalized chat address (whatsapp:+<digits>)")
    current_state: ConversationState = ConversationState.LANGUAGE_SELECT
    last_option: Optional[ReportType] = None
    language: Language = Language.EN
    user_name: Optional[str] = None
    last_interaction: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_description: Optional[str] = None
    last_photo_url: Optional[str] = None
    version: int = 0

    def clear_draft(self) -> None:
        self.last_description = None
        self.last_photo_url = None

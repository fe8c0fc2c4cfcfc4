"""
Conversation state machine for the WhatsApp channel.

transition(session, event) is a pure function: it reads the session and the
inbound event and returns a Transition describing the next state, the
replies to send and the side effects to run. It never touches storage or
the network, so every rule below can be tested with plain objects.

Global commands are checked before the per-state handlers:
1. "reset" (any case) from any state goes back to LANGUAGE_SELECT
2. "menu" (any case) from any state goes to MENU

Effects that produce the user-facing text themselves (capture links, join
links, location reports, join requests) leave Transition.replies empty;
ChatService renders their outcome. When an effect fails, on_effect_failed()
gives the replacement transition.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple

from app.models.report import JOIN_MENU_OPTION, ReportType
from app.models.session import ConversationState, Language, Session
from app.models.webhook import InboundEvent

logger = logging.getLogger(__name__)

RESET_COMMAND = "reset"
MENU_COMMAND = "menu"

LANGUAGE_OPTIONS = {
    "1": Language.EN,
    "2": Language.MR,
}

MAX_NAME_LENGTH = 100


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Effect:
    # Local effects only change the session and are applied by Transition.apply()
    local: ClassVar[bool] = False
    renders_reply: ClassVar[bool] = False


@dataclass(frozen=True)
class IssueCaptureLink(Effect):
    report_type: ReportType
    renders_reply: ClassVar[bool] = True


@dataclass(frozen=True)
class IssueJoinLink(Effect):
    renders_reply: ClassVar[bool] = True


@dataclass(frozen=True)
class RememberName(Effect):
    name: str
    local: ClassVar[bool] = True


@dataclass(frozen=True)
class StoreDraft(Effect):
    description: Optional[str]
    photo_url: Optional[str]
    local: ClassVar[bool] = True


@dataclass(frozen=True)
class ClearDraft(Effect):
    local: ClassVar[bool] = True


@dataclass(frozen=True)
class PersistSuggestion(Effect):
    text: str


@dataclass(frozen=True)
class PersistJoinRequest(Effect):
    name: str
    email: str
    phone: str
    location: str
    raw: str
    renders_reply: ClassVar[bool] = True


@dataclass(frozen=True)
class SubmitLocationReport(Effect):
    report_type: ReportType
    lat: float
    lng: float
    address: Optional[str] = None
    description: Optional[str] = None
    photo_url: Optional[str] = None
    renders_reply: ClassVar[bool] = True


# ---------------------------------------------------------------------------
# Transition
# ---------------------------------------------------------------------------

_KEEP = object()


@dataclass(frozen=True)
class Reply:
    """A localized text to send: a template key plus positional arguments."""
    key: str
    args: Tuple[Any, ...] = ()


@dataclass
class Transition:
    next_state: ConversationState
    replies: List[Reply] = field(default_factory=list)
    effects: List[Effect] = field(default_factory=list)
    language: Optional[Language] = None
    last_option: Any = _KEEP

    @property
    def external_effects(self) -> List[Effect]:
        return [effect for effect in self.effects if not effect.local]

    def apply(self, session: Session) -> Session:
        """Return a copy of the session with this transition's changes applied."""
        updated = session.model_copy(deep=True)
        updated.current_state = self.next_state
        if self.language is not None:
            updated.language = self.language
        if self.last_option is not _KEEP:
            updated.last_option = self.last_option

        for effect in self.effects:
            if isinstance(effect, RememberName):
                updated.user_name = effect.name
            elif isinstance(effect, StoreDraft):
                updated.last_description = effect.description
                updated.last_photo_url = effect.photo_url
            elif isinstance(effect, ClearDraft):
                updated.clear_draft()

        return updated


def _menu(**kwargs) -> Transition:
    return Transition(ConversationState.MENU, replies=[Reply("WELCOME_MESSAGE")], **kwargs)


# ---------------------------------------------------------------------------
# Labeled join request parsing
# ---------------------------------------------------------------------------

JOIN_LABELS = ("name", "email", "phone", "location")

_LABELED_LINE_RE = re.compile(r"^\s*(name|email|phone|location)\s*:\s*(.*)$", re.IGNORECASE)


def parse_labeled_fields(text: str) -> Dict[str, str]:
    """
    Pull "label: value" lines out of a free-text join request.

    Labels are matched case-insensitively, the first occurrence wins and
    missing labels come back as empty strings.
    """
    fields = {label: "" for label in JOIN_LABELS}
    seen = set()
    for line in (text or "").splitlines():
        match = _LABELED_LINE_RE.match(line)
        if not match:
            continue
        label = match.group(1).lower()
        if label in seen:
            continue
        seen.add(label)
        fields[label] = match.group(2).strip()
    return fields


# ---------------------------------------------------------------------------
# State handlers
# ---------------------------------------------------------------------------

def _on_language_select(session: Session, event: InboundEvent) -> Transition:
    language = LANGUAGE_OPTIONS.get(event.text)
    if language is None:
        return Transition(ConversationState.LANGUAGE_SELECT, replies=[Reply("LANGUAGE_PROMPT")])

    if session.user_name:
        return Transition(
            ConversationState.MENU,
            replies=[Reply("NAME_CONFIRMATION", (session.user_name,)), Reply("WELCOME_MESSAGE")],
            language=language,
        )
    return Transition(
        ConversationState.NAME_COLLECTION,
        replies=[Reply("NAME_REQUEST")],
        language=language,
    )


def _on_name_collection(session: Session, event: InboundEvent) -> Transition:
    name = event.text[:MAX_NAME_LENGTH].strip()
    if not name:
        return Transition(ConversationState.NAME_COLLECTION, replies=[Reply("NAME_REQUEST")])
    return Transition(
        ConversationState.MENU,
        replies=[Reply("NAME_CONFIRMATION", (name,)), Reply("WELCOME_MESSAGE")],
        effects=[RememberName(name)],
    )


def _on_menu(session: Session, event: InboundEvent) -> Transition:
    report_type = ReportType.from_menu_option(event.text)
    if report_type is not None:
        return Transition(
            ConversationState.AWAITING_REPORT,
            effects=[ClearDraft(), IssueCaptureLink(report_type)],
            last_option=report_type,
        )
    if event.text == JOIN_MENU_OPTION:
        return Transition(
            ConversationState.JOIN_TEAM_LINK_SENT,
            effects=[IssueJoinLink()],
            last_option=None,
        )
    return _menu()


def _on_awaiting_report(session: Session, event: InboundEvent) -> Transition:
    if event.has_media and session.last_option is not None and session.last_option.requires_location:
        return Transition(
            ConversationState.AWAITING_LOCATION,
            replies=[Reply("LOCATION_REQUEST")],
            effects=[StoreDraft(event.text or None, event.media_url)],
        )
    # Anything else abandons the capture in progress
    return _menu(last_option=None)


def _on_awaiting_location(session: Session, event: InboundEvent) -> Transition:
    report_type = session.last_option
    if report_type is None or not report_type.requires_location:
        return _menu(last_option=None)

    if not event.has_location:
        return Transition(ConversationState.AWAITING_LOCATION, replies=[Reply("LOCATION_MISSING_HINT")])

    return Transition(
        ConversationState.MENU,
        effects=[
            SubmitLocationReport(
                report_type=report_type,
                lat=event.latitude,
                lng=event.longitude,
                address=event.address,
                description=session.last_description,
                photo_url=session.last_photo_url,
            ),
            ClearDraft(),
        ],
        last_option=None,
    )


def _on_awaiting_suggestion_text(session: Session, event: InboundEvent) -> Transition:
    if not event.text:
        return Transition(
            ConversationState.AWAITING_SUGGESTION_TEXT, replies=[Reply("SUGGESTION_TEXT_PROMPT")]
        )
    return Transition(
        ConversationState.MENU,
        replies=[Reply("SUGGESTION_RESPONSE"), Reply("WELCOME_MESSAGE")],
        effects=[PersistSuggestion(event.text)],
        last_option=None,
    )


def _on_awaiting_join(session: Session, event: InboundEvent) -> Transition:
    if not event.text:
        return Transition(ConversationState.AWAITING_JOIN, replies=[Reply("JOIN_TEXT_PROMPT")])
    fields = parse_labeled_fields(event.text)
    return Transition(
        ConversationState.MENU,
        effects=[
            PersistJoinRequest(
                name=fields["name"],
                email=fields["email"],
                phone=fields["phone"],
                location=fields["location"],
                raw=event.text,
            )
        ],
        last_option=None,
    )


def _on_join_link_sent(session: Session, event: InboundEvent) -> Transition:
    return _menu()


_HANDLERS: Dict[ConversationState, Callable[[Session, InboundEvent], Transition]] = {
    ConversationState.LANGUAGE_SELECT: _on_language_select,
    ConversationState.NAME_COLLECTION: _on_name_collection,
    ConversationState.MENU: _on_menu,
    ConversationState.AWAITING_REPORT: _on_awaiting_report,
    ConversationState.AWAITING_LOCATION: _on_awaiting_location,
    ConversationState.AWAITING_SUGGESTION_TEXT: _on_awaiting_suggestion_text,
    ConversationState.AWAITING_JOIN: _on_awaiting_join,
    ConversationState.JOIN_TEAM_LINK_SENT: _on_join_link_sent,
}


def transition(session: Session, event: InboundEvent) -> Transition:
    """
    Decide what an inbound event means in the session's current state.

    Args:
        session: The loaded session (timeout policy already applied)
        event: The inbound chat event

    Returns:
        Transition with the next state, replies and effects. The session
        itself is not modified; use Transition.apply().
    """
    command = event.text.lower()

    if command == RESET_COMMAND:
        return Transition(
            ConversationState.LANGUAGE_SELECT,
            replies=[Reply("LANGUAGE_PROMPT")],
            effects=[ClearDraft()],
            last_option=None,
        )

    if command == MENU_COMMAND:
        return _menu(last_option=None)

    handler = _HANDLERS.get(session.current_state)
    if handler is None:
        logger.warning(f"No handler for state {session.current_state}, falling back to menu")
        return _menu(last_option=None)
    return handler(session, event)


def on_effect_failed(session: Session, effect: Effect) -> Transition:
    """
    Replacement transition when an effect could not be carried out.

    Args:
        session: The session as it was before the failed transition
        effect: The effect that raised

    Returns:
        Transition to use instead of the original one
    """
    if isinstance(effect, IssueCaptureLink):
        if effect.report_type == ReportType.SUGGESTION:
            # Fall back to collecting the suggestion in chat
            return Transition(
                ConversationState.AWAITING_SUGGESTION_TEXT,
                replies=[Reply("SUGGESTION_TEXT_PROMPT")],
                last_option=ReportType.SUGGESTION,
            )
        return Transition(
            ConversationState.MENU,
            replies=[Reply("TECHNICAL_DIFFICULTY")],
            last_option=None,
        )

    if isinstance(effect, IssueJoinLink):
        return Transition(
            ConversationState.AWAITING_JOIN,
            replies=[Reply("JOIN_TEXT_PROMPT")],
            last_option=ReportType.JOIN_REQUEST,
        )

    return Transition(
        ConversationState.MENU,
        replies=[Reply("REPORT_ERROR"), Reply("WELCOME_MESSAGE")],
        effects=[ClearDraft()],
        last_option=None,
    )

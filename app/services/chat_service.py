"""
Chat Service - handles one inbound WhatsApp event end to end.

Flow:
1. Load the session (timeout policy applied)
2. Run the conversation engine
3. Save the new session state with compare-and-swap, retrying the whole
   transition on a version conflict
4. Carry out the transition's effects (links, persistence, reports)
5. Send the combined reply

The session is saved before any effect runs so a retried transition never
repeats a side effect. If an effect fails, the engine's fallback
transition is saved on top and its text replaces the reply.
"""

from dataclasses import replace
from typing import List, Optional, Tuple
import logging
import secrets
import time

import requests

from app.core.errors import ConcurrentUpdateError, TransientDeliveryFailure
from app.core.settings import settings
from app.models.report import ReportDraft, ReportType
from app.models.session import Session
from app.models.webhook import InboundEvent
from app.services.conversation_engine import (
    Effect,
    IssueCaptureLink,
    IssueJoinLink,
    PersistJoinRequest,
    PersistSuggestion,
    Reply,
    StoreDraft,
    SubmitLocationReport,
    Transition,
    on_effect_failed,
    transition,
)
from app.services.ingestion_pipeline import ReportIngestionPipeline, get_ingestion_pipeline
from app.services.link_guard import LinkTokenGuard, get_link_guard
from app.services.localization import LocalizedText, get_localized_text
from app.services.messaging import MessageSender, get_message_sender
from app.services.object_store import ObjectStore, get_object_store
from app.services.session_store import SessionStore, get_session_store
from app.utils.phone import normalize_user_id

logger = logging.getLogger(__name__)

MEDIA_DOWNLOAD_TIMEOUT_SECONDS = 30
REPORT_MEDIA_FOLDER = "reports"


def build_join_url(user_id: str) -> str:
    """Web join-team form link, tagged with a one-off session id."""
    if not settings.SERVER_URL:
        raise ValueError("SERVER_URL is not configured")
    digits = normalize_user_id(user_id, include_prefix=False)
    session_id = f"join_{int(time.time())}_{secrets.token_hex(4)}"
    return f"{settings.SERVER_URL.rstrip('/')}/join-team.html?userId={digits}&sessionId={session_id}"


class ChatService:
    def __init__(
        self,
        store: Optional[SessionStore] = None,
        pipeline: Optional[ReportIngestionPipeline] = None,
        link_guard: Optional[LinkTokenGuard] = None,
        sender: Optional[MessageSender] = None,
        object_store: Optional[ObjectStore] = None,
        texts: Optional[LocalizedText] = None,
        max_attempts: Optional[int] = None,
    ):
        self.store = store or get_session_store()
        self._pipeline = pipeline
        self.link_guard = link_guard or get_link_guard()
        self._sender = sender
        self._object_store = object_store
        self.texts = texts or get_localized_text()
        self.max_attempts = max_attempts or settings.SESSION_SAVE_RETRIES

    @property
    def pipeline(self) -> ReportIngestionPipeline:
        if self._pipeline is None:
            self._pipeline = get_ingestion_pipeline()
        return self._pipeline

    @property
    def sender(self) -> MessageSender:
        if self._sender is None:
            self._sender = get_message_sender()
        return self._sender

    @property
    def object_store(self) -> ObjectStore:
        if self._object_store is None:
            self._object_store = get_object_store()
        return self._object_store

    def handle_event(self, event: InboundEvent) -> Optional[str]:
        """
        Process one inbound chat event to completion.

        Args:
            event: Parsed webhook payload

        Returns:
            The reply text that was sent (None if there was nothing to send)

        Raises:
            ConcurrentUpdateError: The session kept changing underneath us
        """
        if not event.from_:
            logger.warning("Inbound event without sender ignored")
            return None

        user_id = normalize_user_id(event.from_)
        previous, session, result = self._advance(user_id, event)
        logger.info(
            f"{user_id}: {previous.current_state.value} -> {session.current_state.value} "
            f"({len(result.external_effects)} effect(s))"
        )

        messages = self._render(result.replies, session)
        for effect in result.external_effects:
            try:
                messages.extend(self._execute(effect, session))
            except Exception as e:
                logger.error(f"Effect {type(effect).__name__} failed for {user_id}: {e}", exc_info=True)
                fallback = on_effect_failed(previous, effect)
                session = self._save_fallback(session, fallback)
                messages = self._render(fallback.replies, session)
                break

        if not messages:
            return None

        reply = "\n\n".join(messages)
        try:
            self.sender.send(user_id, reply)
        except TransientDeliveryFailure as e:
            logger.error(f"Reply to {user_id} not delivered: {e.message}")
        return reply

    # ------------------------------------------------------------------

    def _advance(self, user_id: str, event: InboundEvent) -> Tuple[Session, Session, Transition]:
        rehosted = {}
        for attempt in range(1, self.max_attempts + 1):
            previous = self.store.load(user_id)
            result = transition(previous, event)
            result.effects = [self._rehost_draft_media(effect, rehosted) for effect in result.effects]
            try:
                saved = self.store.save(result.apply(previous))
                return previous, saved, result
            except ConcurrentUpdateError as e:
                logger.warning(f"Session save conflict for {user_id} (attempt {attempt}/{self.max_attempts}): {e.message}")

        raise ConcurrentUpdateError(f"Session for {user_id} kept changing; gave up after {self.max_attempts} attempts")

    def _save_fallback(self, session: Session, fallback: Transition) -> Session:
        updated = fallback.apply(session)
        try:
            return self.store.save(updated)
        except ConcurrentUpdateError as e:
            logger.warning(f"Fallback state for {session.user_id} not saved: {e.message}")
            return updated

    def _render(self, replies: List[Reply], session: Session) -> List[str]:
        return [self.texts.get(reply.key, session.language, *reply.args) for reply in replies]

    def _execute(self, effect: Effect, session: Session) -> List[str]:
        """Run one external effect and return any text it contributes to the reply."""
        language = session.language

        if isinstance(effect, IssueCaptureLink):
            link_id = self.link_guard.issue(session.user_id, effect.report_type)
            minutes = int(self.link_guard.ttl.total_seconds() // 60)
            return [
                self.texts.get(
                    "CAMERA_INSTRUCTIONS",
                    language,
                    effect.report_type.value,
                    self.link_guard.capture_url(link_id),
                    minutes,
                )
            ]

        if isinstance(effect, IssueJoinLink):
            return [self.texts.get("JOIN_FORM_LINK", language, build_join_url(session.user_id))]

        if isinstance(effect, PersistSuggestion):
            self._submit(
                ReportDraft(
                    user_id=session.user_id,
                    user_name=session.user_name,
                    report_type=ReportType.SUGGESTION,
                    description=effect.text,
                    language=language.value,
                )
            )
            return []

        if isinstance(effect, PersistJoinRequest):
            result = self.pipeline.submit(
                ReportDraft(
                    user_id=session.user_id,
                    user_name=session.user_name,
                    report_type=ReportType.JOIN_REQUEST,
                    description=f"Location: {effect.location}\n\n{effect.raw}" if effect.location else effect.raw,
                    name=effect.name,
                    email=effect.email,
                    phone=effect.phone,
                    language=language.value,
                )
            )
            return [result.user_message, self.texts.menu(language)]

        if isinstance(effect, SubmitLocationReport):
            result = self.pipeline.submit(
                ReportDraft(
                    user_id=session.user_id,
                    user_name=session.user_name,
                    report_type=effect.report_type,
                    description=effect.description,
                    photo_url=effect.photo_url,
                    latitude=effect.lat,
                    longitude=effect.lng,
                    address=effect.address,
                    language=language.value,
                )
            )
            if not result.accepted:
                logger.info(f"Location report from {session.user_id} rejected: {result.reason.value}")
            return [result.user_message, self.texts.menu(language)]

        raise ValueError(f"Unsupported effect: {effect!r}")

    def _submit(self, draft: ReportDraft) -> None:
        result = self.pipeline.submit(draft)
        if not result.accepted:
            raise ValueError(f"{draft.report_type.value} rejected: {result.reason.value}")

    def _rehost_draft_media(self, effect: Effect, rehosted: dict) -> Effect:
        """
        Copy Twilio media into our own storage.

        Twilio media URLs need account credentials to fetch, so the stored
        draft points at the re-uploaded copy. On failure the original URL
        is kept.
        """
        if not isinstance(effect, StoreDraft) or not effect.photo_url:
            return effect
        if not (settings.TWILIO_SID and settings.TWILIO_AUTH_TOKEN):
            return effect

        if effect.photo_url not in rehosted:
            rehosted[effect.photo_url] = self._download_and_upload(effect.photo_url)
        return replace(effect, photo_url=rehosted[effect.photo_url] or effect.photo_url)

    def _download_and_upload(self, media_url: str) -> Optional[str]:
        try:
            resp = requests.get(
                media_url,
                auth=(settings.TWILIO_SID, settings.TWILIO_AUTH_TOKEN),
                timeout=MEDIA_DOWNLOAD_TIMEOUT_SECONDS,
            )
            resp.raise_for_status()
            content_type = resp.headers.get("Content-Type", "image/jpeg")
            return self.object_store.upload(resp.content, content_type, REPORT_MEDIA_FOLDER)
        except Exception as e:
            logger.warning(f"Could not re-host media {media_url}: {e}")
            return None


# Global service instance (singleton pattern)
_chat_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service

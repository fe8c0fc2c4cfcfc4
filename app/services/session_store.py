"""
Conversation session store.

Wraps the SessionRepository with the session lifecycle rules:
- the first event from an identity creates a session in LANGUAGE_SELECT
- after SESSION_TIMEOUT_MINUTES of inactivity the next event lands in MENU
  if the user's name is known, otherwise back in LANGUAGE_SELECT
- saves are compare-and-swap on Session.version
"""

import logging
from datetime import timedelta
from typing import Optional

from app.core.settings import settings
from app.models.session import ConversationState, Session
from app.services.storage import SessionRepository, get_repositories
from app.utils.clock import Clock, as_aware, utc_now
from app.utils.phone import normalize_user_id

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(
        self,
        repository: Optional[SessionRepository] = None,
        clock: Clock = utc_now,
        timeout: Optional[timedelta] = None,
    ):
        self._repository = repository
        self.clock = clock
        self.timeout = timeout or timedelta(minutes=settings.SESSION_TIMEOUT_MINUTES)

    @property
    def repository(self) -> SessionRepository:
        if self._repository is None:
            self._repository = get_repositories().sessions
        return self._repository

    def load(self, user_id: str) -> Session:
        """
        Load the live session for a chat identity, applying the timeout policy.

        A session that has never been saved comes back with version 0; the
        next save() then requires that no other writer created it first.
        """
        key = normalize_user_id(user_id)
        session = self.repository.get(key)

        if session is None:
            logger.info(f"New session for {key}")
            return Session(user_id=key, last_interaction=self.clock())

        idle = self.clock() - as_aware(session.last_interaction)
        if idle > self.timeout:
            session.current_state = (
                ConversationState.MENU if session.user_name else ConversationState.LANGUAGE_SELECT
            )
            session.last_option = None
            logger.info(
                f"Session {key} timed out after {idle}, reset to {session.current_state.value}"
            )

        return session

    def save(self, session: Session) -> Session:
        """
        Persist a session if nobody else saved it since it was loaded.

        Raises:
            ConcurrentUpdateError: Another event for the same user won the race
        """
        session.last_interaction = self.clock()
        expected_version = session.version or None
        return self.repository.compare_and_set(session, expected_version)


# Global service instance (singleton pattern)
_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store

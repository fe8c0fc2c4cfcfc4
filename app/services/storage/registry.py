import logging
from dataclasses import dataclass
from typing import Optional

from app.core.settings import settings
from .base import (
    CaptureLinkRepository,
    DivisionRepository,
    ReportRepository,
    SessionRepository,
    TeamApplicationRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class Repositories:
    sessions: SessionRepository
    divisions: DivisionRepository
    reports: ReportRepository
    links: CaptureLinkRepository
    applications: TeamApplicationRepository


_repositories: Optional[Repositories] = None


def build_memory_repositories() -> Repositories:
    from .memory_store import (
        InMemoryCaptureLinkRepository,
        InMemoryDivisionRepository,
        InMemoryReportRepository,
        InMemorySessionRepository,
        InMemoryTeamApplicationRepository,
    )
    from .seed import load_divisions_if_present

    return Repositories(
        sessions=InMemorySessionRepository(),
        divisions=InMemoryDivisionRepository(load_divisions_if_present(settings.DIVISIONS_SEED_FILE)),
        reports=InMemoryReportRepository(),
        links=InMemoryCaptureLinkRepository(),
        applications=InMemoryTeamApplicationRepository(),
    )


def build_firestore_repositories() -> Repositories:
    from .firestore_store import (
        FirestoreCaptureLinkRepository,
        FirestoreDivisionRepository,
        FirestoreReportRepository,
        FirestoreSessionRepository,
        FirestoreTeamApplicationRepository,
    )

    return Repositories(
        sessions=FirestoreSessionRepository(),
        divisions=FirestoreDivisionRepository(),
        reports=FirestoreReportRepository(),
        links=FirestoreCaptureLinkRepository(),
        applications=FirestoreTeamApplicationRepository(),
    )


def get_repositories() -> Repositories:
    """
    Resolve the active storage backend based on settings.

    Rules:
    - USE_MOCK_DB=true: in-memory repositories (lost on restart).
    - Otherwise: Firestore via the shared firebase_admin client.
    """
    global _repositories
    if _repositories is not None:
        return _repositories

    if settings.USE_MOCK_DB:
        _repositories = build_memory_repositories()
        logger.info("Storage backend initialized: memory")
    else:
        _repositories = build_firestore_repositories()
        logger.info("Storage backend initialized: firestore")
    return _repositories


def set_repositories(repositories: Optional[Repositories]) -> None:
    """Swap the active backend (seeding scripts and tests)."""
    global _repositories
    _repositories = repositories

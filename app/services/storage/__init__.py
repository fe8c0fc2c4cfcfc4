"""
Storage backends.

Repositories hide Firestore behind small per-collection interfaces so the
conversation and ingestion logic can run against the in-memory backend.
"""

from .base import (
    CaptureLinkRepository,
    DivisionRepository,
    ReportRepository,
    SessionRepository,
    TeamApplicationRepository,
)
from .registry import Repositories, get_repositories, set_repositories

import os

# Settings are read at import time; keep tests off Firebase, Twilio, SMTP and Nominatim
os.environ["USE_MOCK_DB"] = "true"
os.environ["TWILIO_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""
os.environ["SMTP_HOST"] = ""
os.environ["REVERSE_GEOCODING_ENABLED"] = "false"
os.environ["DIVISIONS_SEED_FILE"] = ""
os.environ["SERVER_URL"] = "https://buddy.test"

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Set

import pytest

from app.core.errors import MessageDeliveryError
from app.models.division import Division, Officer
from app.services.email_service import EmailSender
from app.services.geocoding.base import NoOpProvider
from app.services.localization import LocalizedText
from app.services.messaging import MessageSender, SentMessage
from app.services.object_store import SimulatedObjectStore
from app.services.storage.registry import build_memory_repositories, set_repositories

D1_RING = [[73.79, 18.61], [73.81, 18.61], [73.81, 18.63], [73.79, 18.63]]
INSIDE_D1 = (18.62, 73.80)
OUTSIDE_ALL = (19.50, 72.00)

CITIZEN = "whatsapp:+919812345678"


class FakeClock:
    def __init__(self, start: datetime = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSender(MessageSender):
    """Records every message; recipients in `failing` raise MessageDeliveryError."""

    def __init__(self):
        self.sent: List[Dict[str, str]] = []
        self.failing: Set[str] = set()

    def send(self, recipient: str, body: str) -> SentMessage:
        if recipient in self.failing:
            raise MessageDeliveryError(f"unreachable: {recipient}")
        message_id = f"SM{len(self.sent) + 1:04d}"
        self.sent.append({"recipient": recipient, "body": body, "message_id": message_id})
        return SentMessage(message_id=message_id, recipient=recipient)

    def get_provider_info(self):
        return {"name": "recording"}

    def to(self, recipient: str) -> List[str]:
        return [message["body"] for message in self.sent if message["recipient"] == recipient]


class RecordingEmailSender(EmailSender):
    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, str]] = []
        self.fail = fail

    def send(self, recipient: str, subject: str, payload: str) -> None:
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append({"recipient": recipient, "subject": subject, "payload": payload})


def make_division(division_id="D1", name="Chinchwad", ring=None, officers=None, email=None) -> Division:
    return Division(
        id=division_id,
        name=name,
        code=division_id,
        boundary=D1_RING if ring is None else ring,
        officers=officers if officers is not None else [],
        email=email,
    )


def make_officer(officer_id="o1", phone="9000000001", alternate_phone=None, is_active=True) -> Officer:
    return Officer(
        id=officer_id,
        name=f"Officer {officer_id}",
        phone=phone,
        alternate_phone=alternate_phone,
        is_active=is_active,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repos():
    repositories = build_memory_repositories()
    set_repositories(repositories)
    yield repositories
    set_repositories(None)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def texts():
    return LocalizedText()


@pytest.fixture
def polygon_index(repos, clock):
    from app.services.polygon_index import PolygonIndex

    return PolygonIndex(divisions=repos.divisions, clock=clock)


@pytest.fixture
def link_guard(repos, clock):
    from app.services.link_guard import LinkTokenGuard

    return LinkTokenGuard(links=repos.links, clock=clock)


@pytest.fixture
def pipeline(repos, polygon_index, sender, email_sender, texts, clock):
    from app.services.ingestion_pipeline import ReportIngestionPipeline
    from app.services.officer_notifier import OfficerNotifier

    return ReportIngestionPipeline(
        reports=repos.reports,
        polygon_index=polygon_index,
        notifier=OfficerNotifier(sender=sender, clock=clock),
        sender=sender,
        email_sender=email_sender,
        texts=texts,
        geocoder=NoOpProvider(),
        clock=clock,
    )


@pytest.fixture
def session_store(repos, clock):
    from app.services.session_store import SessionStore

    return SessionStore(repository=repos.sessions, clock=clock)


@pytest.fixture
def object_store():
    return SimulatedObjectStore()


@pytest.fixture
def chat_service(session_store, pipeline, link_guard, sender, object_store, texts):
    from app.services.chat_service import ChatService

    return ChatService(
        store=session_store,
        pipeline=pipeline,
        link_guard=link_guard,
        sender=sender,
        object_store=object_store,
        texts=texts,
    )


@pytest.fixture
def report_service(repos, pipeline, link_guard, object_store, sender, texts, clock):
    from app.services.report_service import ReportService

    return ReportService(
        repositories=repos,
        pipeline=pipeline,
        link_guard=link_guard,
        object_store=object_store,
        sender=sender,
        texts=texts,
        clock=clock,
    )


@pytest.fixture
def team_service(repos, object_store, sender, texts, clock):
    from app.services.team_service import TeamService

    return TeamService(repositories=repos, object_store=object_store, sender=sender, texts=texts, clock=clock)


@pytest.fixture
def client(monkeypatch, repos, polygon_index, link_guard, chat_service, report_service, team_service):
    """TestClient with every service singleton pointed at the in-memory fakes."""
    from fastapi.testclient import TestClient

    from app.main import app
    from app.services import chat_service as chat_module
    from app.services import link_guard as link_module
    from app.services import polygon_index as polygon_module
    from app.services import report_service as report_module
    from app.services import team_service as team_module

    monkeypatch.setattr(chat_module, "_chat_service", chat_service)
    monkeypatch.setattr(link_module, "_link_guard", link_guard)
    monkeypatch.setattr(polygon_module, "_polygon_index", polygon_index)
    monkeypatch.setattr(report_module, "_report_service", report_service)
    monkeypatch.setattr(team_module, "_team_service", team_service)

    with TestClient(app) as test_client:
        yield test_client

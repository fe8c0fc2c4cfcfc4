import pytest

from app.core.errors import ConcurrentUpdateError
from app.models.report import ReportType
from app.models.session import ConversationState
from app.models.webhook import InboundEvent

from .conftest import CITIZEN, INSIDE_D1, OUTSIDE_ALL, make_division, make_officer


def say(chat_service, body="", **kwargs):
    return chat_service.handle_event(InboundEvent(from_=CITIZEN, body=body, **kwargs))


def onboard(chat_service):
    say(chat_service, "hi")
    say(chat_service, "1")
    say(chat_service, "Asha")


def state_of(repos):
    return repos.sessions.get(CITIZEN)


def test_first_message_asks_for_language(chat_service, sender):
    reply = say(chat_service, "hello")

    assert "choose your language" in reply
    assert sender.to(CITIZEN) == [reply]


def test_onboarding_reaches_menu(chat_service, repos):
    onboard(chat_service)

    session = state_of(repos)
    assert session.current_state == ConversationState.MENU
    assert session.user_name == "Asha"


def test_full_location_report_flow(chat_service, repos, sender):
    repos.divisions.add(make_division(officers=[make_officer(phone="9000000001")]))
    onboard(chat_service)

    link_reply = say(chat_service, "4")
    assert "https://buddy.test/r/" in link_reply
    assert "expires in 5 minutes" in link_reply
    assert state_of(repos).last_option == ReportType.ROAD_DAMAGE

    location_request = say(chat_service, "pothole", num_media=1, media_url="https://api.twilio.com/media/1")
    assert "share the location" in location_request
    assert state_of(repos).last_photo_url == "https://api.twilio.com/media/1"

    lat, lng = INSIDE_D1
    confirmation = say(chat_service, latitude=lat, longitude=lng, address="Chinchwad Gaon")
    assert "Chinchwad division" in confirmation
    assert "Reply with a number" in confirmation

    [report] = repos.reports.all()
    assert report.description == "pothole"
    assert report.photo_url == "https://api.twilio.com/media/1"
    assert report.location.address == "Chinchwad Gaon"
    assert len(sender.to("whatsapp:+919000000001")) == 1

    session = state_of(repos)
    assert session.current_state == ConversationState.MENU
    assert session.last_photo_url is None


def test_location_outside_jurisdiction_is_explained(chat_service, repos):
    repos.divisions.add(make_division(officers=[make_officer()]))
    onboard(chat_service)
    say(chat_service, "2")
    say(chat_service, "jam", num_media=1, media_url="https://api.twilio.com/media/2")

    lat, lng = OUTSIDE_ALL
    reply = say(chat_service, latitude=lat, longitude=lng)

    assert "outside our jurisdiction" in reply
    assert repos.reports.all() == []
    assert state_of(repos).current_state == ConversationState.MENU


def test_join_option_sends_form_link(chat_service, repos):
    onboard(chat_service)

    reply = say(chat_service, "8")

    assert "https://buddy.test/join-team.html?userId=919812345678&sessionId=join_" in reply
    assert state_of(repos).current_state == ConversationState.JOIN_TEAM_LINK_SENT


def test_capture_link_failure_returns_to_menu(chat_service, repos, monkeypatch):
    onboard(chat_service)

    def broken_issue(user_id, report_type):
        raise RuntimeError("link store down")

    monkeypatch.setattr(chat_service.link_guard, "issue", broken_issue)

    reply = say(chat_service, "1")

    assert "technical difficulties" in reply
    session = state_of(repos)
    assert session.current_state == ConversationState.MENU
    assert session.last_option is None


def test_suggestion_link_failure_collects_text_in_chat(chat_service, repos, monkeypatch):
    onboard(chat_service)

    def broken_issue(user_id, report_type):
        raise RuntimeError("link store down")

    monkeypatch.setattr(chat_service.link_guard, "issue", broken_issue)

    prompt = say(chat_service, "7")
    assert "type your suggestion" in prompt
    assert state_of(repos).current_state == ConversationState.AWAITING_SUGGESTION_TEXT

    thanks = say(chat_service, "Add a signal at Chapekar Chowk")
    assert "Thank you for your suggestion" in thanks

    [report] = repos.reports.all()
    assert report.report_type == ReportType.SUGGESTION
    assert report.description == "Add a signal at Chapekar Chowk"


def test_join_link_failure_collects_details_in_chat(chat_service, repos, monkeypatch):
    from app.services import chat_service as chat_module

    onboard(chat_service)

    def no_server_url(user_id):
        raise ValueError("SERVER_URL is not configured")

    monkeypatch.setattr(chat_module, "build_join_url", no_server_url)

    prompt = say(chat_service, "8")
    assert "Name: ..." in prompt
    assert state_of(repos).current_state == ConversationState.AWAITING_JOIN

    reply = say(chat_service, "Name: Ravi\nEmail: ravi@example.com\nPhone: 9876543210\nLocation: Akurdi")
    assert "joining Traffic Buddy" in reply

    [report] = repos.reports.all()
    assert report.report_type == ReportType.JOIN_REQUEST
    assert report.name == "Ravi"
    assert "Location: Akurdi" in report.description


def test_version_conflict_retries_without_repeating_effects(chat_service, session_store, repos, monkeypatch):
    onboard(chat_service)
    original_save = session_store.save
    calls = {"count": 0}

    def flaky_save(session):
        calls["count"] += 1
        if calls["count"] == 1:
            raise ConcurrentUpdateError("raced")
        return original_save(session)

    monkeypatch.setattr(session_store, "save", flaky_save)

    say(chat_service, "4")

    assert calls["count"] == 2
    assert state_of(repos).current_state == ConversationState.AWAITING_REPORT
    assert len(repos.links._links) == 1


def test_persistent_conflict_gives_up(chat_service, session_store, sender, monkeypatch):
    def always_conflict(session):
        raise ConcurrentUpdateError("raced")

    monkeypatch.setattr(session_store, "save", always_conflict)

    with pytest.raises(ConcurrentUpdateError):
        say(chat_service, "hi")
    assert sender.sent == []


def test_reply_delivery_failure_is_not_raised(chat_service, sender, repos):
    sender.failing.add(CITIZEN)

    reply = say(chat_service, "hi")

    assert "choose your language" in reply
    assert state_of(repos).current_state == ConversationState.LANGUAGE_SELECT


def test_event_without_sender_is_ignored(chat_service, sender):
    assert chat_service.handle_event(InboundEvent(body="hi")) is None
    assert sender.sent == []

from app.models.capture_link import LinkStatus
from app.models.report import ReportType

from .conftest import CITIZEN


def test_issued_link_stores_digits_only(repos, link_guard):
    link_id = link_guard.issue(CITIZEN, ReportType.ROAD_DAMAGE)

    link = repos.links.find_by_id(link_id)
    assert link.user_id == "919812345678"
    assert link.used is False


def test_link_is_valid_just_before_expiry(link_guard, clock):
    link_id = link_guard.issue(CITIZEN, ReportType.ROAD_DAMAGE)

    clock.advance(minutes=4, seconds=59)

    assert link_guard.validate(link_id, CITIZEN) == LinkStatus.VALID


def test_link_expires_after_ttl(link_guard, clock):
    link_id = link_guard.issue(CITIZEN, ReportType.ROAD_DAMAGE)

    clock.advance(minutes=5, seconds=1)

    assert link_guard.validate(link_id, CITIZEN) == LinkStatus.EXPIRED


def test_link_can_be_consumed_once(link_guard):
    link_id = link_guard.issue(CITIZEN, ReportType.ILLEGAL_PARKING)

    assert link_guard.consume(link_id, CITIZEN) == LinkStatus.VALID
    assert link_guard.consume(link_id, CITIZEN) == LinkStatus.ALREADY_USED
    assert link_guard.validate(link_id, CITIZEN) == LinkStatus.ALREADY_USED


def test_used_link_reports_used_even_when_expired(link_guard, clock):
    link_id = link_guard.issue(CITIZEN, ReportType.ILLEGAL_PARKING)
    link_guard.consume(link_id, CITIZEN)

    clock.advance(hours=1)

    assert link_guard.validate(link_id, CITIZEN) == LinkStatus.ALREADY_USED


def test_user_id_forms_are_interchangeable(link_guard):
    link_id = link_guard.issue(CITIZEN, ReportType.TRAFFIC_VIOLATION)

    assert link_guard.validate(link_id, "919812345678") == LinkStatus.VALID
    assert link_guard.validate(link_id, "+919812345678") == LinkStatus.VALID
    assert link_guard.validate(link_id, "whatsapp: 919812345678") == LinkStatus.VALID


def test_link_of_another_user_is_not_found(link_guard):
    link_id = link_guard.issue(CITIZEN, ReportType.TRAFFIC_VIOLATION)

    assert link_guard.validate(link_id, "919999999999") == LinkStatus.NOT_FOUND
    assert link_guard.consume(link_id, "919999999999") == LinkStatus.NOT_FOUND


def test_unknown_or_empty_link_is_not_found(link_guard):
    assert link_guard.validate("nope", CITIZEN) == LinkStatus.NOT_FOUND
    assert link_guard.validate(None, CITIZEN) == LinkStatus.NOT_FOUND
    assert link_guard.consume("", CITIZEN) == LinkStatus.NOT_FOUND


def test_capture_page_url_uses_menu_code(repos, link_guard):
    link_id = link_guard.issue(CITIZEN, ReportType.ROAD_DAMAGE)
    url = link_guard.capture_page_url(repos.links.find_by_id(link_id))

    assert url == f"https://buddy.test/capture.html?userId=919812345678&reportType=4&linkId={link_id}"


def test_suggestion_link_points_at_suggestion_page(repos, link_guard):
    link_id = link_guard.issue(CITIZEN, ReportType.SUGGESTION)
    url = link_guard.capture_page_url(repos.links.find_by_id(link_id))

    assert url.startswith("https://buddy.test/suggestion-capture.html?")
    assert "reportType=7" in url

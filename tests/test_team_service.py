from datetime import date

import pytest

from app.core.errors import ValidationError
from app.services.team_service import age_on

FIELDS = {
    "user_id": "919812345678",
    "session_id": "join_1",
    "full_name": "Ravi Kulkarni",
    "division": "Chinchwad",
    "motivation": "Safer roads",
    "address": "Akurdi",
    "phone": "9876543210",
    "email": "ravi@example.com",
    "aadhar_number": "123412341234",
    "profession": "Engineer",
}


def test_age_counts_completed_years():
    assert age_on(date(2006, 5, 1), date(2024, 5, 1)) == 18
    assert age_on(date(2006, 5, 2), date(2024, 5, 1)) == 17
    assert age_on(date(2006, 2, 28), date(2024, 2, 29)) == 18


def test_turning_eighteen_today_is_allowed(team_service, repos):
    from app.models.session import Session

    repos.sessions.compare_and_set(Session(user_id="whatsapp:+919812345678"), None)

    # Fake clock is 2024-05-01
    application = team_service.submit_application(FIELDS, date(2006, 5, 1), False, None, (b"doc", "image/png"))

    assert application.date_of_birth == date(2006, 5, 1)
    assert application.user_name == "Unknown"


def test_blank_required_field_is_rejected(team_service):
    with pytest.raises(ValidationError):
        team_service.submit_application(
            dict(FIELDS, motivation="  "), date(1990, 1, 1), False, None, (b"doc", "image/png")
        )


def test_court_case_description_is_dropped_without_court_case(team_service, repos):
    from app.models.session import Session

    repos.sessions.compare_and_set(Session(user_id="whatsapp:+919812345678"), None)

    application = team_service.submit_application(FIELDS, date(1990, 1, 1), False, "old case", (b"doc", None))

    assert application.court_case_description == ""

from app.models.report import DeliveryStatus, ReportDraft, ReportStatus, ReportType
from app.models.session import Language, Session

from .conftest import CITIZEN, INSIDE_D1, OUTSIDE_ALL, make_division, make_officer

CITIZEN_DIGITS = "919812345678"


def report_form(link_id=None, lat_lng=INSIDE_D1, **overrides):
    lat, lng = lat_lng
    data = {
        "userId": CITIZEN_DIGITS,
        "reportType": "4",
        "description": "Deep pothole",
        "latitude": str(lat),
        "longitude": str(lng),
        "address": "Chinchwad Gaon",
    }
    if link_id:
        data["linkId"] = link_id
    data.update(overrides)
    return data


def with_officer(repos, **kwargs):
    repos.divisions.add(make_division(officers=[make_officer(phone="9000000001")], **kwargs))


# -- Webhook ---------------------------------------------------------------

def test_webhook_replies_through_sender(client, sender):
    response = client.post("/webhook", data={"From": CITIZEN, "Body": "hi", "NumMedia": "0"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")
    assert "<Response></Response>" in response.text
    assert "choose your language" in sender.to(CITIZEN)[0]


def test_webhook_answers_200_even_when_processing_fails(client, chat_service, monkeypatch):
    def boom(event):
        raise RuntimeError("firestore unavailable")

    monkeypatch.setattr(chat_service, "handle_event", boom)

    response = client.post("/webhook", data={"From": CITIZEN, "Body": "hi"})

    assert response.status_code == 200


def test_delivery_status_callback_updates_notification(client, repos, pipeline, sender):
    with_officer(repos)
    lat, lng = INSIDE_D1
    result = pipeline.submit(
        ReportDraft(user_id=CITIZEN, report_type=ReportType.ROAD_DAMAGE, latitude=lat, longitude=lng)
    )
    message_id = sender.sent[0]["message_id"]

    response = client.post("/webhook/message-status", data={"MessageSid": message_id, "MessageStatus": "delivered"})

    assert response.status_code == 200
    notification = repos.reports.get(result.report_id).officers_notified[0]
    assert notification.delivery_status == DeliveryStatus.DELIVERED
    assert notification.status_updated_at is not None


# -- Web capture form --------------------------------------------------------

def test_web_report_is_accepted_and_acknowledged(client, repos, link_guard, sender, object_store):
    with_officer(repos)
    link_id = link_guard.issue(CITIZEN, ReportType.ROAD_DAMAGE)

    response = client.post(
        "/api/report",
        data=report_form(link_id),
        files={"image": ("pothole.jpg", b"\xff\xd8jpeg-bytes", "image/jpeg")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["divisionName"] == "Chinchwad"

    report = repos.reports.get(body["reportId"])
    assert report.report_type == ReportType.ROAD_DAMAGE
    assert report.photo_url.startswith("https://buddy.test/uploads/reports/")
    assert len(object_store.objects) == 1
    assert "Chinchwad division" in sender.to(CITIZEN)[0]
    assert repos.links.find_by_id(link_id).used is True


def test_web_report_link_cannot_be_reused(client, repos, link_guard):
    with_officer(repos)
    link_id = link_guard.issue(CITIZEN, ReportType.ROAD_DAMAGE)
    client.post("/api/report", data=report_form(link_id))

    response = client.post("/api/report", data=report_form(link_id))

    assert response.status_code == 400
    assert response.json()["error"] == "LINK_ALREADY_USED"
    assert len(repos.reports.all()) == 1


def test_web_report_outside_jurisdiction(client, repos, sender):
    with_officer(repos)

    response = client.post("/api/report", data=report_form(lat_lng=OUTSIDE_ALL))

    assert response.status_code == 400
    assert response.json()["error"] == "OUTSIDE_JURISDICTION"
    assert repos.reports.all() == []
    assert "outside our jurisdiction" in sender.to(CITIZEN)[0]


def test_web_report_without_reachable_officer(client, repos):
    repos.divisions.add(make_division(officers=[]))

    response = client.post("/api/report", data=report_form())

    assert response.status_code == 422
    assert response.json()["error"] == "NOTIFICATION_FAILED"
    assert repos.reports.all() == []


def test_web_report_missing_fields(client):
    response = client.post("/api/report", data={"reportType": "4"})

    assert response.status_code == 400
    assert response.json()["error"] == "MISSING_FIELDS"


def test_web_report_missing_coordinates(client, repos):
    with_officer(repos)

    response = client.post("/api/report", data=report_form(latitude="", longitude=""))

    assert response.status_code == 400
    assert response.json()["error"] == "MISSING_FIELDS"


def test_web_report_unknown_type(client):
    response = client.post("/api/report", data=report_form(reportType="Alien Landing"))

    assert response.status_code == 400


def test_web_report_accepts_type_label(client, repos):
    with_officer(repos)

    response = client.post("/api/report", data=report_form(reportType="Illegal Parking"))

    assert response.status_code == 200
    assert repos.reports.get(response.json()["reportId"]).report_type == ReportType.ILLEGAL_PARKING


# -- Suggestions ---------------------------------------------------------------

def test_suggestion_is_accepted_and_stored(client, repos, link_guard, sender):
    link_id = link_guard.issue(CITIZEN, ReportType.SUGGESTION)

    response = client.post(
        "/api/suggestion",
        data={"userId": CITIZEN_DIGITS, "description": "  Longer green light  ", "linkId": link_id},
    )

    assert response.status_code == 202
    [report] = repos.reports.all()
    assert report.report_type == ReportType.SUGGESTION
    assert report.description == "Longer green light"
    assert repos.links.find_by_id(link_id).used is True
    assert "Thank you for your suggestion" in sender.to(CITIZEN)[0]


def test_suggestion_with_used_link_is_still_accepted(client, repos, link_guard):
    link_id = link_guard.issue(CITIZEN, ReportType.SUGGESTION)
    link_guard.consume(link_id, CITIZEN)

    response = client.post(
        "/api/suggestion", data={"userId": CITIZEN_DIGITS, "description": "Fix the signal", "linkId": link_id}
    )

    assert response.status_code == 202
    assert len(repos.reports.all()) == 1


def test_suggestion_requires_description(client):
    response = client.post("/api/suggestion", data={"userId": CITIZEN_DIGITS, "description": "   "})

    assert response.status_code == 400


# -- Link checks and redirects ---------------------------------------------------

def test_link_validity_statuses(client, link_guard, clock):
    fresh = link_guard.issue(CITIZEN, ReportType.ROAD_DAMAGE)
    used = link_guard.issue(CITIZEN, ReportType.ROAD_DAMAGE)
    link_guard.consume(used, CITIZEN)

    ok = client.get("/api/check-link-validity", params={"linkId": fresh, "userId": CITIZEN_DIGITS})
    assert ok.status_code == 200
    assert ok.json()["valid"] is True

    assert client.get("/api/check-link-validity", params={"linkId": used, "userId": CITIZEN_DIGITS}).status_code == 403
    assert client.get("/api/check-link-validity", params={"linkId": "x", "userId": CITIZEN_DIGITS}).status_code == 404
    assert client.get("/api/check-link-validity", params={"linkId": fresh}).status_code == 400

    clock.advance(minutes=6)
    expired = client.get("/api/check-link-validity", params={"linkId": fresh, "userId": CITIZEN_DIGITS})
    assert expired.status_code == 403
    assert expired.json()["valid"] is False


def test_short_link_redirects_to_capture_page(client, link_guard):
    link_id = link_guard.issue(CITIZEN, ReportType.ILLEGAL_PARKING)

    response = client.get(f"/r/{link_id}", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == (
        f"https://buddy.test/capture.html?userId={CITIZEN_DIGITS}&reportType=5&linkId={link_id}"
    )


def test_short_link_failures(client, link_guard, clock):
    used = link_guard.issue(CITIZEN, ReportType.ILLEGAL_PARKING)
    link_guard.consume(used, CITIZEN)
    stale = link_guard.issue(CITIZEN, ReportType.ILLEGAL_PARKING)
    clock.advance(minutes=10)

    assert client.get("/r/unknown", follow_redirects=False).status_code == 404
    assert client.get(f"/r/{stale}", follow_redirects=False).status_code == 410
    assert client.get(f"/r/{used}", follow_redirects=False).status_code == 403


# -- Lookups ---------------------------------------------------------------------

def test_check_location(client, repos):
    with_officer(repos)
    lat, lng = INSIDE_D1

    inside = client.get("/api/check-location", params={"lat": lat, "lng": lng}).json()
    outside = client.get("/api/check-location", params={"lat": OUTSIDE_ALL[0], "lng": OUTSIDE_ALL[1]}).json()

    assert inside["inJurisdiction"] is True
    assert inside["divisionName"] == "Chinchwad"
    assert outside["inJurisdiction"] is False
    assert client.get("/api/check-location", params={"lat": "north", "lng": 1}).status_code == 400


def test_divisions_list_hides_boundaries_and_officers(client, repos):
    with_officer(repos)

    response = client.get("/api/divisions")

    assert response.status_code == 200
    assert response.json() == [{"id": "D1", "name": "Chinchwad", "code": "D1"}]


def test_health_endpoints(client, repos):
    with_officer(repos)

    assert client.get("/health").json()["status"] == "healthy"
    db = client.get("/health/db").json()
    assert db["database"] == "memory"
    assert db["divisions_count"] == 1


# -- Status workflow -------------------------------------------------------------

def submit_report(client, repos):
    with_officer(repos)
    return client.post("/api/report", data=report_form()).json()["reportId"]


def test_get_report(client, repos):
    report_id = submit_report(client, repos)

    response = client.get(f"/api/reports/{report_id}")

    assert response.status_code == 200
    assert response.json()["division_name"] == "Chinchwad"
    assert client.get("/api/reports/missing").status_code == 404


def test_resolving_report_notifies_citizen(client, repos, sender):
    report_id = submit_report(client, repos)
    sender.sent.clear()

    response = client.patch(
        f"/api/reports/{report_id}/status",
        json={"status": "Resolved", "resolution_note": "Pothole filled"},
    )

    assert response.status_code == 200
    report = repos.reports.get(report_id)
    assert report.status == ReportStatus.RESOLVED
    assert report.resolved_at is not None
    [message] = sender.to(CITIZEN)
    assert "resolved" in message
    assert "Pothole filled" in message


def test_status_message_uses_citizen_language(client, repos, sender):
    repos.sessions.compare_and_set(Session(user_id=CITIZEN, language=Language.MR), None)
    report_id = submit_report(client, repos)
    sender.sent.clear()

    client.patch(f"/api/reports/{report_id}/status", json={"status": "In Progress"})

    assert "काम सुरू" in sender.to(CITIZEN)[0]


def test_unchanged_status_sends_nothing(client, repos, sender):
    report_id = submit_report(client, repos)
    sender.sent.clear()

    client.patch(f"/api/reports/{report_id}/status", json={"status": "Pending"})

    assert sender.sent == []


def test_status_update_for_unknown_report(client):
    response = client.patch("/api/reports/missing/status", json={"status": "Resolved"})

    assert response.status_code == 404


def test_invalid_status_value(client, repos):
    report_id = submit_report(client, repos)

    response = client.patch(f"/api/reports/{report_id}/status", json={"status": "Closed"})

    assert response.status_code == 422


# -- Join team ---------------------------------------------------------------------

def application_form(**overrides):
    data = {
        "userId": CITIZEN_DIGITS,
        "sessionId": "join_1714550400_ab12cd34",
        "fullName": "Ravi Kulkarni",
        "division": "Chinchwad",
        "motivation": "Safer roads near my school",
        "address": "Akurdi, Pune",
        "phone": "9876543210",
        "email": "ravi@example.com",
        "aadharNumber": "123412341234",
        "profession": "Engineer",
        "dateOfBirth": "1990-01-15",
        "hasCourtCase": "false",
    }
    data.update(overrides)
    return data


AADHAR = {"aadharDocument": ("aadhar.pdf", b"%PDF-1.4", "application/pdf")}


def register_citizen(repos):
    repos.sessions.compare_and_set(Session(user_id=CITIZEN, user_name="Ravi"), None)


def test_join_application_is_stored(client, repos, sender, object_store):
    register_citizen(repos)

    response = client.post("/api/join-team", data=application_form(), files=AADHAR)

    assert response.status_code == 201
    application_id = response.json()["applicationId"]
    application = repos.applications.applications[application_id]
    assert application.user_id == CITIZEN
    assert application.aadhar_document_url.startswith("https://buddy.test/uploads/team-documents/")
    assert application_id in sender.to(CITIZEN)[0]


def test_join_application_rejects_minors(client, repos):
    register_citizen(repos)

    response = client.post("/api/join-team", data=application_form(dateOfBirth="2010-01-15"), files=AADHAR)

    assert response.status_code == 400
    assert "18" in response.json()["message"]


def test_join_application_requires_court_case_description(client, repos):
    register_citizen(repos)

    response = client.post("/api/join-team", data=application_form(hasCourtCase="true"), files=AADHAR)

    assert response.status_code == 400


def test_join_application_requires_document(client, repos):
    register_citizen(repos)

    response = client.post("/api/join-team", data=application_form())

    assert response.status_code == 400


def test_join_application_rejects_bad_name(client, repos):
    register_citizen(repos)

    response = client.post("/api/join-team", data=application_form(fullName="R4vi"), files=AADHAR)

    assert response.status_code == 400


def test_join_application_from_unknown_user(client):
    response = client.post("/api/join-team", data=application_form(), files=AADHAR)

    assert response.status_code == 404


def test_join_application_bad_date(client, repos):
    register_citizen(repos)

    response = client.post("/api/join-team", data=application_form(dateOfBirth="15/01/1990"), files=AADHAR)

    assert response.status_code == 400

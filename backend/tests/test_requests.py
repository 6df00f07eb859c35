import pytest
from sqlalchemy import func, select

from conftest import (
    TestingSessionLocal,
    admin_headers,
    club_request_payload,
    event_form,
    image_file,
    make_head_admin,
    student,
    submit_club_request,
)
from unihub import approvals, models, notifications
from unihub.errors import InvalidState


def count(model) -> int:
    with TestingSessionLocal() as session:
        return session.execute(select(func.count()).select_from(model)).scalar_one()


def test_club_approval_creates_club_and_promotes_requester(client):
    headers, user_id = student(client, "founder@school.edu")
    request_id = submit_club_request(client, headers, "Chess Club")

    mine = client.get("/api/club-requests/my-requests", headers=headers)
    assert [r["status"] for r in mine.json()] == ["pending"]
    assert mine.json()[0]["email"] == "founder@school.edu"

    resp = client.put(f"/api/club-requests/{request_id}/approve", headers=admin_headers(client))
    assert resp.status_code == 200
    assert resp.json()["club_request"]["status"] == "approved"

    # the same token now carries head_admin rights
    my_club = client.get("/api/clubs/my-club", headers=headers)
    assert my_club.status_code == 200
    assert my_club.json()["name"] == "Chess Club"
    assert my_club.json()["head"]["id"] == user_id

    profile = client.get("/api/users/profile", headers=headers).json()
    assert profile["role"] == "head_admin"
    assert profile["club_info"]["name"] == "Chess Club"

    notes = client.get("/api/notifications", headers=headers).json()
    assert [n["type"] for n in notes] == ["club_approved"]
    assert notes[0]["related_id"] == resp.json()["club_id"]


def test_second_resolution_of_a_request_fails(client):
    headers, _ = student(client, "twice@school.edu")
    request_id = submit_club_request(client, headers, "Debate Club")
    admin = admin_headers(client)

    assert client.put(f"/api/club-requests/{request_id}/approve", headers=admin).status_code == 200
    again = client.put(f"/api/club-requests/{request_id}/approve", headers=admin)
    assert again.status_code == 400
    assert again.json()["message"] == "Request already approved"
    reject = client.put(f"/api/club-requests/{request_id}/reject", headers=admin)
    assert reject.status_code == 400
    assert count(models.Club) == 1


def test_rejected_request_creates_nothing(client):
    headers, _ = student(client, "nope@school.edu")
    request_id = submit_club_request(client, headers, "Nope Club")
    resp = client.put(f"/api/club-requests/{request_id}/reject", headers=admin_headers(client))
    assert resp.status_code == 200
    assert resp.json()["club_request"]["status"] == "rejected"
    assert count(models.Club) == 0
    assert client.get("/api/users/profile", headers=headers).json()["role"] == "student"
    assert [n["type"] for n in client.get("/api/notifications", headers=headers).json()] == ["club_rejected"]


def test_unknown_request_is_not_found(client):
    resp = client.put("/api/club-requests/999/approve", headers=admin_headers(client))
    assert resp.status_code == 404


def test_only_students_submit_club_requests(client):
    head_headers, _, _ = make_head_admin(client, "head@school.edu", "Art Club")
    resp = client.post("/api/club-requests", json=club_request_payload("Second Club"), headers=head_headers)
    assert resp.status_code == 403


def test_duplicate_club_name_is_a_conflict(client):
    make_head_admin(client, "first@school.edu", "Robotics")
    headers, _ = student(client, "second@school.edu")
    resp = client.post("/api/club-requests", json=club_request_payload("Robotics"), headers=headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "A club with this name already exists"


def test_requester_with_a_club_cannot_get_a_second_one(client):
    headers, user_id = student(client, "greedy@school.edu")
    first = submit_club_request(client, headers, "First Club")
    second = submit_club_request(client, headers, "Second Club")
    admin = admin_headers(client)

    assert client.put(f"/api/club-requests/{first}/approve", headers=admin).status_code == 200
    resp = client.put(f"/api/club-requests/{second}/approve", headers=admin)
    assert resp.status_code == 400
    assert resp.json()["message"] == "User already manages a club"
    assert client.get(f"/api/club-requests/{second}", headers=headers).json()["status"] == "pending"


def test_request_visibility(client):
    owner, _ = student(client, "owner@school.edu")
    other, _ = student(client, "other@school.edu")
    request_id = submit_club_request(client, owner, "Photo Club")

    assert client.get(f"/api/club-requests/{request_id}", headers=owner).status_code == 200
    assert client.get(f"/api/club-requests/{request_id}", headers=other).status_code == 403
    assert client.get(f"/api/club-requests/{request_id}", headers=admin_headers(client)).status_code == 200


def test_failed_promotion_leaves_request_pending(client, monkeypatch):
    headers, user_id = student(client, "atomic@school.edu")
    request_id = submit_club_request(client, headers, "Atomic Club")

    def broken_promotion(db, user):
        raise RuntimeError("role store unavailable")

    monkeypatch.setattr(approvals, "promote_to_head", broken_promotion)
    session = TestingSessionLocal()
    try:
        with pytest.raises(RuntimeError):
            approvals.approve_club_request(session, request_id)
    finally:
        session.close()

    with TestingSessionLocal() as session:
        assert session.get(models.ClubRequest, request_id).status == "pending"
        assert session.get(models.User, user_id).role == "student"
        assert session.execute(select(models.Club)).first() is None


def test_conditional_transition_rejects_stale_request():
    with TestingSessionLocal() as session:
        user = models.User(name="A", surname="B", email="a@b.c", password_hash="x")
        session.add(user)
        session.flush()
        request = models.ClubRequest(head_id=user.id, email=user.email, **club_request_payload("Stale"))
        session.add(request)
        session.commit()
        request_id = request.id

    first = TestingSessionLocal()
    second = TestingSessionLocal()
    try:
        stale = second.get(models.ClubRequest, request_id)
        approvals.reject_club_request(first, request_id)
        first.commit()
        with pytest.raises(InvalidState):
            approvals.transition(second, models.ClubRequest, stale, models.Status.APPROVED)
    finally:
        first.close()
        second.close()


def test_event_request_pipeline(client):
    head_headers, head_id, club_id = make_head_admin(client, "events@school.edu", "Film Club")
    resp = client.post(
        "/api/event-requests",
        data=event_form("Movie Night"),
        files={"image": image_file("poster.png")},
        headers=head_headers,
    )
    assert resp.status_code == 201
    request = resp.json()
    assert request["club_id"] == club_id
    assert request["image"].startswith("/uploads/")

    listing = client.get("/api/event-requests", headers=admin_headers(client)).json()
    assert listing[0]["club"]["name"] == "Film Club"
    assert listing[0]["head"]["id"] == head_id

    approved = client.put(f"/api/event-requests/{request['id']}/approve", headers=admin_headers(client))
    assert approved.status_code == 200
    event = approved.json()["event"]
    assert event["event_name"] == "Movie Night"
    assert event["image"] == request["image"]

    again = client.put(f"/api/event-requests/{request['id']}/reject", headers=admin_headers(client))
    assert again.status_code == 400

    assert [e["id"] for e in client.get("/api/events/my-events", headers=head_headers).json()] == [event["id"]]
    assert client.get(f"/api/events/club/{club_id}").json()[0]["club"]["name"] == "Film Club"
    assert [n["type"] for n in client.get("/api/notifications", headers=head_headers).json()] == [
        "event_approved",
        "club_approved",
    ]


def test_event_request_without_club_discards_image(client, monkeypatch):
    headers, user_id = student(client, "clubless@school.edu")
    with TestingSessionLocal() as session:
        session.get(models.User, user_id).role = "head_admin"
        session.commit()

    deleted = []
    monkeypatch.setattr("unihub.api.event_requests.delete_upload", deleted.append)
    resp = client.post(
        "/api/event-requests",
        data=event_form(),
        files={"image": image_file()},
        headers=headers,
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "You do not have a club"
    assert len(deleted) == 1 and deleted[0].startswith("/uploads/")
    assert count(models.EventRequest) == 0


def test_approval_email_escapes_user_supplied_names():
    _, body = notifications.club_approval_email("<b>Rock & Roll</b>")
    assert "&lt;b&gt;Rock &amp; Roll&lt;/b&gt;" in body
    assert "<b>" not in body

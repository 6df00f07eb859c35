import pytest
from sqlalchemy import event, func, select

from conftest import TestingSessionLocal, admin_headers, image_file, make_event, make_head_admin, student
from unihub import models, social
from unihub.errors import Conflict


def like_rows(post_id: int) -> int:
    with TestingSessionLocal() as session:
        return session.execute(
            select(func.count(models.PostLike.id)).where(models.PostLike.post_id == post_id)
        ).scalar_one()


def test_like_toggle_keeps_counter_in_step(client):
    author, _ = student(client, "author@school.edu")
    reader, _ = student(client, "reader@school.edu")
    post = client.post("/api/posts", data={"title": "Hi", "content": "First post"}, headers=author).json()
    assert post["likes"] == 0
    assert post["club"] is None

    liked = client.post(f"/api/posts/{post['id']}/like", headers=reader).json()
    assert liked == {"message": "Post liked", "liked": True, "likes": 1}
    assert like_rows(post["id"]) == 1

    unliked = client.post(f"/api/posts/{post['id']}/like", headers=reader).json()
    assert unliked == {"message": "Post unliked", "liked": False, "likes": 0}
    assert like_rows(post["id"]) == 0

    client.post(f"/api/posts/{post['id']}/like", headers=reader)
    client.post(f"/api/posts/{post['id']}/like", headers=author)
    assert client.get(f"/api/posts/{post['id']}").json()["likes"] == 2 == like_rows(post["id"])

    assert client.post("/api/posts/999/like", headers=reader).status_code == 404


def test_post_crud_and_permissions(client):
    author, _ = student(client, "writer@school.edu")
    other, _ = student(client, "other@school.edu")
    created = client.post(
        "/api/posts",
        data={"title": "Photo", "content": "Look"},
        files={"image": image_file("pic.png")},
        headers=author,
    )
    assert created.status_code == 201
    post = created.json()
    assert post["image"].startswith("/uploads/")
    assert post["user"]["id"]

    assert client.put(f"/api/posts/{post['id']}", json={"title": "Mine"}, headers=other).status_code == 403
    updated = client.put(f"/api/posts/{post['id']}", json={"title": "Edited"}, headers=author)
    assert updated.json()["title"] == "Edited"
    assert updated.json()["content"] == "Look"

    assert [p["id"] for p in client.get("/api/posts/my-posts", headers=author).json()] == [post["id"]]
    assert client.get("/api/posts/my-posts", headers=other).json() == []

    client.post(f"/api/posts/{post['id']}/like", headers=other)
    assert client.delete(f"/api/posts/{post['id']}", headers=other).status_code == 403
    assert client.delete(f"/api/posts/{post['id']}", headers=author).status_code == 200
    assert client.get(f"/api/posts/{post['id']}").status_code == 404
    assert like_rows(post["id"]) == 0


def test_super_admin_can_remove_any_post(client):
    author, _ = student(client, "spam@school.edu")
    post = client.post("/api/posts", data={"title": "Spam", "content": "Buy"}, headers=author).json()
    assert client.delete(f"/api/posts/{post['id']}", headers=admin_headers(client)).status_code == 200


def test_posts_filter_by_club(client):
    head, _, club_id = make_head_admin(client, "clubhead@school.edu", "Poetry Club")
    loner, _ = student(client, "loner@school.edu")
    club_post = client.post("/api/posts", data={"title": "Club", "content": "News"}, headers=head).json()
    client.post("/api/posts", data={"title": "Solo", "content": "Thoughts"}, headers=loner)

    assert club_post["club"]["name"] == "Poetry Club"
    assert len(client.get("/api/posts").json()) == 2
    assert [p["id"] for p in client.get(f"/api/posts?club_id={club_id}").json()] == [club_post["id"]]


def test_event_comments_are_author_only(client):
    head, _, _ = make_head_admin(client, "host@school.edu", "Host Club")
    event_id = make_event(client, head, "Open Mic")
    guest, _ = student(client, "guest@school.edu")

    created = client.post(f"/api/events/{event_id}/comments", json={"content": "Can't wait"}, headers=guest)
    assert created.status_code == 201
    comment = created.json()

    path = f"/api/events/{event_id}/comments/{comment['id']}"
    assert client.put(path, json={"content": "Hijacked"}, headers=head).status_code == 403
    assert client.put(path, json={"content": "So excited"}, headers=guest).json()["content"] == "So excited"
    assert [c["content"] for c in client.get(f"/api/events/{event_id}/comments").json()] == ["So excited"]

    assert client.delete(path, headers=head).status_code == 403
    assert client.delete(path, headers=guest).status_code == 200
    assert client.get(f"/api/events/{event_id}/comments").json() == []
    assert client.post("/api/events/999/comments", json={"content": "x"}, headers=guest).status_code == 404

    detail = client.get(f"/api/events/{event_id}").json()
    assert detail["event_name"] == "Open Mic"
    assert detail["club"]["name"] == "Host Club"


def test_personal_events_are_private(client):
    owner, _ = student(client, "me@school.edu")
    other, _ = student(client, "you@school.edu")

    created = client.post(
        "/api/personal-events",
        json={
            "event_name": "Gym",
            "date": "2030-02-02",
            "start_time": "07:00",
            "end_time": "08:00",
            "remind_me": True,
        },
        headers=owner,
    )
    assert created.status_code == 201
    event_id = created.json()["id"]

    assert client.get(f"/api/personal-events/{event_id}", headers=other).status_code == 403
    updated = client.put(f"/api/personal-events/{event_id}", json={"end_time": "09:00"}, headers=owner)
    assert updated.json()["end_time"] == "09:00"
    assert updated.json()["remind_me"] is True
    assert len(client.get("/api/personal-events", headers=owner).json()) == 1
    assert client.get("/api/personal-events", headers=other).json() == []

    assert client.delete(f"/api/personal-events/{event_id}", headers=other).status_code == 403
    assert client.delete(f"/api/personal-events/{event_id}", headers=owner).status_code == 200
    assert client.get(f"/api/personal-events/{event_id}", headers=owner).status_code == 404


def test_concurrent_first_like_is_a_conflict(client):
    author, _ = student(client, "popular@school.edu")
    _, fan_id = student(client, "eager@school.edu")
    post_id = client.post("/api/posts", data={"title": "Vote", "content": "Now"}, headers=author).json()["id"]

    def like_from_another_request(session, flush_context, instances):
        with TestingSessionLocal() as other:
            social.toggle_like(other, post_id, fan_id)
            other.commit()

    session = TestingSessionLocal()
    try:
        event.listen(session, "before_flush", like_from_another_request, once=True)
        with pytest.raises(Conflict):
            social.toggle_like(session, post_id, fan_id)
    finally:
        session.close()

    assert like_rows(post_id) == 1
    assert client.get(f"/api/posts/{post_id}").json()["likes"] == 1

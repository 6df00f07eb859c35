import os
import time

from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import TestingSessionLocal, auth_headers, image_file, register
from unihub import models, uploads
from unihub.errors import Internal


def stored_path(url: str) -> str:
    return os.path.join(uploads.upload_dir(), url.rsplit("/", 1)[-1])


def age(path: str, hours: int) -> None:
    past = time.time() - hours * 3600
    os.utime(path, (past, past))


def test_profile_image_is_served_and_replaced(client):
    headers = auth_headers(register(client, "pic@school.edu")["token"])

    first = client.put("/api/users/profile", data={"phone": "+1"}, files={"profile_image": image_file()}, headers=headers)
    assert first.status_code == 200
    first_url = first.json()["profile_image"]
    assert first.json()["phone"] == "+1"
    assert client.get(first_url).status_code == 200

    second = client.put("/api/users/profile", files={"profile_image": image_file("b.png")}, headers=headers)
    second_url = second.json()["profile_image"]
    assert second_url != first_url
    assert not os.path.exists(stored_path(first_url))
    assert os.path.exists(stored_path(second_url))


def test_profile_rejects_non_images(client):
    headers = auth_headers(register(client, "bad@school.edu")["token"])
    resp = client.put(
        "/api/users/profile",
        files={"profile_image": ("x.gif", b"definitely not an image", "image/gif")},
        headers=headers,
    )
    assert resp.status_code == 400
    assert client.get("/api/users/profile", headers=headers).json()["profile_image"] is None


def test_sweep_removes_only_stale_unreferenced_files(client):
    headers = auth_headers(register(client, "sweep@school.edu")["token"])
    kept_url = client.put("/api/users/profile", files={"profile_image": image_file()}, headers=headers).json()[
        "profile_image"
    ]

    directory = uploads.upload_dir()
    orphan = os.path.join(directory, "orphan.png")
    fresh = os.path.join(directory, "fresh.png")
    for path in (orphan, fresh):
        with open(path, "wb") as f:
            f.write(b"x")
    age(orphan, 48)
    age(stored_path(kept_url), 48)

    with TestingSessionLocal() as session:
        removed = uploads.sweep_uploads(session, max_age_hours=24)

    assert "orphan.png" in removed
    assert not os.path.exists(orphan)
    assert os.path.exists(fresh)
    assert os.path.exists(stored_path(kept_url))


def test_referenced_urls_include_profile_images(client):
    register(client, "refs@school.edu")
    with TestingSessionLocal() as session:
        user = session.execute(select(models.User).where(models.User.email == "refs@school.edu")).scalar_one()
        user.profile_image = "/uploads/avatar.png"
        session.commit()
        assert "/uploads/avatar.png" in uploads.referenced_urls(session)


def test_failed_profile_update_discards_new_image(client, monkeypatch):
    body = register(client, "rollback@school.edu")
    headers = auth_headers(body["token"])
    before = set(os.listdir(uploads.upload_dir()))

    def broken_commit(self):
        raise Internal("Database unavailable")

    monkeypatch.setattr(Session, "commit", broken_commit)
    resp = client.put(
        "/api/users/profile",
        data={"name": "Renamed"},
        files={"profile_image": image_file()},
        headers=headers,
    )
    assert resp.status_code == 500
    assert resp.json()["message"] == "Database unavailable"
    assert set(os.listdir(uploads.upload_dir())) == before

    with TestingSessionLocal() as session:
        user = session.get(models.User, body["user"]["id"])
        assert user.name == "Test"
        assert user.profile_image is None

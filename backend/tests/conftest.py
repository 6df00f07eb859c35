import io
import os
import tempfile

TEST_ROOT = tempfile.mkdtemp(prefix="unihub-tests-")
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(TEST_ROOT, 'test_unihub.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(TEST_ROOT, "uploads")
os.environ["UPLOAD_SWEEP_ENABLED"] = "false"
os.environ["ADMIN_EMAIL"] = "admin@unihub.edu"
os.environ["ADMIN_PASSWORD"] = "admin-pass"
os.environ["SMTP_HOST"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402

from unihub.db import Base, SessionLocal, engine  # noqa: E402
from unihub.main import app  # noqa: E402

TestingSessionLocal = SessionLocal

ADMIN_EMAIL = os.environ["ADMIN_EMAIL"]
ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]


def make_image(fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), "red").save(buf, format=fmt)
    return buf.getvalue()


def image_file(name: str = "proof.png") -> tuple[str, bytes, str]:
    return (name, make_image(), "image/png")


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register(client, email: str, password: str = "secret123", name: str = "Test") -> dict:
    resp = client.post(
        "/api/auth/register",
        json={"name": name, "surname": "User", "email": email, "password": password},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def student(client, email: str) -> tuple[dict[str, str], int]:
    body = register(client, email)
    return auth_headers(body["token"]), body["user"]["id"]


def login(client, email: str, password: str) -> dict[str, str]:
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return auth_headers(resp.json()["token"])


def admin_headers(client) -> dict[str, str]:
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


def club_request_payload(club_name: str) -> dict:
    return {
        "title": f"Request for {club_name}",
        "club_name": club_name,
        "goal": "Bring people together",
        "description": "A student club",
        "financing": "Membership fees",
        "resources": "A room",
        "phone": "+10000000",
        "communication": "telegram",
        "attraction_methods": "Posters",
    }


def submit_club_request(client, headers, club_name: str) -> int:
    resp = client.post("/api/club-requests", json=club_request_payload(club_name), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def make_head_admin(client, email: str, club_name: str) -> tuple[dict[str, str], int, int]:
    """Register a student, get their club approved, return (headers, user_id, club_id)."""
    headers, user_id = student(client, email)
    request_id = submit_club_request(client, headers, club_name)
    resp = client.put(f"/api/club-requests/{request_id}/approve", headers=admin_headers(client))
    assert resp.status_code == 200, resp.text
    return headers, user_id, resp.json()["club_id"]


def event_form(name: str = "Spring Concert") -> dict:
    return {
        "event_name": name,
        "event_date": "2030-04-01",
        "location": "Main Hall",
        "short_description": "Live music",
        "goal": "Fun",
        "organizers": "Music club",
        "schedule": "18:00 doors",
        "club_head": "Test User",
        "phone": "+10000000",
    }


def make_event(client, head_headers, name: str = "Spring Concert") -> int:
    resp = client.post("/api/event-requests", data=event_form(name), headers=head_headers)
    assert resp.status_code == 201, resp.text
    resp = client.put(f"/api/event-requests/{resp.json()['id']}/approve", headers=admin_headers(client))
    assert resp.status_code == 200, resp.text
    return resp.json()["event"]["id"]


def make_poster(client, head_headers, event_id: int, seats: int = 10, price: int = 0) -> dict:
    resp = client.post(
        "/api/posters",
        data={
            "event_id": str(event_id),
            "event_title": "Spring Concert",
            "event_date": "2030-04-01",
            "location": "Main Hall",
            "time": "18:00",
            "description": "Tickets on sale",
            "seats": str(seats),
            "price": str(price),
        },
        headers=head_headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def book(client, headers, poster_id: int, persons: int, proof=None):
    return client.post(
        "/api/tickets",
        data={"poster_id": str(poster_id), "number_of_persons": str(persons)},
        files={"payment_proof": proof or image_file()},
        headers=headers,
    )


@pytest.fixture(autouse=True)
def setup_test_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def inventory_setup(client):
    """A head admin with an approved event, and a poster helper bound to them."""
    head_headers, head_id, club_id = make_head_admin(client, "head@school.edu", "Music Club")
    event_id = make_event(client, head_headers)
    return {"headers": head_headers, "user_id": head_id, "club_id": club_id, "event_id": event_id}

from io import BytesIO
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from PIL import Image

import main as app_module
from smart_circular.api.deps import get_ledger
from smart_circular.services import media


@pytest.fixture
def client(ledger):
    # Override the ledger dependency with an isolated in-memory instance
    app_module.app.dependency_overrides[get_ledger] = lambda: ledger
    yield TestClient(app_module.app)
    app_module.app.dependency_overrides.clear()


def signup(client, email, name="Tester", password="secret123"):
    resp = client.post("/accounts", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["account"], {"Authorization": f"Bearer {body['access_token']}"}


def test_report_lifecycle_over_http(client):
    alice, alice_auth = signup(client, "alice@example.com", name="Alice")
    admin, admin_auth = signup(client, "admin@example.com", name="Admin")
    assert alice["role"] == "citizen"
    assert admin["role"] == "admin"

    resp = client.post("/reports", headers=alice_auth, json={
        "category": "waste",
        "description": "Garbage pile near the park",
        "label": "Organic Waste",
        "location": {"address": "Park Street", "latitude": 22.55, "longitude": 88.35},
    })
    assert resp.status_code == 201, resp.text
    report = resp.json()
    assert report["status"] == "pending"
    assert report["points"] == 10
    assert report["owner_id"] == alice["id"]

    resp = client.get(f"/reports?owner={alice['id']}", headers=alice_auth)
    assert [r["id"] for r in resp.json()] == [report["id"]]

    # Citizens cannot see the moderation queue or decide
    assert client.get("/reports", headers=alice_auth).status_code == 403
    resp = client.post(f"/reports/{report['id']}/decision", headers=alice_auth, json={"decision": "approved"})
    assert resp.status_code == 403
    assert resp.json()["error"] == "Unauthorized"

    assert len(client.get("/reports", headers=admin_auth).json()) == 1
    resp = client.post(f"/reports/{report['id']}/decision", headers=admin_auth, json={"decision": "approved"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "approved"

    resp = client.post(f"/reports/{report['id']}/decision", headers=admin_auth, json={"decision": "approved"})
    assert resp.status_code == 409
    assert resp.json()["error"] == "AlreadyDecided"

    resp = client.get(f"/accounts/{alice['id']}", headers=alice_auth)
    assert resp.json()["reward_points"] == 10

    resp = client.get(f"/accounts/{alice['id']}/rewards", headers=alice_auth)
    assert resp.json()["reports_by_status"]["approved"] == 1


def test_error_statuses(client):
    alice, alice_auth = signup(client, "alice@example.com")
    _, admin_auth = signup(client, "admin@example.com", name="Admin")

    resp = client.post("/reports", headers=alice_auth, json={"category": "flooding", "description": "Wet"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationError"

    resp = client.post("/reports/nope/decision", headers=admin_auth, json={"decision": "rejected"})
    assert resp.status_code == 404

    resp = client.post("/accounts", json={"name": "Dup", "email": "ALICE@example.com", "password": "secret123"})
    assert resp.status_code == 409

    resp = client.post("/session", json={"email": "alice@example.com", "password": "wrong-one"})
    assert resp.status_code == 401

    resp = client.post(f"/accounts/{alice['id']}/points", headers=admin_auth, json={"amount": -5})
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidAmount"

    assert client.get("/accounts", headers=alice_auth).status_code == 403
    assert client.get("/session").status_code == 401


def test_session_login_logout_and_profile(client):
    alice, _ = signup(client, "alice@example.com", name="Alice")

    resp = client.post("/session", json={"email": "Alice@Example.com", "password": "secret123"})
    assert resp.status_code == 200
    auth = {"Authorization": f"Bearer {resp.json()['access_token']}"}
    assert client.get("/session", headers=auth).json()["id"] == alice["id"]

    resp = client.patch(f"/accounts/{alice['id']}", headers=auth, json={"address": "2 Lake Rd", "email": "x@y.com"})
    assert resp.status_code == 200
    assert resp.json()["address"] == "2 Lake Rd"
    assert resp.json()["email"] == "alice@example.com"

    assert client.delete("/session", headers=auth).status_code == 204
    assert client.delete("/session", headers=auth).status_code == 204
    assert client.get("/session", headers=auth).status_code == 401


def test_owner_can_delete_report(client):
    _, alice_auth = signup(client, "alice@example.com")
    _, bob_auth = signup(client, "bob@example.com", name="Bob")
    report = client.post("/reports", headers=alice_auth, json={"category": "electricity", "description": "Loose wire"}).json()
    assert report["points"] == 12

    assert client.delete(f"/reports/{report['id']}", headers=bob_auth).status_code == 403
    assert client.delete(f"/reports/{report['id']}", headers=alice_auth).status_code == 204
    assert client.get(f"/reports/{report['id']}", headers=alice_auth).status_code == 404


def test_categories_table(client):
    assert client.get("/categories").json() == {"waste": 10, "flood": 15, "electricity": 12}


def _png_bytes():
    buf = BytesIO()
    Image.new("RGB", (2, 2), color="green").save(buf, format="PNG")
    return buf.getvalue()


def test_image_upload(client, monkeypatch):
    _, auth = signup(client, "alice@example.com")

    class FakeBucket:
        def upload(self, file_name, data, file_options=None): return {"error": None}
        def get_public_url(self, file_name): return f"https://example.com/{file_name}"

    class FakeStorage:
        def from_(self, name): return FakeBucket()

    monkeypatch.setattr(media, "get_storage_client", lambda: SimpleNamespace(storage=FakeStorage()))

    # Declared type is wrong; the bytes are sniffed as PNG
    files = {"image": ("evidence", _png_bytes(), "application/octet-stream")}
    resp = client.post("/uploads", headers=auth, files=files)
    assert resp.status_code == 201, resp.text
    assert resp.json()["image_url"].endswith(".png")

    files = {"image": ("notes.txt", b"not an image", "text/plain")}
    assert client.post("/uploads", headers=auth, files=files).status_code == 400


def test_image_upload_without_storage(client, monkeypatch):
    _, auth = signup(client, "alice@example.com")

    def unavailable():
        raise media.StorageUnavailable("Image storage is not configured")

    monkeypatch.setattr(media, "get_storage_client", unavailable)
    files = {"image": ("evidence.png", _png_bytes(), "image/png")}
    assert client.post("/uploads", headers=auth, files=files).status_code == 503

import pytest
from fastapi.testclient import TestClient

from api.context import AppContext
from api.server import APIServerConfig, _is_loopback_host, create_app
from core.settings import merge_defaults


@pytest.fixture
def client(tmp_path, clock, timers):
    settings = merge_defaults({"auth": {"hash_rounds": 4}})
    context = AppContext(tmp_path / "home", settings=settings, timers=timers, clock=clock)
    app = create_app(APIServerConfig(context=context, app_version="test"))
    with TestClient(app) as test_client:
        yield test_client
    assert not context.running


def test_health(client):
    payload = client.get("/health").json()
    assert payload["ok"] is True
    assert payload["version"] == "test"
    assert payload["running"] is True


def test_auth_round_trip(client):
    assert client.get("/auth/setup").json() == {"setup_complete": False}
    assert client.post("/auth/setup", json={"username": "alice", "password": "secret1"}).json()["success"]

    login = client.post("/auth/login", json={"username": "alice", "password": "secret1", "rememberMe": True})
    body = login.json()
    assert body["success"] is True
    token = body["sessionToken"]

    session = client.post("/auth/session", json={"sessionToken": token}).json()
    assert session["valid"] is True
    assert session["user"]["username"] == "alice"

    assert client.post("/auth/logout", json={"sessionToken": token}).json()["success"] is True
    assert client.post("/auth/session", json={"sessionToken": token}).json() == {"valid": False, "user": None}


def test_bad_payload_returns_400(client):
    response = client.post("/auth/login", json={"username": "alice"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid parameters"


def test_items_routes(client):
    created = client.post("/items", json={"name": "Laptop", "category_id": "cat-2", "quantity": 1}).json()
    item_id = created["item"]["id"]

    assert client.get(f"/items/{item_id}").json()["name"] == "Laptop"
    assert client.get("/items/missing").status_code == 404
    assert client.patch(f"/items/{item_id}", json={"status": "inactive"}).json()["item"]["status"] == "inactive"
    assert [item["id"] for item in client.get("/items", params={"status": "inactive"}).json()["items"]] == [item_id]
    assert client.get("/dashboard/stats").json()["inactiveItems"] == 1
    assert client.delete(f"/items/{item_id}").json()["success"] is True


def test_backup_routes(client):
    info = client.get("/backup/info").json()
    assert info["backupCount"] == 1

    manual = client.post("/backup/manual").json()
    assert manual["cancelled"] is True


@pytest.mark.parametrize(
    "host, expected",
    [
        ("127.0.0.1", True),
        ("::1", True),
        ("::ffff:127.0.0.1", True),
        ("testclient", True),
        ("192.168.1.20", False),
        ("10.0.0.1", False),
    ],
)
def test_loopback_detection(host, expected):
    assert _is_loopback_host(host) is expected

import pytest
from fastapi.testclient import TestClient

from tribbler import main
from tribbler.front import new_front
from tribbler.storage import MemoryStorage


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main, "front", new_front([MemoryStorage(), MemoryStorage()]))
    monkeypatch.setattr(main, "endpoint_metrics", {})
    return TestClient(main.app)


def _signup(client, *names):
    for name in names:
        assert client.post("/api/add-user", json={"user": name}).status_code == 200


def test_add_and_list_users(client):
    resp = client.post("/api/add-user", json={"user": "bob"})
    assert resp.status_code == 200
    assert resp.json() == {"users": ["bob"]}
    _signup(client, "alice")
    assert client.get("/api/list-users").json() == {"users": ["alice", "bob"]}


def test_duplicate_user_is_a_conflict(client):
    _signup(client, "bob")
    resp = client.post("/api/add-user", json={"user": "bob"})
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "already_exists"


def test_invalid_username_is_a_bad_request(client):
    resp = client.post("/api/add-user", json={"user": "Not Valid"})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "invalid_username"


def test_post_and_list_tribs(client):
    _signup(client, "alice")
    resp = client.post("/api/post", json={"who": "alice", "message": "hi", "clock": 10})
    assert resp.status_code == 200
    body = resp.json()
    assert body["v"] is True
    assert body["trib"]["clock"] == 11

    tribs = client.post("/api/list-tribs", json={"user": "alice"}).json()["tribs"]
    assert [(t["user"], t["message"], t["clock"]) for t in tribs] == [("alice", "hi", 11)]


def test_long_trib_is_rejected(client):
    _signup(client, "alice")
    resp = client.post("/api/post", json={"who": "alice", "message": "x" * 141})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "trib_too_long"


def test_follow_flow(client):
    _signup(client, "alice", "bob")
    pair = {"who": "alice", "whom": "bob"}
    assert client.post("/api/follow", json=pair).json() == {"v": True}
    again = client.post("/api/follow", json=pair)
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "already_following"
    assert client.post("/api/is-following", json=pair).json() == {"v": True}
    assert client.post("/api/following", json={"user": "alice"}).json() == {"users": ["bob"]}

    client.post("/api/post", json={"who": "bob", "message": "hello alice"})
    home = client.post("/api/list-home", json={"user": "alice"}).json()["tribs"]
    assert [t["message"] for t in home] == ["hello alice"]

    assert client.post("/api/unfollow", json=pair).json() == {"v": True}
    gone = client.post("/api/unfollow", json=pair)
    assert gone.status_code == 409
    assert gone.json()["detail"]["code"] == "not_following"
    assert client.post("/api/is-following", json=pair).json() == {"v": False}


def test_self_follow_and_unknown_user(client):
    _signup(client, "alice")
    resp = client.post("/api/follow", json={"who": "alice", "whom": "alice"})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "invalid_follow"
    resp = client.post("/api/list-home", json={"user": "ghost"})
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "user_not_found"


def test_backend_outage_is_service_unavailable(monkeypatch, down):
    monkeypatch.setattr(main, "front", new_front([down]))
    client = TestClient(main.app)
    resp = client.get("/api/list-users")
    assert resp.status_code == 503
    assert resp.json()["detail"]["code"] == "backend_unavailable"


def test_health_and_dashboard(client):
    _signup(client, "alice")
    client.post("/api/add-user", json={"user": "alice"})
    assert client.get("/health").json()["status"] == "ok"

    dash = client.get("/api/monitoring/dashboard").json()
    assert dash["backend_count"] == 2
    metrics = dash["traffic_metrics"]["/api/add-user"]
    assert metrics["count"] == 2
    assert metrics["errors"] == 1
    assert any(e["event"] == "user_signed_up" for e in dash["recent_logs"])


def test_startup_populates_demo_data(monkeypatch):
    monkeypatch.setattr(main, "front", new_front([MemoryStorage()]))
    monkeypatch.setattr(main, "TRIB_POPULATE", True)
    with TestClient(main.app) as client:
        assert client.get("/api/list-users").json() == {"users": ["fenglu", "h8liu", "rkapoor"]}
        home = client.post("/api/list-home", json={"user": "fenglu"}).json()["tribs"]
        assert [t["message"] for t in home] == [
            "Hello, world.",
            "Just tribble it.",
            "Double tribble.",
            "Triple tribble.",
        ]

import pytest
from fastapi.testclient import TestClient

from api.backend import build_backend
from api.main import app, parse_bound
from producer.repository import HelmetRepository
from safety.models import EventStatus


@pytest.fixture
def backend():
    b = build_backend(HelmetRepository.seed(seed=11), latency_scale=0)
    app.state.backend = b
    yield b
    app.state.backend = None


@pytest.fixture
def client(backend):
    return TestClient(app)


def _login(client):
    r = client.post("/auth/login", json={"email": "supervisor@example.com", "password": "password123"})
    assert r.status_code == 200
    return r.json()["token"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_workers(client):
    workers = client.get("/workers").json()
    assert [w["id"] for w in workers] == ["1", "2", "3", "4"]
    assert workers[0]["helmetId"] == "H001"
    assert client.get("/workers/2").json()["name"] == "Maria Rodriguez"
    assert client.get("/workers/99").status_code == 404


def test_helmet(client):
    helmet = client.get("/helmets/H003").json()
    assert helmet["workerId"] == "3"
    assert 0 <= helmet["batteryLevel"] <= 100
    assert client.get("/helmets/H999").status_code == 404


def test_current_vitals_carry_classifications_and_alerts(client):
    body = client.get("/workers/1/vitals/current").json()
    assert body["sample"]["workerId"] == "1"
    assert "heartRate" in body["sample"]
    assert [c["signal"] for c in body["classifications"]] == [
        "oximeter",
        "heart_rate",
        "temperature",
        "humidity",
        "gas_level",
        "accelerometer",
    ]
    assert all(c["color"] in {"green", "amber", "red"} for c in body["classifications"])
    assert isinstance(body["alerts"], list)


def test_current_vitals_unknown_worker(client):
    assert client.get("/workers/99/vitals/current").status_code == 404
    assert client.get("/workers/99/vitals/history").status_code == 404


def test_history_is_oldest_first(client):
    history = client.get("/workers/1/vitals/history").json()
    assert len(history) == 24
    stamps = [row["timestamp"] for row in history]
    assert stamps == sorted(stamps)


def test_events_are_paged(client):
    body = client.get("/events").json()
    assert body["totalItems"] == 20
    assert body["pageSize"] == 10
    assert len(body["items"]) == 10
    assert body["hasNext"] is True

    last = client.get("/events", params={"page": 5}).json()
    assert last["page"] == 2
    assert last["hasNext"] is False


def test_events_filtered_by_status(client, backend):
    expected = [e.id for e in backend.repo.list_events() if e.status is EventStatus.NEW]
    body = client.get("/events", params={"status": "new", "page_size": 50}).json()
    assert [e["id"] for e in body["items"]] == expected
    assert all(e["status"] == "new" for e in body["items"])


def test_events_search_matches_worker_name(client, backend):
    expected = [e.id for e in backend.repo.list_events() if e.worker_id == "2"]
    body = client.get("/events", params={"search": "MARIA", "page_size": 50}).json()
    assert [e["id"] for e in body["items"]] == expected


def test_events_rejects_bad_dates(client):
    assert client.get("/events", params={"from_date": "yesterday"}).status_code == 422


def test_parse_bound_extends_bare_upper_dates_to_end_of_day():
    upper = parse_bound("2024-05-01", end_of_day=True)
    assert (upper.hour, upper.minute, upper.tzinfo is not None) == (23, 59, True)
    lower = parse_bound("2024-05-01")
    assert (lower.hour, lower.minute) == (0, 0)
    assert parse_bound(None) is None


def test_resolve_event_records_session_user(client, backend):
    token = _login(client)
    event = next(e for e in backend.repo.list_events() if e.status is not EventStatus.RESOLVED)
    r = client.patch(
        f"/events/{event.id}/status", json={"status": "resolved"}, headers={"X-Session-Token": token}
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "resolved"
    assert body["resolvedBy"] == "John Supervisor"
    assert body["resolvedAt"] is not None


def test_acknowledge_without_session_uses_default_actor(client, backend):
    event = next(e for e in backend.repo.list_events() if e.status is not EventStatus.RESOLVED)
    body = client.patch(f"/events/{event.id}/status", json={"status": "acknowledged"}).json()
    assert body["status"] == "acknowledged"
    assert body["resolvedAt"] is None


def test_update_unknown_event(client):
    r = client.patch("/events/E999/status", json={"status": "resolved"})
    assert r.status_code == 404


def test_update_rejects_unknown_status(client):
    r = client.patch("/events/E1/status", json={"status": "closed"})
    assert r.status_code == 422


def test_session_lifecycle(client):
    assert client.get("/auth/session").status_code == 401
    token = _login(client)
    me = client.get("/auth/session", headers={"X-Session-Token": token}).json()
    assert me["user"]["email"] == "supervisor@example.com"

    client.post("/auth/logout", headers={"X-Session-Token": token})
    assert client.get("/auth/session", headers={"X-Session-Token": token}).status_code == 401


def test_login_and_register_errors(client):
    r = client.post("/auth/login", json={"email": "supervisor@example.com", "password": "nope"})
    assert r.status_code == 401
    r = client.post("/auth/register", json={"name": "X", "email": "admin@example.com", "password": "y"})
    assert r.status_code == 409
    r = client.post("/auth/register", json={"name": "Pat", "email": "pat@example.com", "password": "y"})
    assert r.status_code == 200
    assert r.json()["user"]["role"] == "supervisor"

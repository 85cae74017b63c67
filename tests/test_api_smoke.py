import importlib

import pytest
from fastapi.testclient import TestClient

from eventsync.core.usecases.tokens import issue_access_token

SECRET = "api-test-secret-with-enough-bytes-for-hs256"


def _reload_app(monkeypatch, tmp_path, **env):
    monkeypatch.setenv("AUTH_JWT_SECRET", SECRET)
    monkeypatch.setenv("EVENTSYNC_DATABASE_PATH", str(tmp_path / "eventsync_test.db"))
    monkeypatch.setenv("FRONTEND_URL", "http://localhost:3000")
    for key, value in env.items():
        monkeypatch.setenv(key, value)

    # Ensure settings are re-read with the temp env.
    import eventsync.config as cfg

    cfg.get_settings.cache_clear()
    import eventsync.api.main as main

    importlib.reload(main)
    return main.app


def _auth(subject: str = "alice", **kwargs) -> dict:
    token = issue_access_token(subject=subject, secret=kwargs.pop("secret", SECRET), **kwargs)
    return {"Authorization": f"Bearer {token}"}


def test_event_attendee_task_crud(monkeypatch, tmp_path):
    app = _reload_app(monkeypatch, tmp_path)
    headers = _auth()
    with TestClient(app) as client:
        resp = client.post("/api/events", json={"name": "Launch party", "location": "HQ"}, headers=headers)
        assert resp.status_code == 200, resp.text
        event = resp.json()
        assert event["id"].startswith("evt_")
        assert event["created_by"] == "alice"

        resp = client.post("/api/attendees", json={"event_id": event["id"], "name": "Bob"}, headers=headers)
        assert resp.status_code == 200, resp.text
        attendee = resp.json()

        resp = client.post(
            "/api/tasks",
            json={"event_id": event["id"], "name": "Book venue", "assignee_id": attendee["id"]},
            headers=headers,
        )
        assert resp.status_code == 200, resp.text
        task = resp.json()
        assert task["status"] == "pending"

        resp = client.get(f"/api/tasks?event_id={event['id']}", headers=headers)
        assert [t["id"] for t in resp.json()["tasks"]] == [task["id"]]

        resp = client.put(f"/api/events/{event['id']}", json={"location": "Rooftop"}, headers=headers)
        assert resp.json()["location"] == "Rooftop"

        resp = client.delete(f"/api/attendees/{attendee['id']}", headers=headers)
        assert resp.status_code == 200
        assert client.get(f"/api/tasks/{task['id']}", headers=headers).json()["assignee_id"] is None

        resp = client.delete(f"/api/events/{event['id']}", headers=headers)
        assert resp.status_code == 200
        assert client.get(f"/api/tasks/{task['id']}", headers=headers).status_code == 404


def test_missing_references_are_404(monkeypatch, tmp_path):
    app = _reload_app(monkeypatch, tmp_path)
    headers = _auth()
    with TestClient(app) as client:
        resp = client.post("/api/tasks", json={"event_id": "evt_missing", "name": "x"}, headers=headers)
        assert resp.status_code == 404
        assert resp.json()["message"] == "Event not found"
        assert client.put("/api/tasks/tsk_missing/status", json={"status": "done"}, headers=headers).status_code == 404


@pytest.mark.parametrize(
    "headers, code",
    [
        ({}, "auth_missing"),
        ({"Authorization": "Bearer not-a-token"}, "auth_malformed"),
        (_auth(secret="a-completely-different-secret-value!!"), "auth_invalid_signature"),
        (_auth(ttl_minutes=1, now=1_000_000), "auth_expired"),
    ],
)
def test_protected_routes_reject_bad_credentials(monkeypatch, tmp_path, headers, code):
    app = _reload_app(monkeypatch, tmp_path)
    with TestClient(app) as client:
        resp = client.get("/api/events", headers=headers)
        assert resp.status_code == 401
        body = resp.json()
        assert body["code"] == code
        assert body["details"]["correlation_id"]
        assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_whoami_and_open_endpoints(monkeypatch, tmp_path):
    app = _reload_app(monkeypatch, tmp_path)
    with TestClient(app) as client:
        assert client.get("/api/health").json()["status"] == "ok"
        assert client.get("/metrics").status_code == 200

        resp = client.get("/api/auth/whoami", headers={**_auth("carol"), "X-Correlation-ID": "corr-1"})
        assert resp.status_code == 200
        assert resp.json()["subject"] == "carol"
        assert resp.headers["X-Correlation-ID"] == "corr-1"

        readiness = client.get("/api/system/readiness", headers=_auth()).json()["checks"]
        assert readiness["database"]["ok"] is True
        assert readiness["auth"]["ok"] is True
        assert readiness["realtime"]["connections"] == 0


def test_dev_token_route(monkeypatch, tmp_path):
    app = _reload_app(monkeypatch, tmp_path, AUTH_ADMIN_USERNAME="admin", AUTH_ADMIN_PASSWORD="s3cret")
    with TestClient(app) as client:
        assert client.post("/api/auth/token", json={"username": "admin", "password": "nope"}).status_code == 401
        resp = client.post("/api/auth/token", json={"username": "admin", "password": "s3cret"})
        assert resp.status_code == 200, resp.text
        token = resp.json()["access_token"]
        assert client.get("/api/events", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_startup_without_secret_is_fatal(monkeypatch, tmp_path):
    app = _reload_app(monkeypatch, tmp_path, AUTH_JWT_SECRET="")
    from eventsync.config import ConfigurationError

    with pytest.raises(ConfigurationError):
        with TestClient(app):
            pass

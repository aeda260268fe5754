"""Tests for the HTTP API."""

from datetime import date
from unittest.mock import MagicMock

import pytest

from focusdesk.config import Config
from focusdesk.core.sync import RemoteEvent
from focusdesk.core.tasks import Task
from focusdesk.core.users import GoogleIdentity, OAuthTokens
from focusdesk.errors import AuthRequired, UpstreamUnavailable
from focusdesk.sync import SyncScheduler
from focusdesk.web import create_app
from focusdesk.workflows import Services


@pytest.fixture
def config():
    return Config(session_secret="test-secret", frontend_url="http://localhost:5173")


@pytest.fixture
def oauth():
    return MagicMock()


@pytest.fixture
def services(config, db, task_store, user_store, fake_calendar, oauth, now):
    scheduler = SyncScheduler(users=user_store, tasks=task_store, calendar=fake_calendar, clock=lambda: now)
    return Services(
        config=config,
        db=db,
        tasks=task_store,
        users=user_store,
        oauth=oauth,
        scheduler=scheduler,
        clock=lambda: now,
    )


@pytest.fixture
def client(services):
    app = create_app(services=services)
    app.testing = True
    return app.test_client()


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def logged_in(client, user):
    with client.session_transaction() as sess:
        sess["user_id"] = user.id
    return client


class TestAuth:
    def test_google_returns_consent_url(self, client, oauth):
        oauth.authorization_url.return_value = "https://accounts.google.com/o/oauth2/auth?x"
        resp = client.get("/api/auth/google")
        assert resp.status_code == 200
        assert resp.get_json() == {"url": "https://accounts.google.com/o/oauth2/auth?x"}

    def test_callback_creates_user_and_session(self, client, oauth, user_store):
        oauth.exchange_code.return_value = (
            GoogleIdentity(google_id="g-new", email="new@example.com"),
            OAuthTokens(access_token="a", refresh_token="r"),
        )

        resp = client.get("/api/auth/callback?code=abc")

        assert resp.status_code == 302
        assert resp.headers["Location"] == "http://localhost:5173?auth=success"
        oauth.exchange_code.assert_called_once_with("abc")
        status = client.get("/api/auth/status").get_json()
        assert status == {"authenticated": True, "email": "new@example.com"}
        assert user_store.get_by_google_id("g-new").refresh_token == "r"

    def test_relogin_keeps_refresh_token(self, client, oauth, user, user_store):
        oauth.exchange_code.return_value = (
            GoogleIdentity(google_id=user.google_id, email=user.email),
            OAuthTokens(access_token="fresh", refresh_token=None),
        )

        client.get("/api/auth/callback?code=abc")

        stored = user_store.get(user.id)
        assert stored.access_token == "fresh"
        assert stored.refresh_token == "refresh-token"
        assert len(user_store.list_all()) == 1

    def test_callback_failure_redirects(self, client, oauth):
        oauth.exchange_code.side_effect = AuthRequired("bad code")
        resp = client.get("/api/auth/callback?code=bad")
        assert resp.headers["Location"] == "http://localhost:5173?auth=failed"
        assert client.get("/api/auth/status").get_json() == {"authenticated": False}

    def test_status_logged_out(self, client):
        assert client.get("/api/auth/status").get_json() == {"authenticated": False}

    def test_logout(self, logged_in):
        assert logged_in.post("/api/auth/logout").get_json() == {"success": True}
        assert logged_in.get("/api/auth/status").get_json() == {"authenticated": False}


class TestSessionRequired:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/tasks"),
            ("post", "/api/tasks"),
            ("put", "/api/tasks/abc"),
            ("delete", "/api/tasks/abc"),
            ("post", "/api/tasks/abc/pomodoro"),
            ("post", "/api/sync"),
        ],
    )
    def test_requires_session(self, client, method, path):
        resp = getattr(client, method)(path, json={})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Not authenticated"}

    def test_session_for_deleted_user(self, client):
        with client.session_transaction() as sess:
            sess["user_id"] = "gone"
        assert client.get("/api/tasks").status_code == 401


class TestTasks:
    def test_create_and_list(self, logged_in, user):
        resp = logged_in.post("/api/tasks", json={"title": "Plan week", "dueDate": "2025-01-10"})
        assert resp.status_code == 201
        created = resp.get_json()
        assert created["title"] == "Plan week"
        assert created["progress"] == "Not Started"
        assert created["ownerId"] == user.id

        listed = logged_in.get("/api/tasks").get_json()
        assert [t["_id"] for t in listed] == [created["_id"]]

    def test_create_ignores_client_owner_and_deleted(self, logged_in, user):
        created = logged_in.post(
            "/api/tasks", json={"title": "x", "ownerId": "someone-else", "deleted": True}
        ).get_json()
        assert created["ownerId"] == user.id
        assert created["deleted"] is False

    def test_create_validation(self, logged_in):
        resp = logged_in.post("/api/tasks", json={"title": "x", "progress": "Someday"})
        assert resp.status_code == 400
        assert "progress" in resp.get_json()["error"]

        assert logged_in.post("/api/tasks", json={}).status_code == 400
        assert logged_in.post("/api/tasks", data="not json").status_code == 400

    def test_update_progress_lifecycle(self, logged_in, now):
        task_id = logged_in.post("/api/tasks", json={"title": "x"}).get_json()["_id"]

        finished = logged_in.put(f"/api/tasks/{task_id}", json={"progress": "Done"}).get_json()
        assert finished["completed"] is True
        assert finished["completedAt"] == now.isoformat()

        reopened = logged_in.put(f"/api/tasks/{task_id}", json={"progress": "In Progress"}).get_json()
        assert reopened["completed"] is False
        assert reopened["completedAt"] is None

    def test_update_other_owner_is_not_found(self, logged_in, task_store, make_user):
        other = make_user(google_id="g-other", email="other@example.com")
        theirs = task_store.create(Task(id="", owner_id=other.id, title="Theirs"))

        resp = logged_in.put(f"/api/tasks/{theirs.id}", json={"title": "Mine now"})

        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Task not found"}
        assert task_store.get(theirs.id, other.id).title == "Theirs"

    def test_delete_is_soft(self, logged_in, user, task_store):
        task_id = logged_in.post("/api/tasks", json={"title": "x"}).get_json()["_id"]

        assert logged_in.delete(f"/api/tasks/{task_id}").get_json() == {"success": True}
        assert logged_in.get("/api/tasks").get_json() == []
        assert task_store.count(user.id, include_deleted=True) == 1

    def test_update_deleted_is_not_found(self, logged_in):
        task_id = logged_in.post("/api/tasks", json={"title": "x"}).get_json()["_id"]
        logged_in.delete(f"/api/tasks/{task_id}")
        assert logged_in.put(f"/api/tasks/{task_id}", json={"title": "y"}).status_code == 404

    def test_delete_missing(self, logged_in):
        assert logged_in.delete("/api/tasks/missing").status_code == 404

    def test_pomodoro_increments(self, logged_in):
        task_id = logged_in.post("/api/tasks", json={"title": "x"}).get_json()["_id"]
        logged_in.post(f"/api/tasks/{task_id}/pomodoro")
        task = logged_in.post(f"/api/tasks/{task_id}/pomodoro").get_json()
        assert task["pomodoroCount"] == 2


class TestSync:
    def test_sync_returns_counts(self, logged_in, user, fake_calendar):
        fake_calendar.responses[user.id] = [RemoteEvent(id="g1", title="Write report", start=date(2025, 1, 10))]

        assert logged_in.post("/api/sync").get_json() == {"synced": 1, "total": 1}
        assert logged_in.post("/api/sync").get_json() == {"synced": 0, "total": 1}

        tasks = logged_in.get("/api/tasks").get_json()
        assert tasks[0]["googleEventId"] == "g1"

    def test_sync_auth_required(self, logged_in, user, fake_calendar):
        fake_calendar.responses[user.id] = AuthRequired("Google rejected the stored credential")
        resp = logged_in.post("/api/sync")
        assert resp.status_code == 401

    def test_sync_upstream_unavailable(self, logged_in, user, fake_calendar):
        fake_calendar.responses[user.id] = UpstreamUnavailable("HTTP 503")
        resp = logged_in.post("/api/sync")
        assert resp.status_code == 502
        assert resp.get_json() == {"error": "HTTP 503"}


def test_cors_allows_configured_origin(client):
    resp = client.get("/api/auth/status", headers={"Origin": "http://localhost:5173"})
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
    assert resp.headers["Access-Control-Allow-Credentials"] == "true"

"""Integration tests for API endpoints.

These tests verify API endpoints work correctly end-to-end. Google token
verification is patched out; everything else runs against an in-memory DB.
"""

import re
from datetime import timedelta
from unittest.mock import patch

import jwt
import pytest

from incantations.errors import IdentityRejected
from incantations.models.user import ExternalIdentity


def _login(test_client, email="a@x.com", name="A"):
    identity = ExternalIdentity(subject=f"google-{email}", email=email, name=name)
    with patch("incantations.api.app.verify_google_token", return_value=identity):
        return test_client.post("/api/auth/google", json={"credential": "google-id-token"})


class TestHealth:
    def test_health(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestAuthEndpoints:
    """Login, refresh, logout and the current-user endpoint."""

    def test_login_creates_user_and_sets_cookie(self, test_client, token_authority):
        response = _login(test_client, email="new@x.com", name="New")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["user"]["email"] == "new@x.com"
        assert data["user"]["name"] == "New"
        assert response.cookies.get("auth_token") == data["token"]
        assert "httponly" in response.headers["set-cookie"].lower()
        assert token_authority.verify(data["token"]).user_id == data["user"]["id"]

    def test_login_twice_returns_same_user(self, test_client):
        first = _login(test_client).json()
        second = _login(test_client).json()

        assert first["user"]["id"] == second["user"]["id"]

    def test_rejected_google_token(self, test_client):
        with patch(
            "incantations.api.app.verify_google_token",
            side_effect=IdentityRejected("Invalid Google token"),
        ):
            response = test_client.post("/api/auth/google", json={"credential": "bogus"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid Google token"
        assert "auth_token" not in response.cookies

    def test_login_requires_credential(self, test_client):
        response = test_client.post("/api/auth/google", json={})

        assert response.status_code == 400
        assert "credential" in response.json()["fields"]

    def test_me_with_bearer_token(self, test_client, auth_headers):
        response = test_client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["email"] == "a@x.com"

    def test_me_with_cookie(self, test_client):
        _login(test_client, email="cookie@x.com")

        response = test_client.get("/api/auth/me")

        assert response.status_code == 200
        assert response.json()["email"] == "cookie@x.com"

    def test_refresh_issues_fresh_token(self, test_client, auth_headers, token_authority, test_user):
        response = test_client.post("/api/auth/refresh", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert token_authority.verify(data["token"]).user_id == test_user.id
        assert response.cookies.get("auth_token") == data["token"]

    def test_cookie_lifetime_matches_token_lifetime(self, test_client):
        from incantations.api.app import app
        from incantations.auth.dependencies import get_token_authority
        from incantations.auth.jwt import TokenAuthority

        authority = TokenAuthority(secret_key="test-secret-key", lifetime=timedelta(days=7))
        app.dependency_overrides[get_token_authority] = lambda: authority

        response = _login(test_client)

        claims = jwt.decode(response.json()["token"], options={"verify_signature": False})
        max_age = re.search(r"Max-Age=(\d+)", response.headers["set-cookie"]).group(1)
        assert int(max_age) == claims["exp"] - claims["iat"] == 7 * 24 * 60 * 60

    def test_refresh_cookie_lifetime_matches_token_lifetime(self, test_client, auth_headers):
        response = test_client.post("/api/auth/refresh", headers=auth_headers)

        claims = jwt.decode(response.json()["token"], options={"verify_signature": False})
        max_age = re.search(r"Max-Age=(\d+)", response.headers["set-cookie"]).group(1)
        assert int(max_age) == claims["exp"] - claims["iat"]

    def test_logout_clears_cookie(self, test_client):
        _login(test_client)

        response = test_client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        set_cookie = response.headers["set-cookie"]
        assert "auth_token=" in set_cookie
        assert "Max-Age=0" in set_cookie

    def test_missing_token(self, test_client):
        response = test_client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["error"] == "No token provided"

    def test_garbage_token(self, test_client):
        response = test_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid token"

    def test_expired_token(self, test_client, frozen_authority, test_user):
        # Issued in 2024 with a 30 day lifetime; the app checks against the real clock.
        token = frozen_authority().issue(test_user)

        response = test_client.get("/api/sync/download", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"] == "Token expired"

    def test_token_for_deleted_user_is_rejected(self, test_client, token_authority, test_user, db_session):
        from incantations.database.models import UserDB

        headers = {"Authorization": f"Bearer {token_authority.issue(test_user)}"}
        db_session.query(UserDB).filter(UserDB.id == test_user.id).delete()
        db_session.commit()

        assert test_client.get("/api/auth/me", headers=headers).status_code == 401


class TestSyncEndpoints:
    """Snapshot upload/download and preference overwrite."""

    def test_login_upload_download_scenario(self, test_client):
        assert _login(test_client, email="a@x.com").status_code == 200

        upload = test_client.post(
            "/api/sync/upload",
            json={
                "tasks": [
                    {
                        "id": "local-1",
                        "title": "Buy milk",
                        "priority": "low",
                        "status": "pending",
                        "tags": [],
                        "createdAt": "2024-01-01T00:00:00Z",
                        "updatedAt": "2024-01-01T00:00:00Z",
                    }
                ],
                "conversations": [],
                "preferences": {},
            },
        )
        assert upload.status_code == 200
        assert upload.json() == {
            "success": True,
            "message": "Data uploaded successfully",
            "tasks": 1,
            "conversations": 0,
        }

        download = test_client.get("/api/sync/download")
        assert download.status_code == 200
        data = download.json()
        assert [t["title"] for t in data["tasks"]] == ["Buy milk"]
        assert data["tasks"][0]["createdAt"] == "2024-01-01T00:00:00Z"
        assert data["conversations"] == []
        assert data["preferences"] == {}

    def test_full_snapshot_round_trip(self, test_client, auth_headers, snapshot_payload):
        test_client.post("/api/sync/upload", json=snapshot_payload, headers=auth_headers)

        data = test_client.get("/api/sync/download", headers=auth_headers).json()

        assert len(data["tasks"]) == 2
        assert len(data["conversations"][0]["messages"]) == 2
        assert data["preferences"] == snapshot_payload["preferences"]

    def test_invalid_upload_is_rejected_and_nothing_changes(self, test_client, auth_headers, snapshot_payload):
        test_client.post("/api/sync/upload", json=snapshot_payload, headers=auth_headers)
        before = test_client.get("/api/sync/download", headers=auth_headers).json()

        snapshot_payload["tasks"][0]["priority"] = "critical"
        snapshot_payload["tasks"][1]["title"] = ""
        response = test_client.post("/api/sync/upload", json=snapshot_payload, headers=auth_headers)

        assert response.status_code == 400
        fields = response.json()["fields"]
        assert "tasks.0.priority" in fields
        assert "tasks.1.title" in fields
        assert test_client.get("/api/sync/download", headers=auth_headers).json() == before

    def test_upload_requires_authentication(self, test_client, snapshot_payload):
        response = test_client.post("/api/sync/upload", json=snapshot_payload)

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_users_do_not_see_each_other(self, test_client, auth_headers, token_authority, other_user, snapshot_payload):
        other_headers = {"Authorization": f"Bearer {token_authority.issue(other_user)}"}
        test_client.post("/api/sync/upload", json=snapshot_payload, headers=auth_headers)

        data = test_client.get("/api/sync/download", headers=other_headers).json()

        assert data == {"tasks": [], "conversations": [], "preferences": {}}

    def test_overwrite_preferences(self, test_client, auth_headers):
        test_client.post("/api/user/preferences/sync", json={"localPreferences": {"a": 1}}, headers=auth_headers)

        response = test_client.post("/api/sync/preferences", json={"b": 2}, headers=auth_headers)

        assert response.status_code == 200
        assert test_client.get("/api/user/preferences", headers=auth_headers).json() == {"b": 2}

    def test_overlong_title_is_rejected_before_storage(self, test_client, auth_headers, snapshot_payload):
        snapshot_payload["tasks"][0]["title"] = "x" * 600

        response = test_client.post("/api/sync/upload", json=snapshot_payload, headers=auth_headers)

        assert response.status_code == 400
        assert "tasks.0.title" in response.json()["fields"]
        assert test_client.get("/api/sync/download", headers=auth_headers).json()["tasks"] == []

    def test_download_tolerates_rows_that_would_fail_upload_rules(self, test_client, auth_headers, db_session, test_user):
        from incantations.database.models import TaskDB

        # Written directly, as rows stored before the current upload rules would be.
        db_session.add(TaskDB(user_id=test_user.id, title="   "))
        db_session.commit()

        response = test_client.get("/api/sync/download", headers=auth_headers)

        assert response.status_code == 200
        assert [t["title"] for t in response.json()["tasks"]] == ["   "]

    def test_overwrite_preferences_requires_object(self, test_client, auth_headers):
        response = test_client.post("/api/sync/preferences", json=["dark"], headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["fields"] == ["preferences"]


class TestUserEndpoints:
    """Profile and preference endpoints."""

    def test_get_preferences_defaults_to_empty(self, test_client, auth_headers):
        response = test_client.get("/api/user/preferences", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {}

    def test_put_preferences_replaces(self, test_client, auth_headers):
        test_client.put("/api/user/preferences", json={"a": 1, "b": 2}, headers=auth_headers)
        response = test_client.put("/api/user/preferences", json={"c": 3}, headers=auth_headers)

        assert response.status_code == 200
        assert test_client.get("/api/user/preferences", headers=auth_headers).json() == {"c": 3}

    def test_sync_preferences_cloud_wins(self, test_client, auth_headers):
        test_client.put("/api/user/preferences", json={"b": 3, "c": 4}, headers=auth_headers)

        response = test_client.post(
            "/api/user/preferences/sync",
            json={"localPreferences": {"a": 1, "b": 2}},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"preferences": {"a": 1, "b": 3, "c": 4}}
        assert test_client.get("/api/user/preferences", headers=auth_headers).json() == {"a": 1, "b": 3, "c": 4}

    def test_profile(self, test_client, auth_headers):
        response = test_client.patch("/api/user/profile", json={"name": "Renamed"}, headers=auth_headers)
        assert response.status_code == 200

        profile = test_client.get("/api/user/profile", headers=auth_headers).json()
        assert profile["name"] == "Renamed"
        assert profile["email"] == "a@x.com"


class TestTaskEndpoints:
    """Test task CRUD API endpoints."""

    def test_create_task(self, test_client, auth_headers):
        """Test POST /api/tasks endpoint."""
        response = test_client.post(
            "/api/tasks",
            json={"title": "Test Task", "priority": "high", "tags": ["home"]},
            headers=auth_headers,
        )

        assert response.status_code == 201
        task = response.json()
        assert task["title"] == "Test Task"
        assert task["priority"] == "high"
        assert task["status"] == "pending"
        assert task["tags"] == ["home"]
        assert task["createdAt"].endswith("Z")

    def test_create_task_requires_title(self, test_client, auth_headers):
        response = test_client.post("/api/tasks", json={"title": ""}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["fields"] == ["title"]

    @pytest.mark.parametrize("title", ["   ", "\t"])
    def test_blank_title_is_rejected_and_download_still_works(self, test_client, auth_headers, title):
        created = test_client.post("/api/tasks", json={"title": title}, headers=auth_headers)

        assert created.status_code == 400
        assert created.json()["fields"] == ["title"]
        download = test_client.get("/api/sync/download", headers=auth_headers)
        assert download.status_code == 200
        assert download.json()["tasks"] == []

    def test_update_to_blank_title_is_rejected(self, test_client, auth_headers):
        created = test_client.post("/api/tasks", json={"title": "Keep"}, headers=auth_headers).json()

        response = test_client.patch(f"/api/tasks/{created['id']}", json={"title": "  "}, headers=auth_headers)

        assert response.status_code == 400
        assert test_client.get(f"/api/tasks/{created['id']}", headers=auth_headers).json()["title"] == "Keep"
        assert test_client.get("/api/sync/download", headers=auth_headers).status_code == 200

    def test_get_task(self, test_client, auth_headers, token_authority, other_user):
        created = test_client.post("/api/tasks", json={"title": "Read me"}, headers=auth_headers).json()
        other_headers = {"Authorization": f"Bearer {token_authority.issue(other_user)}"}

        response = test_client.get(f"/api/tasks/{created['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == created
        assert test_client.get(f"/api/tasks/{created['id']}", headers=other_headers).status_code == 404
        assert test_client.get("/api/tasks/9999", headers=auth_headers).status_code == 404

    def test_list_update_delete(self, test_client, auth_headers):
        created = test_client.post("/api/tasks", json={"title": "First"}, headers=auth_headers).json()

        updated = test_client.patch(
            f"/api/tasks/{created['id']}",
            json={"status": "completed", "dueDate": "2024-03-01T12:00:00Z"},
            headers=auth_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["status"] == "completed"
        assert updated.json()["dueDate"] == "2024-03-01T12:00:00Z"
        assert updated.json()["title"] == "First"

        listed = test_client.get("/api/tasks", headers=auth_headers).json()
        assert [t["id"] for t in listed] == [created["id"]]

        assert test_client.delete(f"/api/tasks/{created['id']}", headers=auth_headers).status_code == 200
        assert test_client.get("/api/tasks", headers=auth_headers).json() == []

    @pytest.mark.parametrize("method", ["patch", "delete"])
    def test_unknown_task(self, test_client, auth_headers, method):
        kwargs = {"json": {"title": "x"}} if method == "patch" else {}
        response = getattr(test_client, method)("/api/tasks/9999", headers=auth_headers, **kwargs)

        assert response.status_code == 404

    def test_other_users_task_is_not_found(self, test_client, auth_headers, token_authority, other_user):
        other_headers = {"Authorization": f"Bearer {token_authority.issue(other_user)}"}
        created = test_client.post("/api/tasks", json={"title": "Mine"}, headers=auth_headers).json()

        response = test_client.delete(f"/api/tasks/{created['id']}", headers=other_headers)

        assert response.status_code == 404
        assert len(test_client.get("/api/tasks", headers=auth_headers).json()) == 1

"""HTTP surface: end-to-end flow, cookies, validation and the error envelope."""
from importlib.metadata import version

import pytest
from sqlalchemy.exc import OperationalError

from api import create_app
from api.config import ProductionConfig
from api.health import VERSION
from services.exceptions import ConfigurationError

API = "/api/v1/auth"


def _register(client, username="alice", password="pw1", **extra):
    return client.post(f"{API}/register", json={"username": username, "password": password, **extra})


def _login(client, username="alice", password="pw1"):
    return client.post(f"{API}/login", json={"username": username, "password": password})


def _access_cookie(response):
    return [h for h in response.headers.getlist("Set-Cookie") if h.startswith("jwt_token=")]


class TestEndToEnd:
    def test_register_activate_login_refresh(self, client, app_store):
        resp = _register(client)
        assert resp.status_code == 201
        body = resp.get_json()["data"]
        assert body["username"] == "alice"
        assert body["active"] is False
        assert "secret_token" not in body
        assert "password" not in body and "password_hash" not in body

        resp = _login(client)
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "INVALID_CREDENTIAL"

        secret_token = app_store.find_user_by_username("alice").secret_token
        resp = client.post(f"{API}/activate-account", json={"secret_token": secret_token})
        assert resp.status_code == 200
        assert resp.get_json() == {"message": "OK"}

        resp = _login(client)
        assert resp.status_code == 200
        tokens = resp.get_json()
        assert tokens["token_type"] == "bearer"
        assert tokens["access_token"] and tokens["refresh_token"]
        assert tokens["user_id"] == body["id"]

        resp = client.post(
            f"{API}/refresh-token",
            json={"refresh_token": tokens["refresh_token"], "user_id": tokens["user_id"]},
        )
        assert resp.status_code == 200
        rotated = resp.get_json()
        assert rotated["refresh_token"] != tokens["refresh_token"]
        assert rotated["user_id"] == tokens["user_id"]

        resp = client.post(
            f"{API}/refresh-token",
            json={"refresh_token": tokens["refresh_token"], "user_id": tokens["user_id"]},
        )
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "INVALID_CREDENTIAL"

    def test_second_activation_fails(self, client, app_store):
        _register(client)
        secret_token = app_store.find_user_by_username("alice").secret_token

        assert client.post(f"{API}/activate-account", json={"secret_token": secret_token}).status_code == 200
        resp = client.post(f"{API}/activate-account", json={"secret_token": secret_token})
        assert resp.status_code == 401

    def test_new_password_flow(self, client, app_store):
        _register(client)
        secret_token = app_store.find_user_by_username("alice").secret_token
        client.post(f"{API}/activate-account", json={"secret_token": secret_token})
        reset_token = app_store.find_user_by_username("alice").secret_token

        resp = client.post(f"{API}/new-password", json={"secret_token": reset_token, "password": "pw2"})
        assert resp.status_code == 200
        assert _login(client, password="pw2").status_code == 200
        assert _login(client, password="pw1").status_code == 401

        resp = client.post(f"{API}/new-password", json={"secret_token": reset_token, "password": "pw3"})
        assert resp.status_code == 401


class TestCookies:
    @pytest.fixture
    def tokens(self, client, app_store):
        _register(client)
        secret_token = app_store.find_user_by_username("alice").secret_token
        client.post(f"{API}/activate-account", json={"secret_token": secret_token})
        return _login(client)

    def test_login_sets_http_only_cookie(self, tokens, app):
        cookies = _access_cookie(tokens)
        assert len(cookies) == 1
        cookie = cookies[0]
        assert f"jwt_token={tokens.get_json()['access_token']}" in cookie
        assert "HttpOnly" in cookie
        assert f"Max-Age={app.config['JWT_TOKEN_EXPIRES'] * 60}" in cookie

    def test_refresh_sets_cookie(self, client, tokens):
        body = tokens.get_json()
        resp = client.post(
            f"{API}/refresh-token",
            json={"refresh_token": body["refresh_token"], "user_id": body["user_id"]},
        )
        assert f"jwt_token={resp.get_json()['access_token']}" in _access_cookie(resp)[0]

    def test_me_with_bearer_header(self, client, tokens):
        body = tokens.get_json()
        resp = client.get(f"{API}/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["user_id"] == body["user_id"]
        assert data["roles"] == ["user"]

    def test_me_with_cookie(self, client, tokens):
        # the test client replays the cookie set at login
        resp = client.get(f"{API}/me")
        assert resp.status_code == 200

    def test_me_without_token(self, app):
        resp = app.test_client().get(f"{API}/me")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "INVALID_CREDENTIAL"

    def test_me_with_bad_token(self, app):
        resp = app.test_client().get(f"{API}/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestValidationAndErrors:
    def test_duplicate_registration_conflicts(self, client):
        assert _register(client).status_code == 201
        resp = _register(client, password="other")
        assert resp.status_code == 409
        assert resp.get_json() == {
            "error": "CONFLICT",
            "message": "The 'username' or 'email' is already registered",
            "status": 409,
        }

    @pytest.mark.parametrize(
        "payload",
        [{}, {"username": "alice"}, {"password": "pw1"}, {"username": "", "password": "pw1"}],
    )
    def test_register_requires_username_and_password(self, client, payload):
        resp = client.post(f"{API}/register", json=payload)
        assert resp.status_code == 422
        assert resp.get_json()["error"] == "VALIDATION_ERROR"
        assert "details" in resp.get_json()

    def test_register_rejects_bad_email(self, client):
        assert _register(client, email="not-an-email").status_code == 422

    def test_activation_token_must_be_uuid(self, client):
        resp = client.post(f"{API}/activate-account", json={"secret_token": "abc"})
        assert resp.status_code == 422
        assert "secret_token" in resp.get_json()["details"]

    def test_login_requires_identifier(self, client):
        resp = client.post(f"{API}/login", json={"password": "pw1"})
        assert resp.status_code == 422

    def test_refresh_requires_both_fields(self, client):
        resp = client.post(f"{API}/refresh-token", json={"user_id": "x"})
        assert resp.status_code == 422

    def test_unknown_login_is_401(self, client):
        resp = _login(client, username="ghost")
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Invalid 'username' or 'password'"

    def test_store_failure_is_opaque_500(self, client, app_store, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT users", {}, Exception("connection refused on db-01:5432"))

        monkeypatch.setattr(app_store, "find_user_by_username", broken)

        resp = _login(client)
        assert resp.status_code == 500
        body = resp.get_json()
        assert body == {"error": "STORE_ERROR", "message": "An unexpected error occurred", "status": 500}

    def test_unknown_route_uses_envelope(self, client):
        resp = client.get("/api/v1/nope")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "NOT_FOUND"


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"
    assert resp.get_json()["version"] == VERSION == version("credential-service")


def test_auth_routes_are_mounted_under_auth_prefix(app):
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    for name in ("register", "activate-account", "new-password", "login", "refresh-token", "me"):
        assert f"{API}/{name}" in rules
        assert f"/api/v1/{name}" not in rules


def test_missing_signing_key_fails_startup(monkeypatch):
    monkeypatch.setattr(ProductionConfig, "JWT_SECRET", None)
    with pytest.raises(ConfigurationError):
        create_app("production")

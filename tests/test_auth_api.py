"""
tests/test_auth_api.py -- Integration tests for /api/v1/auth/* through the real ASGI stack.

Coverage:
  - The five end-to-end account scenarios (signup, login, bad password,
    missing header, logout then reuse)
  - Validation failures -> 400 with field detail
  - Duplicate email -> 409 with exactly one account stored
  - Multiple concurrent sessions per user
  - Expiry, case-sensitive bearer scheme, first-wins header handling
  - Cache-Control: no-store on token responses
  - Per-IP rate limit on login -> 429

Why integration tests over unit tests:
  The wire contract (status codes and {"error": ...} bodies) is what clients
  depend on. Running through TestClient catches regressions in exception
  handlers and middleware that unit tests of auth/ would miss.
"""

from __future__ import annotations

import inspect

import pytest
from fastapi.testclient import TestClient

from conftest import SESSION_TTL, SIGNUP_PAYLOAD, FakeClock, bearer
from core.config import get_settings

SIGNUP = "/api/v1/auth/signup"
LOGIN = "/api/v1/auth/login"
LOGOUT = "/api/v1/auth/logout"
ME = "/api/v1/auth/me"
PROTECTED = "/api/v1/projects"


class TestEndToEnd:
    def test_signup_returns_token_and_user(self, client: TestClient) -> None:
        resp = client.post(SIGNUP, json={"name": "Alex", "email": "alex@x.com", "password": "securepass1"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["token"]
        assert body["user"]["email"] == "alex@x.com"
        assert body["user"]["name"] == "Alex"
        assert isinstance(body["user"]["id"], int)

    def test_login_after_signup_keeps_both_tokens_valid(self, client: TestClient) -> None:
        creds = {"name": "Alex", "email": "alex@x.com", "password": "securepass1"}
        signup_token = client.post(SIGNUP, json=creds).json()["token"]

        resp = client.post(LOGIN, json={"email": "alex@x.com", "password": "securepass1"})
        assert resp.status_code == 200
        login_token = resp.json()["token"]
        assert login_token
        assert login_token != signup_token

        for token in (signup_token, login_token):
            assert client.get(PROTECTED, headers=bearer(token)).status_code == 200

    def test_wrong_password_is_401(self, client: TestClient) -> None:
        client.post(SIGNUP, json={"name": "Alex", "email": "alex@x.com", "password": "securepass1"})
        resp = client.post(LOGIN, json={"email": "alex@x.com", "password": "wrongpass1"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid credentials"

    def test_protected_route_without_header_is_401(self, client: TestClient) -> None:
        resp = client.get(PROTECTED)
        assert resp.status_code == 401
        assert resp.json()["error"] == "Unauthorized"

    def test_logout_then_reuse_is_401(self, signed_up) -> None:
        client, token, _ = signed_up
        assert client.get(PROTECTED, headers=bearer(token)).status_code == 200

        resp = client.post(LOGOUT, headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

        resp = client.get(PROTECTED, headers=bearer(token))
        assert resp.status_code == 401
        assert resp.json()["error"] == "Unauthorized"


class TestSignup:
    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "alex@buildtrack.com", "password": "securepass1"},  # no name
            {"name": "Alex", "password": "securepass1"},  # no email
            {"name": "Alex", "email": "alex@buildtrack.com"},  # no password
            {"name": "", "email": "alex@buildtrack.com", "password": "securepass1"},
            {"name": "Alex", "email": "not-an-email", "password": "securepass1"},
            {"name": "Alex", "email": "alex@buildtrack.com", "password": "short"},
            {"name": "Alex", "email": "alex@buildtrack.com", "password": "x" * 256},
        ],
    )
    def test_invalid_payload_is_400(self, client: TestClient, api_stores, payload: dict) -> None:
        resp = client.post(SIGNUP, json=payload)
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Validation failed"
        assert body["code"] == "validation_error"
        assert body["detail"] and all("field" in d and "message" in d for d in body["detail"])
        assert api_stores[0].count_users() == 0

    def test_password_length_boundaries(self, client: TestClient) -> None:
        ok_min = client.post(SIGNUP, json={"name": "A", "email": "a@buildtrack.com", "password": "x" * 8})
        ok_max = client.post(SIGNUP, json={"name": "B", "email": "b@buildtrack.com", "password": "x" * 255})
        too_short = client.post(SIGNUP, json={"name": "C", "email": "c@buildtrack.com", "password": "x" * 7})
        assert (ok_min.status_code, ok_max.status_code, too_short.status_code) == (201, 201, 400)

    def test_duplicate_email_is_409(self, signed_up, api_stores) -> None:
        client, _, user = signed_up
        resp = client.post(SIGNUP, json={**SIGNUP_PAYLOAD, "name": "Impostor", "password": "otherpass1"})
        assert resp.status_code == 409
        assert resp.json()["error"] == "Email already in use"
        assert api_stores[0].count_users(email=SIGNUP_PAYLOAD["email"]) == 1

        # The original password still works; the rejected one does not.
        assert client.post(LOGIN, json={"email": user["email"], "password": "securepass1"}).status_code == 200
        assert client.post(LOGIN, json={"email": user["email"], "password": "otherpass1"}).status_code == 401

    def test_email_is_case_sensitive(self, signed_up) -> None:
        client, _, _ = signed_up
        resp = client.post(SIGNUP, json={**SIGNUP_PAYLOAD, "email": "Alex@BuildTrack.com"})
        assert resp.status_code == 201
        resp = client.post(LOGIN, json={"email": "ALEX@buildtrack.com", "password": "securepass1"})
        assert resp.status_code == 401

    def test_response_never_contains_secrets(self, client: TestClient) -> None:
        body = client.post(SIGNUP, json=SIGNUP_PAYLOAD).json()
        assert set(body["user"]) == {"id", "email", "name"}

    def test_token_response_not_cached(self, client: TestClient) -> None:
        resp = client.post(SIGNUP, json=SIGNUP_PAYLOAD)
        assert resp.headers["cache-control"] == "no-store"

    def test_password_whitespace_is_significant(self, client: TestClient) -> None:
        """Passwords are stored exactly as sent; only name and email are trimmed."""
        resp = client.post(
            SIGNUP,
            json={"name": "  Alex  ", "email": " alex@buildtrack.com ", "password": "  securepass1  "},
        )
        assert resp.status_code == 201
        assert resp.json()["user"]["name"] == "Alex"
        assert resp.json()["user"]["email"] == "alex@buildtrack.com"

        trimmed = client.post(LOGIN, json={"email": "alex@buildtrack.com", "password": "securepass1"})
        exact = client.post(LOGIN, json={"email": "alex@buildtrack.com", "password": "  securepass1  "})
        assert trimmed.status_code == 401
        assert exact.status_code == 200

    def test_password_length_counts_whitespace(self, client: TestClient) -> None:
        short = client.post(SIGNUP, json={"name": "A", "email": "a@buildtrack.com", "password": " abcdef "})
        assert short.status_code == 201  # 8 characters including the spaces
        too_short = client.post(SIGNUP, json={"name": "B", "email": "b@buildtrack.com", "password": " abcde "})
        assert too_short.status_code == 400

    def test_blank_name_is_400(self, client: TestClient) -> None:
        resp = client.post(SIGNUP, json={**SIGNUP_PAYLOAD, "name": "   "})
        assert resp.status_code == 400


class TestLogin:
    def test_unknown_email_matches_wrong_password(self, signed_up) -> None:
        client, _, _ = signed_up
        unknown = client.post(LOGIN, json={"email": "ghost@buildtrack.com", "password": "securepass1"})
        wrong = client.post(LOGIN, json={"email": SIGNUP_PAYLOAD["email"], "password": "wrongpass1"})
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json() == {"error": "Invalid credentials", "code": "bad_credentials"}

    def test_short_password_is_credential_failure(self, signed_up) -> None:
        client, _, _ = signed_up
        resp = client.post(LOGIN, json={"email": SIGNUP_PAYLOAD["email"], "password": "x"})
        assert resp.status_code == 401

    def test_missing_fields_is_400(self, client: TestClient) -> None:
        assert client.post(LOGIN, json={"email": "alex@buildtrack.com"}).status_code == 400
        assert client.post(LOGIN, json={"password": "securepass1"}).status_code == 400

    def test_each_login_creates_a_session(self, signed_up, api_stores) -> None:
        client, _, user = signed_up
        creds = {"email": SIGNUP_PAYLOAD["email"], "password": "securepass1"}
        tokens = {client.post(LOGIN, json=creds).json()["token"] for _ in range(3)}
        assert len(tokens) == 3
        assert api_stores[0].count_sessions(user_id=user["id"]) == 4

    def test_login_rate_limited(self, signed_up, monkeypatch) -> None:
        client, _, _ = signed_up
        tight = get_settings().model_copy(update={"login_rate_limit": "2/minute"})
        monkeypatch.setattr("api.limiter.get_settings", lambda: tight)

        creds = {"email": SIGNUP_PAYLOAD["email"], "password": "wrongpass1"}
        codes = [client.post(LOGIN, json=creds).status_code for _ in range(3)]
        assert codes == [401, 401, 429]

        resp = client.post(LOGIN, json=creds)
        assert resp.status_code == 429
        assert resp.json()["code"] == "rate_limited"
        assert "retry-after" in resp.headers


class TestBearerHeader:
    def test_me_returns_current_user(self, signed_up) -> None:
        client, token, user = signed_up
        resp = client.get(ME, headers=bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"user": user}

    @pytest.mark.parametrize(
        "header",
        ["bearer {token}", "BEARER {token}", "Token {token}", "{token}", "Bearer", "Bearer ", "Bearer wrong-token"],
    )
    def test_malformed_header_is_401(self, signed_up, header: str) -> None:
        client, token, _ = signed_up
        resp = client.get(ME, headers={"Authorization": header.format(token=token)})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized", "code": "unauthorized"}

    def test_first_header_value_wins(self, signed_up) -> None:
        client, token, _ = signed_up
        good_first = [("Authorization", f"Bearer {token}"), ("Authorization", "Bearer junk")]
        junk_first = [("Authorization", "Bearer junk"), ("Authorization", f"Bearer {token}")]
        assert client.get(ME, headers=good_first).status_code == 200
        assert client.get(ME, headers=junk_first).status_code == 401

    def test_expired_token_is_401(self, signed_up, clock: FakeClock, api_stores) -> None:
        client, token, _ = signed_up
        clock.advance(SESSION_TTL - 1)
        assert client.get(ME, headers=bearer(token)).status_code == 200
        clock.advance(1)
        assert client.get(ME, headers=bearer(token)).status_code == 401
        assert api_stores[0].get_session(token) is None

    def test_fresh_login_after_expiry(self, signed_up, clock: FakeClock) -> None:
        client, token, _ = signed_up
        clock.advance(SESSION_TTL + 1)
        resp = client.post(LOGIN, json={"email": SIGNUP_PAYLOAD["email"], "password": "securepass1"})
        new_token = resp.json()["token"]
        assert client.get(ME, headers=bearer(token)).status_code == 401
        assert client.get(ME, headers=bearer(new_token)).status_code == 200


class TestLogout:
    def test_store_bound_handlers_are_sync(self) -> None:
        """Handlers that hit the KDF or the store run in the threadpool, not on the event loop."""
        from api.routes.v1 import auth as auth_routes

        for handler in (auth_routes.signup, auth_routes.login, auth_routes.logout):
            assert not inspect.iscoroutinefunction(handler), handler.__name__

    def test_logout_without_token(self, client: TestClient) -> None:
        resp = client.post(LOGOUT)
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

    def test_logout_unknown_token(self, client: TestClient) -> None:
        assert client.post(LOGOUT, headers=bearer("never-issued")).status_code == 200

    def test_logout_twice(self, signed_up) -> None:
        client, token, _ = signed_up
        assert client.post(LOGOUT, headers=bearer(token)).status_code == 200
        assert client.post(LOGOUT, headers=bearer(token)).status_code == 200

    def test_logout_leaves_other_sessions(self, signed_up) -> None:
        client, token, _ = signed_up
        other = client.post(LOGIN, json={"email": SIGNUP_PAYLOAD["email"], "password": "securepass1"}).json()["token"]
        client.post(LOGOUT, headers=bearer(token))
        assert client.get(ME, headers=bearer(token)).status_code == 401
        assert client.get(ME, headers=bearer(other)).status_code == 200

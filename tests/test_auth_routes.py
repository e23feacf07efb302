"""
tests/test_auth_routes.py -- Integration tests for the /auth endpoints.

These tests exercise the full stack: FastAPI routing -> request validation ->
auth dependency -> AuthService -> KVStore -> response model serialization.

Coverage:
  - login: success, wrong password, unknown email (same 401 body), validation
  - signup: success, duplicate (400), role always "user", malformed body (422),
    bcrypt byte limit (422), passwords kept byte for byte
  - verify: bearer token required, malformed header, revoked token
  - profile: merge, immutable fields, vanished user (404), session refresh,
    null name rejected, custom keys discarded
  - logout: token stops working
  - rate limit: 429 once LOGIN_RATE_LIMIT is exceeded

Fixtures used (from conftest.py): client, admin_token, user_token, store.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from api.limiter import limiter
from conftest import USER_EMAIL, USER_PASSWORD, auth_headers, login_token
from kv.store import KVStore


class TestLogin:
    def test_login_valid_credentials(self, client: TestClient) -> None:
        resp = client.post("/auth/login", json={"email": USER_EMAIL, "password": USER_PASSWORD})
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        data = resp.json()
        assert data["token"]
        assert data["user"]["email"] == USER_EMAIL
        assert data["user"]["role"] == "user"
        assert data["user"]["class"] == "2018"
        assert "password" not in data["user"]
        assert "password_hash" not in data["user"]
        assert resp.headers["cache-control"] == "no-store"

    def test_login_email_is_case_insensitive(self, client: TestClient) -> None:
        resp = client.post("/auth/login", json={"email": "User@Alumni.edu", "password": USER_PASSWORD})
        assert resp.status_code == 200

    def test_wrong_password_and_unknown_email_look_the_same(self, client: TestClient) -> None:
        wrong_pw = client.post("/auth/login", json={"email": USER_EMAIL, "password": "nope"})
        unknown = client.post("/auth/login", json={"email": "ghost@alumni.edu", "password": USER_PASSWORD})
        assert wrong_pw.status_code == unknown.status_code == 401
        assert wrong_pw.json() == unknown.json() == {"message": "Invalid credentials"}

    def test_login_missing_field_is_rejected(self, client: TestClient) -> None:
        resp = client.post("/auth/login", json={"email": USER_EMAIL})
        assert resp.status_code == 422
        assert resp.json()["message"] == "Request validation failed."


class TestSignup:
    def test_signup_then_login_then_verify(self, client: TestClient) -> None:
        body = {"email": "grace@alumni.edu", "password": "cobol-1959", "name": "Grace"}
        resp = client.post("/auth/signup", json=body)
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        data = resp.json()
        assert data["user"]["role"] == "user"
        assert data["user"]["name"] == "Grace"
        assert data["token"]

        token = login_token(client, "grace@alumni.edu", "cobol-1959")
        verify = client.get("/auth/verify", headers=auth_headers(token))
        assert verify.status_code == 200
        assert verify.json()["user"]["id"] == data["user"]["id"]

    def test_signup_token_is_immediately_usable(self, client: TestClient) -> None:
        resp = client.post("/auth/signup", json={"email": "g@alumni.edu", "password": "pw", "name": "G"})
        token = resp.json()["token"]
        assert client.get("/auth/verify", headers=auth_headers(token)).status_code == 200

    def test_duplicate_signup_returns_400(self, client: TestClient, store: KVStore) -> None:
        before = store.get(f"user:{USER_EMAIL}")
        resp = client.post("/auth/signup", json={"email": USER_EMAIL, "password": "other", "name": "Other"})
        assert resp.status_code == 400
        assert resp.json() == {"message": "User already exists"}
        assert store.get(f"user:{USER_EMAIL}") == before

    def test_signup_cannot_choose_role(self, client: TestClient) -> None:
        body = {"email": "sneaky@alumni.edu", "password": "pw", "name": "Sneaky", "role": "admin"}
        resp = client.post("/auth/signup", json=body)
        assert resp.status_code == 200
        assert resp.json()["user"]["role"] == "user"

    def test_signup_malformed_email(self, client: TestClient) -> None:
        resp = client.post("/auth/signup", json={"email": "not-an-email", "password": "pw", "name": "X"})
        assert resp.status_code == 422

    def test_signup_missing_name(self, client: TestClient) -> None:
        resp = client.post("/auth/signup", json={"email": "x@alumni.edu", "password": "pw"})
        assert resp.status_code == 422

    def test_multibyte_password_within_bcrypt_limit(self, client: TestClient) -> None:
        password = "\u00e9" * 36  # 72 bytes
        resp = client.post("/auth/signup", json={"email": "e@alumni.edu", "password": password, "name": "E"})
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        login_token(client, "e@alumni.edu", password)

    def test_multibyte_password_over_bcrypt_limit(self, client: TestClient, store: KVStore) -> None:
        # 40 characters but 80 bytes: fits the character cap, not bcrypt.
        resp = client.post("/auth/signup", json={"email": "e@alumni.edu", "password": "\u00e9" * 40, "name": "E"})
        assert resp.status_code == 422
        assert resp.json()["message"] == "Request validation failed."
        assert store.get("user:e@alumni.edu") is None

    def test_password_whitespace_is_kept(self, client: TestClient) -> None:
        body = {"email": "  Space@Alumni.edu ", "password": "  secret  ", "name": "  Spacey "}
        resp = client.post("/auth/signup", json=body)
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "space@alumni.edu"
        assert resp.json()["user"]["name"] == "Spacey"

        login_token(client, "space@alumni.edu", "  secret  ")
        stripped = client.post("/auth/login", json={"email": "space@alumni.edu", "password": "secret"})
        assert stripped.status_code == 401


class TestVerify:
    def test_verify_returns_session_user(self, client: TestClient, admin_token: str) -> None:
        resp = client.get("/auth/verify", headers=auth_headers(admin_token))
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "admin@alumni.edu"
        assert resp.json()["user"]["role"] == "admin"

    def test_verify_without_header(self, client: TestClient) -> None:
        resp = client.get("/auth/verify")
        assert resp.status_code == 401
        assert resp.json() == {"message": "Unauthorized"}

    def test_verify_malformed_header(self, client: TestClient, admin_token: str) -> None:
        for header in (admin_token, f"Basic {admin_token}", "Bearer", f"bearer {admin_token}"):
            resp = client.get("/auth/verify", headers={"Authorization": header})
            assert resp.status_code == 401, f"Header {header!r} should be rejected"

    def test_verify_unknown_token(self, client: TestClient) -> None:
        resp = client.get("/auth/verify", headers=auth_headers("made-up-token"))
        assert resp.status_code == 401
        assert resp.json() == {"message": "Invalid or expired session"}


class TestProfile:
    def test_update_merges_and_refreshes_session(self, client: TestClient, user_token: str) -> None:
        headers = auth_headers(user_token)
        resp = client.put(
            "/auth/profile",
            json={"company": "Acme", "position": "Engineer", "industries": ["Tech", "Finance"]},
            headers=headers,
        )
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        user = resp.json()["user"]
        assert user["company"] == "Acme"
        assert user["industries"] == ["Tech", "Finance"]
        assert user["major"] == "Business"

        verified = client.get("/auth/verify", headers=headers).json()["user"]
        assert verified["company"] == "Acme"
        assert verified["position"] == "Engineer"

    def test_update_class_year_by_alias(self, client: TestClient, user_token: str) -> None:
        resp = client.put("/auth/profile", json={"class": "2019"}, headers=auth_headers(user_token))
        assert resp.status_code == 200
        assert resp.json()["user"]["class"] == "2019"

    def test_immutable_fields_are_silently_ignored(self, client: TestClient, user_token: str) -> None:
        headers = auth_headers(user_token)
        resp = client.put(
            "/auth/profile",
            json={"email": "x", "role": "admin", "password": "y", "location": "Oslo"},
            headers=headers,
        )
        assert resp.status_code == 200
        user = resp.json()["user"]
        assert user["email"] == USER_EMAIL
        assert user["role"] == "user"
        assert user["location"] == "Oslo"

        # Old password still works, the injected one does not.
        login_token(client, USER_EMAIL, USER_PASSWORD)
        assert client.post("/auth/login", json={"email": USER_EMAIL, "password": "y"}).status_code == 401
        # Role escalation did not grant admin access.
        assert client.get("/admin/data", headers=headers).status_code == 403

    def test_update_requires_auth(self, client: TestClient) -> None:
        resp = client.put("/auth/profile", json={"company": "Acme"})
        assert resp.status_code == 401

    def test_update_after_user_deleted(self, client: TestClient, user_token: str, store: KVStore) -> None:
        store.delete(f"user:{USER_EMAIL}")
        resp = client.put("/auth/profile", json={"company": "Acme"}, headers=auth_headers(user_token))
        assert resp.status_code == 404
        assert resp.json() == {"message": "User not found"}

    def test_update_rejects_wrong_types(self, client: TestClient, user_token: str) -> None:
        resp = client.put("/auth/profile", json={"industries": "Tech"}, headers=auth_headers(user_token))
        assert resp.status_code == 422

    def test_null_name_is_rejected(self, client: TestClient, user_token: str, store: KVStore) -> None:
        resp = client.put("/auth/profile", json={"name": None}, headers=auth_headers(user_token))
        assert resp.status_code == 422
        assert store.get(f"user:{USER_EMAIL}")["name"] == "Regular User"

    def test_null_clears_optional_field(self, client: TestClient, user_token: str) -> None:
        headers = auth_headers(user_token)
        resp = client.put("/auth/profile", json={"major": None, "name": " Reggie "}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["user"]["major"] is None
        assert resp.json()["user"]["name"] == "Reggie"

    def test_custom_keys_are_not_stored(self, client: TestClient, user_token: str, store: KVStore) -> None:
        body = {"nickname": "Reg", "company": "Acme"}
        resp = client.put("/auth/profile", json=body, headers=auth_headers(user_token))
        assert resp.status_code == 200
        assert "nickname" not in resp.json()["user"]
        assert "nickname" not in store.get(f"user:{USER_EMAIL}")


class TestLogout:
    def test_logout_invalidates_token(self, client: TestClient, user_token: str) -> None:
        headers = auth_headers(user_token)
        resp = client.post("/auth/logout", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert client.get("/auth/verify", headers=headers).status_code == 401

    def test_logout_keeps_other_sessions(self, client: TestClient) -> None:
        first = login_token(client, USER_EMAIL, USER_PASSWORD)
        second = login_token(client, USER_EMAIL, USER_PASSWORD)
        client.post("/auth/logout", headers=auth_headers(first))
        assert client.get("/auth/verify", headers=auth_headers(second)).status_code == 200


class TestRateLimit:
    def test_login_is_rate_limited(self, client: TestClient) -> None:
        """The 11th login attempt within a minute from one client gets 429."""
        limiter.reset()
        limiter.enabled = True
        try:
            statuses = [
                client.post("/auth/login", json={"email": USER_EMAIL, "password": "wrong"}).status_code
                for _ in range(11)
            ]
        finally:
            limiter.enabled = False
            limiter.reset()
        assert statuses[:10] == [401] * 10
        assert statuses[10] == 429

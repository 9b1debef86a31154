"""
Identity service tests.

- LocalIdentityService: accounts, JWT sessions, revocation, profile updates
- SupabaseIdentityService: request shape and error mapping (HTTP mocked)
- GoTrue-compatible routes served for the local service

Run: pytest backend/test_identity.py -v
"""

from unittest.mock import MagicMock, patch

import jwt
import pytest
import requests
from fastapi.testclient import TestClient

from backend.identity import (
    IdentityError,
    LocalIdentityService,
    SupabaseIdentityService,
    ensure_demo_user,
    hash_password,
    verify_password,
)
from backend.kv_store import InMemoryKVStore
from backend.main import create_app


@pytest.fixture
def identity():
    return LocalIdentityService(InMemoryKVStore(), secret_key="test-secret")


def test_password_hash_roundtrip():
    h = hash_password("secret1")
    assert h != "secret1"
    assert verify_password("secret1", h)
    assert not verify_password("secret2", h)


class TestLocalIdentity:
    def test_sign_in_issues_verifiable_token(self, identity):
        user = identity.create_user("Alice@Example.com", "secret1", {"name": "Alice"})
        assert user.email == "alice@example.com"

        session = identity.sign_in("alice@example.com", "secret1")
        assert session["token_type"] == "bearer"
        assert session["user"]["id"] == user.id

        payload = jwt.decode(session["access_token"], "test-secret", algorithms=["HS256"], audience="authenticated")
        assert payload["sub"] == user.id
        assert identity.get_user(session["access_token"]).name == "Alice"

    def test_wrong_password(self, identity):
        identity.create_user("a@example.com", "secret1", {})
        with pytest.raises(IdentityError) as exc:
            identity.sign_in("a@example.com", "nope")
        assert exc.value.message == "Invalid login credentials"

    def test_duplicate_email(self, identity):
        identity.create_user("a@example.com", "secret1", {})
        with pytest.raises(IdentityError):
            identity.create_user("A@example.com", "other1", {})

    def test_token_signed_with_other_key_is_rejected(self, identity):
        user = identity.create_user("a@example.com", "secret1", {})
        forged = jwt.encode({"sub": user.id, "aud": "authenticated"}, "other-secret", algorithm="HS256")
        assert identity.get_user(forged) is None

    def test_expired_token_is_rejected(self):
        identity = LocalIdentityService(InMemoryKVStore(), secret_key="test-secret", token_minutes=-1)
        identity.create_user("a@example.com", "secret1", {})
        token = identity.sign_in("a@example.com", "secret1")["access_token"]
        assert identity.get_user(token) is None

    def test_sign_out_revokes_only_that_session(self, identity):
        identity.create_user("a@example.com", "secret1", {})
        first = identity.sign_in("a@example.com", "secret1")["access_token"]
        second = identity.sign_in("a@example.com", "secret1")["access_token"]
        identity.sign_out(first)
        assert identity.get_user(first) is None
        assert identity.get_user(second) is not None

    def test_update_user_merges_metadata_and_guards_email(self, identity):
        identity.create_user("a@example.com", "secret1", {"name": "A", "team": "x"})
        identity.create_user("b@example.com", "secret1", {})
        token = identity.sign_in("a@example.com", "secret1")["access_token"]

        updated = identity.update_user(token, data={"name": "Alice"})
        assert updated.user_metadata == {"name": "Alice", "team": "x"}

        with pytest.raises(IdentityError) as exc:
            identity.update_user(token, email="b@example.com")
        assert exc.value.message == "Email is already taken"

        moved = identity.update_user(token, email="alice@example.com")
        assert moved.email == "alice@example.com"
        assert identity.get_user_by_email("a@example.com") is None
        assert identity.get_user_by_email("alice@example.com").id == moved.id

    def test_ensure_demo_user_is_idempotent(self, identity):
        ensure_demo_user(identity, "demo@example.com", "demo123", "Demo User")
        ensure_demo_user(identity, "demo@example.com", "demo123", "Demo User")
        assert identity.sign_in("demo@example.com", "demo123")["user"]["user_metadata"]["name"] == "Demo User"


def _response(status_code, body):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body
    resp.text = str(body)
    return resp


class TestSupabaseIdentity:
    def test_get_user_sends_caller_token_and_apikey(self):
        service = SupabaseIdentityService("https://proj.supabase.co/", "service-key")
        with patch("backend.identity.requests.get") as mock_get:
            mock_get.return_value = _response(
                200, {"id": "u1", "email": "a@example.com", "user_metadata": {"name": "A"}}
            )
            user = service.get_user("user-token")

        assert user.id == "u1"
        assert user.name == "A"
        args, kwargs = mock_get.call_args
        assert args[0] == "https://proj.supabase.co/auth/v1/user"
        assert kwargs["headers"]["Authorization"] == "Bearer user-token"
        assert kwargs["headers"]["apikey"] == "service-key"

    def test_get_user_rejected_token_is_none(self):
        service = SupabaseIdentityService("https://proj.supabase.co", "service-key")
        with patch("backend.identity.requests.get", return_value=_response(401, {"msg": "bad jwt"})):
            assert service.get_user("bad") is None

    def test_create_user_confirms_email(self):
        service = SupabaseIdentityService("https://proj.supabase.co", "service-key")
        with patch("backend.identity.requests.post") as mock_post:
            mock_post.return_value = _response(200, {"id": "u2", "email": "b@example.com"})
            service.create_user("b@example.com", "secret1", {"name": "B"})

        kwargs = mock_post.call_args.kwargs
        assert mock_post.call_args.args[0] == "https://proj.supabase.co/auth/v1/admin/users"
        assert kwargs["json"]["email_confirm"] is True
        assert kwargs["json"]["user_metadata"] == {"name": "B"}
        assert kwargs["headers"]["Authorization"] == "Bearer service-key"

    def test_create_user_error_message(self):
        service = SupabaseIdentityService("https://proj.supabase.co", "service-key")
        body = {"msg": "A user with this email address has already been registered"}
        with patch("backend.identity.requests.post", return_value=_response(422, body)):
            with pytest.raises(IdentityError) as exc:
                service.create_user("b@example.com", "secret1", {})
        assert exc.value.message == body["msg"]
        assert exc.value.status_code == 400

    def test_unreachable_identity_service_is_500_on_protected_route(self):
        service = SupabaseIdentityService("https://proj.supabase.co", "service-key")
        app = create_app(kv_store=InMemoryKVStore(), identity=service, seed_demo_user=False)
        with patch("backend.identity.requests.get", side_effect=requests.ConnectionError("down")):
            resp = TestClient(app).get("/projects", headers={"Authorization": "Bearer t"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error during authentication"}

    def test_hosted_identity_does_not_expose_local_routes(self):
        service = SupabaseIdentityService("https://proj.supabase.co", "service-key")
        app = create_app(kv_store=InMemoryKVStore(), identity=service, seed_demo_user=False)
        resp = TestClient(app).post("/auth/v1/token", json={"email": "a@example.com", "password": "x"})
        assert resp.status_code == 404


class TestIdentityRoutes:
    @pytest.fixture
    def client(self):
        kv = InMemoryKVStore()
        app = create_app(kv_store=kv, identity=LocalIdentityService(kv, secret_key="test-secret"), seed_demo_user=True)
        with TestClient(app) as c:
            yield c

    def test_demo_user_seeded_at_startup(self, client):
        resp = client.post(
            "/auth/v1/token", params={"grant_type": "password"}, json={"email": "demo@example.com", "password": "demo123"}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["expires_in"] == 3600
        assert body["user"]["email"] == "demo@example.com"

    def test_bad_credentials_use_gotrue_error_shape(self, client):
        resp = client.post(
            "/auth/v1/token", params={"grant_type": "password"}, json={"email": "demo@example.com", "password": "nope"}
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid_grant", "error_description": "Invalid login credentials"}

    def test_unsupported_grant_type(self, client):
        resp = client.post(
            "/auth/v1/token", params={"grant_type": "refresh_token"}, json={"email": "x@example.com", "password": "x"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "unsupported_grant_type"

    def test_get_and_update_user(self, client):
        token = client.post(
            "/auth/v1/token", params={"grant_type": "password"}, json={"email": "demo@example.com", "password": "demo123"}
        ).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        assert client.get("/auth/v1/user", headers=headers).json()["email"] == "demo@example.com"

        resp = client.put("/auth/v1/user", json={"data": {"name": "Renamed"}}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["user_metadata"]["name"] == "Renamed"

    def test_get_user_without_token(self, client):
        resp = client.get("/auth/v1/user")
        assert resp.status_code == 401
        assert resp.json()["error"] == "invalid_token"

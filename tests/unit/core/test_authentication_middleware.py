"""
Tests for authentication middleware.
Tests token extraction, validation failures, revocation and identity resolution.
"""

import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import Mock
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from core.config import Settings
from core.middleware.authentication import AuthenticationMiddleware, get_current_user
from core.security import create_access_token

SECRET = "test-jwt-secret-key-min-32-chars-long-for-security"


class FakeSession:
    """Stands in for an AsyncSession: one user, optionally one revoked jti."""

    def __init__(self, user=None, revoked=False, fail=False):
        self.user = user
        self.revoked = revoked
        self.fail = fail

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def get(self, model, pk):
        if self.fail:
            raise RuntimeError("database unavailable")
        return self.user if self.user is not None and self.user.id == pk else None

    async def execute(self, statement):
        result = Mock()
        result.scalar_one_or_none.return_value = "revoked-jti" if self.revoked else None
        return result


def make_user(user_id=1, role="user"):
    return SimpleNamespace(
        id=user_id,
        username="alice",
        email="alice@example.com",
        role=role,
        avatar=None,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def build_client(session, revocation=True):
    settings = Settings(jwt_secret_key=SECRET, token_revocation_enabled=revocation)
    app = FastAPI()

    @app.get("/api/v1/users/me")
    async def me(request: Request):
        user = get_current_user(request)
        return {"id": user.id, "role": user.role.value}

    @app.post("/api/v1/auth/login")
    async def login():
        return {"public": True}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.add_middleware(AuthenticationMiddleware, settings=settings, session_factory=lambda: session)
    return TestClient(app)


def bearer(user_id=1, **kwargs):
    return {"Authorization": f"Bearer {create_access_token(user_id, SECRET, **kwargs)}"}


class TestPublicEndpoints:
    """Test endpoints reachable without a token."""

    @pytest.mark.parametrize("method,path", [("POST", "/api/v1/auth/login"), ("GET", "/health")])
    def test_public_paths_skip_auth(self, method, path):
        client = build_client(FakeSession())

        response = client.request(method, path)

        assert response.status_code == 200

    def test_preflight_skips_auth(self):
        client = build_client(FakeSession())

        response = client.options("/api/v1/users/me")

        assert response.status_code != 401


class TestTokenValidation:
    """Test failures end the request with 401."""

    def test_missing_token(self):
        client = build_client(FakeSession(make_user()))

        response = client.get("/api/v1/users/me")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "TOKEN_MISSING"

    def test_malformed_token(self):
        client = build_client(FakeSession(make_user()))

        response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer not.a.jwt"})

        assert response.status_code == 401
        assert response.json()["error"] == "TOKEN_INVALID"

    def test_expired_token(self):
        client = build_client(FakeSession(make_user()))
        issued = datetime.now(timezone.utc) - timedelta(days=31)

        response = client.get("/api/v1/users/me", headers=bearer(now=issued))

        assert response.status_code == 401
        assert response.json()["error"] == "TOKEN_EXPIRED"

    def test_unknown_user(self):
        client = build_client(FakeSession(make_user(user_id=1)))

        response = client.get("/api/v1/users/me", headers=bearer(user_id=99))

        assert response.status_code == 401
        assert response.json()["error"] == "USER_NOT_FOUND"

    def test_revoked_token(self):
        client = build_client(FakeSession(make_user(), revoked=True))

        response = client.get("/api/v1/users/me", headers=bearer())

        assert response.status_code == 401
        assert response.json()["error"] == "TOKEN_REVOKED"

    def test_revocation_disabled(self):
        """Test the denylist is not consulted when revocation is off."""
        client = build_client(FakeSession(make_user(), revoked=True), revocation=False)

        response = client.get("/api/v1/users/me", headers=bearer())

        assert response.status_code == 200

    def test_lookup_failure_is_500(self):
        client = build_client(FakeSession(make_user(), fail=True))

        response = client.get("/api/v1/users/me", headers=bearer())

        assert response.status_code == 500
        assert response.json()["error"] == "AUTHENTICATION_ERROR"


class TestIdentityResolution:
    def test_identity_attached(self):
        client = build_client(FakeSession(make_user(role="interviewer")))

        response = client.get("/api/v1/users/me", headers=bearer())

        assert response.status_code == 200
        assert response.json() == {"id": 1, "role": "interviewer"}

    def test_cookie_token(self):
        client = build_client(FakeSession(make_user()))
        client.cookies.set("token", create_access_token(1, SECRET))

        response = client.get("/api/v1/users/me")

        assert response.status_code == 200

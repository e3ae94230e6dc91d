"""Shared fixtures and utilities for tests."""

import os
import tempfile

# Settings are read at import time by api.main; configure the environment first
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("JSON_LOGS", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'interview_prep_import.db')}",
)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text

from api.main import create_app
from core.config import Settings

API = "/api/v1"
DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "test.db"


@pytest.fixture
def settings(db_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{db_path}",
        jwt_secret_key="test-jwt-secret-key-min-32-chars-long-for-security",
        app_env="test",
        rate_limit_enabled=False,
        token_revocation_enabled=True,
        bcrypt_rounds=4,
        json_logs=False,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """Test client; entering it runs the lifespan, which creates the tables."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user and return ``{"id", "token", "headers", "user"}``."""

    counter = {"n": 0}

    def _register(username=None, email=None, password=DEFAULT_PASSWORD):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        email = email or f"{username}@example.com"
        response = client.post(
            f"{API}/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        # the cookie would take precedence over the bearer header of other users
        client.cookies.clear()

        data = response.json()["data"]
        token = data["access_token"]
        return {
            "id": data["user"]["id"],
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
            "user": data["user"],
        }

    return _register


@pytest.fixture
def set_role(db_path):
    """Change a user's role directly in the database."""

    def _set_role(user_id, role):
        engine = create_engine(f"sqlite:///{db_path}")
        try:
            with engine.begin() as conn:
                conn.execute(
                    text("UPDATE users SET role = :role WHERE id = :id"),
                    {"role": role, "id": user_id},
                )
        finally:
            engine.dispose()

    return _set_role


@pytest.fixture
def admin(register, set_role):
    user = register("admin")
    set_role(user["id"], "admin")
    return user


@pytest.fixture
def interviewer(register, set_role):
    user = register("interviewer")
    set_role(user["id"], "interviewer")
    return user

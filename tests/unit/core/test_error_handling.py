"""
Tests for error handling middleware.
Tests error mapping, the response envelope and message sanitization.
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import IntegrityError, OperationalError

from core.exceptions import (
    AuthorizationError,
    DuplicateRecordError,
    NotFoundError,
    ValidationFailed,
)
from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    sanitize_error_message,
    setup_error_handlers,
)


class TestSensitiveDataSanitization:
    """Test sensitive data sanitization."""

    @pytest.mark.parametrize("sensitive_input", [
        'password="secret123"',
        'token=eyJhbGciOiJIUzI1NiJ9.payload.sig',
        'jwt secret: supersecret',
        'authorization: Bearer token123',
        'hash $2b$10$abcdefghijklmnopqrstuuABCDEFGHIJKLMNOPQRSTUVWXYZ01234',
    ])
    def test_sensitive_values_redacted(self, sensitive_input):
        """Test that credential-like values are redacted."""
        sanitized = sanitize_error_message(sensitive_input)

        assert "[REDACTED]" in sanitized

    @pytest.mark.parametrize("safe_input", [
        'username="john_doe"',
        'Problem not found',
        'count=12345',
    ])
    def test_safe_values_untouched(self, safe_input):
        """Test that ordinary messages pass through."""
        assert sanitize_error_message(safe_input) == safe_input


class Payload(BaseModel):
    name: str = Field(min_length=1)
    age: int


@pytest.fixture
def error_app():
    app = FastAPI()
    setup_error_handlers(app)
    app.add_middleware(ErrorHandlingMiddleware, debug=False)

    @app.get("/not-found")
    async def not_found():
        raise NotFoundError("Problem not found")

    @app.get("/forbidden")
    async def forbidden():
        raise AuthorizationError("Only administrators can delete sessions")

    @app.get("/duplicate")
    async def duplicate():
        raise DuplicateRecordError("This tag already exists for the problem")

    @app.get("/invalid")
    async def invalid():
        raise ValidationFailed("No updates provided")

    @app.get("/integrity")
    async def integrity():
        raise IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed"))

    @app.get("/db-down")
    async def db_down():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    @app.get("/redis-down")
    async def redis_down():
        raise RedisConnectionError("Connection refused")

    @app.get("/crash")
    async def crash():
        raise RuntimeError("password=hunter2 leaked in a stack")

    @app.get("/http")
    async def http():
        raise HTTPException(status_code=404, detail="Nothing here")

    @app.post("/validate")
    async def validate(payload: Payload):
        return payload

    return app


@pytest.fixture
def client(error_app):
    return TestClient(error_app)


class TestServiceErrors:
    """Test typed service errors map to their own status and code."""

    @pytest.mark.parametrize("path,status_code,code,message", [
        ("/not-found", 404, "NOT_FOUND", "Problem not found"),
        ("/forbidden", 403, "FORBIDDEN", "Only administrators can delete sessions"),
        ("/duplicate", 400, "DUPLICATE_RECORD", "This tag already exists for the problem"),
        ("/invalid", 400, "VALIDATION_ERROR", "No updates provided"),
    ])
    def test_service_error_envelope(self, client, path, status_code, code, message):
        """Test the error envelope for service errors."""
        response = client.get(path)

        assert response.status_code == status_code
        assert response.json() == {"success": False, "message": message, "error": code}

    def test_http_exception(self, client):
        """Test HTTPException keeps its status and gets a stable code."""
        response = client.get("/http")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "NOT_FOUND"
        assert body["message"] == "Nothing here"


class TestValidationErrors:
    """Test request validation errors become 400."""

    def test_missing_fields(self, client):
        """Test several invalid fields produce a detail list."""
        response = client.post("/validate", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["message"] == "Request validation failed"
        fields = {d["field"] for d in body["details"]}
        assert fields == {"name", "age"}

    def test_single_error_uses_its_message(self, client):
        """Test a single invalid field surfaces its own message."""
        response = client.post("/validate", json={"name": "", "age": 3})

        assert response.status_code == 400
        body = response.json()
        assert len(body["details"]) == 1
        assert body["message"] == body["details"][0]["message"]


class TestUnhandledErrors:
    """Test exceptions that escape the handlers."""

    def test_integrity_error_is_400(self, client):
        response = client.get("/integrity")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "DUPLICATE_RECORD"
        assert "UNIQUE" not in body["message"]

    def test_operational_error_is_503(self, client):
        response = client.get("/db-down")

        assert response.status_code == 503
        assert response.json()["error"] == "DATABASE_ERROR"

    def test_redis_connection_error_is_503(self, client):
        response = client.get("/redis-down")

        assert response.status_code == 503
        assert response.json()["error"] == "CACHE_ERROR"

    def test_unexpected_error_is_generic_500(self, client):
        """Test internal error text never reaches the client."""
        response = client.get("/crash")

        assert response.status_code == 500
        body = response.json()
        assert body == {
            "success": False,
            "message": "An unexpected error occurred",
            "error": "INTERNAL_SERVER_ERROR",
        }
        assert "hunter2" not in response.text

    def test_request_id_echoed(self, client):
        """Test the request id is attached when the caller sent one."""
        response = client.get("/crash", headers={"X-Request-ID": "req-123"})

        assert response.json()["request_id"] == "req-123"

"""
Tests for structured logging middleware.
Tests credential masking, path filtering and the JSON formatter.
"""

import json
import logging
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from api.main import create_app
from core.middleware.error_handling import ErrorHandlingMiddleware
from core.middleware.logging import (
    StructuredFormatter,
    StructuredLoggingMiddleware,
    mask_headers,
    mask_sensitive_data,
    should_log_request,
)


class TestMasking:
    """Test sensitive data never reaches the logs."""

    def test_mask_nested_fields(self):
        data = {
            "username": "alice",
            "password": "secret123",
            "profile": {"new_password": "hunter2", "bio": "hi"},
            "tokens": [{"access_token": "abc"}],
        }

        masked = mask_sensitive_data(data)

        assert masked["username"] == "alice"
        assert masked["password"] == "[REDACTED]"
        assert masked["profile"]["new_password"] == "[REDACTED]"
        assert masked["profile"]["bio"] == "hi"
        assert masked["tokens"] == "[REDACTED]"

    def test_mask_emails_in_values(self):
        assert mask_sensitive_data("contact alice@example.com now") == "contact [EMAIL] now"

    def test_max_depth(self):
        data = {"a": {"b": {"c": "deep"}}}

        assert mask_sensitive_data(data, max_depth=1) == {"a": {"b": "[MAX_DEPTH_EXCEEDED]"}}

    def test_mask_headers(self):
        headers = {
            "Authorization": "Bearer abc.def.ghi",
            "Cookie": "token=abc",
            "Content-Type": "application/json",
        }

        masked = mask_headers(headers)

        assert masked["Authorization"] == "Bearer [REDACTED]"
        assert masked["Cookie"] == "[REDACTED]"
        assert masked["Content-Type"] == "application/json"


class TestPathFiltering:
    @pytest.mark.parametrize("path,expected", [
        ("/health", False),
        ("/ready", False),
        ("/docs", False),
        ("/api/v1/problems", True),
    ])
    def test_should_log_request(self, path, expected):
        assert should_log_request(path) is expected


class TestStructuredFormatter:
    def test_json_output(self):
        record = logging.LogRecord("api", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        record.request_id = "req-1"

        output = json.loads(StructuredFormatter().format(record))

        assert output["message"] == "hello world"
        assert output["level"] == "INFO"
        assert output["logger"] == "api"
        assert output["request_id"] == "req-1"


class TestStructuredLoggingMiddleware:
    """Test the middleware against a stub application."""

    @pytest.fixture
    def client(self):
        app = FastAPI()

        @app.get("/api/v1/ping")
        async def ping():
            return {"pong": True}

        app.add_middleware(StructuredLoggingMiddleware)
        return TestClient(app)

    def test_request_id_echoed(self, client):
        response = client.get("/api/v1/ping", headers={"X-Request-ID": "abc-123"})

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_request_id_generated(self, client):
        response = client.get("/api/v1/ping")

        assert response.headers["X-Request-ID"]

    def test_completion_logged(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            client.get("/api/v1/ping")

        assert any("request_completed" in record.getMessage() for record in caplog.records)


class TestLoggingAfterErrorMapping:
    """The completion log carries the status the client actually receives."""

    def test_mapped_status_logged(self, caplog):
        app = FastAPI()

        @app.put("/api/v1/problems/1")
        async def update():
            raise IntegrityError("UPDATE problems", {}, Exception("constraint failed"))

        # same order as create_app: error handling first, logging around it
        app.add_middleware(ErrorHandlingMiddleware)
        app.add_middleware(StructuredLoggingMiddleware)

        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            response = TestClient(app).put("/api/v1/problems/1")

        assert response.status_code == 400
        completed = [
            json.loads(record.getMessage())
            for record in caplog.records
            if record.name == "core.middleware.logging" and "request_completed" in record.getMessage()
        ]
        assert completed[-1]["status_code"] == 400

    def test_app_wraps_error_handling_in_logging(self, settings):
        # user_middleware lists the outermost middleware first
        order = [middleware.cls for middleware in create_app(settings).user_middleware]

        assert order.index(StructuredLoggingMiddleware) < order.index(ErrorHandlingMiddleware)

"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, the fixed ``{success, message}`` format, and no
information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.core.errors import (
    AppError,
    DuplicateEmailAppError,
    RateLimitAppError,
    ServiceUnavailableAppError,
    StorageAppError,
    ValidationAppError,
)
from app.core.exception_handlers import setup_exception_handlers, status_code_for


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        ("error", "expected_status"),
        [
            (ValidationAppError(code="invalid_email", message="Please enter a valid email address."), 400),
            (DuplicateEmailAppError(code="duplicate_email", message="This email is already on our waitlist!"), 409),
            (ServiceUnavailableAppError(code="storage_unavailable", message="Database down"), 503),
            (RateLimitAppError(code="rate_limit_exceeded", message="Too many requests"), 429),
        ],
    )
    def test_client_facing_errors_echo_message(
        self, client: TestClient, app_with_handlers: FastAPI, error: AppError, expected_status: int
    ):
        @app_with_handlers.get("/test-error")
        async def test_endpoint():
            raise error

        response = client.get("/test-error")

        assert response.status_code == expected_status
        assert response.json() == {"success": False, "message": error.message}

    def test_storage_error_returns_generic_500(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify StorageAppError details are not leaked to clients."""
        @app_with_handlers.get("/test-storage")
        async def test_endpoint():
            raise StorageAppError(
                code="storage_operation_failed",
                message="MongoDB insert failed: connection reset by 10.0.0.5",
            )

        response = client.get("/test-storage")

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "An error occurred. Please try again."}
        assert "10.0.0.5" not in response.text

    def test_rate_limit_error_sets_headers(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-throttle")
        async def test_endpoint():
            raise RateLimitAppError(
                code="rate_limit_exceeded",
                message="Too many requests, please try again later.",
                headers={"Retry-After": "120", "X-RateLimit-Limit": "5"},
            )

        response = client.get("/test-throttle")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "120"
        assert response.headers["X-RateLimit-Limit"] == "5"

    def test_unmapped_app_error_defaults_to_500(self):
        assert status_code_for(AppError(code="x", message="y")) == 500


class TestRequestValidationHandler:
    def test_body_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        class Payload(BaseModel):
            email: str

        @app_with_handlers.post("/test-body")
        async def test_endpoint(payload: Payload):
            return {"ok": True}

        response = client.post("/test-body", json={"email": 123})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Please enter a valid email address."}


class TestHttpExceptionHandler:
    def test_method_not_allowed_uses_waitlist_shape(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/only-get")
        async def test_endpoint():
            return {"ok": True}

        response = client.post("/only-get")

        assert response.status_code == 405
        assert response.json() == {"success": False, "message": "Method Not Allowed"}
        assert response.headers["Allow"] == "GET"

    def test_unknown_route_uses_waitlist_shape(self, client: TestClient):
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Not Found"}

    def test_raised_http_exception_keeps_its_detail(self, client: TestClient, app_with_handlers: FastAPI):
        from fastapi import HTTPException

        @app_with_handlers.get("/teapot")
        async def test_endpoint():
            raise HTTPException(status_code=418, detail="I'm a teapot")

        response = client.get("/teapot")

        assert response.status_code == 418
        assert response.json() == {"success": False, "message": "I'm a teapot"}


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        assert Exception in app_with_handlers.exception_handlers

    def test_unexpected_exception_returns_generic_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-crash")
        async def test_endpoint():
            raise RuntimeError("Unexpected error: database connection failed")

        response = client.get("/test-crash")

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "An error occurred. Please try again."}

    def test_general_exception_handler_never_leaks_stack_trace(self):
        """Verify stack traces are never included in response."""
        from app.core.exception_handlers import general_exception_handler

        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_body = response.body if isinstance(response.body, bytes) else bytes(response.body)
        response_text = response_body.decode()
        data = json.loads(response_text)
        assert data["success"] is False
        assert "Traceback" not in response_text
        assert "File \"" not in response_text
        assert "ValueError" not in response_text


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self):
        """Verify calling setup_exception_handlers multiple times is safe."""
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers

"""Tests for the waitlist API routes.

Covers the HTTP contract of /api/health, /api/subscribe and /api/stats:
status codes, response shapes, email normalization, duplicate handling,
disconnected storage and per-IP rate limiting.

Configuration:
- conftest.py selects the in-memory backend and the default 5 requests /
  15 minutes rate limit before any app import
- Each test gets its own app, repository and limiter
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.adapters.storage.in_memory import InMemorySubscriberRepository
from app.adapters.storage.mongodb import MongoSubscriberRepository
from app.core.app_factory import create_app
from app.core.errors import StorageAppError


@pytest.fixture
def disconnected_client(tmp_path):
    """Client whose repository fails to connect at startup."""
    app = create_app(InMemorySubscriberRepository(available=False), static_dir=str(tmp_path))
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    def test_reports_connected_store(self, client: TestClient) -> None:
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == "connected"
        assert data["timestamp"].endswith("Z")

    def test_reports_disconnected_store(self, disconnected_client: TestClient) -> None:
        response = disconnected_client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["database"] == "disconnected"

    def test_malformed_mongodb_url_keeps_app_serving(self, tmp_path) -> None:
        app = create_app(
            MongoSubscriberRepository("mongodb://localhost:99999/db"),
            static_dir=str(tmp_path),
        )

        with TestClient(app) as test_client:
            health = test_client.get("/api/health")
            subscribe = test_client.post("/api/subscribe", json={"email": "ada@example.com"})

        assert health.status_code == 200
        assert health.json()["database"] == "disconnected"
        assert subscribe.status_code == 503


class TestSubscribe:
    def test_first_signup_returns_201_and_total(self, client: TestClient) -> None:
        response = client.post("/api/subscribe", json={"email": "ada@example.com"})

        assert response.status_code == 201
        assert response.json() == {
            "success": True,
            "message": "Successfully joined the waitlist!",
            "totalSignups": 1,
        }

    def test_total_grows_by_one_per_signup(self, client: TestClient) -> None:
        client.post("/api/subscribe", json={"email": "one@example.com"})
        before = client.get("/api/stats").json()["totalSignups"]

        response = client.post("/api/subscribe", json={"email": "two@example.com"})

        assert response.json()["totalSignups"] == before + 1

    def test_duplicate_returns_409_and_count_unchanged(
        self, client: TestClient, repository: InMemorySubscriberRepository
    ) -> None:
        first = client.post("/api/subscribe", json={"email": "dup@example.com"})
        second = client.post("/api/subscribe", json={"email": "dup@example.com"})

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json() == {
            "success": False,
            "message": "This email is already on our waitlist!",
        }
        assert client.get("/api/stats").json()["totalSignups"] == 1

    def test_duplicate_detection_ignores_case_and_whitespace(self, client: TestClient) -> None:
        first = client.post("/api/subscribe", json={"email": "Test@Example.com "})
        second = client.post("/api/subscribe", json={"email": "test@example.com"})

        assert first.status_code == 201
        assert second.status_code == 409

    def test_stores_normalized_email_with_metadata(
        self, client: TestClient, repository: InMemorySubscriberRepository
    ) -> None:
        client.post(
            "/api/subscribe",
            json={"email": "  Grace@Example.COM"},
            headers={"User-Agent": "pytest-agent"},
        )

        record = repository._records["grace@example.com"]
        assert record.user_agent == "pytest-agent"
        assert record.ip_address == "testclient"
        assert record.created_at is not None

    @pytest.mark.parametrize("email", ["not-an-email", "a@b", "", "   ", "a b@c.d", "a@@b.c"])
    def test_invalid_email_returns_400(self, client: TestClient, email: str) -> None:
        response = client.post("/api/subscribe", json={"email": email})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Please enter a valid email address.",
        }
        assert client.get("/api/stats").json()["totalSignups"] == 0

    @pytest.mark.parametrize("body", [{}, {"email": None}, {"email": 42}, {"mail": "a@b.co"}])
    def test_missing_or_wrong_type_email_returns_400(self, client: TestClient, body: dict) -> None:
        response = client.post("/api/subscribe", json=body)

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_malformed_json_returns_400(self, client: TestClient) -> None:
        response = client.post(
            "/api/subscribe",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Please enter a valid email address."

    def test_disconnected_store_returns_503(self, disconnected_client: TestClient) -> None:
        for email in ("a@example.com", "not-an-email"):
            response = disconnected_client.post("/api/subscribe", json={"email": email})

            assert response.status_code == 503
            assert response.json() == {
                "success": False,
                "message": "Database connection unavailable. Please try again later.",
            }

    def test_storage_failure_returns_500_without_details(
        self, client: TestClient, repository: InMemorySubscriberRepository
    ) -> None:
        repository.insert = AsyncMock(
            side_effect=StorageAppError(code="storage_operation_failed", message="disk on fire")
        )

        response = client.post("/api/subscribe", json={"email": "ada@example.com"})

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "An error occurred. Please try again.",
        }

    def test_unexpected_error_returns_500(self, tmp_path) -> None:
        repository = InMemorySubscriberRepository()
        repository.find_by_email = AsyncMock(side_effect=RuntimeError("boom"))
        app = create_app(repository, static_dir=str(tmp_path))

        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.post("/api/subscribe", json={"email": "ada@example.com"})

        assert response.status_code == 500
        assert response.json()["success"] is False
        assert "boom" not in response.text


class TestRateLimit:
    def test_sixth_request_in_window_is_rejected(
        self, client: TestClient, repository: InMemorySubscriberRepository
    ) -> None:
        for i in range(5):
            response = client.post("/api/subscribe", json={"email": f"user{i}@example.com"})
            assert response.status_code == 201

        response = client.post("/api/subscribe", json={"email": "user5@example.com"})

        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "message": "Too many requests, please try again later.",
        }
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert int(response.headers["Retry-After"]) > 0
        assert "user5@example.com" not in repository._records

    def test_failed_requests_count_toward_limit(self, client: TestClient) -> None:
        for _ in range(5):
            client.post("/api/subscribe", json={"email": "bad"})

        response = client.post("/api/subscribe", json={"email": "good@example.com"})

        assert response.status_code == 429

    def test_other_endpoints_are_not_limited(self, client: TestClient) -> None:
        for _ in range(10):
            assert client.get("/api/stats").status_code == 200
            assert client.get("/api/health").status_code == 200


class TestStats:
    def test_returns_total_and_connected(self, client: TestClient) -> None:
        client.post("/api/subscribe", json={"email": "ada@example.com"})

        response = client.get("/api/stats")

        assert response.status_code == 200
        assert response.json() == {"totalSignups": 1, "connected": True}

    def test_disconnected_store_reports_zero(self, disconnected_client: TestClient) -> None:
        response = disconnected_client.get("/api/stats")

        assert response.status_code == 200
        assert response.json() == {"totalSignups": 0, "connected": False}

    def test_storage_failure_reports_zero(
        self, client: TestClient, repository: InMemorySubscriberRepository
    ) -> None:
        repository.count = AsyncMock(side_effect=RuntimeError("count failed"))

        response = client.get("/api/stats")

        assert response.status_code == 200
        assert response.json() == {"totalSignups": 0, "connected": False}


class TestUnsupportedMethods:
    @pytest.mark.parametrize("path", ["/api/stats", "/api/health", "/anything"])
    def test_wrong_method_returns_405_in_waitlist_shape(self, client: TestClient, path: str) -> None:
        response = client.post(path, json={})

        assert response.status_code == 405
        assert response.json() == {"success": False, "message": "Method Not Allowed"}

"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before any app import so the global settings
object is built for an isolated, in-memory setup.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS", "5")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_SECONDS", "900")

from typing import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.storage.in_memory import InMemorySubscriberRepository
from app.core.app_factory import create_app


@pytest.fixture
def repository() -> InMemorySubscriberRepository:
    """Fresh in-memory subscriber store (connected by the app lifespan)."""
    return InMemorySubscriberRepository()


@pytest.fixture
def app(repository: InMemorySubscriberRepository, tmp_path) -> FastAPI:
    """App wired to the in-memory store and an empty static directory."""
    return create_app(repository, static_dir=str(tmp_path))


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Test client with lifespan (repository connect/close) enabled."""
    with TestClient(app) as test_client:
        yield test_client

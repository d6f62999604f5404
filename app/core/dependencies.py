"""FastAPI dependencies exposing app-scoped objects to routes.

The repository and service are created once in the app lifespan and stored on
``app.state``; routes receive them through these functions rather than module
globals, so tests can build isolated apps.
"""

from __future__ import annotations

from fastapi import Request

from app.adapters.storage.base import AbstractSubscriberRepository
from app.services.subscription_service import RequestMetadata, SubscriptionService


def get_subscriber_repository(request: Request) -> AbstractSubscriberRepository:
    """Return the process-wide subscriber repository."""
    return request.app.state.repository


def get_subscription_service(request: Request) -> SubscriptionService:
    """Return the subscription service bound to the app's repository."""
    return request.app.state.subscription_service


def get_request_metadata(request: Request) -> RequestMetadata:
    """Capture client IP and User-Agent for the subscriber record."""
    return RequestMetadata(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends

from app.adapters.storage.base import AbstractSubscriberRepository
from app.core.dependencies import get_subscriber_repository
from app.schemas.subscription import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
def health_check(
    repository: Annotated[AbstractSubscriberRepository, Depends(get_subscriber_repository)],
) -> HealthResponse:
    """Health check endpoint.

    Reports liveness plus whether the subscriber store connected at startup.
    Never fails: a disconnected store is reported, not raised.

    Returns:
        HealthResponse: status "ok", database connectivity and server time.
    """

    return HealthResponse(
        database="connected" if repository.connected else "disconnected",
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    )

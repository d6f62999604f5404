from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, status

from app.core.dependencies import get_request_metadata, get_subscription_service
from app.core.rate_limit import enforce_rate_limit
from app.schemas.subscription import StatsResponse, SubscribeRequest, SubscribeResponse
from app.services.subscription_service import RequestMetadata, SubscriptionService

router = APIRouter(tags=["Waitlist"])


@router.post(
    "/subscribe",
    response_model=SubscribeResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        400: {"model": SubscribeResponse, "description": "Invalid email address"},
        409: {"model": SubscribeResponse, "description": "Email already on the waitlist"},
        429: {"model": SubscribeResponse, "description": "Too many requests"},
        503: {"model": SubscribeResponse, "description": "Subscriber store unavailable"},
    },
)
async def subscribe(
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
    metadata: Annotated[RequestMetadata, Depends(get_request_metadata)],
    payload: Annotated[SubscribeRequest, Body()],
) -> SubscribeResponse:
    """Add an email to the waitlist.

    Rate limited per client IP. Errors are raised as domain errors and turned
    into ``{success: false, message}`` responses by the global handlers
    (400 invalid, 409 duplicate, 429 throttled, 503 store down, 500 other).

    Returns:
        SubscribeResponse: success flag, message and the new total signups.
    """
    outcome = await service.subscribe(payload.email, metadata)
    return SubscribeResponse(
        success=outcome.success,
        message=outcome.message,
        total_signups=outcome.total_signups,
    )


@router.get("/stats", response_model=StatsResponse)
async def stats(
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> StatsResponse:
    """Waitlist size; reports ``{totalSignups: 0, connected: false}`` on any failure."""
    result = await service.stats()
    return StatsResponse(total_signups=result.total_signups, connected=result.connected)

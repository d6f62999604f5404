"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
owns the lifecycle of the subscriber repository: it is created here, connected
once in the lifespan and closed on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.storage.base import AbstractSubscriberRepository
from app.adapters.storage.factory import create_subscriber_repository
from app.api.routes import frontend_router, health_router, waitlist_router
from app.core.config import PROJECT_ROOT, settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import build_rate_limiter
from app.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect the repository in the background, close it on shutdown.

    Startup waits at most ``connect_wait_seconds`` for the connection so a
    fast backend is settled before the first request. A slower one keeps
    connecting in the background while the app serves and reports the store
    as disconnected. ``connect()`` never raises; a failed attempt leaves the
    store disconnected until restarted.
    """
    repository: AbstractSubscriberRepository = app.state.repository
    connect_task = asyncio.create_task(repository.connect())
    done, _ = await asyncio.wait({connect_task}, timeout=app.state.connect_wait_seconds)
    if not done:
        logger.warning(
            "storage.connect_pending",
            extra={
                "backend": repository.backend_name,
                "waited_seconds": app.state.connect_wait_seconds,
            },
        )
    logger.info(
        "app.started",
        extra={
            "backend": repository.backend_name,
            "storage_connected": repository.connected,
            "port": settings.app.port,
        },
    )
    try:
        yield
    finally:
        if not connect_task.done():
            connect_task.cancel()
            with suppress(asyncio.CancelledError):
                await connect_task
        await repository.close()
        logger.info("app.stopped", extra={"backend": repository.backend_name})


def create_app(
    repository: AbstractSubscriberRepository | None = None,
    *,
    rate_limiter: AbstractRateLimiter | None = None,
    static_dir: str | None = None,
    connect_wait_seconds: float | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        repository: Subscriber store to use; built from settings when omitted.
        rate_limiter: Limiter for the subscribe endpoint; built from settings
            when omitted.
        static_dir: Frontend directory; defaults to ``APP_STATIC_DIR``
            resolved against the project root.
        connect_wait_seconds: Startup wait for the repository connection;
            defaults to ``STORAGE_CONNECT_WAIT_SECONDS``.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Waitlist API",
        description=(
            "Email waitlist signup service: subscribe an address (rate limited, "
            "case-insensitively unique), read the waitlist size, and check "
            "liveness and storage connectivity."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    repo = repository or create_subscriber_repository()
    app.state.repository = repo
    app.state.subscription_service = SubscriptionService(repo)
    app.state.rate_limiter = rate_limiter or build_rate_limiter()
    app.state.static_dir = str(PROJECT_ROOT / (static_dir or settings.app.static_dir))
    app.state.connect_wait_seconds = (
        settings.storage.connect_wait_seconds if connect_wait_seconds is None else connect_wait_seconds
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers (catch-all frontend route must stay last)
    app.include_router(health_router, prefix="/api")
    app.include_router(waitlist_router, prefix="/api")
    app.include_router(frontend_router)

    # OpenAPI customizations (tags, rate limit notes)
    apply_openapi_customizations(app)

    return app

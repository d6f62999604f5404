from __future__ import annotations

from app.api.routes.frontend import router as frontend_router
from app.api.routes.health import router as health_router
from app.api.routes.waitlist import router as waitlist_router

__all__ = ["frontend_router", "health_router", "waitlist_router"]

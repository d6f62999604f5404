"""Factory for the subscriber repository selected by configuration."""

from __future__ import annotations

from app.adapters.storage.base import AbstractSubscriberRepository
from app.adapters.storage.google_sheets import GoogleSheetsSubscriberRepository
from app.adapters.storage.in_memory import InMemorySubscriberRepository
from app.adapters.storage.mongodb import MongoSubscriberRepository
from app.core.config import StorageSettings, settings
from app.core.errors import ValidationAppError

SUPPORTED_BACKENDS = ("mongodb", "sheets", "memory")


def create_subscriber_repository(
    storage_settings: StorageSettings | None = None,
) -> AbstractSubscriberRepository:
    """Instantiate the configured repository (no I/O; call ``connect()`` next).

    Reads configuration from app.core.config.settings unless an override is
    given. Validates backend-specific requirements.

    Args:
        storage_settings: Optional settings override (mainly for tests).

    Returns:
        AbstractSubscriberRepository: Unconnected repository instance.

    Raises:
        ValidationAppError: If the backend is unknown or misconfigured.
    """
    cfg = storage_settings or settings.storage
    backend = cfg.backend.strip().lower()

    if backend == "mongodb":
        return MongoSubscriberRepository(
            cfg.mongodb_url,
            database=cfg.mongodb_database,
            collection=cfg.mongodb_collection,
            server_selection_timeout_ms=cfg.mongodb_server_selection_timeout_ms,
            connect_timeout_ms=cfg.mongodb_connect_timeout_ms,
        )

    if backend == "sheets":
        if not cfg.google_sheet_id:
            raise ValidationAppError(
                code="sheets_missing_sheet_id",
                message="Google Sheets backend requires GOOGLE_SHEET_ID environment variable",
            )
        return GoogleSheetsSubscriberRepository(
            cfg.google_sheet_id,
            cfg.google_credentials_path,
        )

    if backend == "memory":
        return InMemorySubscriberRepository()

    raise ValidationAppError(
        code="storage_unknown_backend",
        message=(
            f"Unknown storage backend: '{backend}'. "
            f"Supported backends: {', '.join(SUPPORTED_BACKENDS)}"
        ),
    )

"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes consistent without forcing every
    error site to fill all of them.
    """

    code: str
    message: str
    hint: str
    backend: str
    operation: str
    http_status: int
    retry_after: int
    limit: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class DuplicateEmailAppError(AppError):
    """Raised when the email is already on the waitlist."""


class ServiceUnavailableAppError(AppError):
    """Raised when the subscriber store is not connected."""


class StorageAppError(AppError):
    """Raised when a storage operation fails for reasons other than duplication."""


@dataclass
class RateLimitAppError(AppError):
    """Raised when a client exceeds its request budget.

    Attributes:
        headers: Throttling headers (Retry-After, X-RateLimit-*) for the response.
    """

    headers: dict[str, str] | None = None

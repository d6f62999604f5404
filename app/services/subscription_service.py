"""Waitlist subscription workflow.

Coordinates email validation, duplicate detection and persistence against the
configured subscriber repository. The same sequence runs for every backend:

1. fail fast when the repository is disconnected
2. normalize and validate the email
3. look the email up; an existing record is a duplicate
4. build the record with best-effort request metadata
5. insert (a storage-level duplicate is reported the same way as step 3)
6. return the new total signup count

Only backends with a uniqueness constraint (MongoDB) are race-safe for
concurrent signups of the same address. The Google Sheets backend relies on
step 3 alone, so simultaneous requests can both be stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from app.adapters.storage.base import (
    DUPLICATE_EMAIL_MESSAGE,
    SERVICE_UNAVAILABLE_MESSAGE,
    AbstractSubscriberRepository,
    SubscriberRecord,
)
from app.core.errors import (
    DuplicateEmailAppError,
    ServiceUnavailableAppError,
    ValidationAppError,
)
from app.core.logging import hash_identifier
from app.utils.email_normalizer import is_valid_email, normalize_email

logger = logging.getLogger(__name__)

INVALID_EMAIL_MESSAGE = "Please enter a valid email address."
SUCCESS_MESSAGE = "Successfully joined the waitlist!"


@dataclass(frozen=True)
class RequestMetadata:
    """Provenance captured from the HTTP request, best-effort."""

    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class SubscriptionOutcome:
    """Result of a successful subscription."""

    success: bool
    message: str
    total_signups: int


@dataclass(frozen=True)
class WaitlistStats:
    """Aggregate numbers for the stats endpoint."""

    total_signups: int
    connected: bool


class SubscriptionService:
    """Service that adds emails to the waitlist and reports its size.

    Attributes:
        repository: Subscriber store, connected (or failed) at startup.
        clock: Time source for ``created_at`` (UTC-aware datetimes).
    """

    def __init__(
        self,
        repository: AbstractSubscriberRepository,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def subscribe(
        self,
        raw_email: str | None,
        metadata: RequestMetadata | None = None,
    ) -> SubscriptionOutcome:
        """Add an email to the waitlist.

        Args:
            raw_email: Email as submitted by the client.
            metadata: Optional client IP / user agent to store with the record.

        Returns:
            SubscriptionOutcome with the total signup count after insertion.

        Raises:
            ServiceUnavailableAppError: If the repository is not connected.
            ValidationAppError: If the email is malformed.
            DuplicateEmailAppError: If the email is already on the waitlist.
            StorageAppError: If the repository fails otherwise.
        """
        if not self.repository.connected:
            logger.warning(
                "subscribe.unavailable",
                extra={"backend": self.repository.backend_name},
            )
            raise ServiceUnavailableAppError(
                code="storage_unavailable",
                message=SERVICE_UNAVAILABLE_MESSAGE,
                details={"backend": self.repository.backend_name},
            )

        email = normalize_email(raw_email)
        if not is_valid_email(email):
            logger.info(
                "subscribe.invalid_email",
                extra={"email_length": len(email)},
            )
            raise ValidationAppError(
                code="invalid_email",
                message=INVALID_EMAIL_MESSAGE,
            )

        email_hash = hash_identifier(email)
        logger.info("subscribe.start", extra={"email_hash": email_hash})

        if await self.repository.find_by_email(email) is not None:
            logger.info(
                "subscribe.duplicate",
                extra={"email_hash": email_hash, "detected_by": "lookup"},
            )
            raise DuplicateEmailAppError(
                code="duplicate_email",
                message=DUPLICATE_EMAIL_MESSAGE,
            )

        meta = metadata or RequestMetadata()
        record = SubscriberRecord(
            email=email,
            created_at=self.clock(),
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
        )

        try:
            await self.repository.insert(record)
        except DuplicateEmailAppError:
            # Lost a race with a concurrent signup for the same address.
            logger.info(
                "subscribe.duplicate",
                extra={"email_hash": email_hash, "detected_by": "storage"},
            )
            raise

        total = await self.repository.count()
        logger.info(
            "subscribe.success",
            extra={"email_hash": email_hash, "total_signups": total},
        )
        return SubscriptionOutcome(success=True, message=SUCCESS_MESSAGE, total_signups=total)

    async def stats(self) -> WaitlistStats:
        """Return the waitlist size; never raises.

        Any failure (disconnected store, backend error) is logged and reported
        as ``WaitlistStats(total_signups=0, connected=False)``.
        """
        if not self.repository.connected:
            return WaitlistStats(total_signups=0, connected=False)

        try:
            total = await self.repository.count()
        except Exception as exc:
            logger.error(
                "stats.failed",
                extra={
                    "backend": self.repository.backend_name,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return WaitlistStats(total_signups=0, connected=False)

        return WaitlistStats(total_signups=total, connected=True)

"""Subscriber repository interface.

Routes and the subscription workflow depend on this abstraction only; the
concrete backend (MongoDB, Google Sheets, in-memory) is chosen once at startup
by the factory.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from app.core.errors import ServiceUnavailableAppError

SERVICE_UNAVAILABLE_MESSAGE = "Database connection unavailable. Please try again later."
DUPLICATE_EMAIL_MESSAGE = "This email is already on our waitlist!"


@dataclass(frozen=True)
class SubscriberRecord:
    """A single waitlist signup.

    Attributes:
        email: Normalized (trimmed, lowercased) address; unique across records.
        created_at: UTC timestamp set at insertion (None only when a stored
            value cannot be parsed back, e.g. a hand-edited sheet cell).
        ip_address: Client address at signup time, if known.
        user_agent: Client User-Agent header at signup time, if known.
    """

    email: str
    created_at: datetime | None
    ip_address: str | None = None
    user_agent: str | None = None


class AbstractSubscriberRepository(ABC):
    """Interface for subscriber stores.

    Lifecycle: ``connect()`` is awaited exactly once at startup. It never
    raises; a failed attempt leaves ``connected`` False for the rest of the
    process lifetime and every data operation fails fast with
    ServiceUnavailableAppError.
    """

    backend_name: str = "abstract"

    def __init__(self) -> None:
        self._connected = False

    @property
    def connected(self) -> bool:
        """Whether the startup connection attempt succeeded."""
        return self._connected

    def _require_connection(self) -> None:
        if not self._connected:
            raise ServiceUnavailableAppError(
                code="storage_unavailable",
                message=SERVICE_UNAVAILABLE_MESSAGE,
                details={"backend": self.backend_name},
            )

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the backend and record whether it is usable."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_email(self, email: str) -> SubscriberRecord | None:
        """Return the record stored under a normalized email, if any.

        Raises:
            ServiceUnavailableAppError: If not connected.
            StorageAppError: If the backend call fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def insert(self, record: SubscriberRecord) -> None:
        """Persist a new record.

        Raises:
            ServiceUnavailableAppError: If not connected.
            DuplicateEmailAppError: If the backend itself rejects the email
                as a duplicate (only backends with a uniqueness constraint).
            StorageAppError: If the backend call fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def count(self) -> int:
        """Return the total number of stored records.

        Raises:
            ServiceUnavailableAppError: If not connected.
            StorageAppError: If the backend call fails.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release client resources on shutdown."""
        self._connected = False

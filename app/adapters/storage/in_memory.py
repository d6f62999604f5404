"""In-memory subscriber repository.

Process-local and lost on restart: meant for local development and tests.
Insert enforces email uniqueness the way a unique index would.
"""

from __future__ import annotations

import logging

from app.adapters.storage.base import (
    DUPLICATE_EMAIL_MESSAGE,
    AbstractSubscriberRepository,
    SubscriberRecord,
)
from app.core.errors import DuplicateEmailAppError

logger = logging.getLogger(__name__)


class InMemorySubscriberRepository(AbstractSubscriberRepository):
    """Dict-backed store keyed by normalized email."""

    backend_name = "memory"

    def __init__(self, *, available: bool = True) -> None:
        """Initialize the store.

        Args:
            available: When False, ``connect()`` fails and the repository stays
                disconnected (simulates an unreachable backend).
        """
        super().__init__()
        self._available = available
        self._records: dict[str, SubscriberRecord] = {}

    async def connect(self) -> None:
        self._connected = self._available
        if self._connected:
            logger.info("storage.connected", extra={"backend": self.backend_name})
        else:
            logger.error("storage.connect_failed", extra={"backend": self.backend_name})

    async def find_by_email(self, email: str) -> SubscriberRecord | None:
        self._require_connection()
        return self._records.get(email)

    async def insert(self, record: SubscriberRecord) -> None:
        self._require_connection()
        if record.email in self._records:
            raise DuplicateEmailAppError(
                code="duplicate_email",
                message=DUPLICATE_EMAIL_MESSAGE,
                details={"backend": self.backend_name, "operation": "insert"},
            )
        self._records[record.email] = record

    async def count(self) -> int:
        self._require_connection()
        return len(self._records)

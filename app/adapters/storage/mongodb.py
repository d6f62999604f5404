"""MongoDB subscriber repository.

Uses PyMongo's native asyncio client. Email uniqueness is enforced by a unique
index on ``email``, which makes concurrent duplicate inserts race-safe: the
losing insert fails with DuplicateKeyError and is reported as a duplicate.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from pymongo import AsyncMongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.adapters.storage.base import (
    DUPLICATE_EMAIL_MESSAGE,
    AbstractSubscriberRepository,
    SubscriberRecord,
)
from app.core.errors import DuplicateEmailAppError, StorageAppError
from app.core.logging import mask_connection_string

logger = logging.getLogger(__name__)


class MongoSubscriberRepository(AbstractSubscriberRepository):
    """Subscriber store backed by a single MongoDB collection.

    Document layout::

        {email: str (unique), createdAt: datetime, ipAddress: str, userAgent: str}
    """

    backend_name = "mongodb"

    def __init__(
        self,
        url: str,
        *,
        database: str = "falconlink",
        collection: str = "emails",
        server_selection_timeout_ms: int = 5000,
        connect_timeout_ms: int = 10000,
        client_factory: Callable[..., Any] = AsyncMongoClient,
    ) -> None:
        """Configure the repository; no I/O happens until ``connect()``.

        Args:
            url: MongoDB connection string.
            database: Database used when the connection string names none.
            collection: Collection holding subscriber documents.
            server_selection_timeout_ms: Bound on server selection at startup.
            connect_timeout_ms: Bound on establishing the TCP connection.
            client_factory: Client constructor (overridable in tests).
        """
        super().__init__()
        self._url = url
        self._database_name = database
        self._collection_name = collection
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._connect_timeout_ms = connect_timeout_ms
        self._client_factory = client_factory
        self._client: Any = None
        self._collection: Any = None

    async def connect(self) -> None:
        """Ping the server and ensure the unique email index.

        Any failure (malformed URI or port, timeout, auth error) is logged and
        leaves the repository disconnected until the process restarts.
        """
        target = mask_connection_string(self._url)
        logger.info("storage.connecting", extra={"backend": self.backend_name, "target": target})

        try:
            self._client = self._client_factory(
                self._url,
                serverSelectionTimeoutMS=self._server_selection_timeout_ms,
                connectTimeoutMS=self._connect_timeout_ms,
                tz_aware=True,
            )
            await self._client.admin.command("ping")
            db = self._client.get_default_database(default=self._database_name)
            self._collection = db[self._collection_name]
            await self._collection.create_index("email", unique=True)
        except (PyMongoError, ValueError, TypeError) as exc:
            logger.error(
                "storage.connect_failed",
                extra={
                    "backend": self.backend_name,
                    "target": target,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "hint": (
                        "Check that MongoDB is running or the connection string is correct; "
                        "set MONGODB_URL or MONGODB_URI; for Atlas check the IP allowlist "
                        "and credentials"
                    ),
                },
            )
            await self._discard_client()
            self._connected = False
            return

        self._connected = True
        logger.info("storage.connected", extra={"backend": self.backend_name, "target": target})

    async def find_by_email(self, email: str) -> SubscriberRecord | None:
        self._require_connection()
        try:
            doc = await self._collection.find_one({"email": email})
        except PyMongoError as exc:
            raise self._storage_error("find_by_email", exc) from exc
        return _record_from_document(doc) if doc else None

    async def insert(self, record: SubscriberRecord) -> None:
        self._require_connection()
        try:
            await self._collection.insert_one(_document_from_record(record))
        except DuplicateKeyError as exc:
            raise DuplicateEmailAppError(
                code="duplicate_email",
                message=DUPLICATE_EMAIL_MESSAGE,
                details={"backend": self.backend_name, "operation": "insert"},
            ) from exc
        except PyMongoError as exc:
            raise self._storage_error("insert", exc) from exc

    async def count(self) -> int:
        self._require_connection()
        try:
            return await self._collection.count_documents({})
        except PyMongoError as exc:
            raise self._storage_error("count", exc) from exc

    async def close(self) -> None:
        await self._discard_client()
        await super().close()

    async def _discard_client(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._collection = None

    def _storage_error(self, operation: str, exc: Exception) -> StorageAppError:
        return StorageAppError(
            code="storage_operation_failed",
            message=f"MongoDB {operation} failed: {exc}",
            details={"backend": self.backend_name, "operation": operation},
        )


def _document_from_record(record: SubscriberRecord) -> dict[str, Any]:
    doc: dict[str, Any] = {"email": record.email, "createdAt": record.created_at}
    if record.ip_address is not None:
        doc["ipAddress"] = record.ip_address
    if record.user_agent is not None:
        doc["userAgent"] = record.user_agent
    return doc


def _record_from_document(doc: dict[str, Any]) -> SubscriberRecord:
    return SubscriberRecord(
        email=doc["email"],
        created_at=doc["createdAt"],
        ip_address=doc.get("ipAddress"),
        user_agent=doc.get("userAgent"),
    )

"""Google Sheets subscriber repository.

The sheet is used as a two-column table::

    | A (Email)        | B (DateTime)               |
    |------------------|----------------------------|
    | Email            | DateTime                   |   <- row 1, header
    | ada@example.com  | 2024-05-01T12:00:00.000Z   |

There is no index: ``find_by_email`` reads the email column and scans it
linearly, fetching the full row only on a hit. ``insert`` appends without
checking uniqueness. Duplicate prevention relies on the caller's
read-before-write check, so two concurrent signups for the same address can
both be appended.

gspread is synchronous; every call runs in the default thread-pool executor
so the event loop is never blocked. No timeout is applied to these calls.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable

import gspread

from app.adapters.storage.base import AbstractSubscriberRepository, SubscriberRecord
from app.core.errors import StorageAppError

logger = logging.getLogger(__name__)

HEADER_ROW = ["Email", "DateTime"]


def _service_account_client(credentials_path: str) -> gspread.Client:
    """Build an authorized gspread client from a service-account JSON file."""
    return gspread.service_account(filename=credentials_path)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision and ``Z``."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime | None:
    """Parse a DateTime cell; returns None for blank or hand-edited cells."""
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


class GoogleSheetsSubscriberRepository(AbstractSubscriberRepository):
    """Subscriber store backed by the first worksheet of a Google Sheet."""

    backend_name = "sheets"

    def __init__(
        self,
        sheet_id: str,
        credentials_path: str,
        *,
        client_factory: Callable[[str], Any] = _service_account_client,
    ) -> None:
        """Configure the repository; no I/O happens until ``connect()``.

        Args:
            sheet_id: Spreadsheet key (the ID in the sheet URL).
            credentials_path: Path to the service-account JSON credentials.
            client_factory: Builds an authorized client from the credentials
                path (overridable in tests).
        """
        super().__init__()
        self._sheet_id = sheet_id
        self._credentials_path = credentials_path
        self._client_factory = client_factory
        self._worksheet: Any = None

    async def _run(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: func(*args, **kwargs))

    def _open_worksheet(self) -> Any:
        client = self._client_factory(self._credentials_path)
        worksheet = client.open_by_key(self._sheet_id).sheet1
        # One read confirms access and existence; an empty row 1 gets the header.
        if not worksheet.row_values(1):
            worksheet.append_row(HEADER_ROW, value_input_option="RAW")
            logger.info("storage.sheets_header_written", extra={"backend": self.backend_name})
        return worksheet

    async def connect(self) -> None:
        """Load credentials, open the sheet and ensure the header row.

        Any failure leaves the repository disconnected for the rest of the
        process lifetime; there is no retry.
        """
        logger.info(
            "storage.connecting",
            extra={"backend": self.backend_name, "sheet_id": self._sheet_id},
        )
        try:
            self._worksheet = await self._run(self._open_worksheet)
        except Exception as exc:
            logger.error(
                "storage.connect_failed",
                extra={
                    "backend": self.backend_name,
                    "sheet_id": self._sheet_id,
                    "credentials_path": self._credentials_path,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "hint": (
                        "Check GOOGLE_SHEET_ID, that the credentials file exists, and that "
                        "the sheet is shared with the service account"
                    ),
                },
            )
            self._worksheet = None
            self._connected = False
            return

        self._connected = True
        logger.info("storage.connected", extra={"backend": self.backend_name, "sheet_id": self._sheet_id})

    async def find_by_email(self, email: str) -> SubscriberRecord | None:
        self._require_connection()
        emails = await self._call("find_by_email", self._worksheet.col_values, 1)
        # Row 1 is the header; sheet rows are 1-based.
        for row_number, value in enumerate(emails[1:], start=2):
            if value.strip().lower() == email:
                row = await self._call("find_by_email", self._worksheet.row_values, row_number)
                created = row[1] if len(row) > 1 else ""
                return SubscriberRecord(email=email, created_at=parse_timestamp(created))
        return None

    async def insert(self, record: SubscriberRecord) -> None:
        self._require_connection()
        created = record.created_at or datetime.now(timezone.utc)
        await self._call(
            "insert",
            self._worksheet.append_row,
            [record.email, format_timestamp(created)],
            value_input_option="RAW",
        )

    async def count(self) -> int:
        self._require_connection()
        emails = await self._call("count", self._worksheet.col_values, 1)
        # Row 1 is the header; a sheet with no rows at all counts as empty.
        return max(0, len(emails) - 1)

    async def close(self) -> None:
        self._worksheet = None
        await super().close()

    async def _call(self, operation: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return await self._run(func, *args, **kwargs)
        except Exception as exc:
            raise StorageAppError(
                code="storage_operation_failed",
                message=f"Google Sheets {operation} failed: {exc}",
                details={"backend": self.backend_name, "operation": operation},
            ) from exc

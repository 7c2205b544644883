"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted document store because:
1. Users can view their expenses directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions or atomic increments, so day totals are maintained
  with a read-modify-write (see AggregateMaintainer)
- Limited query capabilities (we filter in Python)

Each top-level kind of collection ("expenses", "days", "users", "audit")
gets one worksheet. A row holds one document, keyed by its full path,
with the body JSON-encoded.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.config import get_settings
from expense_tracker.services.storage.interface import (
    SERVER_TIMESTAMP,
    ConnectionError,
    DocumentStore,
    Filter,
    NotFoundError,
    StorageError,
    matches_filters,
    parent_collection,
    split_path,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Column mappings for every document worksheet
DOCUMENT_COLUMNS = [
    "path",
    "collection",
    "doc_id",
    "document_json",
]

_DATETIME_TAG = "$datetime"


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_DATETIME_TAG: value.isoformat()}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode_object(obj: dict) -> Any:
    if len(obj) == 1 and _DATETIME_TAG in obj:
        return datetime.fromisoformat(obj[_DATETIME_TAG])
    return obj


def encode_document(doc: dict[str, Any]) -> str:
    return json.dumps(doc, default=_encode_value, ensure_ascii=False, sort_keys=True)


def decode_document(raw: str) -> dict[str, Any]:
    return json.loads(raw, object_hook=_decode_object) if raw else {}


def worksheet_title(collection_path: str) -> str:
    """The worksheet holding a collection: its last path segment."""
    return split_path(collection_path)[-1]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str) -> gspread.Worksheet:
        """Get or create the worksheet for a collection kind."""
        if title in self._worksheets:
            return self._worksheets[title]
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(DOCUMENT_COLUMNS),
            )
            sheet.append_row(DOCUMENT_COLUMNS)
        self._worksheets[title] = sheet
        return sheet


class GoogleSheetsDocumentStore(DocumentStore):
    """
    Google Sheets implementation of the document store.

    Writes are NOT retried: a failed write surfaces to the caller, which
    decides whether the cache rolls back or the day total goes stale.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._lock = asyncio.Lock()

    def _sheet(self, collection_path: str):
        return self._client.get_worksheet(worksheet_title(collection_path))

    @staticmethod
    def _resolve(doc: dict[str, Any]) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        return {
            key: (now if value is SERVER_TIMESTAMP else value)
            for key, value in doc.items()
        }

    @staticmethod
    def _find_row(all_rows: list[list[str]], path: str) -> Optional[int]:
        """1-based sheet row index of a document, header is row 1."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == path:
                return idx
        return None

    @staticmethod
    def _doc_path(collection_path: str, doc_id: str) -> str:
        return "/".join(split_path(collection_path) + [doc_id])

    def _write_row(self, sheet, idx: Optional[int], path: str, doc: dict[str, Any]) -> None:
        collection_path, doc_id = parent_collection(path)
        row = [path, collection_path, doc_id, encode_document(doc)]
        if idx is None:
            sheet.append_row(row, value_input_option="RAW")
        else:
            sheet.update(
                range_name=f"A{idx}:D{idx}",
                values=[row],
                value_input_option="RAW",
            )

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        """
        Run a blocking gspread call in a worker thread.

        Calls are serialized: row indices found by one call must still be
        valid when it writes.
        """
        async with self._lock:
            return await asyncio.to_thread(func, *args)

    async def create(self, collection_path: str, doc: dict[str, Any]) -> str:
        """Append a document row with a generated id."""
        return await self._run(self._create, collection_path, doc)

    async def get(self, doc_path: str) -> Optional[dict[str, Any]]:
        """Read a document by path."""
        return await self._run(self._get, doc_path)

    async def update(self, doc_path: str, partial_doc: dict[str, Any]) -> None:
        """Merge fields into an existing document row."""
        await self._run(self._update, doc_path, partial_doc)

    async def set(self, doc_path: str, doc: dict[str, Any]) -> None:
        """Create or replace a document row."""
        await self._run(self._set, doc_path, doc)

    async def delete(self, doc_path: str) -> None:
        """Delete a document row if present."""
        await self._run(self._delete, doc_path)

    async def query(
        self,
        collection_path: str,
        filters: Optional[list[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[tuple[str, dict[str, Any]]]:
        """Filter, sort and limit a collection in Python."""
        return await self._run(
            self._query, collection_path, filters or [], order_by, descending, limit
        )

    # =========================================================================
    # BLOCKING IMPLEMENTATIONS (worker thread)
    # =========================================================================

    def _create(self, collection_path: str, doc: dict[str, Any]) -> str:
        doc_id = uuid4().hex[:20]
        path = self._doc_path(collection_path, doc_id)
        try:
            sheet = self._sheet(collection_path)
            self._write_row(sheet, None, path, self._resolve(doc))
            return doc_id
        except Exception as e:
            raise StorageError(f"Failed to create document in {collection_path}: {e}")

    def _get(self, doc_path: str) -> Optional[dict[str, Any]]:
        path = "/".join(split_path(doc_path))
        collection_path, _ = parent_collection(path)
        try:
            sheet = self._sheet(collection_path)
            all_rows = sheet.get_all_values()
            idx = self._find_row(all_rows, path)
            if idx is None:
                return None
            row = all_rows[idx - 1]
            return decode_document(row[3] if len(row) > 3 else "")
        except Exception as e:
            raise StorageError(f"Failed to get document {doc_path}: {e}")

    def _update(self, doc_path: str, partial_doc: dict[str, Any]) -> None:
        path = "/".join(split_path(doc_path))
        collection_path, _ = parent_collection(path)
        try:
            sheet = self._sheet(collection_path)
            all_rows = sheet.get_all_values()
            idx = self._find_row(all_rows, path)
            if idx is None:
                raise NotFoundError(f"Document not found: {doc_path}")
            row = all_rows[idx - 1]
            doc = decode_document(row[3] if len(row) > 3 else "")
            doc.update(self._resolve(partial_doc))
            self._write_row(sheet, idx, path, doc)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update document {doc_path}: {e}")

    def _set(self, doc_path: str, doc: dict[str, Any]) -> None:
        path = "/".join(split_path(doc_path))
        collection_path, _ = parent_collection(path)
        try:
            sheet = self._sheet(collection_path)
            idx = self._find_row(sheet.get_all_values(), path)
            self._write_row(sheet, idx, path, self._resolve(doc))
        except Exception as e:
            raise StorageError(f"Failed to set document {doc_path}: {e}")

    def _delete(self, doc_path: str) -> None:
        path = "/".join(split_path(doc_path))
        collection_path, _ = parent_collection(path)
        try:
            sheet = self._sheet(collection_path)
            idx = self._find_row(sheet.get_all_values(), path)
            if idx is not None:
                sheet.delete_rows(idx)
        except Exception as e:
            raise StorageError(f"Failed to delete document {doc_path}: {e}")

    def _query(
        self,
        collection_path: str,
        filters: list[Filter],
        order_by: Optional[str],
        descending: bool,
        limit: Optional[int],
    ) -> list[tuple[str, dict[str, Any]]]:
        collection_key = "/".join(split_path(collection_path))
        try:
            sheet = self._sheet(collection_path)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to query {collection_path}: {e}")

        results = []
        for row in all_rows:
            if len(row) < 4 or row[1] != collection_key:
                continue
            try:
                doc = decode_document(row[3])
            except ValueError:
                logger.warning("malformed_document_row", path=row[0])
                continue  # Skip malformed rows
            if matches_filters(doc, filters):
                results.append((row[2], doc))

        if order_by:
            results = [item for item in results if order_by in item[1]]
            results.sort(key=lambda item: item[1][order_by], reverse=descending)
        if limit is not None:
            results = results[:limit]
        return results

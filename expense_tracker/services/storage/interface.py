"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract document-store interface.
This allows us to:
1. Run on Google Sheets without the services knowing about worksheets
2. Use in-memory storage for testing
3. Swap in a hosted document database later

The interface is intentionally small - create, get, update, set, delete
and a filtered query. It is NOT transactional: callers that keep
derived data (day totals) in sync must accept read-modify-write races.

Paths are slash-separated, alternating collection and document ids:
    users/{owner}/expenses            (collection)
    users/{owner}/expenses/{id}       (document)
"""

from abc import ABC, abstractmethod
from typing import Any, NamedTuple, Optional
from uuid import UUID

from expense_tracker.models.audit import AuditEvent


class _ServerTimestamp:
    """Sentinel resolved by the store to the time of the write."""

    _instance: Optional["_ServerTimestamp"] = None

    def __new__(cls) -> "_ServerTimestamp":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

FILTER_OPERATORS = ("==", "<", "<=", ">", ">=")


class Filter(NamedTuple):
    """A single equality or range condition on a document field."""
    field: str
    op: str
    value: Any


def split_path(path: str) -> list[str]:
    parts = [part for part in path.strip("/").split("/") if part]
    if not parts:
        raise ValueError("Empty document path")
    return parts


def is_collection_path(path: str) -> bool:
    return len(split_path(path)) % 2 == 1


def parent_collection(doc_path: str) -> tuple[str, str]:
    """Split a document path into (collection_path, doc_id)."""
    parts = split_path(doc_path)
    if len(parts) % 2 != 0:
        raise ValueError(f"Not a document path: {doc_path}")
    return "/".join(parts[:-1]), parts[-1]


def matches_filters(doc: dict, filters: list[Filter]) -> bool:
    """Evaluate filters against a document. Missing fields never match."""
    for flt in filters:
        if flt.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {flt.op}")
        if flt.field not in doc:
            return False
        value = doc[flt.field]
        try:
            if flt.op == "==" and not value == flt.value:
                return False
            if flt.op == "<" and not value < flt.value:
                return False
            if flt.op == "<=" and not value <= flt.value:
                return False
            if flt.op == ">" and not value > flt.value:
                return False
            if flt.op == ">=" and not value >= flt.value:
                return False
        except TypeError:
            return False
    return True


class DocumentStore(ABC):
    """
    Abstract interface for document storage operations.

    Any storage implementation (Google Sheets, in-memory, etc.)
    must implement these methods. Returned documents are copies;
    mutating them never changes stored state.
    """

    @abstractmethod
    async def create(self, collection_path: str, doc: dict[str, Any]) -> str:
        """
        Add a document with a generated id.

        Args:
            collection_path: Collection to add to
            doc: Document body; SERVER_TIMESTAMP values are resolved

        Returns:
            The generated document id
        """
        pass

    @abstractmethod
    async def get(self, doc_path: str) -> Optional[dict[str, Any]]:
        """
        Read a document.

        Returns:
            The document body, or None if absent
        """
        pass

    @abstractmethod
    async def update(self, doc_path: str, partial_doc: dict[str, Any]) -> None:
        """
        Merge fields into an existing document.

        Raises:
            NotFoundError: If the document doesn't exist
        """
        pass

    @abstractmethod
    async def set(self, doc_path: str, doc: dict[str, Any]) -> None:
        """Create or replace a document."""
        pass

    @abstractmethod
    async def delete(self, doc_path: str) -> None:
        """Delete a document. Deleting an absent document is a no-op."""
        pass

    @abstractmethod
    async def query(
        self,
        collection_path: str,
        filters: Optional[list[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[tuple[str, dict[str, Any]]]:
        """
        Query a collection.

        Args:
            collection_path: Collection to query
            filters: Conditions that must all hold
            order_by: Field to sort on; documents missing it are excluded
            descending: Sort direction
            limit: Maximum number of results

        Returns:
            Ordered list of (doc_id, document) pairs
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events with a given correlation ID.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass

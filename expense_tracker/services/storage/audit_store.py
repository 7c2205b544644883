"""
Document-store backed audit log.

Audit events share the document store with expenses so a single
backend setting covers both.
"""

from typing import Optional
from uuid import UUID

import structlog

from expense_tracker.models.audit import AuditEvent
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    DocumentStore,
    Filter,
    StorageError,
)


AUDIT_COLLECTION = "audit"

logger = structlog.get_logger(__name__)


class DocumentAuditStorage(AuditStorageInterface):
    """
    Audit log stored as documents keyed by event id.

    Audit events are append-only.
    """

    def __init__(self, store: DocumentStore, collection: str = AUDIT_COLLECTION):
        self._store = store
        self._collection = collection

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            await self._store.set(
                f"{self._collection}/{event.event_id}",
                event.to_document(),
            )
            return True
        except StorageError as e:
            # Audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    def _to_events(self, rows: list[tuple[str, dict]]) -> list[AuditEvent]:
        events = []
        for doc_id, doc in rows:
            try:
                events.append(AuditEvent.from_document(doc_id, doc))
            except ValueError:
                logger.warning("malformed_audit_event", event_id=doc_id)
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID, chronological."""
        rows = await self._store.query(
            self._collection,
            filters=[Filter("correlation_id", "==", str(correlation_id))],
            order_by="timestamp",
        )
        return self._to_events(rows)

    async def get_recent_events(
        self,
        limit: int = 100,
        owner: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        filters = [Filter("owner", "==", owner)] if owner else None
        rows = await self._store.query(
            self._collection,
            filters=filters,
            order_by="timestamp",
            descending=True,
            limit=limit,
        )
        return self._to_events(rows)

"""Tests for the audit logger and its document-store backend."""

import pytest

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.models.audit import AuditEventBuilder, AuditEventType
from expense_tracker.models.expense import ExpenseInput
from expense_tracker.services.expenses import ExpenseService
from expense_tracker.services.storage import (
    DocumentAuditStorage,
    InMemoryDocumentStore,
    StorageError,
)


class FailingStore(InMemoryDocumentStore):
    """Every set fails."""

    async def set(self, doc_path, doc):
        raise StorageError("write failed")


class ExplodingStorage:
    """Audit storage that raises something unexpected."""

    async def append_event(self, event):
        raise RuntimeError("boom")


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_local_only_logging(self):
        """Test logging without storage always succeeds."""
        logger = AuditLogger()
        event = AuditEventBuilder.user_signed_out(uid="u1")
        assert await logger.log(event) is True

    @pytest.mark.asyncio
    async def test_persists_to_storage(self):
        """Test events are appended to the audit collection."""
        storage = DocumentAuditStorage(InMemoryDocumentStore())
        logger = AuditLogger(storage)
        await logger.log_user_signed_in("u1", "password")

        events = await storage.get_recent_events(owner="u1")
        assert [e.event_type for e in events] == [AuditEventType.USER_SIGNED_IN]

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        """Test a failing backend is reported, never raised."""
        logger = AuditLogger(DocumentAuditStorage(FailingStore()))
        assert await logger.log(AuditEventBuilder.user_signed_out(uid="u1")) is False

        logger = AuditLogger(ExplodingStorage())
        assert await logger.log(AuditEventBuilder.user_signed_out(uid="u1")) is False


class TestDocumentAuditStorage:
    """Tests for queries on the audit collection."""

    @pytest.mark.asyncio
    async def test_recent_events_newest_first_and_limited(self):
        """Test ordering, owner filter and limit."""
        storage = DocumentAuditStorage(InMemoryDocumentStore())
        logger = AuditLogger(storage)
        await logger.log_user_signed_up("u1", "password")
        await logger.log_user_signed_in("u1", "password")
        await logger.log_user_signed_in("u2", "password")

        events = await storage.get_recent_events(limit=1, owner="u1")
        assert [e.event_type for e in events] == [AuditEventType.USER_SIGNED_IN]
        assert len(await storage.get_recent_events()) == 3

    @pytest.mark.asyncio
    async def test_expense_and_day_total_share_correlation_id(self):
        """Test an expense write and its day-total update can be traced together."""
        store = InMemoryDocumentStore()
        storage = DocumentAuditStorage(store)
        service = ExpenseService(store, audit_logger=AuditLogger(storage))

        await service.create_expense(
            "u1", ExpenseInput(amount=1000, description="Coffee", date="2025-01-05")
        )

        created = [
            e for e in await storage.get_recent_events(owner="u1")
            if e.event_type == AuditEventType.EXPENSE_CREATED
        ]
        assert len(created) == 1

        related = await storage.get_events_by_correlation_id(created[0].correlation_id)
        assert [e.event_type for e in related] == [
            AuditEventType.EXPENSE_CREATED,
            AuditEventType.DAY_TOTAL_UPDATED,
        ]

    @pytest.mark.asyncio
    async def test_unknown_correlation_id(self):
        """Test an unknown correlation id finds nothing."""
        storage = DocumentAuditStorage(InMemoryDocumentStore())
        assert await storage.get_events_by_correlation_id(create_correlation_id()) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

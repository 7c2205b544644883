"""Tests for component wiring and the quick-add flow end to end."""

import asyncio

import pytest

from expense_tracker.config import AppSettings
from expense_tracker.orchestrator import create_app_components, create_store
from expense_tracker.services.storage import InMemoryDocumentStore

OWNER = "user-1"
DAY = "2025-01-05"


@pytest.fixture
def components(tmp_path):
    settings = AppSettings(
        preferences_path=str(tmp_path / "prefs.json"),
        quick_add_window_seconds=0.02,
        quick_add_unit_amount=10000,
    )
    return create_app_components(store=InMemoryDocumentStore(), settings=settings)


async def settle():
    """Let fire-and-forget writes against the in-memory store finish."""
    for _ in range(100):
        await asyncio.sleep(0)


class TestCreateStore:
    """Tests for backend selection."""

    def test_memory_backend(self):
        """Test the default backend is in-memory."""
        store = create_store(AppSettings(storage_backend="memory"))
        assert isinstance(store, InMemoryDocumentStore)

    def test_unconfigured_sheets_falls_back(self, monkeypatch):
        """Test missing Google configuration falls back to memory."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        store = create_store(AppSettings(storage_backend="google_sheets"))
        assert isinstance(store, InMemoryDocumentStore)


class TestAppComponents:
    """Tests for the component factory."""

    def test_components_share_store_and_cache(self, components):
        """Test mutations are bound to the session cache."""
        assert components.mutations.cache is components.cache
        assert components.preferences.path.name == "prefs.json"

    @pytest.mark.asyncio
    async def test_quick_add_burst_creates_one_expense(self, components):
        """Test three taps persist a single expense and day total."""
        buffer = components.create_quick_add(OWNER, on_date=DAY)
        for _ in range(3):
            buffer.activate()

        await asyncio.sleep(0.1)
        await settle()

        expenses = await components.expenses.get_expenses_by_date(OWNER, DAY)
        assert [(e.amount, e.description, e.category) for e in expenses] == [
            (30000, "Quick expense x3", "Other"),
        ]
        assert await components.expenses.get_day_total(OWNER, DAY) == 30000

    @pytest.mark.asyncio
    async def test_quick_add_undo_after_flush_deletes(self, components):
        """Test undo after the window removes the persisted quick expense."""
        buffer = components.create_quick_add(OWNER, on_date=DAY)
        buffer.activate()
        await asyncio.sleep(0.1)
        await settle()

        await components.mutations.expenses_by_date(OWNER, DAY)
        assert buffer.undo().value == "deleted_persisted"
        await settle()

        assert await components.expenses.get_expenses_by_date(OWNER, DAY) == []
        assert await components.expenses.get_day_total(OWNER, DAY) == 0

    @pytest.mark.asyncio
    async def test_quick_add_undo_right_after_flush_reports_nothing(self, components):
        """Test undo while the flushed write is still provisional deletes nothing."""
        buffer = components.create_quick_add(OWNER, on_date=DAY)
        buffer.activate()
        assert buffer.flush_now() is True

        assert buffer.undo().value == "nothing"
        await settle()

        expenses = await components.expenses.get_expenses_by_date(OWNER, DAY)
        assert [e.amount for e in expenses] == [10000]
        assert await components.expenses.get_day_total(OWNER, DAY) == 10000


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

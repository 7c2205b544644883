"""Tests for the debounced quick-add buffer."""

import asyncio

import pytest

from expense_tracker.cache import QuickAddBuffer, UndoResult, quick_add_description

WINDOW = 0.05


class Recorder:
    """Collects flushes and pending-count changes."""

    def __init__(self):
        self.flushes: list[tuple[int, str]] = []
        self.pending: list[int] = []

    def on_flush(self, amount, description):
        self.flushes.append((amount, description))

    def on_pending_change(self, count):
        self.pending.append(count)


def make_buffer(recorder, **kwargs):
    return QuickAddBuffer(
        unit_amount=10000,
        on_flush=recorder.on_flush,
        window_seconds=WINDOW,
        on_pending_change=recorder.on_pending_change,
        **kwargs,
    )


class TestQuickAddDescription:
    """Tests for burst descriptions."""

    def test_single_tap(self):
        """Test one tap uses the plain description."""
        assert quick_add_description(1) == "Quick expense"

    def test_multiple_taps(self):
        """Test bursts carry their count."""
        assert quick_add_description(3) == "Quick expense x3"
        assert quick_add_description(2, "Snack") == "Snack x2"


class TestQuickAddBuffer:
    """Tests for debouncing, undo and close."""

    def test_rejects_bad_arguments(self):
        """Test unit amount and window must be positive."""
        with pytest.raises(ValueError):
            QuickAddBuffer(unit_amount=0, on_flush=lambda a, d: None)
        with pytest.raises(ValueError):
            QuickAddBuffer(unit_amount=100, on_flush=lambda a, d: None, window_seconds=0)

    @pytest.mark.asyncio
    async def test_burst_flushes_once(self):
        """Test three quick taps become one expense of three units."""
        recorder = Recorder()
        buffer = make_buffer(recorder)

        assert buffer.activate() == 1
        assert buffer.activate() == 2
        assert buffer.activate() == 3
        assert buffer.pending_amount == 30000
        assert recorder.flushes == []

        await asyncio.sleep(WINDOW * 4)
        assert recorder.flushes == [(30000, "Quick expense x3")]
        assert buffer.pending_count == 0
        assert recorder.pending == [1, 2, 3, 0]

    @pytest.mark.asyncio
    async def test_single_tap_description(self):
        """Test a single tap flushes with the plain description."""
        recorder = Recorder()
        buffer = make_buffer(recorder)
        buffer.activate()
        await asyncio.sleep(WINDOW * 4)
        assert recorder.flushes == [(10000, "Quick expense")]

    @pytest.mark.asyncio
    async def test_each_tap_restarts_window(self):
        """Test taps spaced inside the window keep extending it."""
        recorder = Recorder()
        buffer = make_buffer(recorder)
        for _ in range(3):
            buffer.activate()
            await asyncio.sleep(WINDOW / 3)
        assert recorder.flushes == []
        await asyncio.sleep(WINDOW * 4)
        assert recorder.flushes == [(30000, "Quick expense x3")]

    @pytest.mark.asyncio
    async def test_separate_bursts(self):
        """Test taps separated by quiet periods flush separately."""
        recorder = Recorder()
        buffer = make_buffer(recorder)
        buffer.activate()
        await asyncio.sleep(WINDOW * 4)
        buffer.activate()
        buffer.activate()
        await asyncio.sleep(WINDOW * 4)
        assert recorder.flushes == [(10000, "Quick expense"), (20000, "Quick expense x2")]

    @pytest.mark.asyncio
    async def test_undo_within_window_writes_nothing(self):
        """Test undo cancels the pending burst without any flush."""
        recorder = Recorder()
        buffer = make_buffer(recorder)
        buffer.activate()
        buffer.activate()

        assert buffer.undo() == UndoResult.CANCELLED_PENDING
        await asyncio.sleep(WINDOW * 4)
        assert recorder.flushes == []
        assert buffer.pending_count == 0

    @pytest.mark.asyncio
    async def test_undo_after_window_deletes_persisted(self):
        """Test undo with nothing pending delegates to the persisted callback."""
        recorder = Recorder()
        calls = []

        def undo_persisted():
            calls.append(1)
            return True

        buffer = make_buffer(recorder, on_undo_persisted=undo_persisted)
        buffer.activate()
        await asyncio.sleep(WINDOW * 4)

        assert buffer.undo() == UndoResult.DELETED_PERSISTED
        assert calls == [1]

    def test_undo_with_nothing(self):
        """Test undo reports NOTHING without a callback or a pending burst."""
        buffer = make_buffer(Recorder())
        assert buffer.undo() == UndoResult.NOTHING
        assert make_buffer(Recorder(), on_undo_persisted=lambda: False).undo() == UndoResult.NOTHING

    @pytest.mark.asyncio
    async def test_flush_now(self):
        """Test flush_now writes the burst immediately and only once."""
        recorder = Recorder()
        buffer = make_buffer(recorder)
        buffer.activate()
        buffer.activate()

        assert buffer.flush_now() is True
        assert recorder.flushes == [(20000, "Quick expense x2")]
        assert buffer.flush_now() is False

        await asyncio.sleep(WINDOW * 4)
        assert len(recorder.flushes) == 1

    @pytest.mark.asyncio
    async def test_close_discards_pending(self):
        """Test close cancels the timer and refuses further taps."""
        recorder = Recorder()
        buffer = make_buffer(recorder)
        buffer.activate()
        buffer.close()

        await asyncio.sleep(WINDOW * 4)
        assert recorder.flushes == []
        with pytest.raises(RuntimeError):
            buffer.activate()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

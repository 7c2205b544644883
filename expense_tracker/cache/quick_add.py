"""
Debounced Cumulative Quick Add

Each tap of the quick-add button adds one unit to a pending counter and
restarts a quiescence timer. When the timer fires, the whole burst is
written as ONE expense of count * unit_amount.

    tap, tap, tap ... 1s of quiet ... -> create(3 * unit, "Quick expense x3")

Undo inside the window drops the pending burst without any write.
Undo after the window hands off to a callback that deletes the newest
persisted expense of the day.

All methods must be called on the event loop thread; the timer is a
loop.call_later handle.
"""

import asyncio
from enum import Enum
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_DESCRIPTION = "Quick expense"


class UndoResult(str, Enum):
    """What an undo did."""
    CANCELLED_PENDING = "cancelled_pending"
    DELETED_PERSISTED = "deleted_persisted"
    NOTHING = "nothing"


def quick_add_description(count: int, base: str = DEFAULT_DESCRIPTION) -> str:
    return base if count == 1 else f"{base} x{count}"


class QuickAddBuffer:
    """
    Coalesces quick-add taps into a single create.

    Args:
        unit_amount: Minor units added per tap
        window_seconds: Quiet period after the last tap before flushing
        on_flush: Called as on_flush(amount, description) once per burst
        on_undo_persisted: Called when undo finds nothing pending;
            returns True if it removed a persisted expense
        on_pending_change: Called with the new pending count on every change
    """

    def __init__(
        self,
        unit_amount: int,
        on_flush: Callable[[int, str], object],
        window_seconds: float = 1.0,
        on_undo_persisted: Optional[Callable[[], bool]] = None,
        on_pending_change: Optional[Callable[[int], None]] = None,
        description: str = DEFAULT_DESCRIPTION,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if unit_amount <= 0:
            raise ValueError("unit_amount must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self._unit_amount = unit_amount
        self._window_seconds = window_seconds
        self._on_flush = on_flush
        self._on_undo_persisted = on_undo_persisted
        self._on_pending_change = on_pending_change
        self._description = description
        self._loop = loop
        self._count = 0
        self._handle: Optional[asyncio.TimerHandle] = None
        self._closed = False

    @property
    def pending_count(self) -> int:
        return self._count

    @property
    def pending_amount(self) -> int:
        return self._count * self._unit_amount

    def activate(self) -> int:
        """
        Register one tap and restart the window.

        Returns:
            The pending count after this tap
        """
        if self._closed:
            raise RuntimeError("QuickAddBuffer is closed")

        self._count += 1
        self._notify()
        self._cancel_timer()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self._window_seconds, self._fire)
        return self._count

    def undo(self) -> UndoResult:
        if self._count > 0:
            self._cancel_timer()
            logger.info("quick_add_cancelled", count=self._count)
            self._count = 0
            self._notify()
            return UndoResult.CANCELLED_PENDING

        if self._on_undo_persisted is not None and self._on_undo_persisted():
            return UndoResult.DELETED_PERSISTED
        return UndoResult.NOTHING

    def flush_now(self) -> bool:
        """Flush a pending burst immediately. Returns False if none was pending."""
        if self._count == 0:
            return False
        self._cancel_timer()
        self._fire()
        return True

    def close(self) -> None:
        """Cancel the timer. A burst still pending is discarded."""
        self._cancel_timer()
        if self._count:
            logger.info("quick_add_discarded_on_close", count=self._count)
        self._count = 0
        self._closed = True

    def _fire(self) -> None:
        self._handle = None
        count = self._count
        if count == 0:
            return

        amount = count * self._unit_amount
        description = quick_add_description(count, self._description)
        self._count = 0
        self._notify()

        logger.info("quick_add_flushed", count=count, amount=amount)
        self._on_flush(amount, description)

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _notify(self) -> None:
        if self._on_pending_change is not None:
            self._on_pending_change(self._count)

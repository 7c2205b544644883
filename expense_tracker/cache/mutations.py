"""
Expense Mutations

Binds ExpenseService writes to the QueryCache so the UI reflects an
intent immediately and reconciles with storage afterwards.

Create:
    1. Cancel in-flight fetches of the date's list and total
    2. Snapshot both
    3. Prepend a provisional expense (id "temp-<ms>") and add its amount
       to the total
    4. Await the write
    5. Success: invalidate the date's list, total and the recent lists
       Failure: restore the snapshot exactly, unless another mutation
       cancelled or invalidated the same keys in the meantime; then the
       keys are invalidated and the next read refetches

Steps 1-3 run synchronously before the first await, so a read right
after the intent already sees the optimistic state.

Delete:
    Mark the id pending, await the write, then invalidate every expense
    list and day total of the owner whatever the outcome. Failures are
    logged and reported as False.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.cache.query_cache import (
    CacheSnapshot,
    OptimisticUpdate,
    QueryCache,
    day_total_key,
    expenses_key,
    owner_prefixes,
    recent_expenses_key,
    recent_expenses_prefix,
)
from expense_tracker.models.expense import Expense, ExpenseInput, ExpenseUpdate
from expense_tracker.services.expenses import DEFAULT_RECENT_LIMIT, ExpenseService
from expense_tracker.services.storage import StorageError
from expense_tracker.utils.dates import DateLike, format_date

logger = structlog.get_logger(__name__)


def provisional_id(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"temp-{int(now.timestamp() * 1000)}"


class ExpenseMutations:
    """Optimistic create, reconciling delete and update, cached reads."""

    def __init__(
        self,
        service: ExpenseService,
        cache: QueryCache,
        audit_logger: Optional[AuditLogger] = None,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
    ):
        self._service = service
        self._cache = cache
        self._audit_logger = audit_logger
        self._recent_limit = recent_limit
        self._optimistic = OptimisticUpdate(cache)
        self._pending_deletes: set[tuple[str, str]] = set()

    @property
    def cache(self) -> QueryCache:
        return self._cache

    # =========================================================================
    # READS
    # =========================================================================

    async def expenses_by_date(self, owner: str, date: DateLike) -> list[Expense]:
        return await self._cache.fetch(
            expenses_key(owner, date),
            lambda: self._service.get_expenses_by_date(owner, date),
        )

    async def day_total(self, owner: str, date: DateLike) -> int:
        return await self._cache.fetch(
            day_total_key(owner, date),
            lambda: self._service.get_day_total(owner, date),
        )

    async def recent_expenses(self, owner: str, limit: Optional[int] = None) -> list[Expense]:
        limit = limit or self._recent_limit
        return await self._cache.fetch(
            recent_expenses_key(owner, limit),
            lambda: self._service.get_recent_expenses(owner, limit),
        )

    def cached_expenses(self, owner: str, date: DateLike) -> list[Expense]:
        """Last-known list for a date without touching storage."""
        return self._cache.get_data(expenses_key(owner, date)) or []

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_expense(self, owner: str, expense: ExpenseInput) -> Expense:
        """
        Optimistically create an expense.

        Raises:
            Whatever the write raised, after the cache has been rolled back
        """
        snapshot = self._apply_optimistic_create(owner, expense)
        return await self._persist_create(owner, expense, snapshot)

    def mutate_create(self, owner: str, expense: ExpenseInput) -> "asyncio.Task[Expense]":
        """
        Fire-and-forget create.

        Must be called on the event loop thread. The cache is updated
        before this returns; failures are logged and rolled back.
        """
        snapshot = self._apply_optimistic_create(owner, expense)
        task = asyncio.get_running_loop().create_task(
            self._persist_create(owner, expense, snapshot)
        )
        task.add_done_callback(_consume_task_result)
        return task

    def _apply_optimistic_create(self, owner: str, expense: ExpenseInput) -> CacheSnapshot:
        list_key = expenses_key(owner, expense.date)
        total_key = day_total_key(owner, expense.date)

        snapshot = self._optimistic.begin([list_key, total_key])

        now = datetime.now(timezone.utc)
        provisional = Expense(
            id=provisional_id(now),
            owner=owner,
            created_at=now,
            updated_at=now,
            **expense.model_dump(),
        )
        self._cache.update_data(list_key, lambda current: [provisional, *(current or [])])
        self._cache.update_data(total_key, lambda current: (current or 0) + expense.amount)
        return snapshot

    async def _persist_create(
        self,
        owner: str,
        expense: ExpenseInput,
        snapshot: CacheSnapshot,
    ) -> Expense:
        affected = [
            expenses_key(owner, expense.date),
            day_total_key(owner, expense.date),
            recent_expenses_prefix(owner),
        ]
        try:
            created = await self._service.create_expense(owner, expense)
        except Exception as e:
            restored = self._optimistic.rollback(snapshot, affected)
            logger.error(
                "optimistic_create_rolled_back",
                owner=owner,
                date=expense.date,
                restored=restored,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_optimistic_rollback(
                    owner=owner,
                    date=expense.date,
                    error_message=str(e),
                )
            raise

        self._optimistic.commit(affected)
        return created

    # =========================================================================
    # DELETE / UPDATE
    # =========================================================================

    def is_pending_delete(self, owner: str, expense_id: str) -> bool:
        return (owner, expense_id) in self._pending_deletes

    async def delete_expense(self, owner: str, expense_id: str) -> bool:
        """
        Delete an expense and reconcile the owner's cached lists and totals.

        Returns:
            True if an expense was deleted
        """
        self._pending_deletes.add((owner, expense_id))
        try:
            return await self._service.delete_expense(owner, expense_id)
        except StorageError as e:
            logger.error("expense_delete_failed", owner=owner, expense_id=expense_id, error=str(e))
            return False
        finally:
            self._invalidate_owner(owner)
            self._pending_deletes.discard((owner, expense_id))

    def mutate_delete(self, owner: str, expense_id: str) -> "asyncio.Task[bool]":
        """Fire-and-forget delete. Must be called on the event loop thread."""
        self._pending_deletes.add((owner, expense_id))
        return asyncio.get_running_loop().create_task(self.delete_expense(owner, expense_id))

    def undo_latest(self, owner: str, date: DateLike) -> bool:
        """
        Delete the newest persisted expense of a date.

        Provisional records and records already being deleted are skipped.

        Returns:
            False if no such expense is cached
        """
        for expense in self.cached_expenses(owner, date):
            if expense.is_provisional or self.is_pending_delete(owner, expense.id):
                continue
            self.mutate_delete(owner, expense.id)
            return True

        logger.debug("undo_nothing_persisted", owner=owner, date=format_date(date))
        return False

    async def update_expense(self, owner: str, update: ExpenseUpdate) -> None:
        """Write a partial update, then refetch the owner's lists and totals."""
        await self._service.update_expense(owner, update)
        self._invalidate_owner(owner)

    def _invalidate_owner(self, owner: str) -> None:
        for prefix in owner_prefixes(owner):
            self._cache.invalidate(prefix)


def _consume_task_result(task: asyncio.Task) -> None:
    # Failures were logged and rolled back inside the task
    if not task.cancelled():
        task.exception()

"""
Expense Persistence and Day-Total Maintenance

Expenses live under users/{owner}/expenses and a denormalized running
total per calendar day lives under users/{owner}/days/{YYYYMMDD}.

DESIGN DECISION: The day total is a best-effort counter, not a ledger.
- It is written AFTER the expense write, never in the same transaction
- A failed day-total write propagates to the caller and leaves the
  total stale; the expense write is not compensated
- Concurrent read-modify-writes on one day are last-write-wins

A stronger implementation would use an atomic increment or a
compare-and-set on a version field. The document store contract has
neither, so callers accept eventual inconsistency under partial failure.
"""

from typing import Any, Optional
from uuid import UUID

import structlog

from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.models.expense import (
    DayAggregate,
    Expense,
    ExpenseInput,
    ExpenseUpdate,
    PeriodTotal,
)
from expense_tracker.services.storage import (
    SERVER_TIMESTAMP,
    DocumentStore,
    Filter,
    NotFoundError,
    StorageError,
)
from expense_tracker.utils.dates import DateLike, format_date, format_date_key

logger = structlog.get_logger(__name__)

DEFAULT_RECENT_LIMIT = 50

# Fields that may be explicitly cleared by an update
_NULLABLE_FIELDS = ("notes", "receipt_image_url")


class ImmutableFieldError(Exception):
    """An update tried to change a field that is fixed after creation."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Field '{field}' cannot be changed after creation")


def expenses_collection(owner: str) -> str:
    return f"users/{owner}/expenses"


def days_collection(owner: str) -> str:
    return f"users/{owner}/days"


def expense_path(owner: str, expense_id: str) -> str:
    return f"{expenses_collection(owner)}/{expense_id}"


def day_path(owner: str, value: DateLike) -> str:
    return f"{days_collection(owner)}/{format_date_key(value)}"


class AggregateMaintainer:
    """
    Keeps users/{owner}/days/{YYYYMMDD}.total_amount in step with expenses.

    Read, add, write. Absent aggregates are created with the delta as
    their total. Aggregates are never deleted, so a day whose expenses
    were all removed keeps a zero total.
    """

    def __init__(
        self,
        store: DocumentStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    async def apply_delta(
        self,
        owner: str,
        date: DateLike,
        amount_delta: int,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Add amount_delta to the day total for (owner, date).

        Returns:
            The total that was written

        Raises:
            StorageError: If the read or the write fails. The total is
                left as it was.
        """
        iso_date = format_date(date)
        day_id = format_date_key(date)
        path = day_path(owner, date)

        try:
            current = await self._store.get(path)
            if current is not None:
                total = int(current.get("total_amount", 0)) + amount_delta
                await self._store.update(path, {
                    "total_amount": total,
                    "updated_at": SERVER_TIMESTAMP,
                })
            else:
                total = amount_delta
                await self._store.set(path, {
                    "date": iso_date,
                    "total_amount": total,
                    "owner": owner,
                    "created_at": SERVER_TIMESTAMP,
                    "updated_at": SERVER_TIMESTAMP,
                })
        except StorageError as e:
            logger.error(
                "aggregate_update_failed",
                owner=owner,
                day_id=day_id,
                delta=amount_delta,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_day_total_update_failed(
                    owner=owner,
                    day_id=day_id,
                    delta=amount_delta,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        logger.debug("aggregate_updated", owner=owner, day_id=day_id, total=total)
        if self._audit_logger:
            await self._audit_logger.log_day_total_updated(
                owner=owner,
                day_id=day_id,
                delta=amount_delta,
                total=total,
                correlation_id=correlation_id,
            )
        return total


class ExpenseService:
    """
    Persistence adapter for expenses and their day totals.

    Every operation is scoped to exactly one owner. The aggregate is
    touched only when the expense mutation actually happened.
    """

    def __init__(
        self,
        store: DocumentStore,
        aggregates: Optional[AggregateMaintainer] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._aggregates = aggregates or AggregateMaintainer(store, audit_logger)

    @property
    def aggregates(self) -> AggregateMaintainer:
        return self._aggregates

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create_expense(self, owner: str, expense: ExpenseInput) -> Expense:
        """
        Write a new expense, then add its amount to the day total.

        Raises:
            StorageError: If either write fails. When the expense write
                succeeded but the day-total write did not, the expense
                stays persisted.
        """
        correlation_id = create_correlation_id()

        doc = expense.model_dump()
        doc.update({
            "owner": owner,
            "created_at": SERVER_TIMESTAMP,
            "updated_at": SERVER_TIMESTAMP,
        })

        try:
            expense_id = await self._store.create(expenses_collection(owner), doc)
        except StorageError as e:
            await self._log_storage_error("create_expense", e, owner, correlation_id)
            raise

        logger.info(
            "expense_created",
            owner=owner,
            expense_id=expense_id,
            date=expense.date,
            amount=expense.amount,
        )
        if self._audit_logger:
            await self._audit_logger.log_expense_created(
                owner=owner,
                expense_id=expense_id,
                amount=expense.amount,
                date=expense.date,
                correlation_id=correlation_id,
            )

        await self._aggregates.apply_delta(
            owner, expense.date, expense.amount, correlation_id=correlation_id
        )

        stored = await self._store.get(expense_path(owner, expense_id))
        if stored is None:
            raise NotFoundError(f"Expense {expense_id} vanished after create")
        return Expense.from_document(expense_id, stored)

    async def update_expense(self, owner: str, update: ExpenseUpdate) -> None:
        """
        Apply a partial update.

        A changed amount moves the day total by (new - old). Moving an
        expense to another date is refused before anything is written.

        Raises:
            NotFoundError: If the expense doesn't exist
            ImmutableFieldError: If the update changes the date
        """
        changes = {
            key: value
            for key, value in update.changes().items()
            if value is not None or key in _NULLABLE_FIELDS
        }
        if not changes:
            return

        path = expense_path(owner, update.id)
        current = await self._store.get(path)
        if current is None:
            raise NotFoundError(f"Expense not found: {update.id}")

        if "date" in changes:
            if changes["date"] != current.get("date"):
                raise ImmutableFieldError("date")
            del changes["date"]

        correlation_id = create_correlation_id()
        try:
            await self._store.update(path, {**changes, "updated_at": SERVER_TIMESTAMP})
        except StorageError as e:
            await self._log_storage_error("update_expense", e, owner, correlation_id)
            raise

        logger.info(
            "expense_updated",
            owner=owner,
            expense_id=update.id,
            fields=sorted(changes),
        )
        if self._audit_logger:
            await self._audit_logger.log_expense_updated(
                owner=owner,
                expense_id=update.id,
                fields=sorted(changes),
                correlation_id=correlation_id,
            )

        if "amount" in changes:
            delta = changes["amount"] - int(current.get("amount", 0))
            if delta:
                await self._aggregates.apply_delta(
                    owner, current["date"], delta, correlation_id=correlation_id
                )

    async def delete_expense(self, owner: str, expense_id: str) -> bool:
        """
        Delete an expense and subtract its amount from the day total.

        Returns:
            False if the expense did not exist (nothing is written)
        """
        path = expense_path(owner, expense_id)
        current = await self._store.get(path)
        if current is None:
            logger.info("expense_delete_skipped", owner=owner, expense_id=expense_id)
            return False

        correlation_id = create_correlation_id()
        try:
            await self._store.delete(path)
        except StorageError as e:
            await self._log_storage_error("delete_expense", e, owner, correlation_id)
            raise

        amount = int(current.get("amount", 0))
        logger.info(
            "expense_deleted",
            owner=owner,
            expense_id=expense_id,
            date=current.get("date"),
            amount=amount,
        )
        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                owner=owner,
                expense_id=expense_id,
                amount=amount,
                date=current["date"],
                correlation_id=correlation_id,
            )

        await self._aggregates.apply_delta(
            owner, current["date"], -amount, correlation_id=correlation_id
        )
        return True

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_expense(self, owner: str, expense_id: str) -> Optional[Expense]:
        doc = await self._store.get(expense_path(owner, expense_id))
        return Expense.from_document(expense_id, doc) if doc is not None else None

    async def get_expenses_by_date(self, owner: str, date: DateLike) -> list[Expense]:
        """All expenses on a date, newest first."""
        rows = await self._store.query(
            expenses_collection(owner),
            filters=[Filter("date", "==", format_date(date))],
            order_by="created_at",
            descending=True,
        )
        return self._to_expenses(rows)

    async def get_recent_expenses(
        self,
        owner: str,
        limit: int = DEFAULT_RECENT_LIMIT,
    ) -> list[Expense]:
        """Most recently created expenses across all dates."""
        rows = await self._store.query(
            expenses_collection(owner),
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return self._to_expenses(rows)

    async def get_day_aggregate(self, owner: str, date: DateLike) -> Optional[DayAggregate]:
        doc = await self._store.get(day_path(owner, date))
        if doc is None:
            return None
        return DayAggregate(id=format_date_key(date), **doc)

    async def get_day_total(self, owner: str, date: DateLike) -> int:
        """Stored day total; 0 when no aggregate exists."""
        doc = await self._store.get(day_path(owner, date))
        if doc is None:
            return 0
        return int(doc.get("total_amount", 0))

    async def get_period_totals(
        self,
        owner: str,
        start: DateLike,
        end: DateLike,
    ) -> list[PeriodTotal]:
        """
        Day totals between start and end inclusive, ascending by date.

        Sparse: days without an aggregate are simply absent.
        """
        rows = await self._store.query(
            days_collection(owner),
            filters=[
                Filter("date", ">=", format_date(start)),
                Filter("date", "<=", format_date(end)),
            ],
            order_by="date",
        )
        return [
            PeriodTotal(date=doc["date"], total_amount=int(doc.get("total_amount", 0)))
            for _, doc in rows
        ]

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _to_expenses(self, rows: list[tuple[str, dict[str, Any]]]) -> list[Expense]:
        return [Expense.from_document(doc_id, doc) for doc_id, doc in rows]

    async def _log_storage_error(
        self,
        operation: str,
        error: Exception,
        owner: str,
        correlation_id: UUID,
    ) -> None:
        logger.error(operation + "_failed", owner=owner, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                owner=owner,
                correlation_id=correlation_id,
            )

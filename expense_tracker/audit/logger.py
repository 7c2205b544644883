"""
Audit Logger

DESIGN DECISION: Every expense mutation and auth action is logged.
This provides:
1. Traceability of each expense write and its paired day-total write
2. A trail to explain a stale day total after a partial failure
3. Sign-in history

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to tie an expense write to its day-total update
"""

import logging
import sys
from typing import Optional, Union
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder
from expense_tracker.services.storage import AuditStorageInterface


_PKG_LOGGER_NAME = "expense_tracker"

# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Attach a single stream handler to the package logger.

    Called once by entrypoints. Library modules only ever call
    structlog.get_logger(__name__).
    """
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    pkg_logger.setLevel(level)
    if not any(isinstance(h, logging.StreamHandler) for h in pkg_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        pkg_logger.addHandler(handler)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit collection of the document store (when configured)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_created(
        self,
        owner: str,
        expense_id: str,
        amount: int,
        date: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_created(
            owner=owner,
            expense_id=expense_id,
            amount=amount,
            date=date,
            correlation_id=correlation_id,
        ))

    async def log_expense_updated(
        self,
        owner: str,
        expense_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_updated(
            owner=owner,
            expense_id=expense_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        owner: str,
        expense_id: str,
        amount: int,
        date: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            owner=owner,
            expense_id=expense_id,
            amount=amount,
            date=date,
            correlation_id=correlation_id,
        ))

    async def log_day_total_updated(
        self,
        owner: str,
        day_id: str,
        delta: int,
        total: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.day_total_updated(
            owner=owner,
            day_id=day_id,
            delta=delta,
            total=total,
            correlation_id=correlation_id,
        ))

    async def log_day_total_update_failed(
        self,
        owner: str,
        day_id: str,
        delta: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a day total left stale by a failed aggregate write."""
        await self.log(AuditEventBuilder.day_total_update_failed(
            owner=owner,
            day_id=day_id,
            delta=delta,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_optimistic_rollback(
        self,
        owner: str,
        date: str,
        error_message: str,
    ) -> None:
        await self.log(AuditEventBuilder.optimistic_rollback(
            owner=owner,
            date=date,
            error_message=error_message,
        ))

    async def log_user_signed_up(self, uid: str, provider: str) -> None:
        await self.log(AuditEventBuilder.user_signed_up(uid=uid, provider=provider))

    async def log_user_signed_in(self, uid: str, provider: str) -> None:
        await self.log(AuditEventBuilder.user_signed_in(uid=uid, provider=provider))

    async def log_user_signed_out(self, uid: str) -> None:
        await self.log(AuditEventBuilder.user_signed_out(uid=uid))

    async def log_auth_failed(self, email: str, code: str) -> None:
        await self.log(AuditEventBuilder.auth_failed(email=email, code=code))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        owner: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage error."""
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            owner=owner,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a mutation and pass it through the
    expense write and its day-total update.
    """
    return uuid4()

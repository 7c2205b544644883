"""
Audit Models for Expense Tracker

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every expense mutation and its day-total update
2. Debugging information when a day total drifts from its expenses
3. A record of sign-in activity

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Expense mutations
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Denormalized totals
    DAY_TOTAL_UPDATED = "day_total_updated"
    DAY_TOTAL_UPDATE_FAILED = "day_total_update_failed"

    # Optimistic cache
    OPTIMISTIC_ROLLBACK = "optimistic_rollback"

    # Authentication
    USER_SIGNED_UP = "user_signed_up"
    USER_SIGNED_IN = "user_signed_in"
    USER_SIGNED_OUT = "user_signed_out"
    AUTH_FAILED = "auth_failed"

    # Storage
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - whose data, and which entity?
    owner: Optional[str] = Field(
        default=None,
        description="Principal whose data partition the event concerns"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'day', 'user')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., an expense write and its day-total update)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner": self.owner,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_document(self) -> dict:
        """Convert to a document body for the audit collection."""
        doc = self.to_log_dict()
        doc.pop("event_id")
        doc["timestamp"] = self.timestamp
        return doc

    @classmethod
    def from_document(cls, doc_id: str, doc: dict) -> "AuditEvent":
        return cls(event_id=UUID(doc_id), **doc)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(owner, expense_id, amount, date)
        event = AuditEventBuilder.auth_failed(email, code)
    """

    @staticmethod
    def expense_created(
        owner: str,
        expense_id: str,
        amount: int,
        date: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            owner=owner,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense created on {date}",
            details={"amount": amount, "date": date},
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(
        owner: str,
        expense_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            owner=owner,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense updated: {', '.join(fields) or 'no fields'}",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        owner: str,
        expense_id: str,
        amount: int,
        date: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            owner=owner,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense deleted from {date}",
            details={"amount": amount, "date": date},
            is_user_action=True,
        )

    @staticmethod
    def day_total_updated(
        owner: str,
        day_id: str,
        delta: int,
        total: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DAY_TOTAL_UPDATED,
            owner=owner,
            entity_type="day",
            entity_id=day_id,
            correlation_id=correlation_id,
            description=f"Day total {day_id} changed by {delta}",
            details={"delta": delta, "total_amount": total},
        )

    @staticmethod
    def day_total_update_failed(
        owner: str,
        day_id: str,
        delta: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DAY_TOTAL_UPDATE_FAILED,
            severity=AuditSeverity.ERROR,
            owner=owner,
            entity_type="day",
            entity_id=day_id,
            correlation_id=correlation_id,
            description=f"Day total {day_id} is stale: delta {delta} was not applied",
            details={"delta": delta},
            error_message=error_message,
        )

    @staticmethod
    def optimistic_rollback(
        owner: str,
        date: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPTIMISTIC_ROLLBACK,
            severity=AuditSeverity.WARNING,
            owner=owner,
            entity_type="day",
            description=f"Optimistic create on {date} rolled back",
            details={"date": date},
            error_message=error_message,
        )

    @staticmethod
    def user_signed_up(uid: str, provider: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_UP,
            owner=uid,
            entity_type="user",
            entity_id=uid,
            description=f"Account created via {provider}",
            details={"provider": provider},
            is_user_action=True,
        )

    @staticmethod
    def user_signed_in(uid: str, provider: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_IN,
            owner=uid,
            entity_type="user",
            entity_id=uid,
            description=f"Signed in via {provider}",
            details={"provider": provider},
            is_user_action=True,
        )

    @staticmethod
    def user_signed_out(uid: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_OUT,
            owner=uid,
            entity_type="user",
            entity_id=uid,
            description="Signed out",
            is_user_action=True,
        )

    @staticmethod
    def auth_failed(email: str, code: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTH_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            description=f"Authentication failed: {code}",
            details={"email": email},
            error_code=code,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        owner: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            owner=owner,
            description=f"Storage error during {operation}",
            details={"operation": operation},
            error_message=error_message,
            correlation_id=correlation_id,
        )

"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    DEFAULT_CATEGORIES,
    DayAggregate,
    Expense,
    ExpenseCategory,
    ExpenseInput,
    ExpenseUpdate,
    PeriodTotal,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.models.auth import (
    AuthErrorCode,
    Principal,
    UserRecord,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "DEFAULT_CATEGORIES",
    "DayAggregate",
    "Expense",
    "ExpenseCategory",
    "ExpenseInput",
    "ExpenseUpdate",
    "PeriodTotal",
    "ValidationIssue",
    "ValidationResult",
    # Auth models
    "AuthErrorCode",
    "Principal",
    "UserRecord",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

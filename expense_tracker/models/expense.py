"""
Core Data Models for Expense Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep money as integer minor units (hundredths), never floats
3. Be serializable for the document store and for logging

DESIGN DECISION: Amounts use strict integers. A float amount is a bug
upstream (usually a missed parse_currency call) and is rejected loudly
instead of being silently truncated.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Default expense categories offered by the expense form.

    The category field on an expense is a plain string so users can
    extend the set; these are only the built-in choices.
    """
    FOOD_AND_DINING = "Food & Dining"
    TRANSPORTATION = "Transportation"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    BILLS_AND_UTILITIES = "Bills & Utilities"
    HEALTHCARE = "Healthcare"
    TRAVEL = "Travel"
    EDUCATION = "Education"
    GIFTS = "Gifts"
    OTHER = "Other"


DEFAULT_CATEGORIES: list[str] = [category.value for category in ExpenseCategory]


def _validate_iso_date(value: str) -> str:
    try:
        parsed = date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"Date must be YYYY-MM-DD, got {value!r}")
    # fromisoformat accepts YYYYMMDD on newer interpreters; only the
    # dashed form is a valid partition key.
    if parsed.isoformat() != value:
        raise ValueError(f"Date must be YYYY-MM-DD, got {value!r}")
    return value


# =============================================================================
# EXPENSE MODELS
# =============================================================================

class ExpenseInput(BaseModel):
    """
    Fields a user submits when recording an expense.

    This is the create payload; identity, ownership and timestamps are
    assigned by the persistence layer.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: int = Field(
        ...,
        strict=True,
        description="Signed amount in minor units (hundredths)"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was spent on"
    )
    category: str = Field(
        default=ExpenseCategory.OTHER.value,
        min_length=1,
        max_length=50,
    )
    tags: list[str] = Field(
        default_factory=list,
        description="Ordered display tags"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    receipt_image_url: Optional[str] = None
    date: str = Field(
        ...,
        description="Calendar date, YYYY-MM-DD; partition key for day totals"
    )

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        """Tags must be non-empty strings."""
        cleaned = [tag.strip() for tag in v]
        if any(not tag for tag in cleaned):
            raise ValueError("Tags must be non-empty strings")
        return cleaned

    @field_validator('date')
    @classmethod
    def validate_date(cls, v: str) -> str:
        return _validate_iso_date(v)


class Expense(ExpenseInput):
    """
    A persisted expense record.

    Ordering within a day is by created_at, newest first.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier assigned by the document store"
    )
    owner: str = Field(
        ...,
        min_length=1,
        description="Principal that owns this expense"
    )
    created_at: datetime
    updated_at: datetime

    def to_document(self) -> dict[str, Any]:
        """Convert to a document body (the id lives in the path)."""
        return self.model_dump(exclude={"id"})

    @classmethod
    def from_document(cls, doc_id: str, doc: dict[str, Any]) -> "Expense":
        return cls(id=doc_id, **{k: v for k, v in doc.items() if k != "id"})

    @property
    def is_provisional(self) -> bool:
        """True for optimistic records that have not been confirmed yet."""
        return self.id.startswith("temp-")


class ExpenseUpdate(BaseModel):
    """
    Partial update for an existing expense.

    Only fields that are set are written.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    amount: Optional[int] = Field(default=None, strict=True)
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    tags: Optional[list[str]] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    receipt_image_url: Optional[str] = None
    date: Optional[str] = None

    @field_validator('date')
    @classmethod
    def validate_date(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _validate_iso_date(v)

    def changes(self) -> dict[str, Any]:
        """Fields explicitly set by the caller, excluding the id."""
        return self.model_dump(exclude_unset=True, exclude={"id"})


# =============================================================================
# DAY AGGREGATE MODELS
# =============================================================================

class DayAggregate(BaseModel):
    """
    Denormalized running total for one (owner, date).

    Intended to equal the sum of that day's expense amounts. It is a
    best-effort counter: see AggregateMaintainer for failure semantics.
    """

    id: str = Field(
        ...,
        pattern=r"^\d{8}$",
        description="YYYYMMDD key derived from the date"
    )
    date: str
    total_amount: int = Field(
        default=0,
        strict=True,
        description="Sum of amounts in minor units"
    )
    owner: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('date')
    @classmethod
    def validate_date(cls, v: str) -> str:
        return _validate_iso_date(v)


class PeriodTotal(BaseModel):
    """One entry of a sparse period-totals sequence."""

    date: str
    total_amount: int


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested action for the user"
    )


class ValidationResult(BaseModel):
    """
    Result of validating an expense form submission.

    When is_valid is False the submission must be refused before any
    network call is made.
    """

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    expense: Optional[ExpenseInput] = Field(
        default=None,
        description="The parsed payload, present only when valid"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

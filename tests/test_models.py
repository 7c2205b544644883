"""
Tests for Expense Tracker models

Test strategy:
1. Unit tests for individual components (models, validators, helpers)
2. Service tests against the in-memory document store
3. No real API calls in tests (Google Sheets is faked)
"""

import pytest
from datetime import datetime, timezone
from uuid import uuid4

from expense_tracker.models.expense import (
    DEFAULT_CATEGORIES,
    DayAggregate,
    Expense,
    ExpenseCategory,
    ExpenseInput,
    ExpenseUpdate,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from expense_tracker.models.auth import Principal, UserRecord


NOW = datetime(2025, 1, 5, 9, 30, tzinfo=timezone.utc)


class TestExpenseModels:
    """Tests for expense-related Pydantic models."""

    def test_expense_input_creation(self):
        """Test ExpenseInput model creation."""
        expense = ExpenseInput(
            amount=12050,
            description="Lunch",
            category="Food & Dining",
            tags=["work"],
            date="2025-01-05",
        )
        assert expense.amount == 12050
        assert expense.category == "Food & Dining"
        assert expense.notes is None

    def test_expense_input_defaults(self):
        """Test category and tags defaults."""
        expense = ExpenseInput(amount=100, description="Gum", date="2025-01-05")
        assert expense.category == "Other"
        assert expense.tags == []

    def test_expense_input_strips_whitespace(self):
        """Test that whitespace is stripped from description."""
        expense = ExpenseInput(amount=100, description="  Coffee  ", date="2025-01-05")
        assert expense.description == "Coffee"

    def test_expense_input_rejects_blank_description(self):
        """Test that a whitespace-only description is rejected."""
        with pytest.raises(ValueError):
            ExpenseInput(amount=100, description="   ", date="2025-01-05")

    def test_expense_input_rejects_float_amount(self):
        """Test that amounts must be integer minor units."""
        with pytest.raises(ValueError):
            ExpenseInput(amount=100.5, description="Coffee", date="2025-01-05")

    def test_expense_input_allows_negative_amount(self):
        """Test that refunds can be recorded as negative amounts."""
        expense = ExpenseInput(amount=-5000, description="Refund", date="2025-01-05")
        assert expense.amount == -5000

    def test_expense_input_rejects_empty_tag(self):
        """Test that tags must be non-empty."""
        with pytest.raises(ValueError):
            ExpenseInput(amount=100, description="Coffee", tags=["ok", "  "], date="2025-01-05")

    @pytest.mark.parametrize("bad_date", ["05/01/2025", "20250105", "2025-02-30", ""])
    def test_expense_input_rejects_bad_date(self, bad_date):
        """Test that only YYYY-MM-DD dates are accepted."""
        with pytest.raises(ValueError):
            ExpenseInput(amount=100, description="Coffee", date=bad_date)

    def test_expense_document_round_trip(self):
        """Test conversion to and from a document body."""
        expense = Expense(
            id="abc123",
            owner="user-1",
            amount=4500,
            description="Taxi",
            category="Transportation",
            date="2025-01-05",
            created_at=NOW,
            updated_at=NOW,
        )
        doc = expense.to_document()
        assert "id" not in doc
        assert doc["owner"] == "user-1"
        assert Expense.from_document("abc123", doc) == expense

    def test_expense_is_provisional(self):
        """Test provisional ids are recognised."""
        common = dict(
            owner="user-1", amount=100, description="x", date="2025-01-05",
            created_at=NOW, updated_at=NOW,
        )
        assert Expense(id="temp-1736069400000", **common).is_provisional is True
        assert Expense(id="abc123", **common).is_provisional is False

    def test_expense_update_changes_only_set_fields(self):
        """Test that only explicitly set fields are reported."""
        update = ExpenseUpdate(id="abc123", amount=500)
        assert update.changes() == {"amount": 500}

    def test_expense_update_keeps_explicit_none(self):
        """Test clearing notes is distinguishable from not touching them."""
        update = ExpenseUpdate(id="abc123", notes=None)
        assert update.changes() == {"notes": None}

    def test_day_aggregate_id_format(self):
        """Test the day aggregate id must be YYYYMMDD."""
        day = DayAggregate(id="20250105", date="2025-01-05", total_amount=1000, owner="u")
        assert day.total_amount == 1000
        with pytest.raises(ValueError):
            DayAggregate(id="2025-01-05", date="2025-01-05", total_amount=1000, owner="u")


class TestExpenseCategories:
    """Tests for expense category enum."""

    def test_default_categories(self):
        """Test the default category list and its order."""
        assert DEFAULT_CATEGORIES == [
            "Food & Dining",
            "Transportation",
            "Shopping",
            "Entertainment",
            "Bills & Utilities",
            "Healthcare",
            "Travel",
            "Education",
            "Gifts",
            "Other",
        ]

    def test_category_values(self):
        """Test category string values."""
        assert ExpenseCategory.FOOD_AND_DINING.value == "Food & Dining"
        assert ExpenseCategory("Other") is ExpenseCategory.OTHER


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            description="Expense created",
        )
        assert event.event_type == AuditEventType.EXPENSE_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            description="Expense deleted",
            details={"amount": 1000},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "expense_deleted"
        assert log_dict["details"]["amount"] == 1000

    def test_audit_event_document_round_trip(self):
        """Test conversion to and from an audit document."""
        correlation_id = uuid4()
        event = AuditEventBuilder.expense_created(
            owner="user-1",
            expense_id="abc123",
            amount=1000,
            date="2025-01-05",
            correlation_id=correlation_id,
        )
        doc = event.to_document()
        assert "event_id" not in doc
        restored = AuditEvent.from_document(str(event.event_id), doc)
        assert restored.event_id == event.event_id
        assert restored.correlation_id == correlation_id
        assert restored.event_type == AuditEventType.EXPENSE_CREATED

    def test_audit_event_builder_expense_created(self):
        """Test AuditEventBuilder.expense_created."""
        correlation_id = uuid4()
        event = AuditEventBuilder.expense_created(
            owner="user-1",
            expense_id="abc123",
            amount=1000,
            date="2025-01-05",
            correlation_id=correlation_id,
        )
        assert event.entity_id == "abc123"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_day_total_update_failed(self):
        """Test a stale day total is logged as an error."""
        event = AuditEventBuilder.day_total_update_failed(
            owner="user-1",
            day_id="20250105",
            delta=-1000,
            error_message="quota exceeded",
        )
        assert event.event_type == AuditEventType.DAY_TOTAL_UPDATE_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.details["delta"] == -1000

    def test_audit_event_builder_auth_failed(self):
        """Test auth failures carry the error code."""
        event = AuditEventBuilder.auth_failed(email="a@b.co", code="auth/wrong-password")
        assert event.error_code == "auth/wrong-password"
        assert event.severity == AuditSeverity.WARNING


class TestAuthModels:
    """Tests for principal and user record models."""

    def test_principal_label_prefers_display_name(self):
        """Test the header label fallbacks."""
        assert Principal(uid="u1", email="a@b.co", display_name="Ann").label == "Ann"
        assert Principal(uid="u1", email="a@b.co").label == "a@b.co"
        assert Principal(uid="u1").label == "u1"

    def test_user_record_to_principal(self):
        """Test a stored account becomes a principal without its hash."""
        record = UserRecord(uid="u1", email="a@b.co", password_hash="hash")
        principal = record.to_principal()
        assert principal.uid == "u1"
        assert principal.provider == "password"
        assert not hasattr(principal, "password_hash")


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["Date in future"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

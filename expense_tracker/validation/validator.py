"""
Two-Stage Expense Form Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (amount, description)
- Format validation (date, tags, lengths)
- A failure here refuses the submission before any network call

STAGE 2 - SEMANTIC VALIDATION:
- Far-future date detection
- Suspiciously large or non-positive amount detection
- These only warn; they never block a submission

Validation is synchronous and never touches storage.
"""

from datetime import date, timedelta
from typing import Optional, Union

from pydantic import ValidationError

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.expense import (
    ExpenseCategory,
    ExpenseInput,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.utils.currency import format_currency, parse_currency
from expense_tracker.utils.dates import DateLike, format_date


def parse_tags(tags: Union[str, list[str], None]) -> list[str]:
    """'coffee, breakfast' -> ['coffee', 'breakfast']; blanks are dropped."""
    if tags is None:
        return []
    parts = tags.split(",") if isinstance(tags, str) else tags
    return [tag.strip() for tag in parts if tag and tag.strip()]


class ExpenseValidator:
    """
    Validates expense form input through a two-stage pipeline.

    Stage 1: Schema validation (errors block the submission)
    Stage 2: Semantic validation (warnings only)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        amount: str,
        description: str,
        expense_date: Optional[DateLike],
    ) -> list[ValidationIssue]:
        issues = []

        if not (amount or "").strip():
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
                suggested_fix="Enter how much you spent",
            ))

        if not (description or "").strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
                suggested_fix="Enter what the money was spent on",
            ))

        if expense_date is None or expense_date == "":
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
                severity="error",
            ))

        return issues

    def _validate_semantic(
        self,
        expense: ExpenseInput,
        today: date,
    ) -> list[ValidationIssue]:
        issues = []
        symbol = self._settings.currency_symbol

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if date.fromisoformat(expense.date) > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({expense.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if expense.amount > self._settings.max_expense_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({format_currency(expense.amount, symbol)}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))
        elif expense.amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message="Amount is zero",
                severity="warning",
                suggested_fix="Check the amount was typed correctly",
            ))
        elif expense.amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="negative_value",
                message=f"Amount ({format_currency(expense.amount, symbol)}) is negative and will reduce the day total",
                severity="warning",
            ))

        return issues

    def validate(
        self,
        amount: str,
        description: str,
        expense_date: Optional[DateLike],
        category: str = ExpenseCategory.FOOD_AND_DINING.value,
        tags: Union[str, list[str], None] = None,
        notes: Optional[str] = None,
        receipt_image_url: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation on raw form input.

        Args:
            amount: Amount as typed by the user, e.g. "1,250.50"
            description: Free text
            expense_date: Date of the expense
            category: Selected category
            tags: Comma separated string or list
            notes: Optional notes; blank means none
            receipt_image_url: Optional link to a receipt image
            today: Reference date for the future-date check

        Returns:
            ValidationResult; result.expense is set only when valid
        """
        issues = self._validate_schema(amount, description, expense_date)
        if issues:
            return ValidationResult(is_valid=False, issues=issues)

        try:
            expense = ExpenseInput(
                amount=parse_currency(amount),
                description=description,
                category=category,
                tags=parse_tags(tags),
                notes=(notes or "").strip() or None,
                receipt_image_url=(receipt_image_url or "").strip() or None,
                date=format_date(expense_date),
            )
        except (ValidationError, ValueError) as e:
            return ValidationResult(is_valid=False, issues=self._issues_from_error(e))

        issues = self._validate_semantic(expense, today or date.today())
        return ValidationResult(is_valid=True, issues=issues, expense=expense)

    def _issues_from_error(self, error: Exception) -> list[ValidationIssue]:
        if not isinstance(error, ValidationError):
            return [ValidationIssue(
                field="date",
                issue_type="invalid_format",
                message=str(error),
                severity="error",
            )]

        return [
            ValidationIssue(
                field=".".join(str(part) for part in err["loc"]) or "form",
                issue_type="invalid_format",
                message=err["msg"],
                severity="error",
            )
            for err in error.errors()
        ]

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Short text shown above the form."""
        if result.is_valid and not result.warnings:
            return "✅ Looks good!"

        lines = []

        if not result.is_valid:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)

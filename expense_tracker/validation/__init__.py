"""Expense form validation."""

from expense_tracker.validation.validator import ExpenseValidator, parse_tags

__all__ = ["ExpenseValidator", "parse_tags"]

"""Client-side query cache, optimistic mutations and the quick-add buffer."""

from expense_tracker.cache.query_cache import (
    MISSING,
    CacheSnapshot,
    OptimisticUpdate,
    QueryCache,
    day_total_key,
    expenses_key,
    owner_prefixes,
    recent_expenses_key,
    recent_expenses_prefix,
)
from expense_tracker.cache.mutations import ExpenseMutations
from expense_tracker.cache.quick_add import QuickAddBuffer, UndoResult, quick_add_description

__all__ = [
    "MISSING",
    "CacheSnapshot",
    "ExpenseMutations",
    "OptimisticUpdate",
    "QueryCache",
    "QuickAddBuffer",
    "UndoResult",
    "day_total_key",
    "expenses_key",
    "owner_prefixes",
    "quick_add_description",
    "recent_expenses_key",
    "recent_expenses_prefix",
]

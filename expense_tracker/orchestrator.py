"""
Component Wiring for Expense Tracker

This module ties together all the components the UI needs:
1. Document store (in-memory or Google Sheets)
2. Expense service with day-total maintenance
3. Query cache and optimistic mutations
4. Authentication
5. Audit logging

DESIGN DECISION: Components are created once per session and passed by
reference. Nothing here holds module-level state, so two sessions never
share a cache or a signed-in principal.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

import structlog

from expense_tracker.audit import AuditLogger
from expense_tracker.cache import ExpenseMutations, QueryCache, QuickAddBuffer
from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.expense import ExpenseInput
from expense_tracker.preferences import PreferenceStore
from expense_tracker.services.auth import AuthProvider, LocalAuthProvider
from expense_tracker.services.expenses import ExpenseService
from expense_tracker.services.storage import (
    DocumentAuditStorage,
    DocumentStore,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
)
from expense_tracker.utils.dates import DateLike, format_date
from expense_tracker.validation import ExpenseValidator

logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything one UI session works with."""

    settings: AppSettings
    store: DocumentStore
    audit_logger: AuditLogger
    expenses: ExpenseService
    cache: QueryCache
    mutations: ExpenseMutations
    auth: AuthProvider
    validator: ExpenseValidator
    preferences: PreferenceStore

    def create_quick_add(
        self,
        owner: str,
        on_pending_change: Optional[Callable[[int], None]] = None,
        on_date: Optional[DateLike] = None,
    ) -> QuickAddBuffer:
        """
        Quick-add buffer bound to an owner.

        Bursts are written on the day they are flushed unless on_date
        is given. Its methods must be called on the event loop thread.
        """
        settings = self.settings

        def target_date() -> str:
            return format_date(on_date if on_date is not None else date.today())

        def flush(amount: int, description: str) -> None:
            self.mutations.mutate_create(owner, ExpenseInput(
                amount=amount,
                description=description,
                category=settings.quick_add_category,
                tags=[],
                date=target_date(),
            ))

        def undo_persisted() -> bool:
            return self.mutations.undo_latest(owner, target_date())

        return QuickAddBuffer(
            unit_amount=settings.quick_add_unit_amount,
            window_seconds=settings.quick_add_window_seconds,
            on_flush=flush,
            on_undo_persisted=undo_persisted,
            on_pending_change=on_pending_change,
            description=settings.quick_add_description,
        )


def create_store(settings: Optional[AppSettings] = None) -> DocumentStore:
    """
    Build the configured document store.

    Falls back to the in-memory store when Google Sheets is selected but
    not configured.
    """
    settings = settings or get_settings().app

    if settings.storage_backend == "google_sheets":
        try:
            client = GoogleSheetsClient()
            client.connect()
            return GoogleSheetsDocumentStore(client)
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", backend="google_sheets", error=str(e))

    return InMemoryDocumentStore()


def create_app_components(
    store: Optional[DocumentStore] = None,
    settings: Optional[AppSettings] = None,
    use_audit_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Document store to use; built from settings if None
        settings: Application settings; loaded from the environment if None
        use_audit_storage: Whether audit events are persisted to the store.
                    Set to False for local-only audit logging.

    Returns:
        AppComponents
    """
    settings = settings or get_settings().app
    store = store or create_store(settings)

    if use_audit_storage:
        audit_logger = AuditLogger(DocumentAuditStorage(store))
    else:
        audit_logger = AuditLogger()  # Local-only logging

    expenses = ExpenseService(store, audit_logger=audit_logger)
    cache = QueryCache()

    return AppComponents(
        settings=settings,
        store=store,
        audit_logger=audit_logger,
        expenses=expenses,
        cache=cache,
        mutations=ExpenseMutations(
            expenses,
            cache,
            audit_logger=audit_logger,
            recent_limit=settings.recent_expenses_limit,
        ),
        auth=LocalAuthProvider(store, audit_logger=audit_logger),
        validator=ExpenseValidator(settings),
        preferences=PreferenceStore(settings.preferences_path),
    )

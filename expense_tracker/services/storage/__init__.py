"""
Storage Services Package

Provides the abstract document-store interface and concrete implementations.
Google Sheets is the hosted backend; the in-memory store backs tests and
credential-free local runs.
"""

from expense_tracker.services.storage.interface import (
    SERVER_TIMESTAMP,
    AuditStorageInterface,
    ConnectionError,
    DocumentStore,
    Filter,
    NotFoundError,
    StorageError,
)
from expense_tracker.services.storage.memory import InMemoryDocumentStore
from expense_tracker.services.storage.audit_store import DocumentAuditStorage
from expense_tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DocumentStore",
    "Filter",
    "SERVER_TIMESTAMP",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "DocumentAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
]

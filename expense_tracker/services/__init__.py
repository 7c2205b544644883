"""
Services package.

Only the storage layer is re-exported here; import the expense and auth
services from their modules (they depend on the audit package, which in
turn depends on storage).
"""

from expense_tracker.services.storage import (
    SERVER_TIMESTAMP,
    AuditStorageInterface,
    ConnectionError,
    DocumentAuditStorage,
    DocumentStore,
    Filter,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DocumentAuditStorage",
    "DocumentStore",
    "Filter",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
    "NotFoundError",
    "SERVER_TIMESTAMP",
    "StorageError",
]

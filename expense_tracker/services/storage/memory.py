"""
In-Memory Document Store

Process-local implementation of DocumentStore. Used by the test suite
and for running the app without any Google credentials.

Every call yields to the event loop once before touching state, so
concurrent mutations interleave the same way they would against a
remote store.
"""

import asyncio
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import uuid4

from expense_tracker.services.storage.interface import (
    SERVER_TIMESTAMP,
    DocumentStore,
    Filter,
    NotFoundError,
    is_collection_path,
    matches_filters,
    parent_collection,
    split_path,
)


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-backed document store.

    Layout: {collection_path: {doc_id: document}}.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._last_timestamp: Optional[datetime] = None

    def _now(self) -> datetime:
        # Strictly increasing so creation order survives a sort on created_at
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _resolve(self, doc: dict[str, Any]) -> dict[str, Any]:
        now = None
        resolved = {}
        for key, value in doc.items():
            if value is SERVER_TIMESTAMP:
                now = now or self._now()
                value = now
            resolved[key] = copy.deepcopy(value)
        return resolved

    def _collection(self, collection_path: str) -> dict[str, dict[str, Any]]:
        key = "/".join(split_path(collection_path))
        if not is_collection_path(key):
            raise ValueError(f"Not a collection path: {collection_path}")
        return self._collections.setdefault(key, {})

    async def create(self, collection_path: str, doc: dict[str, Any]) -> str:
        await asyncio.sleep(0)
        doc_id = uuid4().hex[:20]
        self._collection(collection_path)[doc_id] = self._resolve(doc)
        return doc_id

    async def get(self, doc_path: str) -> Optional[dict[str, Any]]:
        await asyncio.sleep(0)
        collection_path, doc_id = parent_collection(doc_path)
        doc = self._collection(collection_path).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def update(self, doc_path: str, partial_doc: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        collection_path, doc_id = parent_collection(doc_path)
        collection = self._collection(collection_path)
        if doc_id not in collection:
            raise NotFoundError(f"Document not found: {doc_path}")
        collection[doc_id].update(self._resolve(partial_doc))

    async def set(self, doc_path: str, doc: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        collection_path, doc_id = parent_collection(doc_path)
        self._collection(collection_path)[doc_id] = self._resolve(doc)

    async def delete(self, doc_path: str) -> None:
        await asyncio.sleep(0)
        collection_path, doc_id = parent_collection(doc_path)
        self._collection(collection_path).pop(doc_id, None)

    async def query(
        self,
        collection_path: str,
        filters: Optional[list[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[tuple[str, dict[str, Any]]]:
        await asyncio.sleep(0)
        filters = filters or []
        results = [
            (doc_id, copy.deepcopy(doc))
            for doc_id, doc in self._collection(collection_path).items()
            if matches_filters(doc, filters)
        ]
        if order_by:
            results = [item for item in results if order_by in item[1]]
            results.sort(key=lambda item: item[1][order_by], reverse=descending)
        if limit is not None:
            results = results[:limit]
        return results

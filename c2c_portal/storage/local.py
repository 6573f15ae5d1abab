"""
Local storage implementation for development and tests.

An in-memory document store that honours unique indexes, so duplicate
registrations fail the same way they would against a real database.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any

from c2c_portal.storage.base import DuplicateKeyError, MetadataStorage


# =============================================================================
# In-Memory Metadata Storage
# =============================================================================


class InMemoryMetadataStorage(MetadataStorage):
    """In-memory document storage for development."""

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._unique: dict[str, set[str]] = {}

    async def create_index(self, collection: str, field: str, unique: bool = False) -> None:
        # Non-unique indexes are a no-op for a dict scan
        if unique:
            self._unique.setdefault(collection, set()).add(field)

    def _check_unique(self, collection: str, id: str, data: dict[str, Any]) -> None:
        for field in self._unique.get(collection, ()):
            value = data.get(field)
            if value is None:
                continue
            for other_id, doc in self._data.get(collection, {}).items():
                if other_id != id and doc.get(field) == value:
                    raise DuplicateKeyError(collection, field, value)

    def _stamp(self, id: str, data: dict[str, Any]) -> dict[str, Any]:
        return {
            **copy.deepcopy(data),
            "_id": id,
            "_updated_at": datetime.now(timezone.utc).isoformat(),
        }

    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> None:
        docs = self._data.setdefault(collection, {})
        if id in docs:
            raise DuplicateKeyError(collection, "_id", id)
        self._check_unique(collection, id, data)
        docs[id] = self._stamp(id, data)

    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        self._check_unique(collection, id, data)
        self._data.setdefault(collection, {})[id] = self._stamp(id, data)

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(id)
        return copy.deepcopy(doc) if doc is not None else None

    async def delete(self, collection: str, id: str) -> bool:
        if collection in self._data and id in self._data[collection]:
            del self._data[collection][id]
            return True
        return False

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        if collection not in self._data:
            return []

        results = list(self._data[collection].values())

        # Apply filters
        if filters:
            results = [
                doc for doc in results
                if all(doc.get(key) == value for key, value in filters.items())
            ]

        # Apply pagination
        return [copy.deepcopy(doc) for doc in results[offset:offset + limit]]

    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        docs = self._data.get(collection, {})
        if id not in docs:
            return False
        merged = {**docs[id], **copy.deepcopy(updates)}
        self._check_unique(collection, id, merged)
        merged["_updated_at"] = datetime.now(timezone.utc).isoformat()
        docs[id] = merged
        return True

    def count(self, collection: str) -> int:
        return len(self._data.get(collection, {}))


# =============================================================================
# Factory
# =============================================================================


def create_local_storage() -> InMemoryMetadataStorage:
    """Create the in-memory document store used in development."""
    return InMemoryMetadataStorage()

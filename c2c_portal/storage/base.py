"""
Storage abstraction layer.

All persistence goes through these interfaces. This allows swapping
implementations (in-memory → MongoDB, DynamoDB, PostgreSQL JSONB, ...)
without changing application code.

Implementations must enforce unique indexes themselves: the auth layer
relies on the store, not on a pre-check, to settle registration races.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class StorageError(Exception):
    """Base exception for storage failures."""
    pass


class DuplicateKeyError(StorageError):
    """A write violated a unique index."""

    def __init__(self, collection: str, field: str, value: Any):
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(f"Duplicate value for {collection}.{field}")


# =============================================================================
# Storage Interface
# =============================================================================


class MetadataStorage(ABC):
    """
    Storage for structured documents (principals, role profiles, postings).

    Each write touches a single document and is atomic on its own;
    there are no multi-document transactions.
    """

    @abstractmethod
    async def create_index(self, collection: str, field: str, unique: bool = False) -> None:
        """
        Declare an index. Unique indexes are sparse: documents where the
        field is missing or None do not participate.
        """
        pass

    @abstractmethod
    async def insert(self, collection: str, id: str, data: dict[str, Any]) -> None:
        """Insert a new document. Raises DuplicateKeyError on id or unique clash."""
        pass

    @abstractmethod
    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        """Insert or fully replace a document."""
        pass

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document."""
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query documents with optional equality filters."""
        pass

    @abstractmethod
    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        """Partial update of a document."""
        pass

    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        results = await self.query(collection, filters, limit=1)
        return results[0] if results else None


# =============================================================================
# Collection Names
# =============================================================================


class Collections:
    """Standard collection/table names."""

    PRINCIPALS = "principals"
    STUDENT_PROFILES = "student_profiles"
    FACULTY_PROFILES = "faculty_profiles"
    INDUSTRY_PROFILES = "industry_profiles"
    INTERNSHIPS = "internships"

"""
Storage abstractions.

Integration points:
- MetadataStorage → MongoDB, DynamoDB, or PostgreSQL (JSONB)
"""

from c2c_portal.storage.base import (
    Collections,
    DuplicateKeyError,
    MetadataStorage,
    StorageError,
)
from c2c_portal.storage.local import InMemoryMetadataStorage, create_local_storage

__all__ = [
    "Collections",
    "DuplicateKeyError",
    "MetadataStorage",
    "StorageError",
    "InMemoryMetadataStorage",
    "create_local_storage",
]

"""
Store module for Shapeshifter - durable per-collection document storage.

This module provides a pluggable store interface supporting:
- SQLite (default, durable)
- In-memory (for testing)

Invariants:
    - Collections are created explicitly before any write
    - set() upserts by _id and is one logical write per batch
    - _id is immutable once assigned and unique within a collection

How to change safely:
    - New backends must implement the DocumentStore protocol
    - Verify batch atomicity with failure-injection tests
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import CollectionStore, Document, DocumentStore, new_document_id
from .memory import InMemoryCollectionStore, InMemoryDocumentStore
from .sqlite import SqliteCollectionStore, SqliteDocumentStore

if TYPE_CHECKING:
    from ..config import StoreConfig


def create_document_store(config: StoreConfig) -> DocumentStore:
    """Create a document store for the configured backend.

    Args:
        config: Store configuration

    Returns:
        DocumentStore implementation
    """
    from ..config import StoreBackend

    if config.backend == StoreBackend.MEMORY:
        return InMemoryDocumentStore()
    return SqliteDocumentStore(
        config.data_dir,
        db_filename=config.db_filename,
        wal_mode=config.wal_mode,
        busy_timeout_ms=config.busy_timeout_ms,
    )


__all__ = [
    # Protocol and types
    "DocumentStore",
    "CollectionStore",
    "Document",
    "new_document_id",
    # Factory
    "create_document_store",
    # Implementations
    "InMemoryDocumentStore",
    "InMemoryCollectionStore",
    "SqliteDocumentStore",
    "SqliteCollectionStore",
]

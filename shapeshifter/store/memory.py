"""
In-memory document store implementation for testing.

This module provides a simple in-memory store backend for:
- Unit tests
- Integration tests
- Local development without a data directory

Invariants:
    - All data is lost on process exit
    - Same upsert and ordering semantics as the SQLite backend
    - Returned documents are copies; callers cannot mutate stored state

How to change safely:
    - Keep the interface compatible with the DocumentStore protocol
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import asyncio
import copy
import logging

from ..errors import CollectionExistsError, NotFoundError
from .base import CollectionStore, Document

logger = logging.getLogger(__name__)


class InMemoryCollectionStore:
    """One collection held in a dict keyed by _id (insertion ordered)."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._documents: dict[str, Document] = {}
        self._lock = asyncio.Lock()

    async def get(self, document_id: str) -> Document | None:
        document = self._documents.get(document_id)
        return copy.deepcopy(document) if document is not None else None

    async def get_all(self) -> list[Document]:
        return [copy.deepcopy(document) for document in self._documents.values()]

    async def set(self, documents: list[Document]) -> None:
        async with self._lock:
            for document in documents:
                self._documents[document["_id"]] = copy.deepcopy(document)

    async def remove(self, document_ids: list[str]) -> None:
        async with self._lock:
            for document_id in document_ids:
                self._documents.pop(document_id, None)

    def __len__(self) -> int:
        return len(self._documents)


class InMemoryDocumentStore:
    """In-memory implementation of DocumentStore for testing.

    Example:
        >>> store = InMemoryDocumentStore()
        >>> await store.create_collection("albums")
        >>> [c.name for c in await store.get_all_collections()]
        ['albums']
    """

    def __init__(self) -> None:
        self._collections: dict[str, InMemoryCollectionStore] = {}
        self._lock = asyncio.Lock()

    async def create_collection(self, name: str) -> CollectionStore:
        async with self._lock:
            if name in self._collections:
                raise CollectionExistsError(name)
            collection = InMemoryCollectionStore(name)
            self._collections[name] = collection
            logger.debug(f"Created in-memory collection: {name}")
            return collection

    async def get_collection(self, name: str) -> CollectionStore:
        collection = self._collections.get(name)
        if collection is None:
            raise NotFoundError(f"Collection {name} not found", "collection", name)
        return collection

    async def get_all_collections(self) -> list[CollectionStore]:
        return [self._collections[name] for name in sorted(self._collections)]

    async def delete_collection(self, name: str) -> None:
        async with self._lock:
            self._collections.pop(name, None)

    async def close(self) -> None:
        self._collections.clear()

"""
Base protocol and types for the document store abstraction.

This module defines the DocumentStore and CollectionStore protocols that
all backends must implement, plus the document id generator.

Invariants:
    - Every stored document carries a string _id, unique within its collection
    - set() upserts by _id; a batch is one logical write
    - Collections exist only after explicit creation; writes never create them

How to change safely:
    - Protocol changes require updating all implementations
    - Add new methods as optional with default implementations
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from uuid6 import uuid7

Document = dict[str, Any]


def new_document_id() -> str:
    """Generate a time-ordered UUIDv7 string.

    The millisecond timestamp leads, so lexicographic order of ids follows
    creation order.
    """
    return str(uuid7())


@runtime_checkable
class CollectionStore(Protocol):
    """Durable per-collection document storage."""

    name: str

    async def get(self, document_id: str) -> Document | None:
        """Get one document by id, or None."""
        ...

    async def get_all(self) -> list[Document]:
        """Get every document in the collection, in stable order."""
        ...

    async def set(self, documents: list[Document]) -> None:
        """Upsert documents by _id as one logical write."""
        ...

    async def remove(self, document_ids: list[str]) -> None:
        """Delete documents by id; unknown ids are ignored."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Collection-level store operations.

    All implementations must provide:
    - Explicit collection creation (duplicate names rejected)
    - Lookup that raises NotFoundError for unknown collections
    - Enumeration and deletion of collections

    Example:
        >>> store = InMemoryDocumentStore()
        >>> albums = await store.create_collection("albums")
        >>> await albums.set([{"_id": "1", "title": "Abbey Road"}])
        >>> await (await store.get_collection("albums")).get_all()
        [{'_id': '1', 'title': 'Abbey Road'}]
    """

    async def create_collection(self, name: str) -> CollectionStore:
        """Create a collection.

        Raises:
            CollectionExistsError: If the name is taken
        """
        ...

    async def get_collection(self, name: str) -> CollectionStore:
        """Get a collection.

        Raises:
            NotFoundError: If the collection does not exist
        """
        ...

    async def get_all_collections(self) -> list[CollectionStore]:
        """Get every collection, ordered by name."""
        ...

    async def delete_collection(self, name: str) -> None:
        """Delete a collection and its documents."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...

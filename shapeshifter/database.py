"""
Database service for Shapeshifter - the exposed surface.

Wraps a DocumentStore and a ReconciliationEngine behind the operations a
transport layer consumes: collection lifecycle, schema inspection, shaped
queries, and document CRUD. Every document write goes through the
reconciliation write path.

Invariants:
    - New documents get a time-ordered string _id unless the caller supplies one
    - Writes return the written document(s) plus the applied Decision, if any
    - A rejected write returns no documents and leaves the collection unchanged

How to change safely:
    - Keep this layer free of transport concerns (status codes, request models)
    - Route any new write operation through ReconciliationEngine.write()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .config import ServerConfig
from .decider import Decider, create_decider
from .errors import NotFoundError, ValidationError
from .query import QueryEngine, QueryParams, compile_filter
from .reconcile import (
    Decision,
    DecisionType,
    QueryDecision,
    ReconciliationEngine,
    RejectDecision,
    WriteResult,
)
from .schema import SchemaInferer, SchemaRelationChecker
from .store import CollectionStore, Document, DocumentStore, create_document_store, new_document_id
from .transform import TransformExecutor

logger = logging.getLogger(__name__)


@dataclass
class Collection:
    """A collection and its documents."""

    name: str
    documents: List[Document] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"name": self.name, "documents": self.documents}


@dataclass
class DocumentResult:
    """Outcome of a single-document write."""

    document: Optional[Document]
    decision: Optional[Decision] = None


@dataclass
class QueryResult:
    """Outcome of a query."""

    documents: List[Document]
    decision: Optional[QueryDecision] = None


def _with_id(data: Mapping[str, Any], document_id: Optional[str] = None) -> Document:
    if not isinstance(data, Mapping):
        raise ValidationError(
            f"Document must be a JSON object, got {type(data).__name__}",
            field_name="document",
        )
    body = {key: value for key, value in data.items() if key != "_id"}
    if document_id is None:
        document_id = str(data["_id"]) if data.get("_id") is not None else new_document_id()
    return {"_id": document_id, **body}


class Database:
    """Schema-flexible document database.

    Example:
        >>> db = Database(InMemoryDocumentStore(), ReconciliationEngine(decider=RejectingDecider()))
        >>> await db.create_collection("albums")
        >>> result = await db.add_document("albums", {"title": "Abbey Road"})
        >>> result.document["title"]
        'Abbey Road'
    """

    def __init__(
        self,
        store: DocumentStore,
        engine: ReconciliationEngine,
        query_engine: Optional[QueryEngine] = None,
    ) -> None:
        self.store = store
        self.engine = engine
        self.query_engine = query_engine or QueryEngine()

    @classmethod
    async def from_config(cls, config: ServerConfig) -> Database:
        """Build a Database with the configured store and decider.

        Args:
            config: Server configuration

        Returns:
            Initialized Database
        """
        store = create_document_store(config.store)
        initialize = getattr(store, "initialize", None)
        if initialize is not None:
            await initialize()

        decider = create_decider(config.decider)
        engine = ReconciliationEngine(
            decider=decider,
            checker=SchemaRelationChecker(sample_count=config.reconcile.sample_count),
            executor=TransformExecutor(),
            transform_concurrency=config.reconcile.transform_concurrency,
        )
        return cls(store, engine)

    @property
    def decider(self) -> Decider:
        return self.engine.decider

    @property
    def inferer(self) -> SchemaInferer:
        return self.engine.inferer

    async def close(self) -> None:
        """Release the store and the decider."""
        await self.decider.close()
        await self.store.close()

    # =========================================================================
    # Collections
    # =========================================================================

    async def get_all_collections(self) -> List[Collection]:
        collections = await self.store.get_all_collections()
        return [Collection(c.name, await c.get_all()) for c in collections]

    async def create_collection(self, name: str) -> Collection:
        _check_name(name)
        collection = await self.store.create_collection(name)
        return Collection(collection.name, await collection.get_all())

    async def get_collection(self, name: str) -> Collection:
        collection = await self.store.get_collection(name)
        return Collection(collection.name, await collection.get_all())

    async def delete_collection(self, name: str) -> None:
        await self.store.get_collection(name)
        await self.store.delete_collection(name)

    async def get_collection_schema(self, name: str, language: Optional[str] = None) -> Any:
        """Infer a collection's schema, optionally rendered.

        Args:
            name: Collection name
            language: schema/json (dict, default) or yaml (text)

        Raises:
            NotFoundError: If the collection does not exist
            ValidationError: If the rendering target is unsupported
        """
        collection = await self.get_collection(name)
        schema = self.inferer.infer(name, collection.documents)
        return self.inferer.render(schema, language)

    # =========================================================================
    # Queries
    # =========================================================================

    async def query_documents(
        self,
        name: str,
        query_params: Optional[Mapping[str, Any] | QueryParams] = None,
        shape: Optional[Mapping[str, Any]] = None,
        filter: Optional[Mapping[str, Any]] = None,
        allowed_operations: Optional[List[DecisionType]] = None,
    ) -> QueryResult:
        """Query a collection, reconciled to an optional shape.

        Args:
            name: Collection name
            query_params: Raw limit/sort/equality parameters
            shape: Example document naming the wanted fields
            filter: Predicate filter applied last
            allowed_operations: Optional allow-list of Decision types

        Returns:
            QueryResult; a rejected shape yields no documents

        Raises:
            NotFoundError: If the collection does not exist
            ValidationError: If parameters or filter are malformed
            OperationNotAllowedError: If the query Decision is excluded
        """
        params = query_params if isinstance(query_params, QueryParams) else QueryParams.parse(query_params)
        compile_filter(filter)
        collection = await self.store.get_collection(name)

        reconciled = await self.engine.query(collection, dict(shape or {}), allowed_operations)
        if isinstance(reconciled.decision, RejectDecision):
            return QueryResult(documents=[], decision=reconciled.decision)

        documents = self.query_engine.apply(reconciled.documents, params, filter)
        return QueryResult(documents=documents, decision=reconciled.decision)

    async def get_document(self, name: str, document_id: str) -> Document:
        collection = await self.store.get_collection(name)
        return await self._require_document(collection, document_id)

    # =========================================================================
    # Writes
    # =========================================================================

    async def add_document(
        self,
        name: str,
        data: Mapping[str, Any],
        allowed_operations: Optional[List[DecisionType]] = None,
    ) -> DocumentResult:
        result = await self.add_documents(name, [data], allowed_operations)
        return _single(result)

    async def add_documents(
        self,
        name: str,
        documents: Iterable[Mapping[str, Any]],
        allowed_operations: Optional[List[DecisionType]] = None,
    ) -> WriteResult:
        """Add a batch of documents through the write path.

        Raises:
            NotFoundError: If the collection does not exist
            ValidationError: If a document is not an object
            OperationNotAllowedError: If the Decision is excluded
            TransformError: If a mapping or migration program fails
            OracleError: If the decider fails
        """
        collection = await self.store.get_collection(name)
        prepared = [_with_id(document) for document in documents]
        return await self.engine.write(collection, prepared, allowed_operations)

    async def update_document(
        self,
        name: str,
        document_id: str,
        patch: Mapping[str, Any],
        allowed_operations: Optional[List[DecisionType]] = None,
    ) -> DocumentResult:
        """Merge a patch over a stored document and write it back.

        Raises:
            NotFoundError: If the collection or document does not exist
        """
        collection = await self.store.get_collection(name)
        existing = await self._require_document(collection, document_id)
        if not isinstance(patch, Mapping):
            raise ValidationError("Patch must be a JSON object", field_name="document")
        merged = _with_id({**existing, **patch}, document_id)
        result = await self.engine.write(collection, [merged], allowed_operations)
        return _single(result)

    async def replace_document(
        self,
        name: str,
        document_id: str,
        data: Mapping[str, Any],
        allowed_operations: Optional[List[DecisionType]] = None,
    ) -> DocumentResult:
        """Replace a document's body, keeping its _id (upsert)."""
        collection = await self.store.get_collection(name)
        document = _with_id(data, document_id)
        result = await self.engine.write(collection, [document], allowed_operations)
        return _single(result)

    async def delete_document(self, name: str, document_id: str) -> None:
        collection = await self.store.get_collection(name)
        await collection.remove([document_id])

    async def delete_documents(self, name: str, document_ids: Iterable[str]) -> None:
        collection = await self.store.get_collection(name)
        await collection.remove([str(document_id) for document_id in document_ids])

    async def _require_document(self, collection: CollectionStore, document_id: str) -> Document:
        document = await collection.get(document_id)
        if document is None:
            raise NotFoundError(
                f"Document {document_id} not found in {collection.name}",
                "document",
                document_id,
            )
        return document


def _single(result: WriteResult) -> DocumentResult:
    document = result.documents[0] if result.documents else None
    return DocumentResult(document=document, decision=result.decision)


def _check_name(name: str) -> None:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Collection name must be a non-empty string", field_name="name")
    if "/" in name:
        raise ValidationError("Collection name must not contain '/'", field_name="name")

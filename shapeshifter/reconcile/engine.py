"""
Reconciliation engine for Shapeshifter.

The engine sits between callers and the document store. Writes and shaped
queries pass through it and are reconciled against the collection's
current, freshly inferred schema.

Write path:
    existing = collection.get_all()
    classify (is_subset, is_superset) of incoming vs existing schema
    -> no Decision | IsSubset | IsSuperset | oracle Decision
    -> allow-list guard -> transform (map/migrate) -> single set()

Read path:
    shape is a subset of the collection schema -> structural projection
    otherwise oracle query Decision (map or reject) -> transform -> projection

Invariants:
    - Schemas are recomputed per call and never cached
    - The allow-list guard runs after the Decision and before any write
    - Every transform result is computed before the batch is persisted
    - A Reject Decision never mutates the collection
    - _id and _original on transformed documents cannot be overridden

How to change safely:
    - Keep the state machine in classify(); it is the only place that
      turns relation booleans into Decisions
    - Never put prompt text or model choice here; that belongs to deciders
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..errors import OracleError, RejectedError, TransformError
from ..schema import (
    Schema,
    SchemaInferer,
    SchemaRelationChecker,
    is_empty_schema,
    strip_reserved,
)
from ..store.base import CollectionStore, Document
from ..transform import TransformExecutor
from .decision import (
    Decision,
    DecisionType,
    MapDecision,
    MigrateDecision,
    QueryDecision,
    RejectDecision,
    SubsetDecision,
    SupersetDecision,
    check_allowed,
    parse_decision,
    parse_query_decision,
)

if TYPE_CHECKING:
    from ..decider.base import Decider

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    """Outcome of a reconciled write.

    Attributes:
        documents: Documents as written, or None when rejected
        decision: The Decision that was applied, or None when schemas coincide
    """

    documents: list[Document] | None
    decision: Decision | None = None

    @property
    def rejected(self) -> bool:
        return isinstance(self.decision, RejectDecision)

    def raise_for_rejection(self, collection: str | None = None) -> WriteResult:
        """Raise RejectedError if the write was rejected, else return self."""
        if isinstance(self.decision, RejectDecision):
            raise RejectedError(self.decision.message, collection=collection)
        return self


@dataclass
class ReconciledDocuments:
    """Documents produced by the read path, before query filtering."""

    documents: list[Document]
    decision: QueryDecision | None = None


def merge_reserved(output: dict[str, Any], document_id: Any, original: Document) -> Document:
    """Attach _id and _original to a transform result; both win over the output."""
    return {**output, "_id": document_id, "_original": original}


def drop_introduced_nulls(migrated: dict[str, Any], source: Document) -> dict[str, Any]:
    """Remove null fields the migration invented for fields the source lacked."""
    return {
        key: value
        for key, value in migrated.items()
        if not (value is None and key not in source)
    }


class ReconciliationEngine:
    """Reconciles incoming documents and query shapes with collections.

    Example:
        >>> engine = ReconciliationEngine(decider=ScriptedDecider())
        >>> result = await engine.write(albums, [{"_id": "1", "title": "Abbey Road"}])
        >>> result.decision is None
        True
    """

    def __init__(
        self,
        decider: Decider,
        inferer: SchemaInferer | None = None,
        checker: SchemaRelationChecker | None = None,
        executor: TransformExecutor | None = None,
        transform_concurrency: int = 16,
    ) -> None:
        """Initialize the engine.

        Args:
            decider: Oracle consulted when schemas diverge
            inferer: Schema inferer
            checker: Structural relation checker
            executor: Mapping program executor
            transform_concurrency: Maximum per-document transforms in flight
        """
        self.decider = decider
        self.inferer = inferer or SchemaInferer()
        self.checker = checker or SchemaRelationChecker()
        self.executor = executor or TransformExecutor()
        self.transform_concurrency = transform_concurrency

    # =========================================================================
    # Write path
    # =========================================================================

    def classify(
        self,
        existing_schema: Schema,
        new_schema: Schema,
    ) -> tuple[bool, bool]:
        """Relate incoming and existing schemas.

        Returns:
            (is_subset, is_superset) of the incoming shape
        """
        is_subset = self.checker.is_subset(new_schema, existing_schema)
        is_superset = self.checker.is_subset(existing_schema, new_schema)
        return is_subset, is_superset

    async def write(
        self,
        collection: CollectionStore,
        documents: list[Document],
        allowed_operations: list[DecisionType] | None = None,
    ) -> WriteResult:
        """Reconcile a batch of documents into a collection and persist it.

        Documents must already carry their _id.

        Args:
            collection: Target collection
            documents: Incoming documents
            allowed_operations: Optional allow-list of Decision types

        Returns:
            WriteResult with the written documents and the applied Decision

        Raises:
            OperationNotAllowedError: If the Decision is excluded by the allow-list
            TransformError: If a mapping or migration program fails
            OracleError: If the decider fails
        """
        if not documents:
            return WriteResult(documents=[], decision=None)

        existing = await collection.get_all()
        if not existing:
            # First documents define the schema
            await collection.set(documents)
            self._log_decision(collection.name, None, len(documents))
            return WriteResult(documents=documents, decision=None)

        existing_schema = self.inferer.infer(collection.name, existing)
        new_schema = self.inferer.infer(collection.name, documents)
        is_subset, is_superset = self.classify(existing_schema, new_schema)

        if is_subset and is_superset:
            await collection.set(documents)
            self._log_decision(collection.name, None, len(documents))
            return WriteResult(documents=documents, decision=None)

        decision: Decision
        if is_subset:
            decision = SubsetDecision()
        elif is_superset:
            decision = SupersetDecision()
        else:
            decision = await self._decide_documents(collection.name, existing_schema, documents)

        check_allowed(decision, allowed_operations)
        return await self._apply(collection, decision, documents, existing, existing_schema, new_schema)

    async def _apply(
        self,
        collection: CollectionStore,
        decision: Decision,
        documents: list[Document],
        existing: list[Document],
        existing_schema: Schema,
        new_schema: Schema,
    ) -> WriteResult:
        if isinstance(decision, RejectDecision):
            self._log_decision(collection.name, decision, len(documents))
            return WriteResult(documents=None, decision=decision)

        if isinstance(decision, (SubsetDecision, SupersetDecision)):
            await collection.set(documents)
            self._log_decision(collection.name, decision, len(documents))
            return WriteResult(documents=documents, decision=decision)

        if isinstance(decision, MapDecision):
            outputs = await self._transform(collection.name, decision.program, documents)
            mapped = [
                merge_reserved(output, document["_id"], document)
                for output, document in zip(outputs, documents)
            ]
            await collection.set(mapped)
            self._log_decision(collection.name, decision, len(mapped))
            return WriteResult(documents=mapped, decision=decision)

        if isinstance(decision, MigrateDecision):
            target = decision.new_schema if not is_empty_schema(decision.new_schema) else new_schema
            if self.checker.is_subset(existing_schema, target):
                superset = SupersetDecision()
                await collection.set(documents)
                self._log_decision(collection.name, superset, len(documents))
                return WriteResult(documents=documents, decision=superset)

            outputs = await self._transform(collection.name, decision.program, existing)
            migrated = [
                merge_reserved(drop_introduced_nulls(output, document), document["_id"], document)
                for output, document in zip(outputs, existing)
            ]
            # The incoming batch lands in the same write as the migrated documents
            await collection.set(migrated + documents)
            self._log_decision(collection.name, decision, len(documents), migrated=len(migrated))
            return WriteResult(documents=documents, decision=decision)

        raise TypeError(f"Unhandled decision: {decision!r}")

    # =========================================================================
    # Read path
    # =========================================================================

    async def query(
        self,
        collection: CollectionStore,
        shape: dict[str, Any] | None = None,
        allowed_operations: list[DecisionType] | None = None,
    ) -> ReconciledDocuments:
        """Read a collection, reconciled to an optional query shape.

        Args:
            collection: Source collection
            shape: Example document naming the wanted fields
            allowed_operations: Optional allow-list of Decision types

        Returns:
            ReconciledDocuments; empty with a Reject Decision if rejected

        Raises:
            OperationNotAllowedError: If the Decision is excluded by the allow-list
            TransformError: If the mapping program fails
            OracleError: If the decider fails
        """
        documents = await collection.get_all()
        fields = list(strip_reserved(shape or {}))
        if not fields or not documents:
            return ReconciledDocuments(documents=documents)

        collection_schema = self.inferer.infer(collection.name, documents)
        shape_schema = self.inferer.infer(collection.name, [shape or {}])

        if self.checker.is_subset(shape_schema, collection_schema):
            return ReconciledDocuments(
                documents=[project(document, fields, document["_id"]) for document in documents]
            )

        decision = await self._decide_query(collection.name, collection_schema, shape_schema)
        check_allowed(decision, allowed_operations)
        logger.info(
            "Query reconciled",
            extra={"collection": collection.name, "decision": decision.type},
        )

        if isinstance(decision, RejectDecision):
            return ReconciledDocuments(documents=[], decision=decision)

        outputs = await self._transform(collection.name, decision.program, documents)
        return ReconciledDocuments(
            documents=[
                project(output, fields, document["_id"])
                for output, document in zip(outputs, documents)
            ],
            decision=decision,
        )

    async def _decide_documents(
        self,
        collection: str,
        existing_schema: Schema,
        documents: list[Document],
    ) -> Decision:
        try:
            raw = await self.decider.get_decision_for_new_documents(existing_schema, documents)
            return parse_decision(raw)
        except OracleError:
            logger.error(
                "Decider failed for new documents",
                extra={"collection": collection},
                exc_info=True,
            )
            raise

    async def _decide_query(
        self,
        collection: str,
        collection_schema: Schema,
        shape_schema: Schema,
    ) -> QueryDecision:
        try:
            raw = await self.decider.get_decision_for_query(collection_schema, shape_schema)
            return parse_query_decision(raw)
        except OracleError:
            logger.error(
                "Decider failed for query",
                extra={"collection": collection},
                exc_info=True,
            )
            raise

    async def _transform(
        self,
        collection: str,
        program: str,
        documents: list[Document],
    ) -> list[dict[str, Any]]:
        try:
            return await self.executor.run_many(
                program, documents, concurrency=self.transform_concurrency
            )
        except TransformError:
            logger.error(
                "Mapping program failed",
                extra={"collection": collection, "program": program},
                exc_info=True,
            )
            raise

    def _log_decision(
        self,
        collection: str,
        decision: Decision | None,
        count: int,
        **extra: Any,
    ) -> None:
        logger.info(
            "Write reconciled",
            extra={
                "collection": collection,
                "decision": decision.type if decision is not None else None,
                "document_count": count,
                **extra,
            },
        )


def project(document: dict[str, Any], fields: list[str], document_id: Any) -> Document:
    """Keep only the named fields plus _id."""
    projected = {field: document[field] for field in fields if field in document}
    projected["_id"] = document_id
    return projected

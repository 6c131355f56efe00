"""
API routes for Shapeshifter.

Thin REST adapter over the Database service. Errors propagate as
ShapeshifterError and are mapped to statuses by the app's handler.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from pydantic import BaseModel, Field

from ..database import Database
from ..query import QueryParams
from ..reconcile import DecisionType, parse_allowed_operations

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Collections"])
decisions_router = APIRouter(prefix="/decisions", tags=["Decisions"])

ALLOWED_DESCRIPTION = "Comma-separated Decision types the write may resolve to"


# --- Request Models ---


class CollectionCreateRequest(BaseModel):
    """Request to create a collection."""

    name: str = Field(..., min_length=1, description="Collection name")


class QueryRequest(BaseModel):
    """Shaped query body."""

    shape: dict[str, Any] = Field(default_factory=dict, description="Example document naming the wanted fields")
    filter: Optional[dict[str, Any]] = Field(None, description="Mongo-style predicate filter, applied last")


class DeleteDocumentsRequest(BaseModel):
    """Request to delete several documents."""

    ids: list[str] = Field(..., description="Document ids to delete")


class NewDocumentsDecisionRequest(BaseModel):
    """Ask the oracle how new documents join a collection."""

    existing_schema: dict[str, Any] = Field(..., alias="existingSchema")
    new_documents: list[dict[str, Any]] = Field(..., alias="newDocuments")


class QueryDecisionRequest(BaseModel):
    """Ask the oracle how to map a collection to a query shape."""

    input_schema: dict[str, Any] = Field(..., alias="inputSchema")
    target_schema: dict[str, Any] = Field(..., alias="targetSchema")


# --- Dependencies ---


def get_database(request: Request) -> Database:
    """Get Database from app state."""
    return request.app.state.database


def get_allowed_operations(
    allowed: Optional[str] = Query(None, description=ALLOWED_DESCRIPTION),
) -> Optional[list[DecisionType]]:
    """Parse the allow-list query parameter."""
    return parse_allowed_operations(allowed)


def _wire(decision: Any) -> Optional[dict[str, Any]]:
    return decision.to_wire() if decision is not None else None


# --- Collection Routes ---


@router.get("/collections")
async def list_collections(db: Database = Depends(get_database)):
    """List every collection with its documents."""
    return [collection.to_dict() for collection in await db.get_all_collections()]


@router.post("/collections", status_code=201)
async def create_collection(
    request: CollectionCreateRequest,
    db: Database = Depends(get_database),
):
    """Create an empty collection."""
    collection = await db.create_collection(request.name)
    return collection.to_dict()


@router.get("/collections/{name}")
async def get_collection(name: str, db: Database = Depends(get_database)):
    """Get a collection with its documents."""
    return (await db.get_collection(name)).to_dict()


@router.delete("/collections/{name}", status_code=204)
async def delete_collection(name: str, db: Database = Depends(get_database)):
    """Delete a collection and all its documents."""
    await db.delete_collection(name)


@router.get("/collections/{name}/schema")
async def get_collection_schema(
    name: str,
    language: Optional[str] = Query(None, description="Rendering target: schema, json or yaml"),
    db: Database = Depends(get_database),
):
    """
    Get the collection's inferred schema.

    JSON Schema by default; `language=yaml` returns the same schema as YAML text.
    """
    return {"schema": await db.get_collection_schema(name, language)}


# --- Document Routes ---


@router.get("/collections/{name}/documents")
async def list_documents(
    name: str,
    request: Request,
    db: Database = Depends(get_database),
):
    """
    List documents.

    Supports `limit`, `sort=asc|desc` (by _id) and `<field>=<value>` equality filters.
    """
    params = QueryParams.parse(request.query_params, ignore=("allowed",))
    result = await db.query_documents(name, params)
    return {"documents": result.documents, "operation": _wire(result.decision)}


@router.post("/collections/{name}/documents/query")
async def query_documents(
    name: str,
    body: QueryRequest,
    request: Request,
    allowed: Optional[list[DecisionType]] = Depends(get_allowed_operations),
    db: Database = Depends(get_database),
):
    """
    Query documents reconciled to a shape.

    If the shape is not a subset of the collection's schema the oracle
    proposes a mapping; a rejected shape returns no documents.
    """
    params = QueryParams.parse(request.query_params, ignore=("allowed",))
    result = await db.query_documents(
        name,
        params,
        shape=body.shape,
        filter=body.filter,
        allowed_operations=allowed,
    )
    return {"documents": result.documents, "operation": _wire(result.decision)}


@router.get("/collections/{name}/documents/{document_id}")
async def get_document(name: str, document_id: str, db: Database = Depends(get_database)):
    """Get a single document by id."""
    return await db.get_document(name, document_id)


@router.post("/collections/{name}/documents", status_code=201)
async def add_document(
    name: str,
    document: dict[str, Any] = Body(..., description="Document to add"),
    allowed: Optional[list[DecisionType]] = Depends(get_allowed_operations),
    db: Database = Depends(get_database),
):
    """
    Add a document.

    The document is reconciled against the collection's schema; the
    applied Decision is returned as `operation`.
    """
    result = await db.add_document(name, document, allowed)
    return {"document": result.document, "operation": _wire(result.decision)}


@router.post("/collections/{name}/documents/batch", status_code=201)
async def add_documents(
    name: str,
    documents: list[dict[str, Any]] = Body(..., description="Documents to add"),
    allowed: Optional[list[DecisionType]] = Depends(get_allowed_operations),
    db: Database = Depends(get_database),
):
    """Add a batch of documents, reconciled as one unit."""
    result = await db.add_documents(name, documents, allowed)
    return {"documents": result.documents, "operation": _wire(result.decision)}


@router.patch("/collections/{name}/documents/{document_id}")
async def update_document(
    name: str,
    document_id: str,
    patch: dict[str, Any] = Body(..., description="Fields to merge"),
    allowed: Optional[list[DecisionType]] = Depends(get_allowed_operations),
    db: Database = Depends(get_database),
):
    """Merge fields into a document."""
    result = await db.update_document(name, document_id, patch, allowed)
    return {"document": result.document, "operation": _wire(result.decision)}


@router.put("/collections/{name}/documents/{document_id}")
async def replace_document(
    name: str,
    document_id: str,
    document: dict[str, Any] = Body(..., description="Replacement body"),
    allowed: Optional[list[DecisionType]] = Depends(get_allowed_operations),
    db: Database = Depends(get_database),
):
    """Replace a document's body, keeping its id."""
    result = await db.replace_document(name, document_id, document, allowed)
    return {"document": result.document, "operation": _wire(result.decision)}


@router.delete("/collections/{name}/documents/{document_id}", status_code=204)
async def delete_document(name: str, document_id: str, db: Database = Depends(get_database)):
    """Delete a document."""
    await db.delete_document(name, document_id)


@router.post("/collections/{name}/documents/delete", status_code=204)
async def delete_documents(
    name: str,
    request: DeleteDocumentsRequest,
    db: Database = Depends(get_database),
):
    """Delete several documents."""
    await db.delete_documents(name, request.ids)


# --- Decision Routes ---


@decisions_router.post("/documents")
async def decide_for_new_documents(
    request: NewDocumentsDecisionRequest,
    db: Database = Depends(get_database),
):
    """Ask the oracle directly how new documents should join a schema."""
    decision = await db.decider.get_decision_for_new_documents(
        request.existing_schema, request.new_documents
    )
    return _wire(decision)


@decisions_router.post("/query")
async def decide_for_query(
    request: QueryDecisionRequest,
    db: Database = Depends(get_database),
):
    """Ask the oracle directly how to map an input schema to a target schema."""
    decision = await db.decider.get_decision_for_query(request.input_schema, request.target_schema)
    return _wire(decision)

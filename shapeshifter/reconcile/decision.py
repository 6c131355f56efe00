"""
Reconciliation decisions for Shapeshifter.

A Decision describes how two schema snapshots, taken at one point in time,
relate and what to do about it:
- reject: incoming data is irreconcilable; nothing is written
- isSubset: incoming shape is accepted as-is by the existing schema
- isSuperset: incoming shape generalizes the existing schema
- map: a per-document program converts incoming documents to the existing shape
- migrate: existing documents are rewritten into the broader incoming shape

Invariants:
    - A Decision is a single atomic value; it is never cached or composed
    - Query-time decisions are restricted to map and reject
    - A reject Decision always passes the caller's allow-list

How to change safely:
    - Wire names (type, message, program, newSchema) are part of the HTTP
      contract and of the oracle's structured-output schema
    - Adding a variant requires updating the engine's dispatch and the
      oracle adapters
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..errors import OperationNotAllowedError, OracleError, ValidationError


class DecisionType(str, Enum):
    """Decision variants, valued by their wire names."""

    REJECT = "reject"
    IS_SUBSET = "isSubset"
    IS_SUPERSET = "isSuperset"
    MAP = "map"
    MIGRATE = "migrate"


class _DecisionModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @property
    def decision_type(self) -> DecisionType:
        return DecisionType(self.type)  # type: ignore[attr-defined]

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire field names."""
        return self.model_dump(by_alias=True)


class RejectDecision(_DecisionModel):
    """Incoming data is irreconcilable with the collection."""

    type: Literal["reject"] = "reject"
    message: str = Field(..., description="Why the data cannot be reconciled")


class SubsetDecision(_DecisionModel):
    """Incoming shape is accepted as-is by the existing schema."""

    type: Literal["isSubset"] = "isSubset"


class SupersetDecision(_DecisionModel):
    """Incoming shape generalizes the existing schema."""

    type: Literal["isSuperset"] = "isSuperset"


class MapDecision(_DecisionModel):
    """Convert each incoming document into the existing shape."""

    type: Literal["map"] = "map"
    program: str = Field(
        ...,
        description="jq program applied to each document independently",
    )


class MigrateDecision(_DecisionModel):
    """Rewrite existing documents into the broader incoming shape."""

    type: Literal["migrate"] = "migrate"
    new_schema: dict[str, Any] = Field(
        default_factory=dict,
        alias="newSchema",
        description="JSON Schema of the unified shape",
    )
    program: str = Field(
        ...,
        description="jq program converting one existing document to the new shape",
    )


Decision = Annotated[
    Union[RejectDecision, SubsetDecision, SupersetDecision, MapDecision, MigrateDecision],
    Field(discriminator="type"),
]

QueryDecision = Annotated[
    Union[MapDecision, RejectDecision],
    Field(discriminator="type"),
]

DECISION_ADAPTER: TypeAdapter[Any] = TypeAdapter(Decision)
QUERY_DECISION_ADAPTER: TypeAdapter[Any] = TypeAdapter(QueryDecision)


def parse_decision(data: Any) -> Decision:
    """Validate an oracle result as any Decision variant.

    Raises:
        OracleError: If the result is not a well-formed Decision
    """
    if isinstance(data, _DecisionModel):
        return data
    try:
        return DECISION_ADAPTER.validate_python(data)
    except PydanticValidationError as e:
        raise OracleError(f"Oracle returned an invalid decision: {e}") from e


def parse_query_decision(data: Any) -> QueryDecision:
    """Validate an oracle result as a query-time Decision (map or reject).

    Raises:
        OracleError: If the result is malformed or of a non-query variant
    """
    if isinstance(data, (MapDecision, RejectDecision)):
        return data
    if isinstance(data, _DecisionModel):
        raise OracleError(
            f"Oracle returned '{data.decision_type.value}' for a query; only map or reject apply"
        )
    try:
        return QUERY_DECISION_ADAPTER.validate_python(data)
    except PydanticValidationError as e:
        raise OracleError(f"Oracle returned an invalid query decision: {e}") from e


def decision_json_schema(query: bool = False) -> dict[str, Any]:
    """JSON Schema of the Decision union, for structured oracle output."""
    adapter = QUERY_DECISION_ADAPTER if query else DECISION_ADAPTER
    return adapter.json_schema(by_alias=True)


def parse_allowed_operations(raw: str | Iterable[str] | None) -> list[DecisionType] | None:
    """Parse an allow-list given as a comma-separated string or a list.

    Returns:
        Parsed list, or None when no allow-list was supplied

    Raises:
        ValidationError: If an entry is not a Decision type
    """
    if raw is None:
        return None
    items = raw.split(",") if isinstance(raw, str) else list(raw)

    allowed: list[DecisionType] = []
    errors: list[str] = []
    for item in items:
        if isinstance(item, DecisionType):
            allowed.append(item)
            continue
        name = str(item).strip()
        if not name:
            continue
        try:
            allowed.append(DecisionType(name))
        except ValueError:
            errors.append(f"Unknown operation '{name}'")

    if errors:
        raise ValidationError(
            f"Invalid allowed operations: {'; '.join(errors)}",
            field_name="allowed",
            errors=errors,
        )
    return allowed


_NOT_ALLOWED_MESSAGES: Mapping[DecisionType, str] = {
    DecisionType.IS_SUBSET: (
        "The input document's schema is a subset of the collection's schema, "
        "but subsets are not allowed"
    ),
    DecisionType.IS_SUPERSET: (
        "The input document's schema is a superset of the collection's schema, "
        "but supersets are not allowed"
    ),
}


def check_allowed(
    decision: Decision,
    allowed_operations: Iterable[DecisionType] | None,
) -> None:
    """Enforce the caller's allow-list on a resolved Decision.

    Reject always passes; no allow-list means everything passes.

    Raises:
        OperationNotAllowedError: If the Decision type is excluded
    """
    if allowed_operations is None:
        return
    kind = decision.decision_type
    if kind == DecisionType.REJECT:
        return
    allowed = list(allowed_operations)
    if kind in allowed:
        return
    message = _NOT_ALLOWED_MESSAGES.get(kind, f"Operation not allowed: {kind.value}")
    raise OperationNotAllowedError(
        message,
        operation=kind.value,
        allowed=[a.value for a in allowed],
    )

"""
Base protocol for the decision oracle.

The Decider resolves schema divergence into a Decision. It is external
and potentially non-deterministic; the reconciliation engine only sees
this protocol and never prompt text or model selection.

Invariants:
    - get_decision_for_query returns only map or reject
    - Reserved fields (_id, _original) are never sent to the oracle
    - Failures surface as OracleError; the engine writes nothing

How to change safely:
    - New backends must implement the Decider protocol
    - Validate oracle output with parse_decision/parse_query_decision
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ..reconcile.decision import Decision, QueryDecision
from ..schema.inference import strip_reserved


@runtime_checkable
class Decider(Protocol):
    """Oracle that proposes Decisions for divergent schemas."""

    async def get_decision_for_new_documents(
        self,
        existing_schema: dict[str, Any],
        new_documents: list[dict[str, Any]],
    ) -> Decision:
        """Decide how incoming documents join an existing collection.

        May return any of the five Decision variants.
        """
        ...

    async def get_decision_for_query(
        self,
        input_schema: dict[str, Any],
        target_schema: dict[str, Any],
    ) -> QueryDecision:
        """Decide how stored documents map into a query shape (map or reject)."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...


def oracle_view(documents: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Documents as shown to an oracle, without reserved fields."""
    return [strip_reserved(document) for document in documents]

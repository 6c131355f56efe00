"""
Deterministic decider implementations.

- ScriptedDecider: replays queued Decisions and records every call (tests)
- RejectingDecider: rejects every divergence (no oracle configured)
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from ..errors import OracleError
from ..reconcile.decision import (
    Decision,
    QueryDecision,
    RejectDecision,
    parse_decision,
    parse_query_decision,
)
from .base import oracle_view

logger = logging.getLogger(__name__)


@dataclass
class DeciderCall:
    """One recorded oracle invocation."""

    kind: str
    arguments: dict[str, Any] = field(default_factory=dict)


class ScriptedDecider:
    """Decider that replays scripted Decisions in order.

    Decisions may be given as models or wire dicts; they are validated
    exactly as live oracle output would be.

    Example:
        >>> decider = ScriptedDecider(documents=[{"type": "map", "program": "{title: .name}"}])
        >>> await decider.get_decision_for_new_documents({}, [{"name": "x"}])
        MapDecision(type='map', program='{title: .name}')
    """

    def __init__(
        self,
        documents: list[Any] | None = None,
        queries: list[Any] | None = None,
    ) -> None:
        self._documents: deque[Any] = deque(documents or [])
        self._queries: deque[Any] = deque(queries or [])
        self.calls: list[DeciderCall] = []
        self.closed = False

    def script_documents(self, *decisions: Any) -> None:
        self._documents.extend(decisions)

    def script_queries(self, *decisions: Any) -> None:
        self._queries.extend(decisions)

    async def get_decision_for_new_documents(
        self,
        existing_schema: dict[str, Any],
        new_documents: list[dict[str, Any]],
    ) -> Decision:
        self.calls.append(
            DeciderCall(
                "documents",
                {"existing_schema": existing_schema, "new_documents": oracle_view(new_documents)},
            )
        )
        if not self._documents:
            raise OracleError("No scripted decision left for new documents", backend="scripted")
        return parse_decision(self._documents.popleft())

    async def get_decision_for_query(
        self,
        input_schema: dict[str, Any],
        target_schema: dict[str, Any],
    ) -> QueryDecision:
        self.calls.append(
            DeciderCall("query", {"input_schema": input_schema, "target_schema": target_schema})
        )
        if not self._queries:
            raise OracleError("No scripted decision left for query", backend="scripted")
        return parse_query_decision(self._queries.popleft())

    async def close(self) -> None:
        self.closed = True


class RejectingDecider:
    """Decider that rejects every divergent write and query."""

    def __init__(self, message: str = "Schema divergence requires a decision oracle") -> None:
        self.message = message

    async def get_decision_for_new_documents(
        self,
        existing_schema: dict[str, Any],
        new_documents: list[dict[str, Any]],
    ) -> Decision:
        logger.debug(f"Rejecting {len(new_documents)} divergent document(s)")
        return RejectDecision(message=self.message)

    async def get_decision_for_query(
        self,
        input_schema: dict[str, Any],
        target_schema: dict[str, Any],
    ) -> QueryDecision:
        return RejectDecision(message=self.message)

    async def close(self) -> None:
        return None

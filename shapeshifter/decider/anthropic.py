"""
Anthropic Messages API decider.

Asks a Claude model for a Decision through forced tool use on the
anthropic SDK client: the tool's input schema is the pydantic Decision
union, so the reply is structured and validated like any other oracle
output.

Invariants:
    - Reserved fields are stripped from documents before prompting
    - Every call is bounded by the configured timeout
    - SDK, transport and parsing failures all raise OracleError

How to change safely:
    - Prompt text lives only here, never in the reconciliation engine
    - Keep the tool name stable; replies are located by it
"""

from __future__ import annotations

import json
import logging
from typing import Any

import anthropic
import httpx

from ..errors import OracleError
from ..reconcile.decision import (
    Decision,
    QueryDecision,
    decision_json_schema,
    parse_decision,
    parse_query_decision,
)
from .base import oracle_view

logger = logging.getLogger(__name__)

TOOL_NAME = "record_decision"

NEW_DOCUMENTS_PROMPT = """\
You are serving as a data migration assistant for a database.

A user is trying to add new documents to a collection, but the documents don't match the existing schema.

Decide how to handle the new documents:
- If the new documents are very different from the existing schema, reject them with a short message.
- If the new documents are a subset of the existing schema, return "isSubset".
- If the new documents are a superset of the existing schema, return "isSuperset".
- If the new documents generalize the existing schema, use "migrate" with a jq program that rewrites one
  existing document into the new shape, e.g. turning a string into an array of strings. Avoid "if" in the program.
- Otherwise use "map" with a jq program that rewrites one new document into the existing schema.

The existing schema is {existing_schema}.
The new documents are {new_documents}.
"""

QUERY_PROMPT = """\
You are serving as a data migration assistant for a database.

A user is querying a collection with a shape that doesn't match the collection's schema.
Help them by mapping documents of the input schema to the target schema.

The input schema is {input_schema}.
The target schema is {target_schema}.

Return "map" with a jq program that rewrites one input document into the target schema.
If that is not possible, return "reject" with a short message.
"""


def _tool(query: bool) -> dict[str, Any]:
    schema = decision_json_schema(query=query)
    defs = schema.pop("$defs", {})
    input_schema: dict[str, Any] = {
        "type": "object",
        "properties": {"decision": schema},
        "required": ["decision"],
    }
    if defs:
        input_schema["$defs"] = defs
    return {
        "name": TOOL_NAME,
        "description": "Record how the data should be reconciled.",
        "input_schema": input_schema,
    }


class AnthropicDecider:
    """Decider backed by the Anthropic Messages API.

    Example:
        >>> decider = AnthropicDecider(api_key="sk-ant-...")
        >>> decision = await decider.get_decision_for_query(collection_schema, shape_schema)
        >>> decision.type
        'map'
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-sonnet-20240620",
        base_url: str = "https://api.anthropic.com",
        timeout_seconds: float = 60.0,
        max_tokens: int = 2048,
        max_retries: int = 2,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the decider.

        Args:
            api_key: Anthropic API key
            model: Model name
            base_url: API base URL
            timeout_seconds: Deadline for a single call
            max_tokens: Completion budget
            max_retries: SDK retries on connection errors and retryable statuses
            http_client: Preconfigured HTTP client (tests inject a mock transport)
        """
        self.model = model
        self.max_tokens = max_tokens
        self._owns_client = http_client is None
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=max_retries,
            http_client=http_client,
        )

    async def get_decision_for_new_documents(
        self,
        existing_schema: dict[str, Any],
        new_documents: list[dict[str, Any]],
    ) -> Decision:
        prompt = NEW_DOCUMENTS_PROMPT.format(
            existing_schema=json.dumps(existing_schema),
            new_documents=json.dumps(oracle_view(new_documents)),
        )
        raw = await self._ask(prompt, query=False)
        decision = parse_decision(raw)
        logger.info(
            "Oracle decision for new documents",
            extra={"decision": decision.type, "document_count": len(new_documents)},
        )
        return decision

    async def get_decision_for_query(
        self,
        input_schema: dict[str, Any],
        target_schema: dict[str, Any],
    ) -> QueryDecision:
        prompt = QUERY_PROMPT.format(
            input_schema=json.dumps(input_schema),
            target_schema=json.dumps(target_schema),
        )
        raw = await self._ask(prompt, query=True)
        decision = parse_query_decision(raw)
        logger.info("Oracle decision for query", extra={"decision": decision.type})
        return decision

    async def _ask(self, prompt: str, query: bool) -> Any:
        try:
            message = await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                tools=[_tool(query)],
                tool_choice={"type": "tool", "name": TOOL_NAME},
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APITimeoutError as e:
            raise OracleError(f"Oracle timed out: {e}", backend="anthropic") from e
        except anthropic.APIConnectionError as e:
            raise OracleError(f"Oracle unreachable: {e}", backend="anthropic") from e
        except anthropic.APIStatusError as e:
            raise OracleError(
                f"Oracle returned HTTP {e.status_code}: {e.message}",
                backend="anthropic",
            ) from e
        except anthropic.APIError as e:
            raise OracleError(f"Oracle call failed: {e}", backend="anthropic") from e

        for block in message.content:
            if block.type == "tool_use" and block.name == TOOL_NAME:
                tool_input = block.input if isinstance(block.input, dict) else {}
                if "decision" not in tool_input:
                    raise OracleError("Oracle reply has no decision", backend="anthropic")
                return tool_input["decision"]

        raise OracleError("Oracle reply contains no tool call", backend="anthropic")

    async def close(self) -> None:
        # AsyncAnthropic.close() also closes an injected http_client
        if self._owns_client:
            await self._client.close()

"""
Decider module for Shapeshifter - the decision oracle boundary.

This module provides a pluggable oracle interface supporting:
- Anthropic Messages API (default)
- Reject-all (no oracle configured)
- Scripted (for testing)

Invariants:
    - The reconciliation engine depends only on the Decider protocol
    - Oracle output is always validated before use

How to change safely:
    - New backends must implement the Decider protocol
    - Register new backends in create_decider()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .anthropic import AnthropicDecider
from .base import Decider, oracle_view
from .scripted import DeciderCall, RejectingDecider, ScriptedDecider

if TYPE_CHECKING:
    from ..config import DeciderConfig


def create_decider(config: DeciderConfig) -> Decider:
    """Create a decider for the configured backend.

    Args:
        config: Decider configuration

    Returns:
        Decider implementation

    Raises:
        ValueError: If the anthropic backend has no API key
    """
    from ..config import DeciderBackend

    if config.backend == DeciderBackend.REJECT:
        return RejectingDecider()
    if not config.api_key:
        raise ValueError("ANTHROPIC_API_KEY is required for the anthropic decider")
    return AnthropicDecider(
        api_key=config.api_key,
        model=config.model,
        base_url=config.base_url,
        timeout_seconds=config.timeout_seconds,
        max_tokens=config.max_tokens,
        max_retries=config.max_retries,
    )


__all__ = [
    # Protocol
    "Decider",
    "oracle_view",
    # Factory
    "create_decider",
    # Implementations
    "AnthropicDecider",
    "RejectingDecider",
    "ScriptedDecider",
    "DeciderCall",
]

"""
CLI tools for Shapeshifter.

This module provides command-line tools for:
- schema: Infer and relate document shapes offline

Invariants:
    - Tools work offline (no running server required)
"""

from .schema_cli import SchemaCLI

__all__ = ["SchemaCLI"]

"""
Transform module for Shapeshifter.

Executes mapping and migration programs (jq) over single documents.
"""

from .executor import TransformExecutor

__all__ = ["TransformExecutor"]

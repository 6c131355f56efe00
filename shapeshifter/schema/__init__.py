"""
Schema module for Shapeshifter.

This module provides the structural side of reconciliation:
- Schema inference from sample documents (SchemaInferer)
- Synthetic instance generation (MockGenerator)
- Probabilistic subset checking (SchemaRelationChecker)

Invariants:
    - Schemas are derived values, recomputed per operation, never stored
    - Reserved fields (_id, _original) are ignored by inference
    - Relation checks fail closed and never raise

How to change safely:
    - Generated instances must stay valid for every keyword the inferer can emit
    - Compare schemas only through SchemaRelationChecker
"""

from .inference import (
    RESERVED_FIELDS,
    Schema,
    SchemaInferer,
    is_empty_schema,
    property_names,
    strip_reserved,
)
from .mock import MockGenerationError, MockGenerator
from .relation import DEFAULT_SAMPLE_COUNT, SchemaRelationChecker, passthrough

__all__ = [
    # Inference
    "Schema",
    "SchemaInferer",
    "RESERVED_FIELDS",
    "strip_reserved",
    "is_empty_schema",
    "property_names",
    # Generation
    "MockGenerator",
    "MockGenerationError",
    # Relation
    "SchemaRelationChecker",
    "DEFAULT_SAMPLE_COUNT",
    "passthrough",
]

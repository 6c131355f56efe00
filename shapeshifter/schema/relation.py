"""
Structural relation checking between two inferred schemas.

Decides whether one schema's shape is a subset of another's by generative
probing: synthetic instances are drawn from one schema and validated against
the other with unknown properties allowed. This is a Monte-Carlo
approximation, not a proof.

Invariants:
    - is_subset never raises; any failure means "not a subset"
    - Validation is passthrough: extra properties never fail an instance
    - Repeated calls use independent randomness unless a seed is fixed

How to change safely:
    - Keep the sample count configurable; lowering it raises the
      false-positive rate for optional properties
    - Do not compare schema dicts directly, inference runs are not
      guaranteed byte-identical
"""

from __future__ import annotations

import logging
from typing import Any

from jsonschema import Draft202012Validator

from .inference import Schema, is_empty_schema
from .mock import MockGenerator

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_COUNT = 100


def passthrough(schema: Any) -> Any:
    """Return a copy of a schema that tolerates unknown properties at every level."""
    if isinstance(schema, list):
        return [passthrough(item) for item in schema]
    if not isinstance(schema, dict):
        return schema
    relaxed: dict[str, Any] = {}
    for key, value in schema.items():
        if key in ("$schema", "additionalProperties", "unevaluatedProperties"):
            continue
        if key == "properties" and isinstance(value, dict):
            # Property names are data, not keywords
            relaxed[key] = {name: passthrough(sub) for name, sub in value.items()}
        else:
            relaxed[key] = passthrough(value)
    return relaxed


class SchemaRelationChecker:
    """Probabilistic structural subset check between schemas.

    ``is_subset(candidate, reference)`` holds when the candidate asks for
    no more than the reference provides: every instance generated from
    ``reference`` validates against ``candidate``. A candidate with fewer
    required fields is a subset; one that requires a field the reference
    lacks or leaves optional is not.

    Attributes:
        sample_count: Instances generated per check

    Example:
        >>> checker = SchemaRelationChecker(sample_count=50)
        >>> checker.is_subset(title_schema, title_and_year_schema)
        True
        >>> checker.is_subset(title_and_year_schema, title_schema)
        False
    """

    def __init__(
        self,
        sample_count: int = DEFAULT_SAMPLE_COUNT,
        seed: int | None = None,
    ) -> None:
        if sample_count < 1:
            raise ValueError("sample_count must be at least 1")
        self.sample_count = sample_count
        self._generator = MockGenerator(seed=seed)

    def is_subset(self, candidate: Schema, reference: Schema) -> bool:
        """Whether candidate's shape is structurally a subset of reference's.

        Args:
            candidate: Schema whose acceptance is being probed
            reference: Schema the synthetic instances are drawn from

        Returns:
            True only if every generated instance validates; False on any
            mismatch or error
        """
        try:
            if is_empty_schema(candidate) or is_empty_schema(reference):
                # Nothing was inferred on one side; there is no shape to relate
                return False

            validator = Draft202012Validator(passthrough(candidate))
            instances = self._generator.generate(passthrough(reference), self.sample_count)
            return bool(instances) and all(validator.is_valid(instance) for instance in instances)
        except Exception as e:
            logger.debug(f"Subset check failed closed: {e}")
            return False

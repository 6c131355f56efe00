"""
Synthetic instance generation from JSON Schemas.

Draws JSON values that conform to a schema using hypothesis-jsonschema
strategies. Used by the relation checker to probe whether one schema
accepts another's shape.

Invariants:
    - Every generated instance validates against the schema it came from
    - Objects stay open: undeclared properties may appear unless the
      schema forbids them
    - Any generation failure surfaces as MockGenerationError

How to change safely:
    - Keep shrinking out of the phases; a failing draw is reported as is
    - A fixed seed makes draws repeatable, tests rely on it
"""

from __future__ import annotations

from typing import Any

from hypothesis import HealthCheck, Phase, Verbosity, given, seed, settings
from hypothesis_jsonschema import from_schema

from .inference import Schema


class MockGenerationError(Exception):
    """The schema has no instances the generator can produce."""

    pass


class MockGenerator:
    """Draws instances of a JSON Schema.

    Attributes:
        seed: Fixed hypothesis seed, or None for fresh randomness per call

    Example:
        >>> gen = MockGenerator(seed=7)
        >>> instances = gen.generate({"type": "object", "properties": {"a": {"type": "string"}}, "required": ["a"]}, 10)
        >>> all(isinstance(instance["a"], str) for instance in instances)
        True
    """

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed

    def generate(self, schema: Schema, count: int = 1) -> list[Any]:
        """Draw up to ``count`` instances conforming to the schema.

        Small instance spaces (a ``const``, a short ``enum``) may yield
        fewer than ``count`` distinct draws.

        Raises:
            MockGenerationError: If the schema is invalid or unsatisfiable
        """
        instances: list[Any] = []

        def collect(instance: Any) -> None:
            instances.append(instance)

        try:
            run = settings(
                max_examples=count,
                database=None,
                deadline=None,
                phases=[Phase.generate],
                suppress_health_check=list(HealthCheck),
                verbosity=Verbosity.quiet,
            )(given(from_schema(schema))(collect))
            if self.seed is not None:
                run = seed(self.seed)(run)
            run()
        except Exception as e:
            raise MockGenerationError(f"Cannot generate instances of schema: {e}") from e
        return instances

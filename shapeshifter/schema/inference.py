"""
Schema inference for Shapeshifter collections.

Turns a set of sample documents into a structural JSON Schema. Schemas are
derived, never stored: every reconciliation recomputes them from the
documents currently in the collection.

Invariants:
    - Reserved fields (_id, _original) never appear in an inferred schema
    - Inference is deterministic for identical document shapes
    - A property is required only if every sample carries it

How to change safely:
    - Two schemas must only be compared through SchemaRelationChecker,
      never by equality of their representation
    - New render targets must not change the default JSON Schema output
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

import yaml
from genson import SchemaBuilder

from ..errors import ValidationError

logger = logging.getLogger(__name__)

RESERVED_FIELDS = frozenset({"_id", "_original"})

Schema = dict[str, Any]

RENDER_TARGETS = ("schema", "json", "yaml")


def strip_reserved(document: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of a document without reserved bookkeeping fields."""
    return {key: value for key, value in document.items() if key not in RESERVED_FIELDS}


def is_empty_schema(schema: Schema) -> bool:
    """Whether a schema was inferred from zero documents."""
    return not any(key in schema for key in ("type", "anyOf", "properties"))


def property_names(schema: Schema) -> list[str]:
    """Top-level property names of an object schema, in inference order."""
    return list(schema.get("properties", {}).keys())


class SchemaInferer:
    """Infers a JSON Schema from sample documents.

    Backed by genson's SchemaBuilder, which merges every sample into one
    schema: properties seen in all samples become required, values seen
    with several kinds become type unions.

    Example:
        >>> inferer = SchemaInferer()
        >>> schema = inferer.infer("albums", [{"title": "A", "year": 1970}])
        >>> schema["required"]
        ['title', 'year']
    """

    def infer(self, name: str, documents: Iterable[Mapping[str, Any]]) -> Schema:
        """Infer the structural schema of a document set.

        Args:
            name: Collection name, recorded as the schema title
            documents: Sample documents

        Returns:
            JSON Schema dict
        """
        builder = SchemaBuilder()
        count = 0
        for document in documents:
            if not isinstance(document, Mapping):
                raise ValidationError(
                    f"Documents must be JSON objects, got {type(document).__name__}",
                    errors=[f"document {count} is not an object"],
                )
            builder.add_object(strip_reserved(document))
            count += 1

        schema = builder.to_schema()
        schema["title"] = name
        logger.debug(f"Inferred schema for {name} from {count} document(s)")
        return schema

    def render(self, schema: Schema, target: str | None = None) -> Schema | str:
        """Render a schema in a target representation.

        Args:
            schema: Inferred JSON Schema
            target: "schema"/"json" (dict, default) or "yaml" (text)

        Returns:
            The schema dict, or its YAML text

        Raises:
            ValidationError: If the target is not supported
        """
        target = (target or "schema").lower()
        if target not in RENDER_TARGETS:
            raise ValidationError(
                f"Unsupported schema language '{target}'",
                field_name="language",
                errors=[f"expected one of {list(RENDER_TARGETS)}"],
            )
        if target == "yaml":
            # Round-trip through JSON so YAML never emits python-specific tags
            return yaml.safe_dump(json.loads(json.dumps(schema)), sort_keys=False)
        return schema

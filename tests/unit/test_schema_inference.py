"""
Unit tests for schema inference and rendering.

Tests cover:
- Required/optional property inference
- Reserved field stripping
- Empty schema detection
- Rendering targets
"""

import pytest
import yaml

from shapeshifter.errors import ValidationError
from shapeshifter.schema import SchemaInferer, is_empty_schema, property_names, strip_reserved


class TestSchemaInferer:
    """Tests for SchemaInferer.infer."""

    @pytest.fixture
    def inferer(self):
        return SchemaInferer()

    def test_infers_object_properties(self, inferer):
        """Every field becomes a typed property."""
        schema = inferer.infer("albums", [{"title": "Abbey Road", "year": 1969}])

        assert schema["type"] == "object"
        assert schema["properties"]["title"] == {"type": "string"}
        assert schema["properties"]["year"] == {"type": "integer"}
        assert sorted(schema["required"]) == ["title", "year"]

    def test_field_missing_from_some_samples_is_optional(self, inferer):
        """Only fields present in every sample are required."""
        schema = inferer.infer(
            "albums",
            [{"title": "A", "year": 1970}, {"title": "B"}],
        )

        assert schema["required"] == ["title"]
        assert "year" in schema["properties"]

    def test_reserved_fields_are_ignored(self, inferer):
        """_id and _original never appear in the schema."""
        schema = inferer.infer(
            "albums",
            [{"_id": "1", "_original": {"name": "A"}, "title": "A"}],
        )

        assert property_names(schema) == ["title"]
        assert "_id" not in schema.get("required", [])

    def test_title_is_collection_name(self, inferer):
        """Schema title records the collection."""
        schema = inferer.infer("albums", [{"title": "A"}])
        assert schema["title"] == "albums"

    def test_deterministic_for_same_shapes(self, inferer):
        """Identical shapes produce identical schemas."""
        first = inferer.infer("albums", [{"title": "A", "tags": ["x"]}])
        second = inferer.infer("albums", [{"title": "B", "tags": ["y", "z"]}])
        assert first == second

    def test_no_documents_gives_empty_schema(self, inferer):
        """An empty collection has no shape."""
        schema = inferer.infer("albums", [])
        assert is_empty_schema(schema)

    def test_non_object_document_rejected(self, inferer):
        """Scalars are not documents."""
        with pytest.raises(ValidationError):
            inferer.infer("albums", [{"title": "A"}, "not a document"])


class TestRender:
    """Tests for SchemaInferer.render."""

    @pytest.fixture
    def schema(self):
        return SchemaInferer().infer("albums", [{"title": "A", "year": 1970}])

    def test_default_is_json_schema(self, schema):
        """No target returns the schema dict itself."""
        assert SchemaInferer().render(schema) is schema

    def test_json_target(self, schema):
        """json is an alias of schema."""
        assert SchemaInferer().render(schema, "json") == schema

    def test_yaml_target(self, schema):
        """yaml renders the same schema as YAML text."""
        rendered = SchemaInferer().render(schema, "YAML")

        assert isinstance(rendered, str)
        assert yaml.safe_load(rendered) == schema

    def test_unknown_target_rejected(self, schema):
        """Code generation targets are not supported."""
        with pytest.raises(ValidationError) as exc_info:
            SchemaInferer().render(schema, "typescript")
        assert exc_info.value.field_name == "language"


class TestHelpers:
    """Tests for schema helper functions."""

    def test_strip_reserved_copies(self):
        """strip_reserved leaves the input untouched."""
        document = {"_id": "1", "_original": {}, "title": "A"}

        assert strip_reserved(document) == {"title": "A"}
        assert "_id" in document

    def test_is_empty_schema(self):
        """Schemas with a type or properties are not empty."""
        assert is_empty_schema({"$schema": "http://json-schema.org/schema#"})
        assert not is_empty_schema({"type": "object"})
        assert not is_empty_schema({"anyOf": [{"type": "string"}]})

"""
Unit tests for synthetic instance generation.

Tests cover:
- Faithfulness: generated instances validate against their schema
- Required and optional properties
- Seeded repeatability
- Generation failures
"""

import pytest
from jsonschema import Draft202012Validator

from shapeshifter.schema import MockGenerationError, MockGenerator, SchemaInferer, passthrough


@pytest.fixture
def generator():
    return MockGenerator(seed=1234)


class TestMockGenerator:
    """Tests for MockGenerator."""

    def test_instances_validate_against_inferred_schema(self, generator):
        """Generated instances conform to the schema they came from."""
        schema = SchemaInferer().infer(
            "albums",
            [
                {"title": "A", "year": 1970, "rating": 4.5, "tags": ["rock"], "live": False},
                {"title": "B", "artist": {"name": "X", "born": 1940}, "notes": None},
            ],
        )
        validator = Draft202012Validator(schema)

        instances = generator.generate(passthrough(schema), 100)

        assert instances
        assert all(validator.is_valid(instance) for instance in instances)

    def test_required_properties_always_present(self, generator):
        """Required fields appear in every instance; optional ones vary."""
        schema = {
            "type": "object",
            "properties": {"title": {"type": "string"}, "year": {"type": "integer"}},
            "required": ["title"],
        }

        instances = generator.generate(schema, 100)

        assert all("title" in instance for instance in instances)
        assert any("year" in instance for instance in instances)
        assert any("year" not in instance for instance in instances)

    def test_integer_bounds(self, generator):
        """minimum/maximum are honored."""
        values = generator.generate({"type": "integer", "minimum": 3, "maximum": 5}, 50)
        assert values
        assert all(3 <= value <= 5 for value in values)

    def test_type_union(self, generator):
        """Type lists draw from every listed type."""
        values = generator.generate({"type": ["string", "null"]}, 100)
        assert {type(value) for value in values} == {str, type(None)}

    def test_const(self, generator):
        """const produces only its value."""
        values = generator.generate({"const": 7}, 10)
        assert values
        assert set(values) == {7}

    def test_array_length_bounds(self, generator):
        """minItems/maxItems are honored."""
        arrays = generator.generate(
            {"type": "array", "items": {"type": "string"}, "minItems": 2, "maxItems": 4}, 50
        )
        assert all(2 <= len(items) <= 4 for items in arrays)

    def test_seed_repeats_draws(self):
        """The same seed draws the same instances."""
        schema = {"type": "object", "properties": {"year": {"type": "integer"}}}

        first = MockGenerator(seed=9).generate(schema, 20)
        second = MockGenerator(seed=9).generate(schema, 20)

        assert first == second

    def test_unresolvable_reference_raises(self, generator):
        """A schema that cannot be generated raises MockGenerationError."""
        with pytest.raises(MockGenerationError):
            generator.generate({"type": "object", "properties": {"a": {"$ref": "#/nowhere"}}}, 5)

"""
Unit tests for Mongo-style predicate filters.

Tests cover:
- Implicit equality and comparison operators
- Dotted paths and array fan-out
- Logical combinators
- Validation of malformed filters
"""

import pytest

from shapeshifter.errors import ValidationError
from shapeshifter.query import compile_filter, matches

ALBUM = {
    "_id": "1",
    "title": "Abbey Road",
    "year": 1969,
    "rating": 4.5,
    "live": False,
    "tags": ["rock", "pop"],
    "artist": {"name": "The Beatles", "members": ["John", "Paul"]},
    "tracks": [
        {"title": "Come Together", "length": 259},
        {"title": "Something", "length": 182},
    ],
    "label": None,
}


class TestEquality:
    """Tests for implicit and explicit equality."""

    def test_scalar(self):
        """Plain values compare by equality."""
        assert matches(ALBUM, {"title": "Abbey Road"})
        assert not matches(ALBUM, {"title": "Help!"})

    def test_no_string_number_coercion(self):
        """Structured filters compare typed values."""
        assert not matches(ALBUM, {"year": "1969"})

    def test_array_contains(self):
        """Scalar against an array matches any element."""
        assert matches(ALBUM, {"tags": "rock"})
        assert not matches(ALBUM, {"tags": "jazz"})

    def test_explicit_null(self):
        """null matches a field stored as null."""
        assert matches(ALBUM, {"label": None})

    def test_nested_object(self):
        """Object values compare whole."""
        assert matches({"a": {"b": 1}}, {"a": {"b": 1}})

    def test_empty_filter(self):
        """An empty filter matches everything."""
        assert matches(ALBUM, {})
        assert matches(ALBUM, None)


class TestOperators:
    """Tests for operator expressions."""

    @pytest.mark.parametrize(
        "query, expected",
        [
            ({"year": {"$gt": 1968}}, True),
            ({"year": {"$gte": 1969, "$lt": 1970}}, True),
            ({"year": {"$lte": 1968}}, False),
            ({"rating": {"$gt": 4}}, True),
            ({"title": {"$gt": "A"}}, True),
            ({"year": {"$ne": 1970}}, True),
            ({"year": {"$eq": 1969}}, True),
            ({"year": {"$in": [1969, 1970]}}, True),
            ({"year": {"$nin": [1969, 1970]}}, False),
            ({"tags": {"$in": ["jazz", "pop"]}}, True),
            ({"label": {"$exists": True}}, True),
            ({"producer": {"$exists": False}}, True),
            ({"title": {"$regex": "^Abbey"}}, True),
            ({"title": {"$regex": "(?i)^abbey"}}, True),
            ({"title": {"$regex": "^Help"}}, False),
            ({"tags": {"$size": 2}}, True),
            ({"tags": {"$size": 3}}, False),
            ({"tags": {"$all": ["pop", "rock"]}}, True),
            ({"tags": {"$all": ["pop", "jazz"]}}, False),
            ({"year": {"$not": {"$gt": 2000}}}, True),
            ({"year": {"$not": {"$lt": 2000}}}, False),
        ],
    )
    def test_operator(self, query, expected):
        """Operators evaluate against field values."""
        assert matches(ALBUM, query) is expected

    def test_elem_match_objects(self):
        """$elemMatch applies a sub-filter to each element."""
        assert matches(ALBUM, {"tracks": {"$elemMatch": {"title": "Something", "length": {"$lt": 200}}}})
        assert not matches(ALBUM, {"tracks": {"$elemMatch": {"title": "Something", "length": {"$gt": 200}}}})

    def test_elem_match_scalars(self):
        """$elemMatch with operators applies to scalar elements."""
        assert matches({"scores": [1, 5, 9]}, {"scores": {"$elemMatch": {"$gt": 4, "$lt": 6}}})
        assert not matches({"scores": [1, 9]}, {"scores": {"$elemMatch": {"$gt": 4, "$lt": 6}}})


class TestPaths:
    """Tests for dotted path resolution."""

    def test_nested_field(self):
        """Dots descend into objects."""
        assert matches(ALBUM, {"artist.name": "The Beatles"})

    def test_array_of_objects_fans_out(self):
        """Paths through arrays collect every element's field."""
        assert matches(ALBUM, {"tracks.title": "Something"})
        assert not matches(ALBUM, {"tracks.title": "Help!"})

    def test_numeric_index(self):
        """Numeric parts index into arrays."""
        assert matches(ALBUM, {"tracks.0.title": "Come Together"})
        assert not matches(ALBUM, {"tracks.1.title": "Come Together"})
        assert matches(ALBUM, {"artist.members.1": "Paul"})

    def test_missing_path(self):
        """Missing paths do not match values."""
        assert not matches(ALBUM, {"artist.born": 1940})


class TestLogical:
    """Tests for logical combinators."""

    def test_and(self):
        """$and requires every clause."""
        assert matches(ALBUM, {"$and": [{"year": 1969}, {"tags": "rock"}]})
        assert not matches(ALBUM, {"$and": [{"year": 1969}, {"tags": "jazz"}]})

    def test_or(self):
        """$or requires any clause."""
        assert matches(ALBUM, {"$or": [{"year": 1970}, {"tags": "rock"}]})
        assert not matches(ALBUM, {"$or": [{"year": 1970}, {"tags": "jazz"}]})

    def test_nor(self):
        """$nor requires no clause."""
        assert matches(ALBUM, {"$nor": [{"year": 1970}, {"tags": "jazz"}]})
        assert not matches(ALBUM, {"$nor": [{"year": 1969}]})

    def test_implicit_and_with_logical(self):
        """Top-level fields and combinators combine with AND."""
        assert matches(ALBUM, {"live": False, "$or": [{"rating": {"$gte": 4}}]})


class TestValidation:
    """Tests for malformed filters."""

    @pytest.mark.parametrize(
        "query",
        [
            {"$where": "true"},
            {"year": {"$near": 1}},
            {"$or": []},
            {"$and": {"year": 1}},
            {"$nor": ["year"]},
            {"year": {"$in": 1969}},
            {"tags": {"$all": "rock"}},
            {"tags": {"$size": -1}},
            {"tags": {"$size": True}},
            {"title": {"$regex": "("}},
            {"title": {"$options": "i"}},
            {"title": {"$not": "^Help"}},
            {"tracks": {"$elemMatch": {}}},
            {"tracks": {"$elemMatch": {"length": {"$where": "1"}}}},
            {"$or": [{"year": {"$bogus": 1}}]},
        ],
    )
    def test_malformed_filter_rejected(self, query):
        """Malformed filters raise ValidationError at compile time."""
        with pytest.raises(ValidationError):
            compile_filter(query)

    def test_non_object_filter(self):
        """Filters must be objects."""
        with pytest.raises(ValidationError):
            compile_filter(["year"])

    def test_validation_error_names_filter(self):
        """Errors point at the filter field."""
        with pytest.raises(ValidationError) as exc_info:
            compile_filter({"year": {"$near": 1}})
        assert exc_info.value.field_name == "filter"

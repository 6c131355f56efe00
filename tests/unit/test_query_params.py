"""
Unit tests for query parameter parsing.

Tests cover:
- limit and sort parsing
- Equality filter collection
- Field stringification
"""

import pytest

from shapeshifter.errors import ValidationError
from shapeshifter.query import QueryParams, SortOrder, to_query_string


class TestQueryParamsParse:
    """Tests for QueryParams.parse."""

    def test_empty(self):
        """No parameters means no constraints."""
        params = QueryParams.parse({})
        assert params == QueryParams()

    def test_limit_and_sort(self):
        """limit parses to int, sort is case-insensitive."""
        params = QueryParams.parse({"limit": "5", "sort": "DESC"})

        assert params.limit == 5
        assert params.sort == SortOrder.DESC

    def test_zero_limit(self):
        """limit=0 is valid."""
        assert QueryParams.parse({"limit": "0"}).limit == 0

    @pytest.mark.parametrize("limit", ["-1", "abc", "1.5", ""])
    def test_invalid_limit(self, limit):
        """limit must be a non-negative integer."""
        with pytest.raises(ValidationError):
            QueryParams.parse({"limit": limit})

    def test_invalid_sort(self):
        """sort must be asc or desc."""
        with pytest.raises(ValidationError) as exc_info:
            QueryParams.parse({"sort": "random"})
        assert exc_info.value.field_name == "query"

    def test_all_errors_reported(self):
        """Every offending parameter is listed."""
        with pytest.raises(ValidationError) as exc_info:
            QueryParams.parse({"limit": "x", "sort": "y"})
        assert len(exc_info.value.errors) == 2

    def test_other_params_are_equality_filters(self):
        """Non-reserved parameters filter by value."""
        params = QueryParams.parse({"title": "A", "year": "1970", "limit": "2"})
        assert params.equals == {"title": "A", "year": "1970"}

    def test_ignored_params(self):
        """Transport-level parameters can be excluded."""
        params = QueryParams.parse({"allowed": "map", "title": "A"}, ignore=("allowed",))
        assert params.equals == {"title": "A"}


class TestToQueryString:
    """Tests for to_query_string."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("A", "A"),
            (1970, "1970"),
            (1970.0, "1970"),
            (4.5, "4.5"),
            (True, "true"),
            (False, "false"),
            (["a", 1, None], "a,1,"),
            ({"a": 1}, "[object Object]"),
            (None, None),
        ],
    )
    def test_stringification(self, value, expected):
        """Values stringify like their JavaScript toString()."""
        assert to_query_string(value) == expected

"""
Structured predicate filters for Shapeshifter queries.

Filters are Mongo-style documents evaluated against each result document
by mongoquery:

    {"year": {"$gte": 1970}, "$or": [{"genre": "rock"}, {"tags": "live"}]}

Supported:
- Comparison: $eq $ne $gt $gte $lt $lte $in $nin
- Element: $exists $type
- String: $regex (flags go inline, e.g. "(?i)^abbey")
- Array: $size $all $elemMatch
- Logical: $and $or $nor (top level), $not (field level, operator object)
- Dotted paths ("artist.name", "tracks.0"); arrays match if any element matches

Invariants:
    - Filters are validated once at compile time; unknown operators raise
      ValidationError before any document is inspected
    - Operators outside the list above never reach the matcher
    - Argument errors the matcher detects while evaluating surface as
      ValidationError
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from mongoquery import Query, QueryError

from ..errors import ValidationError

Predicate = Callable[[Any], bool]

LOGICAL_OPERATORS = ("$and", "$or", "$nor")

FIELD_OPERATORS = (
    "$eq",
    "$ne",
    "$gt",
    "$gte",
    "$lt",
    "$lte",
    "$in",
    "$nin",
    "$exists",
    "$type",
    "$regex",
    "$size",
    "$all",
    "$elemMatch",
    "$not",
)


def compile_filter(query: Mapping[str, Any] | None) -> Predicate:
    """Compile a filter document into a predicate over documents.

    Args:
        query: Filter document; None or empty matches everything

    Returns:
        Callable returning True for matching documents

    Raises:
        ValidationError: If the filter is malformed or uses an unknown operator
    """
    if query is None:
        return lambda document: True
    if not isinstance(query, Mapping):
        raise ValidationError("Filter must be an object", field_name="filter")

    _check_query(query)
    compiled = Query(dict(query))

    def predicate(document: Any) -> bool:
        try:
            return compiled.match(document)
        except QueryError as e:
            raise ValidationError(f"Invalid filter: {e}", field_name="filter") from e

    return predicate


def matches(document: Any, query: Mapping[str, Any] | None) -> bool:
    """Whether a document satisfies a filter."""
    return compile_filter(query)(document)


# =============================================================================
# Structural validation
# =============================================================================


def _check_query(query: Mapping[str, Any]) -> None:
    for key, condition in query.items():
        if key in LOGICAL_OPERATORS:
            _check_logical(key, condition)
        elif key.startswith("$"):
            raise ValidationError(f"Unknown top-level operator '{key}'", field_name="filter")
        elif _is_operator_object(condition):
            _check_operators(condition)


def _check_logical(operator: str, condition: Any) -> None:
    if not isinstance(condition, list) or not condition:
        raise ValidationError(f"'{operator}' expects a non-empty array", field_name="filter")
    for sub in condition:
        if not isinstance(sub, Mapping):
            raise ValidationError(f"'{operator}' entries must be objects", field_name="filter")
        _check_query(sub)


def _is_operator_object(condition: Any) -> bool:
    return (
        isinstance(condition, Mapping)
        and len(condition) > 0
        and all(isinstance(key, str) and key.startswith("$") for key in condition)
    )


def _check_operators(condition: Mapping[str, Any]) -> None:
    for operator, argument in condition.items():
        if operator not in FIELD_OPERATORS:
            raise ValidationError(f"Unknown operator '{operator}'", field_name="filter")

        if operator in ("$in", "$nin", "$all") and not isinstance(argument, list):
            raise ValidationError(f"'{operator}' expects an array", field_name="filter")
        elif operator == "$size" and (
            isinstance(argument, bool) or not isinstance(argument, int) or argument < 0
        ):
            raise ValidationError("'$size' expects a non-negative integer", field_name="filter")
        elif operator == "$regex":
            try:
                re.compile(argument)
            except (TypeError, re.error) as e:
                raise ValidationError(f"Invalid '$regex': {e}", field_name="filter") from e
        elif operator == "$not":
            if not _is_operator_object(argument):
                raise ValidationError("'$not' expects an operator object", field_name="filter")
            _check_operators(argument)
        elif operator == "$elemMatch":
            if not isinstance(argument, Mapping) or not argument:
                raise ValidationError("'$elemMatch' expects a non-empty object", field_name="filter")
            if _is_operator_object(argument):
                _check_operators(argument)
            else:
                _check_query(argument)

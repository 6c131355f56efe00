"""
Query parameter parsing for Shapeshifter.

Request query parameters are untyped strings. This module turns them into
a QueryParams value:
- limit: non-negative integer
- sort: "asc" or "desc" (case-insensitive), ordering by _id
- every other parameter: an equality filter on the stringified field

Invariants:
    - Parsing errors are deterministic and list every offending parameter
    - Reserved parameter names never become equality filters
    - Field stringification is stable across stores
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ValidationError

RESERVED_PARAMS = frozenset({"limit", "sort"})


class SortOrder(str, Enum):
    """Ordering by _id."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class QueryParams:
    """Parsed query parameters.

    Attributes:
        limit: Maximum documents returned, or None for all
        sort: _id ordering, or None to keep store order
        equals: Field name -> required stringified value
    """

    limit: Optional[int] = None
    sort: Optional[SortOrder] = None
    equals: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, raw: Optional[Mapping[str, Any]] = None, ignore: Tuple[str, ...] = ()) -> QueryParams:
        """Parse raw query parameters.

        Args:
            raw: Parameter name -> value
            ignore: Additional names that are neither reserved nor filters

        Returns:
            QueryParams

        Raises:
            ValidationError: If limit or sort is malformed
        """
        errors: List[str] = []
        limit: Optional[int] = None
        sort: Optional[SortOrder] = None
        equals: Dict[str, str] = {}

        for name, value in (raw or {}).items():
            if name in ignore or value is None:
                continue
            if name == "limit":
                limit = _parse_limit(value, errors)
            elif name == "sort":
                sort = _parse_sort(value, errors)
            else:
                equals[name] = value if isinstance(value, str) else to_query_string(value)

        if errors:
            raise ValidationError(
                f"Invalid query parameters: {'; '.join(errors)}",
                field_name="query",
                errors=errors,
            )
        return cls(limit=limit, sort=sort, equals=equals)


def _parse_limit(value: Any, errors: List[str]) -> Optional[int]:
    if isinstance(value, bool):
        errors.append("Parameter 'limit' must be a non-negative integer")
        return None
    if isinstance(value, int):
        parsed = value
    else:
        text = str(value).strip()
        if not text.isdigit():
            errors.append(f"Parameter 'limit' must be a non-negative integer, got '{value}'")
            return None
        parsed = int(text)
    if parsed < 0:
        errors.append(f"Parameter 'limit' must be a non-negative integer, got '{value}'")
        return None
    return parsed


def _parse_sort(value: Any, errors: List[str]) -> Optional[SortOrder]:
    if isinstance(value, SortOrder):
        return value
    try:
        return SortOrder(str(value).strip().lower())
    except ValueError:
        errors.append(f"Parameter 'sort' must be 'asc' or 'desc', got '{value}'")
        return None


def to_query_string(value: Any) -> Optional[str]:
    """Stringify a field value the way query parameters are compared.

    Returns None for null or missing values, which never match.

    Example:
        >>> to_query_string(True), to_query_string(1970.0), to_query_string(["a", 1])
        ('true', '1970', 'a,1')
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ",".join(to_query_string(item) or "" for item in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)

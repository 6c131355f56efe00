"""
Query module for Shapeshifter.

This module provides post-reconciliation query processing:
- Query parameter parsing (limit, sort, equality filters)
- Mongo-style predicate filters
- QueryEngine applying them in a fixed order

Invariants:
    - Stage order is equality, sort, limit, predicate
"""

from .engine import QueryEngine
from .params import RESERVED_PARAMS, QueryParams, SortOrder, to_query_string
from .predicate import compile_filter, matches

__all__ = [
    "QueryEngine",
    "QueryParams",
    "SortOrder",
    "RESERVED_PARAMS",
    "to_query_string",
    "compile_filter",
    "matches",
]

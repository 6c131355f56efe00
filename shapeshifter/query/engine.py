"""
Query engine for Shapeshifter.

Applied to reconciled documents in a fixed order:
    1. equality filters (stringified field == parameter value)
    2. sort by _id
    3. limit
    4. structured predicate filter

Invariants:
    - The order above is part of the contract; pagination operates on the
      working set before the predicate filter is applied
    - Sorting is by _id only and stable
    - A missing or null field never matches an equality filter
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, List, Optional

from ..store.base import Document
from .params import QueryParams, SortOrder, to_query_string
from .predicate import compile_filter

logger = logging.getLogger(__name__)


class QueryEngine:
    """Filters, sorts and limits document lists.

    Example:
        >>> engine = QueryEngine()
        >>> engine.apply(documents, QueryParams.parse({"year": "1970", "limit": "2"}))
    """

    def apply(
        self,
        documents: List[Document],
        params: Optional[QueryParams] = None,
        filter: Optional[Mapping[str, Any]] = None,
    ) -> List[Document]:
        """Run the query pipeline over documents.

        Args:
            documents: Reconciled documents
            params: Parsed query parameters
            filter: Optional predicate filter document

        Returns:
            Matching documents

        Raises:
            ValidationError: If the filter is malformed
        """
        params = params or QueryParams()
        predicate = compile_filter(filter) if filter else None

        results = self.filter_equal(documents, params.equals)
        if params.sort is not None:
            results = self.sort(results, params.sort)
        if params.limit is not None:
            results = results[: params.limit]
        if predicate is not None:
            results = [document for document in results if predicate(document)]

        logger.debug(f"Query matched {len(results)} of {len(documents)} document(s)")
        return results

    @staticmethod
    def filter_equal(documents: List[Document], equals: Mapping[str, str]) -> List[Document]:
        """Keep documents whose stringified fields equal every given value."""
        if not equals:
            return list(documents)
        return [
            document
            for document in documents
            if all(to_query_string(document.get(name)) == value for name, value in equals.items())
        ]

    @staticmethod
    def sort(documents: List[Document], order: SortOrder) -> List[Document]:
        """Order documents by _id."""
        return sorted(
            documents,
            key=lambda document: str(document.get("_id", "")),
            reverse=order == SortOrder.DESC,
        )

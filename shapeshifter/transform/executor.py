"""
Mapping program execution for Shapeshifter.

Runs a small jq program against a single document and returns the
transformed document. Used to map incoming documents into a collection's
shape, to migrate existing documents into a broader shape, and to map
stored documents into a query shape.

Invariants:
    - run() never mutates its input document
    - A program must produce exactly one JSON object per document
    - Any failure surfaces as TransformError; nothing is written

How to change safely:
    - Programs come from the decision oracle; treat them as untrusted text
    - Keep compilation cached per program string, not per document
"""

from __future__ import annotations

import asyncio
import copy
import logging
from functools import lru_cache
from typing import Any

import jq

from ..errors import TransformError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def _compile(program: str) -> Any:
    return jq.compile(program)


class TransformExecutor:
    """Applies jq mapping programs to documents.

    Transforms are CPU-bound and run in worker threads so a batch can be
    dispatched concurrently without blocking the event loop.

    Example:
        >>> executor = TransformExecutor()
        >>> await executor.run('{title: .name}', {"name": "Abbey Road"})
        {'title': 'Abbey Road'}
    """

    def compile(self, program: str) -> Any:
        """Compile a program, raising TransformError if it is malformed."""
        try:
            return _compile(program)
        except ValueError as e:
            raise TransformError(f"Invalid mapping program: {e}", program=program) from e

    def run_sync(self, program: str, document: dict[str, Any]) -> dict[str, Any]:
        """Apply a program to one document.

        Args:
            program: jq program text
            document: Input document (left untouched)

        Returns:
            The transformed document

        Raises:
            TransformError: If the program is malformed, fails, or yields a non-object
        """
        compiled = self.compile(program)
        try:
            outputs = compiled.input_value(copy.deepcopy(document)).all()
        except ValueError as e:
            raise TransformError(
                f"Mapping program failed: {e}",
                program=program,
                document_id=document.get("_id"),
            ) from e

        if not outputs:
            raise TransformError(
                "Mapping program produced no output",
                program=program,
                document_id=document.get("_id"),
            )
        result = outputs[0]
        if not isinstance(result, dict):
            raise TransformError(
                f"Mapping program must produce an object, got {type(result).__name__}",
                program=program,
                document_id=document.get("_id"),
            )
        return result

    async def run(self, program: str, document: dict[str, Any]) -> dict[str, Any]:
        """Apply a program to one document off the event loop."""
        return await asyncio.to_thread(self.run_sync, program, document)

    async def run_many(
        self,
        program: str,
        documents: list[dict[str, Any]],
        concurrency: int = 16,
    ) -> list[dict[str, Any]]:
        """Apply a program to every document, preserving order.

        Every transform settles before returning; the failure with the lowest
        document index fails the whole batch, with that index attached.

        Args:
            program: jq program text
            documents: Input documents
            concurrency: Maximum transforms in flight

        Returns:
            Transformed documents, one per input, in input order
        """
        self.compile(program)
        semaphore = asyncio.Semaphore(concurrency)

        async def _one(index: int, document: dict[str, Any]) -> dict[str, Any]:
            async with semaphore:
                try:
                    return await self.run(program, document)
                except TransformError as e:
                    e.document_index = index
                    e.details["document_index"] = index
                    raise

        # Failures are collected, not raised, so none goes unretrieved
        results = await asyncio.gather(
            *(_one(index, document) for index, document in enumerate(documents)),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        logger.debug(f"Transformed {len(results)} document(s)")
        return list(results)

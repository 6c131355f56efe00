"""
Error types for Shapeshifter.

This module defines every exception raised by the reconciliation core
and the document store:
- ShapeshifterError: Base exception
- NotFoundError: Collection or document absent
- CollectionExistsError: Collection name already taken
- OperationNotAllowedError: Resolved Decision excluded by the caller's allow-list
- ValidationError: Malformed query or input parameters
- TransformError: Mapping/migration program failed
- OracleError: Decider unreachable or returned an unparseable result
- RejectedError: A Reject Decision surfaced as an exception on request

Invariants:
    - All errors inherit from ShapeshifterError
    - Every error carries a stable code for programmatic handling
    - Errors never carry partial-write state; raising means nothing was written
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ShapeshifterError(Exception):
    """Base exception for all Shapeshifter errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "SHAPESHIFTER_ERROR"
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for transport error bodies."""
        return {"error": self.message, "error_code": self.code, "details": self.details}


class NotFoundError(ShapeshifterError):
    """Resource not found.

    Raised when:
    - Collection doesn't exist
    - Document doesn't exist
    """

    def __init__(
        self,
        message: str,
        resource_type: str,
        resource_id: str,
    ) -> None:
        super().__init__(
            message,
            code="NOT_FOUND",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id,
            },
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class CollectionExistsError(ShapeshifterError):
    """Collection already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Collection {name} already exists",
            code="ALREADY_EXISTS",
            details={"collection": name},
        )
        self.name = name


class OperationNotAllowedError(ShapeshifterError):
    """The resolved Decision type is not in the caller's allow-list.

    Raised after the Decision is computed and before any write,
    so the store is never partially mutated.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        allowed: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            code="OPERATION_NOT_ALLOWED",
            details={"operation": operation, "allowed": allowed or []},
        )
        self.operation = operation
        self.allowed = allowed or []


class ValidationError(ShapeshifterError):
    """Input validation failed.

    Raised when:
    - Query parameters are malformed (limit, sort)
    - Filter expression uses an unknown operator
    - A document is not a JSON object
    - Schema rendering target is unsupported
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        errors: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field_name, "errors": errors or []},
        )
        self.field_name = field_name
        self.errors = errors or []


class TransformError(ShapeshifterError):
    """A mapping or migration program failed.

    Raised when:
    - The program does not compile
    - The program fails on a document
    - The program produces no output or a non-object output
    """

    def __init__(
        self,
        message: str,
        program: Optional[str] = None,
        document_index: Optional[int] = None,
        document_id: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="TRANSFORM_ERROR",
            details={
                "program": program,
                "document_index": document_index,
                "document_id": document_id,
            },
        )
        self.program = program
        self.document_index = document_index
        self.document_id = document_id


class OracleError(ShapeshifterError):
    """The Decider was unreachable or returned an unusable Decision."""

    def __init__(self, message: str, backend: Optional[str] = None) -> None:
        super().__init__(message, code="ORACLE_ERROR", details={"backend": backend})
        self.backend = backend


class RejectedError(ShapeshifterError):
    """Incoming data was rejected by a Reject Decision.

    Not a system fault: the store was left untouched.
    """

    def __init__(self, message: str, collection: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="REJECTED",
            details={"collection": collection},
        )
        self.collection = collection

"""
Exceptions for the document decision pipeline.

Every error carries a stable code, a human-readable message and a details
mapping, so the workflow boundary can write it to the audit log verbatim.
"""

from typing import Any, Dict, Optional


class DocflowError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        error_code: Unique error code (e.g., DF-101)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "DF-000"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging and audit metadata."""
        return {
            "error": True,
            "error_code": self.error_code,
            "error_type": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(DocflowError):
    """Unknown document or user identifier."""
    error_code = "DF-101"

    def __init__(self, kind: str, identifier: str, **kwargs):
        message = f"{kind.capitalize()} not found: {identifier}"
        super().__init__(message, details={"kind": kind, "id": identifier}, **kwargs)


class ValidationError(DocflowError):
    """Missing or invalid input, or an illegal status transition."""
    error_code = "DF-200"


class ExtractionError(DocflowError):
    """The upstream text producer failed."""
    error_code = "DF-300"


class PersistenceError(DocflowError):
    """The storage collaborator failed to read or write."""
    error_code = "DF-400"


class ConcurrentModificationError(PersistenceError):
    """The stored record changed since it was read."""
    error_code = "DF-401"

    def __init__(self, record_id: str, expected: int, actual: int, **kwargs):
        message = (
            f"Record {record_id} was modified concurrently "
            f"(expected version {expected}, found {actual})"
        )
        super().__init__(
            message,
            details={"id": record_id, "expected_version": expected, "actual_version": actual},
            **kwargs,
        )

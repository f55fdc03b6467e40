"""
Error taxonomy for the trace review dashboard.

Reads fail with NotFound or RepositoryError, writes and transitions that the
reviewer is not allowed to make fail with ValidationError.
"""


class TraceReviewError(Exception):
    """Base class for all trace review errors."""


class NotFound(TraceReviewError):
    """Raised when no trace exists for the requested id."""

    def __init__(self, trace_id: str):
        super().__init__(f"Trace not found: {trace_id}")
        self.trace_id = trace_id


class RepositoryError(TraceReviewError):
    """Raised when the trace store is unreachable or rejects a query."""


class ValidationError(TraceReviewError):
    """Raised when an operation is refused before reaching the store."""


class PermissionDenied(ValidationError):
    """Raised when the reviewer lacks the capability to update records."""

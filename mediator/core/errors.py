"""
Centralized error handling for the mediation bridge.

Provides the exception hierarchy, HTTP status mapping, and structured error responses.
Follows "Log Deep, Report Shallow": full details go to the log, a sanitized
ErrorDetail goes over the wire.
"""

import uuid

from pydantic import BaseModel

# --- Exception Hierarchy ---


class MediatorError(Exception):
    """Base exception for all mediator errors."""

    def __init__(self, message: str, retryable: bool = False, trace_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.trace_id = trace_id or str(uuid.uuid4())


class ValidationError(MediatorError):
    """Malformed notify payload or decision (empty questions, options or tool name)."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        trace_id: str | None = None,
    ):
        super().__init__(message, retryable=False, trace_id=trace_id)
        self.field = field


class NotFoundError(MediatorError):
    """
    Decide on an absent or already-decided request.

    The two cases are deliberately indistinguishable to callers.
    """

    def __init__(
        self,
        message: str = "Mediation request not found or already decided",
        request_id: str | None = None,
        trace_id: str | None = None,
    ):
        super().__init__(message, retryable=False, trace_id=trace_id)
        self.request_id = request_id


class TransportError(MediatorError):
    """Network failure talking to the broker (notify, poll or decide)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        trace_id: str | None = None,
    ):
        super().__init__(message, retryable=True, trace_id=trace_id)
        self.status_code = status_code


# --- Structured Error Response Models ---


class ErrorDetail(BaseModel):
    """Structured error information for API responses."""

    code: str
    message: str
    retryable: bool = False
    trace_id: str


class ErrorResponse(BaseModel):
    """Standardized failure envelope returned by the broker."""

    success: bool = False
    error: ErrorDetail
    trace_id: str


def error_code(error: MediatorError) -> str:
    """Stable error code for an exception type."""
    if isinstance(error, ValidationError):
        return "ERR_VALIDATION"
    if isinstance(error, NotFoundError):
        return "ERR_NOT_FOUND"
    if isinstance(error, TransportError):
        return "ERR_TRANSPORT"
    return "ERR_UNKNOWN"


def http_status_for(error: MediatorError) -> int:
    """HTTP status code the broker answers with for a given error."""
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, TransportError):
        return 502
    return 500


def error_to_detail(error: MediatorError) -> ErrorDetail:
    """
    Convert a MediatorError to an ErrorDetail for API response.

    Args:
        error: The MediatorError instance

    Returns:
        ErrorDetail Pydantic model
    """
    return ErrorDetail(
        code=error_code(error),
        message=error.message,
        retryable=error.retryable,
        trace_id=error.trace_id,
    )

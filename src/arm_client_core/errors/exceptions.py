"""Structured exceptions for pipeline, service and usage errors.

Every exception raised by the library derives from `ArmClientError` and
carries an `ErrorKind` so callers can branch on the failure category without
matching concrete classes.
"""

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from arm_client_core.errors.models import ErrorDetail


class ErrorKind(StrEnum):
    """Failure categories surfaced by the pipeline."""

    TRANSPORT_FAILURE = "transport_failure"
    TIMEOUT_OR_CANCELLATION = "timeout_or_cancellation"
    THROTTLED = "throttled"
    SERVER_TRANSIENT = "server_transient"
    AUTHENTICATION_FAILURE = "authentication_failure"
    CLIENT_ERROR = "client_error"
    DECODE_FAILURE = "decode_failure"
    LRO_TERMINAL_FAILURE = "lro_terminal_failure"
    PROGRAMMER_ERROR = "programmer_error"


class ArmClientError(Exception):
    """Base exception for all library errors."""

    kind: ErrorKind = ErrorKind.CLIENT_ERROR


class TransportError(ArmClientError):
    """The transport failed to produce a response."""

    kind = ErrorKind.TRANSPORT_FAILURE

    def __init__(self, message: str, *, transient: bool = True):
        super().__init__(message)
        self.transient = transient


class OperationCancelledError(ArmClientError):
    """The call context was cancelled while the operation was waiting."""

    kind = ErrorKind.TIMEOUT_OR_CANCELLATION


class DeadlineExceededError(OperationCancelledError):
    """The call context deadline passed before the operation completed."""


class AuthenticationError(ArmClientError):
    """A credential could not produce a token, or auth cannot be applied."""

    kind = ErrorKind.AUTHENTICATION_FAILURE


class InsecureTransportError(AuthenticationError):
    """Bearer tokens are only sent over https."""


class UsageError(ArmClientError):
    """The library was called incorrectly."""

    kind = ErrorKind.PROGRAMMER_ERROR


class BodyNotRewindableError(UsageError):
    """A streamed request body cannot be replayed for a retry."""


class MissingParameterError(UsageError):
    """A required path parameter is missing or empty."""

    def __init__(self, message: str, parameter: str):
        super().__init__(message)
        self.parameter = parameter


class ResumeTokenError(UsageError):
    """A resume token is malformed, unsupported or unavailable."""


class PagerExhaustedError(UsageError):
    """`next_page` was called after the final page was returned."""


class DecodeError(ArmClientError):
    """A success response body could not be decoded."""

    kind = ErrorKind.DECODE_FAILURE

    def __init__(self, message: str, raw_body: bytes = b"", response: "httpx.Response | None" = None):
        super().__init__(message)
        self.raw_body = raw_body
        self.response = response


class HttpResponseError(ArmClientError):
    """Structured error decoded from a non-success service response."""

    kind = ErrorKind.CLIENT_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: "httpx.Response | None" = None,
        error: "ErrorDetail | None" = None,
        raw_body: bytes = b"",
        request_id: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response
        self.error = error
        self.raw_body = raw_body
        self.request_id = request_id

    @property
    def error_code(self) -> str | None:
        """Outer-most service error code, if the body carried one."""
        return self.error.code if self.error else None

    @property
    def codes(self) -> list[str]:
        """Service error codes, outer-most first."""
        return self.error.code_chain() if self.error else []

    def to_dict(self) -> dict:
        """Loggable form of the error that needs no further I/O."""
        return {
            "kind": str(self.kind),
            "status_code": self.status_code,
            "request_id": self.request_id,
            "error": self.error.to_dict() if self.error else None,
            "raw_body": self.raw_body.decode("utf-8", errors="replace"),
        }


class ClientError(HttpResponseError):
    """4xx client errors."""

    pass


class BadRequestError(ClientError):
    """400 Bad Request."""

    pass


class UnauthorizedError(ClientError):
    """401 Unauthorized."""

    kind = ErrorKind.AUTHENTICATION_FAILURE


class ForbiddenError(ClientError):
    """403 Forbidden."""

    pass


class NotFoundError(ClientError):
    """404 Not Found."""

    pass


class RequestTimeoutError(ClientError):
    """408 Request Timeout."""

    kind = ErrorKind.SERVER_TRANSIENT


class ConflictError(ClientError):
    """409 Conflict."""

    pass


class PreconditionFailedError(ClientError):
    """412 Precondition Failed (etag mismatch)."""

    pass


class RateLimitError(ClientError):
    """429 Too Many Requests."""

    kind = ErrorKind.THROTTLED

    def __init__(self, message: str, retry_after: float | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ServerError(HttpResponseError):
    """5xx server errors."""

    kind = ErrorKind.SERVER_TRANSIENT


class OperationFailedError(HttpResponseError):
    """A long-running operation reached the Failed or Canceled state."""

    kind = ErrorKind.LRO_TERMINAL_FAILURE

    def __init__(self, message: str, operation_status: str, **kwargs):
        super().__init__(message, **kwargs)
        self.operation_status = operation_status

"""Structured errors and ARM error payload decoding."""

from arm_client_core.errors.exceptions import (
    ArmClientError,
    AuthenticationError,
    BadRequestError,
    BodyNotRewindableError,
    ClientError,
    ConflictError,
    DeadlineExceededError,
    DecodeError,
    ErrorKind,
    ForbiddenError,
    HttpResponseError,
    InsecureTransportError,
    MissingParameterError,
    NotFoundError,
    OperationCancelledError,
    OperationFailedError,
    PagerExhaustedError,
    PreconditionFailedError,
    RateLimitError,
    RequestTimeoutError,
    ResumeTokenError,
    ServerError,
    TransportError,
    UnauthorizedError,
    UsageError,
)
from arm_client_core.errors.handler import (
    MAX_ERROR_BODY_BYTES,
    build_error,
    decode_error,
    deserialize_json,
    raise_for_status,
    read_body,
)
from arm_client_core.errors.models import ErrorDetail

__all__ = [
    "MAX_ERROR_BODY_BYTES",
    "ArmClientError",
    "AuthenticationError",
    "BadRequestError",
    "BodyNotRewindableError",
    "ClientError",
    "ConflictError",
    "DeadlineExceededError",
    "DecodeError",
    "ErrorDetail",
    "ErrorKind",
    "ForbiddenError",
    "HttpResponseError",
    "InsecureTransportError",
    "MissingParameterError",
    "NotFoundError",
    "OperationCancelledError",
    "OperationFailedError",
    "PagerExhaustedError",
    "PreconditionFailedError",
    "RateLimitError",
    "RequestTimeoutError",
    "ResumeTokenError",
    "ServerError",
    "TransportError",
    "UnauthorizedError",
    "UsageError",
    "build_error",
    "decode_error",
    "deserialize_json",
    "raise_for_status",
    "read_body",
]

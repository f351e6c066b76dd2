"""Error decoding and JSON deserialization for HTTP responses."""

import json
import logging
from collections.abc import Callable, Collection
from typing import Any, TypeVar

import httpx

from arm_client_core.errors.exceptions import (
    BadRequestError,
    ClientError,
    ConflictError,
    DecodeError,
    ForbiddenError,
    HttpResponseError,
    NotFoundError,
    PreconditionFailedError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    UnauthorizedError,
)
from arm_client_core.errors.models import ErrorDetail
from arm_client_core.utils import parse_retry_after

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ERROR_BODY_BYTES = 4 * 1024 * 1024

EXCEPTION_MAP: dict[int, type[HttpResponseError]] = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    408: RequestTimeoutError,
    409: ConflictError,
    412: PreconditionFailedError,
    429: RateLimitError,
}


async def read_body(response: httpx.Response, limit: int = MAX_ERROR_BODY_BYTES) -> bytes:
    """Return up to `limit` bytes of the response body.

    Buffered responses are sliced in place. Streamed responses are read until
    the bound is reached and then closed.
    """
    try:
        return response.content[:limit]
    except httpx.ResponseNotRead:
        pass

    chunks: list[bytes] = []
    size = 0
    try:
        async for chunk in response.aiter_bytes():
            chunks.append(chunk)
            size += len(chunk)
            if size >= limit:
                break
    except (httpx.HTTPError, httpx.StreamError) as e:
        # A partial body is still useful in the error
        logger.debug(f"Error body truncated while reading: {e}")
    finally:
        await response.aclose()

    return b"".join(chunks)[:limit]


def build_error(
    status_code: int,
    raw_body: bytes,
    response: httpx.Response | None = None,
) -> HttpResponseError:
    """Build the structured error for a status code and raw body.

    Never raises: bodies that are not JSON produce an error carrying only the
    status code and the raw bytes.
    """
    error = _parse_error_detail(raw_body)
    request_id = response.headers.get("x-ms-request-id") if response is not None else None

    if status_code in EXCEPTION_MAP:
        exc_class = EXCEPTION_MAP[status_code]
    elif 400 <= status_code < 500:
        exc_class = ClientError
    elif 500 <= status_code < 600:
        exc_class = ServerError
    else:
        exc_class = HttpResponseError

    if error:
        message = f"HTTP {status_code}: {error.to_exception_message()}"
    else:
        text = raw_body[:200].decode("utf-8", errors="replace").strip()
        message = f"HTTP {status_code}: {text}" if text else f"HTTP {status_code}"

    if request_id:
        message += f"\nRequest ID: {request_id}"

    kwargs: dict[str, Any] = {
        "status_code": status_code,
        "response": response,
        "error": error,
        "raw_body": raw_body,
        "request_id": request_id,
    }
    if exc_class is RateLimitError:
        kwargs["retry_after"] = parse_retry_after(response.headers) if response is not None else None

    return exc_class(message, **kwargs)


async def decode_error(response: httpx.Response, max_body_bytes: int = MAX_ERROR_BODY_BYTES) -> HttpResponseError:
    """Decode a non-success response into a structured error.

    Args:
        response: HTTP response (buffered or streamed)
        max_body_bytes: Upper bound on the raw body kept on the error

    Returns:
        HttpResponseError subclass matching the status code
    """
    raw_body = await read_body(response, max_body_bytes)
    return build_error(response.status_code, raw_body, response)


async def raise_for_status(response: httpx.Response, expected_status: Collection[int] | None = None) -> None:
    """Raise the structured error if the response status is unexpected.

    Args:
        response: HTTP response object
        expected_status: Accepted status codes; any 2xx when omitted

    Raises:
        HttpResponseError subclass based on status code
    """
    if expected_status is None:
        if response.is_success:
            return
    elif response.status_code in expected_status:
        return

    raise await decode_error(response)


def deserialize_json(response: httpx.Response, deserializer: Callable[[Any], T] | None = None) -> T | Any:
    """Decode a success response body.

    Empty bodies decode to None.

    Raises:
        DecodeError: If the body is not JSON or the deserializer rejects it
    """
    raw_body = response.content
    if not raw_body.strip():
        return None

    try:
        data = json.loads(raw_body)
    except ValueError as e:
        raise DecodeError(f"Response body is not valid JSON: {e}", raw_body=raw_body, response=response) from e

    if deserializer is None:
        return data

    try:
        return deserializer(data)
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(f"Failed to deserialize response body: {e}", raw_body=raw_body, response=response) from e


def _parse_error_detail(raw_body: bytes) -> ErrorDetail | None:
    if not raw_body:
        return None
    try:
        data = json.loads(raw_body)
    except ValueError:
        return None
    return ErrorDetail.from_dict(data)

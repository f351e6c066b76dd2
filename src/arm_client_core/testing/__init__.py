"""Testing utilities for clients built on the pipeline.

Example:
    ```python
    from arm_client_core.testing import ResponseSequence, create_error_response, create_mock_response

    responses = ResponseSequence(
        [
            create_error_response(429, "TooManyRequests", "slow down", headers={"Retry-After": "1"}),
            create_mock_response(200, json={"name": "san1"}),
        ]
    )
    client = MyClient(credential, transport=HttpxTransport(transport=httpx.MockTransport(responses)))
    ...
    assert len(responses.requests) == 2
    ```
"""

from collections.abc import Callable, Iterable
from typing import Any

import httpx

from arm_client_core.transport import HttpxTransport


def create_mock_transport(handler: Callable[[httpx.Request], Any]) -> HttpxTransport:
    """Pipeline transport answering every request with `handler`."""
    return HttpxTransport(transport=httpx.MockTransport(handler))


def create_mock_response(
    status_code: int = 200,
    *,
    json: Any = None,
    headers: dict[str, str] | None = None,
    content: bytes | None = None,
) -> httpx.Response:
    """Build a response for a mock transport."""
    if json is not None:
        return httpx.Response(status_code, json=json, headers=headers)
    return httpx.Response(status_code, content=content or b"", headers=headers)


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    *,
    target: str | None = None,
    details: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """Build an ARM-shaped error response."""
    error: dict[str, Any] = {"code": code, "message": message}
    if target:
        error["target"] = target
    if details:
        error["details"] = details
    return httpx.Response(status_code, json={"error": error}, headers=headers)


class ResponseSequence:
    """`httpx.MockTransport` handler replaying responses in order.

    Items may be responses or exceptions (raised instead of responding).
    Every request received is recorded in `requests`. Running past the end
    of the sequence fails the test with an AssertionError.
    """

    def __init__(self, responses: Iterable[httpx.Response | Exception]) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    @property
    def remaining(self) -> int:
        return len(self._responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert self._responses, f"Unexpected request {request.method} {request.url}"
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

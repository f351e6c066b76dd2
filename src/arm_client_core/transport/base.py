"""Transport protocol and the httpx-backed implementation."""

import logging
from typing import TYPE_CHECKING, Protocol

import httpx

from arm_client_core.errors.exceptions import TransportError

if TYPE_CHECKING:
    from arm_client_core.pipeline.base import PipelineRequest

logger = logging.getLogger(__name__)

# Failures where the request may not have reached the service, or the
# connection dropped mid-flight
TRANSIENT_ERRORS: tuple[type[httpx.TransportError], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    httpx.ProxyError,
)


class Transport(Protocol):
    async def send(self, request: "PipelineRequest") -> httpx.Response: ...

    async def aclose(self) -> None: ...


def is_rewindable(request: httpx.Request) -> bool:
    """Whether the request body can be sent again.

    Byte bodies (including empty ones) are replayable; async-iterator bodies
    are consumed by the first send.
    """
    try:
        request.content
    except httpx.RequestNotRead:
        return False
    return True


class HttpxTransport:
    """Send requests with an `httpx.AsyncClient`.

    Response bodies are buffered before returning so policies may inspect
    them and the retry policy may discard them safely.

    Args:
        client: Client to send with; the transport does not close it
        transport: httpx transport for a client owned by this object
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(transport=transport, follow_redirects=False)

    async def send(self, request: "PipelineRequest") -> httpx.Response:
        return await request.context.run(self._send(request.http_request))

    async def _send(self, http_request: httpx.Request) -> httpx.Response:
        try:
            response = await self._client.send(http_request, stream=True)
        except TRANSIENT_ERRORS as e:
            raise TransportError(f"{http_request.method} {http_request.url} failed: {e!r}", transient=True) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{http_request.method} {http_request.url} failed: {e!r}", transient=False) from e

        try:
            await response.aread()
        except TRANSIENT_ERRORS as e:
            raise TransportError(f"Reading response from {http_request.url} failed: {e!r}", transient=True) from e
        except httpx.HTTPError as e:
            # Includes undecodable Content-Encoding bodies
            raise TransportError(f"Reading response from {http_request.url} failed: {e!r}", transient=False) from e
        finally:
            await response.aclose()
        return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

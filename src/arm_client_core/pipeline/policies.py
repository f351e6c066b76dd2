"""Standard request/response policies.

- RequestIdPolicy: stamps ``x-ms-client-request-id`` on each call
- HeadersPolicy: adds static headers configured on the client
- TelemetryPolicy: sets ``User-Agent`` and reports final call outcomes to hooks
- LoggingPolicy: logs each wire attempt with secrets redacted
"""

import logging
import platform
import time
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

import httpx

from arm_client_core import __version__
from arm_client_core.config import LoggingOptions, TelemetryOptions
from arm_client_core.pipeline.base import NextPolicy, PipelineRequest, Policy, SansIOPolicy

logger = logging.getLogger(__name__)

CLIENT_REQUEST_ID_HEADER = "x-ms-client-request-id"
REDACTED = "REDACTED"


class RequestIdPolicy(SansIOPolicy):
    """Give every call a client request id unless the caller set one.

    The id is stamped once per call, so all retry attempts share it.
    """

    def on_request(self, request: PipelineRequest) -> None:
        headers = request.http_request.headers
        if CLIENT_REQUEST_ID_HEADER not in headers:
            headers[CLIENT_REQUEST_ID_HEADER] = str(uuid.uuid4())


class HeadersPolicy(SansIOPolicy):
    """Add static headers without overriding per-request values."""

    def __init__(self, headers: Mapping[str, str] | None = None) -> None:
        self._headers = dict(headers or {})

    def on_request(self, request: PipelineRequest) -> None:
        for name, value in self._headers.items():
            request.http_request.headers.setdefault(name, value)


@dataclass(frozen=True)
class TelemetryEvent:
    """Final outcome of one pipeline call."""

    method: str
    url: str
    status_code: int | None
    error: Exception | None
    attempts: int
    duration: float
    client_request_id: str | None
    request_id: str | None


def user_agent(application_id: str | None = None) -> str:
    """``[application_id ]arm-client-core/<version> Python/<version> (<platform>)``"""
    agent = f"arm-client-core/{__version__} Python/{platform.python_version()} ({platform.platform(terse=True)})"
    return f"{application_id} {agent}" if application_id else agent


class TelemetryPolicy(Policy):
    """Set the User-Agent and report each call's final outcome.

    Sits outside the retry policy so hooks see one event per call, after the
    last attempt. Hook failures are logged and never change the outcome.
    """

    def __init__(self, options: TelemetryOptions | None = None) -> None:
        options = options or TelemetryOptions()
        self._user_agent = None if options.disabled else user_agent(options.application_id)
        self._hooks: Sequence[Callable[[TelemetryEvent], None]] = tuple(options.hooks)

    async def send(self, request: PipelineRequest, next: NextPolicy) -> httpx.Response:
        if self._user_agent:
            headers = request.http_request.headers
            existing = headers.get("user-agent")
            headers["user-agent"] = f"{self._user_agent} {existing}" if existing else self._user_agent

        if not self._hooks:
            return await next(request)

        started = time.monotonic()
        try:
            response = await next(request)
        except Exception as e:
            self._emit(request, None, e, started)
            raise
        self._emit(request, response, None, started)
        return response

    def _emit(
        self,
        request: PipelineRequest,
        response: httpx.Response | None,
        error: Exception | None,
        started: float,
    ) -> None:
        http_request = request.http_request
        event = TelemetryEvent(
            method=http_request.method,
            url=str(http_request.url.copy_with(query=None)),
            status_code=response.status_code if response is not None else None,
            error=error,
            attempts=request.data.get("retry_count", 0) + 1,
            duration=time.monotonic() - started,
            client_request_id=http_request.headers.get(CLIENT_REQUEST_ID_HEADER),
            request_id=response.headers.get("x-ms-request-id") if response is not None else None,
        )
        for hook in self._hooks:
            try:
                hook(event)
            except Exception as e:
                logger.warning(f"Telemetry hook {hook!r} failed: {e}")


class LoggingPolicy(Policy):
    """Log every wire attempt at DEBUG level.

    Sits next to the transport so each retry attempt is logged with the
    headers actually sent, including the Authorization header (redacted).
    """

    def __init__(self, options: LoggingOptions | None = None) -> None:
        options = options or LoggingOptions()
        self._allowed_headers = frozenset(name.lower() for name in options.allowed_headers)
        self._allowed_query = frozenset(name.lower() for name in options.allowed_query_params)

    async def send(self, request: PipelineRequest, next: NextPolicy) -> httpx.Response:
        if not logger.isEnabledFor(logging.DEBUG):
            return await next(request)

        http_request = request.http_request
        logger.debug(
            f"Request {http_request.method} {self.redact_url(http_request.url)} "
            f"headers={self.redact_headers(http_request.headers)}"
        )

        started = time.monotonic()
        try:
            response = await next(request)
        except Exception as e:
            elapsed_ms = (time.monotonic() - started) * 1000
            logger.debug(f"Request {http_request.method} {http_request.url.path} failed after {elapsed_ms:.0f}ms: {e}")
            raise

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.debug(
            f"Response {response.status_code} for {http_request.method} {http_request.url.path} "
            f"in {elapsed_ms:.0f}ms request_id={response.headers.get('x-ms-request-id')} "
            f"headers={self.redact_headers(response.headers)}"
        )
        return response

    def redact_headers(self, headers: httpx.Headers) -> dict[str, str]:
        return {
            name: value if name.lower() in self._allowed_headers else REDACTED for name, value in headers.items()
        }

    def redact_url(self, url: httpx.URL) -> str:
        if not url.query:
            return str(url)
        params = [
            (name, value if name.lower() in self._allowed_query else REDACTED)
            for name, value in url.params.multi_items()
        ]
        return str(url.copy_with(params=params))

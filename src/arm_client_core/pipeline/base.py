"""Pipeline and policy primitives.

A pipeline is a linear chain of policies terminated by a transport:

    P1 -> P2 -> ... -> Pn -> transport

Each policy receives the request and a continuation for the rest of the
chain. It may mutate the request, short-circuit with its own response, call
the continuation more than once (retry), or inspect the response on the way
back out.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx

from arm_client_core.context import CallContext
from arm_client_core.transport import Transport


@dataclass
class PipelineRequest:
    """An outgoing request plus its per-call state.

    Attributes:
        http_request: The wire request
        context: Deadline and cancellation for the whole call
        data: Per-call values shared between policies (retry count, scopes)
    """

    http_request: httpx.Request
    context: CallContext = field(default_factory=CallContext)
    data: dict[str, Any] = field(default_factory=dict)


NextPolicy = Callable[[PipelineRequest], Awaitable[httpx.Response]]


class Policy(ABC):
    """One middleware step.

    Policies are shared by every call made through a pipeline. Keep per-call
    values on `PipelineRequest.data`, never on the policy.
    """

    @abstractmethod
    async def send(self, request: PipelineRequest, next: NextPolicy) -> httpx.Response:
        """Process `request`, delegating to `next` for the rest of the chain."""


class SansIOPolicy(Policy):
    """Policy made of synchronous hooks around a single downstream call."""

    def on_request(self, request: PipelineRequest) -> None:
        pass

    def on_response(self, request: PipelineRequest, response: httpx.Response) -> None:
        pass

    def on_exception(self, request: PipelineRequest, error: Exception) -> None:
        pass

    async def send(self, request: PipelineRequest, next: NextPolicy) -> httpx.Response:
        self.on_request(request)
        try:
            response = await next(request)
        except Exception as e:
            self.on_exception(request, e)
            raise
        self.on_response(request, response)
        return response


def compose(policies: Sequence[Policy], terminal: NextPolicy) -> NextPolicy:
    """Fold `policies` around `terminal`, first policy outermost."""
    chain = terminal
    for policy in reversed(policies):

        async def _wrapped(
            request: PipelineRequest,
            *,
            _policy: Policy = policy,
            _next: NextPolicy = chain,
        ) -> httpx.Response:
            return await _policy.send(request, _next)

        chain = _wrapped
    return chain


class Pipeline:
    """Ordered policies terminated by a transport.

    A pipeline is created once per client and shared by all of its calls.

    Example:
        ```python
        async with Pipeline(HttpxTransport(), [RetryPolicy(), LoggingPolicy()]) as pipeline:
            request = PipelineRequest(httpx.Request("GET", url))
            response = await pipeline.run(request)
        ```
    """

    def __init__(self, transport: Transport, policies: Sequence[Policy] = ()) -> None:
        self._transport = transport
        self._policies = tuple(policies)
        self._chain = compose(self._policies, transport.send)

    @property
    def policies(self) -> tuple[Policy, ...]:
        return self._policies

    @property
    def transport(self) -> Transport:
        return self._transport

    async def run(self, request: PipelineRequest) -> httpx.Response:
        """Send `request` through every policy and the transport.

        Returns:
            The final response. Non-success statuses are returned, not raised;
            decode them with `arm_client_core.errors.raise_for_status`.

        Raises:
            ArmClientError: Transport, authentication, cancellation or usage failure
        """
        request.context.check()
        return await self._chain(request)

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> "Pipeline":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

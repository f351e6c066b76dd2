"""Long-running operation poller."""

import json
import logging
import time
from collections.abc import Callable
from typing import Any, Generic, TypeVar

import httpx

from arm_client_core.config import PollingOptions
from arm_client_core.context import CallContext
from arm_client_core.errors.exceptions import OperationFailedError, UsageError
from arm_client_core.errors.handler import deserialize_json, raise_for_status
from arm_client_core.errors.models import ErrorDetail
from arm_client_core.pipeline.base import Pipeline, PipelineRequest
from arm_client_core.polling.state import SUCCEEDED, FinalStateVia, PollingKind, PollingState
from arm_client_core.polling.strategies import parse_poll_response, select_strategy
from arm_client_core.utils import parse_retry_after

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LROPoller(Generic[T]):
    """Drive a long-running operation to a terminal state.

    A poller never issues requests faster than its computed delay: calling
    `poll` again before the next poll is due returns the cached status
    without I/O. The delay is the latest ``Retry-After`` when the service
    sends one, otherwise ``frequency * 2**n`` clamped to
    ``[min_delay, max_delay]``.

    Not safe for concurrent use; one owner at a time.

    Example:
        ```python
        poller = LROPoller.from_response(pipeline, initial_response)
        token = poller.resume_token()  # persist to continue elsewhere

        poller = LROPoller.from_resume_token(pipeline, token)
        result = await poller.poll_until_done(CallContext(timeout=600))
        ```
    """

    def __init__(
        self,
        pipeline: Pipeline,
        state: PollingState,
        *,
        deserializer: Callable[[Any], T] | None = None,
        options: PollingOptions | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._state = state
        self._deserializer = deserializer
        self._options = options or PollingOptions()
        self._poll_count = 0
        # A resumed poller may poll right away
        self._next_poll_at = 0.0
        self._has_result = False
        self._result: T | None = None

    @classmethod
    def from_response(
        cls,
        pipeline: Pipeline,
        response: httpx.Response,
        *,
        final_state_via: FinalStateVia | None = None,
        deserializer: Callable[[Any], T] | None = None,
        options: PollingOptions | None = None,
    ) -> "LROPoller[T]":
        """Start polling from the operation's initial response.

        Raises:
            HttpResponseError: The initial status is not 200, 201, 202 or 204
        """
        state = select_strategy(response, final_state_via)
        logger.debug(f"Polling {state.method} operation via {state.kind} (status {state.status})")
        poller = cls(pipeline, state, deserializer=deserializer, options=options)
        if not state.terminal:
            poller._schedule(response)
        return poller

    @classmethod
    def from_resume_token(
        cls,
        pipeline: Pipeline,
        token: str,
        *,
        deserializer: Callable[[Any], T] | None = None,
        options: PollingOptions | None = None,
    ) -> "LROPoller[T]":
        """Continue an operation from a token returned by `resume_token`.

        The token carries no timing. The resumed poller may poll at once,
        and its fallback backoff starts again from ``frequency``.

        Raises:
            ResumeTokenError: The token is malformed or unsupported
        """
        return cls(pipeline, PollingState.from_token(token), deserializer=deserializer, options=options)

    @property
    def state(self) -> PollingState:
        return self._state

    def done(self) -> bool:
        return self._state.terminal

    def status(self) -> str:
        return self._state.status

    def resume_token(self) -> str:
        """Opaque token that rebuilds this poller elsewhere.

        Raises:
            ResumeTokenError: The operation already finished
        """
        return self._state.to_token()

    async def poll(self, context: CallContext | None = None) -> str:
        """Poll once if a poll is due, and return the current status.

        Raises:
            HttpResponseError: The poll request failed; the state is unchanged
            OperationCancelledError: The context was cancelled
        """
        if self.done() or time.monotonic() < self._next_poll_at:
            return self._state.status

        response = await self._pipeline.run(self._get(self._state.poll_url, context))
        status = parse_poll_response(self._state, response)
        self._state.transition(status, response)
        self._poll_count += 1
        logger.debug(f"Polled {self._state.kind} operation: {self._state.status}")

        if not self.done():
            self._schedule(response)
        return self._state.status

    async def poll_until_done(self, context: CallContext | None = None) -> T | None:
        """Poll until terminal and return the result.

        Raises:
            OperationFailedError: The operation failed or was canceled
            OperationCancelledError: The context was cancelled while waiting
        """
        context = context or CallContext()
        while not self.done():
            wait = self._next_poll_at - time.monotonic()
            if wait > 0:
                await context.sleep(wait)
            await self.poll(context)
        return await self.result(context)

    async def result(self, context: CallContext | None = None) -> T | None:
        """Result of a finished operation.

        Succeeded operations whose result lives elsewhere trigger one final
        GET; the decoded value is cached for later calls.

        Raises:
            UsageError: The operation has not finished
            OperationFailedError: The operation failed or was canceled
        """
        if not self.done():
            raise UsageError("Operation has not finished; call poll_until_done() first")
        if self._state.status != SUCCEEDED:
            raise self._failure()
        if self._has_result:
            return self._result

        if self._state.resource_url:
            response = await self._pipeline.run(self._get(self._state.resource_url, context))
            await raise_for_status(response)
            value = deserialize_json(response, self._deserializer)
        elif self._state.kind in (PollingKind.ASYNC_OPERATION, PollingKind.OPERATION_LOCATION) and (
            self._state.method == "DELETE"
        ):
            value = None
        else:
            response = self._state.last_response
            value = deserialize_json(response, self._deserializer) if response is not None else None

        self._result = value
        self._has_result = True
        return value

    def _get(self, url: str | None, context: CallContext | None) -> PipelineRequest:
        if not url:
            raise UsageError("Operation has no URL to poll")
        return PipelineRequest(
            httpx.Request("GET", url, headers={"Accept": "application/json"}),
            context=context or CallContext(),
        )

    def _schedule(self, response: httpx.Response) -> None:
        delay = parse_retry_after(response.headers)
        if delay is None:
            options = self._options
            delay = min(max(options.frequency * (2**self._poll_count), options.min_delay), options.max_delay)
        self._next_poll_at = time.monotonic() + delay

    def _failure(self) -> OperationFailedError:
        response = self._state.last_response
        raw_body = response.content if response is not None else b""
        try:
            detail = ErrorDetail.from_dict(json.loads(raw_body)) if raw_body.strip() else None
        except ValueError:
            detail = None

        status = self._state.status
        message = f"Long-running operation {status}"
        if detail:
            message += f": {detail.to_exception_message()}"

        return OperationFailedError(
            message,
            operation_status=status,
            status_code=response.status_code if response is not None else None,
            response=response,
            error=detail,
            raw_body=raw_body,
            request_id=response.headers.get("x-ms-request-id") if response is not None else None,
        )

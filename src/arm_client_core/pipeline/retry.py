"""Bounded retry with exponential backoff, full jitter and Retry-After support.

## What Gets Retried

| Trigger | GET, HEAD, PUT, DELETE, OPTIONS, TRACE | POST, PATCH |
|---------|----------------------------------------|-------------|
| 429 (throttled) | ✅ | ✅ |
| 408 / 5xx in `status_codes` | ✅ | only with `retry_non_idempotent=True` |
| Transient transport error | ✅ | ✅ if the body is rewindable |

A server-suggested delay (``retry-after-ms``, ``x-ms-retry-after-ms`` or
``Retry-After``) always wins over computed backoff. Otherwise attempt ``i``
(0-indexed) waits ``uniform(0, min(max_delay, initial_delay * 2**i))``.

## Example

```python
from arm_client_core.config import RetryOptions
from arm_client_core.pipeline.retry import RetryPolicy

policy = RetryPolicy(RetryOptions(max_attempts=5, max_delay=30))
```
"""

import logging
import random

import httpx

from arm_client_core.config import RetryOptions
from arm_client_core.errors.exceptions import BodyNotRewindableError, OperationCancelledError, TransportError
from arm_client_core.pipeline.base import NextPolicy, PipelineRequest, Policy
from arm_client_core.transport import is_rewindable
from arm_client_core.utils import parse_retry_after

logger = logging.getLogger(__name__)


class RetryPolicy(Policy):
    """Retry transient failures within a fixed attempt budget.

    When the budget is spent the last response is returned as-is (callers
    decode it into a structured error) or the last transport error is raised.
    Authentication, cancellation and usage errors are never retried.

    Args:
        options: Attempt budget, delays and retriable statuses
    """

    # Idempotent HTTP methods (per RFC 7231) - safe to retry on 5xx
    IDEMPOTENT_METHODS: frozenset[str] = frozenset(["HEAD", "GET", "PUT", "DELETE", "OPTIONS", "TRACE"])

    THROTTLED_STATUS_CODE = 429

    def __init__(self, options: RetryOptions | None = None) -> None:
        self.options = options or RetryOptions()

    async def send(self, request: PipelineRequest, next: NextPolicy) -> httpx.Response:
        http_request = request.http_request
        max_attempts = max(self.options.max_attempts, 1)
        # Sending consumes a streamed body, so decide before the first attempt
        rewindable = is_rewindable(http_request)
        last_error: Exception | None = None

        for attempt in range(max_attempts):
            request.data["retry_count"] = attempt
            is_last = attempt == max_attempts - 1

            try:
                response = await next(request)
            except TransportError as e:
                if is_last or not self._should_retry_error(request, e, rewindable):
                    raise
                last_error = e
                delay = self._calculate_backoff_delay(attempt)
                logger.warning(
                    f"Request {http_request.method} {http_request.url} failed with {e}, "
                    f"retrying in {delay:.2f}s (attempt {attempt + 1}/{max_attempts})"
                )
            else:
                if is_last or not self._should_retry_response(request, response):
                    return response

                delay = self._retry_delay(response, attempt, attempts_remaining=max_attempts - attempt - 1)
                logger.warning(
                    f"Request {http_request.method} {http_request.url} failed with {response.status_code}, "
                    f"retrying in {delay:.2f}s (attempt {attempt + 1}/{max_attempts})"
                )
                last_error = None
                # The next attempt replaces this response
                await response.aclose()

            if not rewindable:
                raise BodyNotRewindableError(
                    f"Cannot retry {http_request.method} {http_request.url}: request body is not rewindable"
                ) from last_error

            try:
                await request.context.sleep(delay)
            except OperationCancelledError as e:
                raise e from last_error

        # Unreachable: the last attempt always returns or raises
        raise AssertionError("retry loop exited without a result")

    def _should_retry_error(self, request: PipelineRequest, error: TransportError, rewindable: bool) -> bool:
        if not error.transient:
            return False
        return request.http_request.method in self.IDEMPOTENT_METHODS or rewindable

    def _should_retry_response(self, request: PipelineRequest, response: httpx.Response) -> bool:
        status_code = response.status_code
        if status_code not in self.options.status_codes:
            return False

        # Throttling is retried for every method
        if status_code == self.THROTTLED_STATUS_CODE:
            return True

        method = request.http_request.method
        return method in self.IDEMPOTENT_METHODS or self.options.retry_non_idempotent

    def _retry_delay(self, response: httpx.Response, attempt: int, attempts_remaining: int) -> float:
        """Server-suggested delay if present, computed backoff otherwise.

        A suggested delay is used verbatim, capped at
        ``max_delay * attempts_remaining``.
        """
        suggested = parse_retry_after(response.headers)
        if suggested is not None:
            return min(suggested, self.options.max_delay * max(attempts_remaining, 1))
        return self._calculate_backoff_delay(attempt)

    def _calculate_backoff_delay(self, attempt: int) -> float:
        """Full-jitter exponential backoff.

        Args:
            attempt: Attempt that just failed (0-indexed)

        Returns:
            Delay in seconds, uniform in ``[0, min(max_delay, initial_delay * 2**attempt)]``
        """
        ceiling = min(self.options.max_delay, self.options.initial_delay * (2**attempt))
        return random.uniform(0, ceiling)

"""Per-call deadline and cancellation.

A `CallContext` travels with a request through the pipeline, retry sleeps,
token refresh waits, poller waits and pager fetches. Every suspension point
goes through `CallContext.run` or `CallContext.sleep`, so cancelling the
context or letting its deadline pass ends the call promptly.

Example:
    ```python
    context = CallContext(timeout=30)
    response = await client.send(spec, context=context)

    # From another task on the same event loop
    context.cancel()
    ```
"""

import asyncio
import time
from collections.abc import Awaitable
from typing import TypeVar

from arm_client_core.errors.exceptions import DeadlineExceededError, OperationCancelledError

T = TypeVar("T")


class CallContext:
    """Deadline and cancellation signal for one logical call.

    Args:
        timeout: Seconds from now until the deadline
        deadline: Absolute deadline on the `time.monotonic()` clock

    Cancel from the event loop thread; use `loop.call_soon_threadsafe` from
    other threads.
    """

    def __init__(self, *, timeout: float | None = None, deadline: float | None = None) -> None:
        if timeout is not None:
            timeout_deadline = time.monotonic() + timeout
            deadline = timeout_deadline if deadline is None else min(deadline, timeout_deadline)
        self.deadline = deadline
        self._cancelled = asyncio.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(self.deadline - time.monotonic(), 0.0)

    def check(self) -> None:
        """Raise if the context is cancelled or past its deadline."""
        if self.cancelled:
            raise OperationCancelledError("Operation was cancelled")
        if self.expired:
            raise DeadlineExceededError("Operation deadline exceeded")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable`, abandoning it on cancellation or deadline.

        Raises:
            OperationCancelledError: The context was cancelled first
            DeadlineExceededError: The deadline passed first
        """
        if self.cancelled or self.expired:
            # Never started, so close it rather than leave it unawaited
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.check()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._cancelled.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        except BaseException:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        cause: BaseException | None = None
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            cause = e

        if self.cancelled:
            raise OperationCancelledError("Operation was cancelled") from cause
        raise DeadlineExceededError("Operation deadline exceeded") from cause

    async def sleep(self, delay: float) -> None:
        """Sleep for `delay` seconds unless cancelled first.

        Raises:
            OperationCancelledError: The context was cancelled during the wait
            DeadlineExceededError: The deadline falls before the wait ends
        """
        self.check()
        remaining = self.remaining()
        if remaining is not None and remaining < delay:
            await self.run(asyncio.sleep(remaining))
            raise DeadlineExceededError("Operation deadline exceeded")
        await self.run(asyncio.sleep(delay))

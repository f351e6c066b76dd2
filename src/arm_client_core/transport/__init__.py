"""Wire transports terminating a pipeline.

A transport turns a `PipelineRequest` into an `httpx.Response` or raises
`TransportError`. It is the only pipeline component doing network I/O and
must be safe for concurrent use.

Example:
    ```python
    from arm_client_core.transport import HttpxTransport

    # Default pooled client
    transport = HttpxTransport()

    # Wrap an existing httpx transport (e.g. httpx.MockTransport in tests)
    transport = HttpxTransport(transport=httpx.MockTransport(handler))
    ```
"""

from arm_client_core.transport.base import HttpxTransport, Transport, is_rewindable

__all__ = ["HttpxTransport", "Transport", "is_rewindable"]

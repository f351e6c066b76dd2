"""ARM Client Core - Shared HTTP pipeline runtime for Azure Resource Manager clients.

This library provides the runtime that generated REST clients delegate to:
- Composable pipeline policies (request id, telemetry, retry, bearer auth, logging)
- Bounded retry with backoff, jitter and Retry-After support
- Long-running operation polling with resume tokens
- Lazy pagination over nextLink-style list endpoints
- Structured decoding of ARM error payloads

Example:
    ```python
    from arm_client_core.auth import StaticTokenCredential
    from arm_client_core.client import BaseArmClient, RequestSpec
    from arm_client_core.context import CallContext

    async with BaseArmClient(StaticTokenCredential(token)) as client:
        poller = await client.begin_operation(
            RequestSpec("PUT", "/subscriptions/{subscriptionId}/...", path_params=..., json=body)
        )
        resource = await poller.poll_until_done(CallContext(timeout=600))
    ```
"""

__version__ = "0.1.0"

__all__ = ["__version__"]

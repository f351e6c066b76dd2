"""Request pipeline: composable policies terminated by a transport.

Modules:
    base: PipelineRequest, Policy, SansIOPolicy and Pipeline
    policies: request id, static headers, telemetry and logging policies
    retry: bounded retry with backoff and Retry-After support
    factory: `create_pipeline` assembling the canonical policy order

Example:
    ```python
    from arm_client_core.pipeline.factory import create_pipeline

    pipeline = create_pipeline(credential, scopes=["https://management.azure.com/.default"])
    response = await pipeline.run(PipelineRequest(httpx.Request("GET", url)))
    ```
"""

from arm_client_core.pipeline.base import NextPolicy, Pipeline, PipelineRequest, Policy, SansIOPolicy
from arm_client_core.pipeline.policies import (
    HeadersPolicy,
    LoggingPolicy,
    RequestIdPolicy,
    TelemetryEvent,
    TelemetryPolicy,
)
from arm_client_core.pipeline.retry import RetryPolicy

__all__ = [
    "HeadersPolicy",
    "LoggingPolicy",
    "NextPolicy",
    "Pipeline",
    "PipelineRequest",
    "Policy",
    "RequestIdPolicy",
    "RetryPolicy",
    "SansIOPolicy",
    "TelemetryEvent",
    "TelemetryPolicy",
]

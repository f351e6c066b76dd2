"""Canonical pipeline assembly."""

from collections.abc import Sequence

from arm_client_core.auth.credentials import TokenCredential
from arm_client_core.auth.policy import BearerTokenPolicy
from arm_client_core.config import ClientOptions
from arm_client_core.pipeline.base import Pipeline, Policy
from arm_client_core.pipeline.policies import HeadersPolicy, LoggingPolicy, RequestIdPolicy, TelemetryPolicy
from arm_client_core.pipeline.retry import RetryPolicy
from arm_client_core.transport import HttpxTransport, Transport


def create_pipeline(
    credential: TokenCredential | None = None,
    *,
    scopes: Sequence[str] = (),
    options: ClientOptions | None = None,
    transport: Transport | None = None,
) -> Pipeline:
    """Build a pipeline in the canonical order (outermost first).

    per-call policies → request id → headers → telemetry → retry →
    per-retry policies → bearer → logging → transport

    Retries wrap authentication so every attempt can pick up a refreshed
    token; telemetry wraps retries so hooks see final outcomes; logging sits
    next to the transport to record what went over the wire.

    Args:
        credential: Token source; without one no Authorization header is sent
        scopes: Token scopes; defaults to ``options.scopes`` or the cloud's
            default scope
        options: Client options
        transport: Terminal transport; defaults to a new `HttpxTransport`
    """
    options = options or ClientOptions()

    policies: list[Policy] = [
        *options.per_call_policies,
        RequestIdPolicy(),
        HeadersPolicy(options.headers),
        TelemetryPolicy(options.telemetry),
        RetryPolicy(options.retry),
        *options.per_retry_policies,
    ]

    if credential is not None:
        token_scopes = tuple(scopes) or tuple(options.scopes) or (options.cloud.default_scope,)
        policies.append(BearerTokenPolicy(credential, token_scopes, allow_http=options.allow_insecure_auth))

    policies.append(LoggingPolicy(options.logging))

    return Pipeline(transport or HttpxTransport(), policies)

"""Option records for pipelines, pollers and clients.

All configuration is programmatic; the core reads no environment variables.

Example:
    ```python
    from arm_client_core.config import ClientOptions, RetryOptions

    options = ClientOptions(
        retry=RetryOptions(max_attempts=5, initial_delay=1.0),
        headers={"x-ms-correlation-request-id": correlation_id},
    )
    ```
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from arm_client_core.cloud import AZURE_PUBLIC_CLOUD, CloudConfiguration

if TYPE_CHECKING:
    from arm_client_core.pipeline.base import Policy
    from arm_client_core.pipeline.policies import TelemetryEvent


@dataclass(frozen=True)
class RetryOptions:
    """Bounded exponential retry with full jitter.

    Attributes:
        max_attempts: Total attempts including the first one
        initial_delay: Backoff base in seconds
        max_delay: Upper bound for any single backoff in seconds
        status_codes: Response statuses that may be retried
        retry_non_idempotent: Also retry POST and PATCH on 408/5xx
    """

    max_attempts: int = 3
    initial_delay: float = 0.8
    max_delay: float = 60.0
    status_codes: frozenset[int] = frozenset([408, 429, 500, 502, 503, 504])
    retry_non_idempotent: bool = False


@dataclass(frozen=True)
class LoggingOptions:
    """Wire logging redaction rules.

    Header and query parameter names not listed are logged as ``REDACTED``.
    """

    allowed_headers: frozenset[str] = frozenset(
        [
            "accept",
            "content-length",
            "content-type",
            "date",
            "etag",
            "location",
            "azure-asyncoperation",
            "operation-location",
            "retry-after",
            "user-agent",
            "x-ms-client-request-id",
            "x-ms-correlation-request-id",
            "x-ms-request-id",
            "x-ms-ratelimit-remaining-subscription-reads",
            "x-ms-ratelimit-remaining-subscription-writes",
        ]
    )
    allowed_query_params: frozenset[str] = frozenset(["api-version", "$filter", "$top", "$skiptoken", "$expand"])


@dataclass(frozen=True)
class TelemetryOptions:
    """User-Agent composition and completion hooks.

    Attributes:
        application_id: Prefix prepended to the User-Agent
        disabled: Skip setting the User-Agent header
        hooks: Callables invoked with a `TelemetryEvent` once per call
    """

    application_id: str | None = None
    disabled: bool = False
    hooks: Sequence[Callable[["TelemetryEvent"], None]] = ()


@dataclass(frozen=True)
class PollingOptions:
    """Long-running operation polling schedule in seconds.

    Without a server-suggested ``Retry-After`` the n-th wait is
    ``frequency * 2**n`` clamped to ``[min_delay, max_delay]``.
    """

    frequency: float = 1.0
    min_delay: float = 1.0
    max_delay: float = 60.0


@dataclass(frozen=True)
class ClientOptions:
    """Everything a client needs to assemble its pipeline.

    Attributes:
        cloud: Endpoint and audience record for the target cloud
        endpoint: Overrides the cloud's resource manager endpoint
        scopes: Token scopes; defaults to the cloud's default scope
        retry: Retry policy options
        logging: Wire logging options
        telemetry: User-Agent and hook options
        polling: LRO polling options
        headers: Static headers added to every request
        per_call_policies: Run once per call, outside the retry policy
        per_retry_policies: Run on every attempt, inside the retry policy
        allow_insecure_auth: Permit bearer tokens over plain http
    """

    cloud: CloudConfiguration = AZURE_PUBLIC_CLOUD
    endpoint: str | None = None
    scopes: Sequence[str] = ()
    retry: RetryOptions = field(default_factory=RetryOptions)
    logging: LoggingOptions = field(default_factory=LoggingOptions)
    telemetry: TelemetryOptions = field(default_factory=TelemetryOptions)
    polling: PollingOptions = field(default_factory=PollingOptions)
    headers: dict[str, str] = field(default_factory=dict)
    per_call_policies: Sequence["Policy"] = ()
    per_retry_policies: Sequence["Policy"] = ()
    allow_insecure_auth: bool = False

"""Tests for pipeline composition and canonical assembly."""

import httpx
import pytest

from arm_client_core.auth import BearerTokenPolicy, StaticTokenCredential
from arm_client_core.cloud import AZURE_CHINA_CLOUD
from arm_client_core.config import ClientOptions
from arm_client_core.context import CallContext
from arm_client_core.errors.exceptions import OperationCancelledError
from arm_client_core.pipeline import (
    HeadersPolicy,
    LoggingPolicy,
    Pipeline,
    PipelineRequest,
    Policy,
    RequestIdPolicy,
    RetryPolicy,
    SansIOPolicy,
    TelemetryPolicy,
)
from arm_client_core.pipeline.factory import create_pipeline
from arm_client_core.testing import ResponseSequence, create_mock_response, create_mock_transport

URL = "https://management.azure.com/subscriptions?api-version=2022-12-01"


class Recorder(Policy):
    def __init__(self, name: str, log: list[str]):
        self.name = name
        self.log = log

    async def send(self, request, next):
        self.log.append(f"{self.name}:request")
        response = await next(request)
        self.log.append(f"{self.name}:response")
        return response


class ShortCircuit(Policy):
    async def send(self, request, next):
        return httpx.Response(418)


@pytest.mark.unit
async def test_policies_run_in_order():
    log: list[str] = []
    pipeline = Pipeline(
        create_mock_transport(lambda request: httpx.Response(200)),
        [Recorder("outer", log), Recorder("inner", log)],
    )

    await pipeline.run(PipelineRequest(httpx.Request("GET", URL)))

    assert log == ["outer:request", "inner:request", "inner:response", "outer:response"]


@pytest.mark.unit
async def test_policy_can_short_circuit():
    responses = ResponseSequence([])
    pipeline = Pipeline(create_mock_transport(responses), [ShortCircuit()])

    response = await pipeline.run(PipelineRequest(httpx.Request("GET", URL)))

    assert response.status_code == 418
    assert responses.requests == []


@pytest.mark.unit
async def test_sans_io_hooks():
    seen = []

    class Hooks(SansIOPolicy):
        def on_request(self, request):
            request.http_request.headers["x-test"] = "1"

        def on_response(self, request, response):
            seen.append(response.status_code)

        def on_exception(self, request, error):
            seen.append(type(error).__name__)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"x-test": request.headers.get("x-test")})

    pipeline = Pipeline(create_mock_transport(handler), [Hooks()])
    response = await pipeline.run(PipelineRequest(httpx.Request("GET", URL)))

    assert response.json() == {"x-test": "1"}
    assert seen == [200]


@pytest.mark.unit
async def test_cancelled_context_rejected_before_any_policy():
    log: list[str] = []
    context = CallContext()
    context.cancel()
    pipeline = Pipeline(create_mock_transport(ResponseSequence([])), [Recorder("only", log)])

    with pytest.raises(OperationCancelledError):
        await pipeline.run(PipelineRequest(httpx.Request("GET", URL), context=context))

    assert log == []


@pytest.mark.unit
def test_create_pipeline_canonical_order():
    per_call = Recorder("per-call", [])
    per_retry = Recorder("per-retry", [])
    options = ClientOptions(per_call_policies=[per_call], per_retry_policies=[per_retry])

    pipeline = create_pipeline(
        StaticTokenCredential("token"),
        options=options,
        transport=create_mock_transport(ResponseSequence([])),
    )

    assert [type(p) for p in pipeline.policies] == [
        Recorder,
        RequestIdPolicy,
        HeadersPolicy,
        TelemetryPolicy,
        RetryPolicy,
        Recorder,
        BearerTokenPolicy,
        LoggingPolicy,
    ]
    assert pipeline.policies[0] is per_call
    assert pipeline.policies[5] is per_retry


@pytest.mark.unit
def test_create_pipeline_without_credential_has_no_bearer():
    pipeline = create_pipeline(transport=create_mock_transport(ResponseSequence([])))

    assert not any(isinstance(p, BearerTokenPolicy) for p in pipeline.policies)


@pytest.mark.unit
async def test_create_pipeline_uses_cloud_default_scope():
    scopes_seen = []

    class RecordingCredential:
        async def get_token(self, *scopes):
            scopes_seen.append(scopes)
            return await StaticTokenCredential("token").get_token(*scopes)

    responses = ResponseSequence([create_mock_response(200)])
    pipeline = create_pipeline(
        RecordingCredential(),
        options=ClientOptions(cloud=AZURE_CHINA_CLOUD),
        transport=create_mock_transport(responses),
    )

    await pipeline.run(PipelineRequest(httpx.Request("GET", "https://management.chinacloudapi.cn/subscriptions")))

    assert scopes_seen == [("https://management.core.chinacloudapi.cn/.default",)]
    assert responses.requests[0].headers["authorization"] == "Bearer token"


@pytest.mark.unit
async def test_retry_attempts_share_request_id_and_refresh_auth(fast_retry):
    """Each retry re-runs the per-retry policies under one client request id."""
    responses = ResponseSequence([create_mock_response(503), create_mock_response(200)])
    pipeline = create_pipeline(
        StaticTokenCredential("token"),
        options=ClientOptions(retry=fast_retry),
        transport=create_mock_transport(responses),
    )

    response = await pipeline.run(PipelineRequest(httpx.Request("GET", URL)))

    assert response.status_code == 200
    first, second = responses.requests
    assert first.headers["x-ms-client-request-id"] == second.headers["x-ms-client-request-id"]
    assert second.headers["authorization"] == "Bearer token"

"""Tests for polling strategy selection and poll parsing."""

import httpx
import pytest

from arm_client_core.errors.exceptions import ConflictError, DecodeError, HttpResponseError, ServerError
from arm_client_core.polling.state import (
    FAILED,
    IN_PROGRESS,
    SUCCEEDED,
    FinalStateVia,
    PollingKind,
)
from arm_client_core.polling.strategies import parse_poll_response, select_strategy

RESOURCE_URL = "https://management.azure.com/subscriptions/sub1/resourceGroups/rg1/providers/Microsoft.ElasticSan/elasticSans/san1?api-version=2021-11-20"
ACTION_URL = "https://management.azure.com/subscriptions/sub1/resourceGroups/rg1/providers/Microsoft.Batch/batchAccounts/acct/syncAutoStorageKeys?api-version=2023-05-01"
MONITOR_URL = "https://management.azure.com/subscriptions/sub1/providers/Microsoft.ElasticSan/locations/eastus/asyncoperations/op1"
LOCATION_URL = "https://management.azure.com/subscriptions/sub1/providers/Microsoft.ElasticSan/locations/eastus/operationResults/op1"


def initial(method: str, status_code: int, *, url: str = RESOURCE_URL, headers=None, json=None) -> httpx.Response:
    return httpx.Response(status_code, headers=headers, json=json, request=httpx.Request(method, url))


def poll(status_code: int, *, headers=None, json=None, content=None) -> httpx.Response:
    kwargs = {"json": json} if json is not None else {"content": content or b""}
    return httpx.Response(status_code, headers=headers, request=httpx.Request("GET", MONITOR_URL), **kwargs)


class TestSelectStrategy:
    @pytest.mark.unit
    def test_async_operation_header_wins(self):
        response = initial(
            "PUT",
            201,
            headers={"Azure-AsyncOperation": MONITOR_URL, "Location": LOCATION_URL},
            json={"properties": {"provisioningState": "Creating"}},
        )

        state = select_strategy(response)

        assert state.kind == PollingKind.ASYNC_OPERATION
        assert state.poll_url == MONITOR_URL
        assert state.resource_url == RESOURCE_URL
        assert state.status == IN_PROGRESS
        assert state.last_response is response

    @pytest.mark.unit
    def test_async_operation_post_final_via_location(self):
        response = initial(
            "POST",
            202,
            url=ACTION_URL,
            headers={"Azure-AsyncOperation": MONITOR_URL, "Location": LOCATION_URL},
        )

        assert select_strategy(response).resource_url == LOCATION_URL

    @pytest.mark.unit
    def test_async_operation_final_via_monitor_skips_final_get(self):
        response = initial("PUT", 201, headers={"Azure-AsyncOperation": MONITOR_URL})

        state = select_strategy(response, FinalStateVia.AZURE_ASYNC_OPERATION)

        assert state.resource_url is None

    @pytest.mark.unit
    def test_async_operation_delete_has_no_final_get(self):
        response = initial("DELETE", 202, headers={"Azure-AsyncOperation": MONITOR_URL, "Location": LOCATION_URL})

        assert select_strategy(response).resource_url is None

    @pytest.mark.unit
    def test_operation_location(self):
        response = initial("POST", 202, url=ACTION_URL, headers={"Operation-Location": MONITOR_URL})

        state = select_strategy(response)

        assert state.kind == PollingKind.OPERATION_LOCATION
        assert state.poll_url == MONITOR_URL
        assert state.resource_url is None

    @pytest.mark.unit
    def test_location_on_202(self):
        response = initial("POST", 202, url=ACTION_URL, headers={"Location": LOCATION_URL})

        state = select_strategy(response)

        assert state.kind == PollingKind.LOCATION
        assert state.poll_url == LOCATION_URL
        assert state.method == "POST"

    @pytest.mark.unit
    def test_location_original_uri_hint(self):
        response = initial("POST", 202, url=ACTION_URL, headers={"Location": LOCATION_URL})

        assert select_strategy(response, FinalStateVia.ORIGINAL_URI).resource_url == ACTION_URL

    @pytest.mark.unit
    def test_put_with_pending_provisioning_state(self):
        response = initial("PUT", 200, json={"properties": {"provisioningState": "Updating"}})

        state = select_strategy(response)

        assert state.kind == PollingKind.PROVISIONING_STATE
        assert state.poll_url == RESOURCE_URL
        assert state.status == "Updating"

    @pytest.mark.unit
    def test_put_201_without_state_polls_resource(self):
        response = initial("PUT", 201, json={"name": "san1"})

        assert select_strategy(response).kind == PollingKind.PROVISIONING_STATE

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("method", "status_code", "body", "expected"),
        [
            ("PUT", 200, {"properties": {"provisioningState": "Succeeded"}}, SUCCEEDED),
            ("PUT", 200, {"properties": {"provisioningState": "Failed"}}, FAILED),
            ("PUT", 200, {"name": "san1"}, SUCCEEDED),
            ("PATCH", 200, {"properties": {"provisioningState": "succeeded"}}, SUCCEEDED),
            ("DELETE", 204, None, SUCCEEDED),
            ("POST", 200, {"keys": []}, SUCCEEDED),
        ],
    )
    def test_already_terminal(self, method, status_code, body, expected):
        state = select_strategy(initial(method, status_code, json=body))

        assert state.kind == PollingKind.BODY
        assert state.status == expected
        assert state.terminal

    @pytest.mark.unit
    def test_202_without_headers_is_complete(self, caplog):
        state = select_strategy(initial("POST", 202, url=ACTION_URL))

        assert state.kind == PollingKind.BODY
        assert state.status == SUCCEEDED
        assert "without a polling header" in caplog.text

    @pytest.mark.unit
    def test_rejects_error_status(self):
        response = initial("PUT", 409, json={"error": {"code": "Conflict", "message": "busy"}})

        with pytest.raises(ConflictError) as exc_info:
            select_strategy(response)

        assert exc_info.value.error_code == "Conflict"


class TestParsePollResponse:
    def state(self, kind=PollingKind.ASYNC_OPERATION, **kwargs):
        response = initial("PUT", 201, headers={"Azure-AsyncOperation": MONITOR_URL})
        state = select_strategy(response)
        state.kind = kind
        for name, value in kwargs.items():
            setattr(state, name, value)
        return state

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            ({"status": "InProgress"}, IN_PROGRESS),
            ({"status": "succeeded"}, SUCCEEDED),
            ({"status": "Failed", "error": {"code": "BadRequest"}}, FAILED),
            ({"status": "Canceled"}, "Canceled"),
        ],
    )
    def test_status_monitor(self, body, expected):
        assert parse_poll_response(self.state(), poll(200, json=body)) == expected

    @pytest.mark.unit
    def test_status_monitor_without_status_is_decode_error(self):
        with pytest.raises(DecodeError):
            parse_poll_response(self.state(), poll(200, json={"name": "op1"}))

    @pytest.mark.unit
    def test_status_monitor_empty_202_in_progress(self):
        assert parse_poll_response(self.state(), poll(202)) == IN_PROGRESS

    @pytest.mark.unit
    def test_status_monitor_http_error(self):
        with pytest.raises(ServerError):
            parse_poll_response(self.state(), poll(500, json={"error": {"code": "InternalServerError"}}))

    @pytest.mark.unit
    def test_operation_location_learns_resource_location(self):
        state = self.state(PollingKind.OPERATION_LOCATION, resource_url=None)

        status = parse_poll_response(state, poll(200, json={"status": "Succeeded", "resourceLocation": RESOURCE_URL}))

        assert status == SUCCEEDED
        assert state.resource_url == RESOURCE_URL

    @pytest.mark.unit
    def test_location_follows_moved_monitor(self):
        state = self.state(PollingKind.LOCATION, poll_url=LOCATION_URL)
        moved = LOCATION_URL + "?attempt=2"

        assert parse_poll_response(state, poll(202, headers={"Location": moved})) == IN_PROGRESS
        assert state.poll_url == moved

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("status_code", "expected"),
        [(200, SUCCEEDED), (204, SUCCEEDED), (400, FAILED), (404, FAILED), (501, FAILED)],
    )
    def test_location_terminal(self, status_code, expected):
        state = self.state(PollingKind.LOCATION, poll_url=LOCATION_URL)

        assert parse_poll_response(state, poll(status_code)) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("response", "expected"),
        [
            (poll(200, json={"properties": {"provisioningState": "Updating"}}), "Updating"),
            (poll(200, json={"properties": {"provisioningState": "Succeeded"}}), SUCCEEDED),
            (poll(200, json={"name": "san1"}), SUCCEEDED),
            (poll(202), IN_PROGRESS),
            (poll(204), SUCCEEDED),
        ],
    )
    def test_provisioning_state(self, response, expected):
        assert parse_poll_response(self.state(PollingKind.PROVISIONING_STATE), response) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("status_code", [408, 429, 500, 502, 503, 504])
    def test_location_transient_status_raises_without_state_change(self, status_code):
        state = self.state(PollingKind.LOCATION, poll_url=LOCATION_URL)

        with pytest.raises(HttpResponseError) as exc_info:
            parse_poll_response(state, poll(status_code, json={"error": {"code": "Busy", "message": "later"}}))

        assert exc_info.value.status_code == status_code
        assert state.status == IN_PROGRESS
        assert state.poll_url == LOCATION_URL

"""Polling strategy selection and per-strategy response parsing.

Strategies are an enum tag (`PollingKind`) plus one parse function per tag
in `PARSERS`. Selection inspects the initial response of the operation:

1. ``Azure-AsyncOperation`` header → poll the status monitor URL
2. ``Operation-Location`` header → poll the status monitor URL (data plane)
3. ``Location`` header → poll until the status is no longer 202
4. PUT/PATCH with a non-terminal ``properties.provisioningState`` (or a 201
   without one) → GET the resource until the state is terminal
5. Anything else → the initial response is already terminal
"""

import json
import logging
from collections.abc import Callable
from typing import Any

import httpx

from arm_client_core.errors.exceptions import DecodeError
from arm_client_core.errors.handler import build_error
from arm_client_core.polling.state import (
    FAILED,
    IN_PROGRESS,
    SUCCEEDED,
    TERMINAL_STATUSES,
    FinalStateVia,
    PollingKind,
    PollingState,
    normalize_status,
)

logger = logging.getLogger(__name__)

INITIAL_STATUS_CODES = frozenset([200, 201, 202, 204])

# Poll failures that say nothing about the operation itself
TRANSIENT_POLL_STATUS_CODES = frozenset([408, 429, 500, 502, 503, 504])

PollParser = Callable[[PollingState, httpx.Response], str]


def select_strategy(response: httpx.Response, final_state_via: FinalStateVia | None = None) -> PollingState:
    """Pick the polling strategy for an operation's initial response.

    Raises:
        HttpResponseError: The initial status is not 200, 201, 202 or 204
    """
    if response.status_code not in INITIAL_STATUS_CODES:
        raise build_error(response.status_code, response.content, response)

    request = response.request
    method = request.method.upper()
    url = str(request.url)
    headers = response.headers

    async_operation = headers.get("azure-asyncoperation")
    operation_location = headers.get("operation-location")
    location = headers.get("location")

    if async_operation:
        return PollingState(
            kind=PollingKind.ASYNC_OPERATION,
            method=method,
            poll_url=async_operation,
            resource_url=_final_get_url(method, url, location, final_state_via),
            final_state_via=final_state_via,
            last_response=response,
        )

    if operation_location:
        resource_url = None
        if method in ("PUT", "PATCH") or final_state_via == FinalStateVia.ORIGINAL_URI:
            resource_url = url
        elif location and final_state_via == FinalStateVia.LOCATION:
            resource_url = location
        return PollingState(
            kind=PollingKind.OPERATION_LOCATION,
            method=method,
            poll_url=operation_location,
            resource_url=resource_url,
            final_state_via=final_state_via,
            last_response=response,
        )

    if location and (response.status_code == 202 or method in ("POST", "DELETE")):
        return PollingState(
            kind=PollingKind.LOCATION,
            method=method,
            poll_url=location,
            resource_url=url if final_state_via == FinalStateVia.ORIGINAL_URI else None,
            final_state_via=final_state_via,
            last_response=response,
        )

    state = provisioning_state(response)
    if method in ("PUT", "PATCH") and response.status_code in (200, 201):
        if (state is None and response.status_code == 201) or (
            state is not None and normalize_status(state) not in TERMINAL_STATUSES
        ):
            return PollingState(
                kind=PollingKind.PROVISIONING_STATE,
                method=method,
                poll_url=url,
                resource_url=None,
                final_state_via=final_state_via,
                status=normalize_status(state),
                last_response=response,
            )

    if response.status_code == 202:
        logger.warning(f"{method} {url} returned 202 without a polling header; treating it as complete")

    status = SUCCEEDED
    if response.status_code != 204 and state is not None:
        status = normalize_status(state)
        if status not in TERMINAL_STATUSES:
            # No URL to follow for a non-PUT operation
            status = SUCCEEDED

    return PollingState(
        kind=PollingKind.BODY,
        method=method,
        poll_url=None,
        resource_url=None,
        final_state_via=final_state_via,
        status=status,
        last_response=response,
    )


def _final_get_url(method: str, url: str, location: str | None, final_state_via: FinalStateVia | None) -> str | None:
    if final_state_via == FinalStateVia.AZURE_ASYNC_OPERATION:
        return None
    if method in ("PUT", "PATCH") or final_state_via == FinalStateVia.ORIGINAL_URI:
        return url
    if method == "POST" and location and final_state_via in (None, FinalStateVia.LOCATION):
        return location
    return None


def json_body(response: httpx.Response) -> Any:
    """Decode a polling response body; empty bodies decode to None."""
    raw_body = response.content
    if not raw_body.strip():
        return None
    try:
        return json.loads(raw_body)
    except ValueError as e:
        raise DecodeError(f"Polling response is not valid JSON: {e}", raw_body=raw_body, response=response) from e


def provisioning_state(response: httpx.Response) -> str | None:
    try:
        body = json_body(response)
    except DecodeError:
        return None
    if not isinstance(body, dict) or not isinstance(body.get("properties"), dict):
        return None
    value = body["properties"].get("provisioningState")
    return value if isinstance(value, str) else None


def _parse_status_monitor(state: PollingState, response: httpx.Response) -> str:
    if response.status_code == 202 and not response.content.strip():
        return IN_PROGRESS
    _expect_success(response)

    body = json_body(response)
    if not isinstance(body, dict) or not isinstance(body.get("status"), str):
        raise DecodeError("Status monitor response has no status", raw_body=response.content, response=response)

    status = normalize_status(body["status"])
    if status == SUCCEEDED and state.resource_url is None:
        resource_location = body.get("resourceLocation")
        if state.kind == PollingKind.OPERATION_LOCATION and isinstance(resource_location, str) and resource_location:
            state.resource_url = resource_location
    return status


def _parse_location(state: PollingState, response: httpx.Response) -> str:
    if response.status_code == 202:
        # The service may move the monitor between polls
        state.poll_url = response.headers.get("location") or state.poll_url
        return IN_PROGRESS
    if response.is_success:
        return SUCCEEDED
    if response.status_code in TRANSIENT_POLL_STATUS_CODES:
        _expect_success(response)
    return FAILED


def _parse_provisioning_state(state: PollingState, response: httpx.Response) -> str:
    if response.status_code == 202:
        return IN_PROGRESS
    if response.status_code == 204:
        return SUCCEEDED
    _expect_success(response)
    value = provisioning_state(response)
    return normalize_status(value) if value is not None else SUCCEEDED


def _parse_body(state: PollingState, response: httpx.Response) -> str:
    return state.status


PARSERS: dict[PollingKind, PollParser] = {
    PollingKind.ASYNC_OPERATION: _parse_status_monitor,
    PollingKind.OPERATION_LOCATION: _parse_status_monitor,
    PollingKind.LOCATION: _parse_location,
    PollingKind.PROVISIONING_STATE: _parse_provisioning_state,
    PollingKind.BODY: _parse_body,
}


def parse_poll_response(state: PollingState, response: httpx.Response) -> str:
    """Status reported by a poll response under the state's strategy.

    May update `state.poll_url` or `state.resource_url` when the service
    supplies new ones.

    Raises:
        HttpResponseError: The poll request itself failed
        DecodeError: The status could not be read from the body
    """
    return PARSERS[state.kind](state, response)


def _expect_success(response: httpx.Response) -> None:
    if not response.is_success:
        raise build_error(response.status_code, response.content, response)

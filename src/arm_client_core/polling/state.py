"""Long-running operation state and resume tokens."""

import base64
import json
from dataclasses import dataclass, field
from enum import StrEnum

import httpx

from arm_client_core.errors.exceptions import ResumeTokenError, UsageError

SUCCEEDED = "Succeeded"
FAILED = "Failed"
CANCELED = "Canceled"
IN_PROGRESS = "InProgress"

TERMINAL_STATUSES = frozenset([SUCCEEDED, FAILED, CANCELED])

TOKEN_PREFIX = "arm-lro."
TOKEN_VERSION = 1


class PollingKind(StrEnum):
    """How the service reports progress of an operation."""

    ASYNC_OPERATION = "async-operation"
    OPERATION_LOCATION = "operation-location"
    LOCATION = "location"
    PROVISIONING_STATE = "provisioning-state"
    BODY = "body"


class FinalStateVia(StrEnum):
    """Caller hint for where the final result of a successful operation lives."""

    AZURE_ASYNC_OPERATION = "azure-async-operation"
    LOCATION = "location"
    ORIGINAL_URI = "original-uri"
    OPERATION_LOCATION = "operation-location"


def normalize_status(value: object) -> str:
    """Map service status strings onto canonical casing.

    Non-terminal values are kept verbatim; a missing value is `InProgress`.
    """
    if not isinstance(value, str) or not value:
        return IN_PROGRESS
    lowered = value.lower()
    if lowered == "succeeded":
        return SUCCEEDED
    if lowered == "failed":
        return FAILED
    if lowered in ("canceled", "cancelled"):
        return CANCELED
    return value


@dataclass
class PollingState:
    """Everything needed to continue polling an operation.

    Attributes:
        kind: Polling strategy selected from the initial response
        method: HTTP method of the request that started the operation
        poll_url: URL to GET for progress; None for the body strategy
        resource_url: URL to GET for the result after success, if any
        final_state_via: Caller hint used to pick `resource_url`
        status: Last known status
        last_response: Most recent response (not part of the resume token)
    """

    kind: PollingKind
    method: str
    poll_url: str | None
    resource_url: str | None
    final_state_via: FinalStateVia | None
    status: str = IN_PROGRESS
    last_response: httpx.Response | None = field(default=None, compare=False, repr=False)

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(self, status: str, response: httpx.Response | None = None) -> None:
        """Move to `status`; terminal states never change."""
        if self.terminal:
            raise UsageError(f"Operation already reached terminal state {self.status}")
        self.status = normalize_status(status)
        if response is not None:
            self.last_response = response

    def to_token(self) -> str:
        """Serialize to an opaque, versioned resume token.

        Raises:
            ResumeTokenError: The operation is already terminal
        """
        if self.terminal:
            raise ResumeTokenError(f"Cannot create a resume token for a {self.status} operation")

        record = {
            "v": TOKEN_VERSION,
            "k": str(self.kind),
            "m": self.method,
            "p": self.poll_url,
            "r": self.resource_url,
            "f": str(self.final_state_via) if self.final_state_via else None,
            "s": self.status,
        }
        payload = json.dumps(record, separators=(",", ":"), sort_keys=True).encode("utf-8")
        return TOKEN_PREFIX + base64.urlsafe_b64encode(payload).rstrip(b"=").decode("ascii")

    @classmethod
    def from_token(cls, token: str) -> "PollingState":
        """Rebuild the state serialized by `to_token`.

        Raises:
            ResumeTokenError: The token is malformed, from an unknown version
                or describes a finished operation
        """
        if not isinstance(token, str) or not token.startswith(TOKEN_PREFIX):
            raise ResumeTokenError("Not a long-running operation resume token")

        encoded = token[len(TOKEN_PREFIX) :]
        try:
            record = json.loads(base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4)))
        except ValueError as e:
            raise ResumeTokenError(f"Malformed resume token: {e}") from e

        if not isinstance(record, dict):
            raise ResumeTokenError("Malformed resume token")
        if record.get("v") != TOKEN_VERSION:
            raise ResumeTokenError(f"Unsupported resume token version: {record.get('v')!r}")

        try:
            state = cls(
                kind=PollingKind(record["k"]),
                method=record["m"],
                poll_url=record["p"],
                resource_url=record.get("r"),
                final_state_via=FinalStateVia(record["f"]) if record.get("f") else None,
                status=normalize_status(record.get("s")),
            )
        except (KeyError, ValueError) as e:
            raise ResumeTokenError(f"Malformed resume token: {e}") from e

        if state.terminal or not state.poll_url:
            raise ResumeTokenError("Resume token does not describe a pollable operation")
        return state

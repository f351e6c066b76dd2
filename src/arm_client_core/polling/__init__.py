"""Long-running operation polling.

Modules:
    state: PollingState, statuses and resume tokens
    strategies: strategy selection and per-strategy poll parsing
    poller: LROPoller
"""

from arm_client_core.polling.poller import LROPoller
from arm_client_core.polling.state import (
    CANCELED,
    FAILED,
    IN_PROGRESS,
    SUCCEEDED,
    FinalStateVia,
    PollingKind,
    PollingState,
)
from arm_client_core.polling.strategies import select_strategy

__all__ = [
    "CANCELED",
    "FAILED",
    "IN_PROGRESS",
    "SUCCEEDED",
    "FinalStateVia",
    "LROPoller",
    "PollingKind",
    "PollingState",
    "select_strategy",
]

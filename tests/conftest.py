"""Pytest configuration and shared fixtures for arm-client-core tests."""

import os

import pytest

from arm_client_core.config import PollingOptions, RetryOptions


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Clear credential-related environment variables before each test."""
    test_prefixes = ("TEST_", "ARM_", "AZURE_")

    for key in list(os.environ.keys()):
        if any(key.startswith(prefix) for prefix in test_prefixes):
            monkeypatch.delenv(key, raising=False)

    yield


@pytest.fixture
def fast_retry() -> RetryOptions:
    """Retry options with millisecond backoff."""
    return RetryOptions(max_attempts=3, initial_delay=0.001, max_delay=0.01)


@pytest.fixture
def fast_polling() -> PollingOptions:
    """Polling options with millisecond waits."""
    return PollingOptions(frequency=0.001, min_delay=0.0, max_delay=0.01)

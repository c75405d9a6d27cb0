"""
Pytest configuration and fixtures for testing.

This module provides shared fixtures for the connection registry and mock
write channels.
"""

import os
from unittest.mock import MagicMock

import pytest

# Keep the error log out of the working tree during test runs
os.environ.setdefault("LOG_FILE_PATH", os.devnull)


@pytest.fixture
def failure_callback():
    """
    Provides a callback recording write failures.

    Returns:
        MagicMock: Callable receiving DeliveryFailure events.
    """
    return MagicMock()


@pytest.fixture
def registry(failure_callback):
    """
    Provides an empty ConnectionRegistry that replaces duplicate ids.

    Args:
        failure_callback: Fixture receiving write failures.

    Returns:
        ConnectionRegistry: Fresh registry instance.
    """
    from relay.managers.connection_registry import ConnectionRegistry

    return ConnectionRegistry(
        reject_duplicates=False, on_write_failure=failure_callback
    )


@pytest.fixture
def channel_factory():
    """
    Provides a factory for mock write channels.

    Returns:
        Callable: Creates a new recording channel on each call.
    """
    from tests.mocks.channel_mocks import create_mock_channel

    return create_mock_channel

"""Unit test conftest for setting up test environment."""

import os
from unittest.mock import AsyncMock, MagicMock

# Set environment before importing any offline_first modules so the shared
# settings instance never picks up a developer's .env
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOCAL_DEVELOPMENT", "false")

import pytest  # noqa: E402

from offline_first.platform.connectivity.sources import ManualConnectivitySource  # noqa: E402
from offline_first.platform.http_client.transport import HttpTransport  # noqa: E402
from offline_first.platform.storage.backend import MemoryBackend  # noqa: E402


@pytest.fixture
def storage():
    """Create an empty in-memory document store."""
    return MemoryBackend()


@pytest.fixture
def connectivity():
    """Create a manual connectivity source that starts online."""
    return ManualConnectivitySource(initial=True)


@pytest.fixture
def mock_transport():
    """Create a mock HttpTransport."""
    mock = MagicMock(spec=HttpTransport)
    mock.request = AsyncMock()
    mock.aclose = AsyncMock()
    return mock

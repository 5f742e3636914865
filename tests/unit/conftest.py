"""Unit test fixtures (mocks and stubs).

Provides mock objects for testing without external dependencies.
"""

from unittest.mock import AsyncMock

import pytest

from callscribe.clients.deepgram_client import DeepgramClient
from callscribe.clients.plivo_client import PlivoClient
from callscribe.managers.deepgram_manager import DeepgramManager
from callscribe.managers.plivo_manager import PlivoManager, PlivoManagerConfig


@pytest.fixture
def mock_async_redis():
    """Mock AsyncRedis client for unit tests (async)."""
    mock = AsyncMock()
    mock.hset = AsyncMock(return_value=1)
    mock.hsetnx = AsyncMock(return_value=True)
    mock.hgetall = AsyncMock(return_value={})
    mock.zadd = AsyncMock(return_value=1)
    mock.zrevrange = AsyncMock(return_value=[])
    mock.expire = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def plivo_manager_config() -> PlivoManagerConfig:
    return PlivoManagerConfig(
        default_phone_number="+14155550100",
        app_base_url="https://calls.example.com",
    )


@pytest.fixture
def mock_plivo_client():
    """PlivoClient with every API method replaced by an AsyncMock."""
    return AsyncMock(spec=PlivoClient)


@pytest.fixture
def mock_deepgram_client():
    """DeepgramClient with every API method replaced by an AsyncMock."""
    return AsyncMock(spec=DeepgramClient)


@pytest.fixture
def plivo_manager(mock_plivo_client, plivo_manager_config) -> PlivoManager:
    return PlivoManager(mock_plivo_client, plivo_manager_config)


@pytest.fixture
def deepgram_manager(mock_deepgram_client) -> DeepgramManager:
    return DeepgramManager(mock_deepgram_client)

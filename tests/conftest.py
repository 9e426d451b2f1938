"""Shared test fixtures and configuration."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from intelli_stock.cache import CacheService, LocalTier, RedisTier, TwoTierStore
from intelli_stock.config import AppConfig, CacheConfig, LoggingConfig

from tests.fixtures.fakes import FakeClock, async_iter


@pytest.fixture
def clock():
    """Millisecond clock for CacheService bookkeeping."""
    return FakeClock()


@pytest.fixture
def timer():
    """Second-resolution timer for the local tier."""
    return FakeClock(start=0.0)


@pytest.fixture
def mock_redis():
    """Create mock Redis client."""
    mock = AsyncMock(spec=redis.Redis)
    mock.ping = AsyncMock(return_value=True)
    mock.get = AsyncMock(return_value=None)
    mock.pttl = AsyncMock(return_value=-2)
    mock.set = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=1)
    mock.exists = AsyncMock(return_value=0)
    mock.aclose = AsyncMock()
    mock.scan_iter = MagicMock(side_effect=lambda match=None: async_iter([]))
    return mock


@pytest.fixture
def local_tier(timer):
    """Local tier driven by the fake timer."""
    return LocalTier(max_size=100, timer=timer)


@pytest.fixture
def redis_tier(mock_redis):
    """Redis tier backed by the mock client."""
    return RedisTier(mock_redis, namespace="intelli-stock")


@pytest.fixture
def local_store(local_tier):
    """Local-only two-tier store."""
    return TwoTierStore(local_tier)


@pytest.fixture
def cache_service(local_store, clock):
    """Cache service over a local-only store with a fake clock."""
    return CacheService(local_store, clock=clock)


@pytest.fixture
def app_config():
    """Application config without a remote tier."""
    return AppConfig(
        cache=CacheConfig(enable_remote=False),
        logging=LoggingConfig(log_level="WARNING"),
    )

from unittest.mock import Mock, patch

import pytest

from assetgate.core.config import Environment
from assetgate.services.cache import base as base_module
from assetgate.services.cache.base import get_redis_pool
from assetgate.services.cache.manager import CacheManager


@pytest.fixture
def mock_redis_pool() -> Mock:
    return Mock()


@pytest.fixture(autouse=True)
def reset_pool():
    original = base_module._redis_pool
    yield
    base_module._redis_pool = original


class TestGetRedisPool:
    """Test get_redis_pool function."""

    def test_creates_pool_once(self, mock_redis_pool):
        base_module._redis_pool = None

        with patch(
            "assetgate.services.cache.base.ConnectionPool.from_url", return_value=mock_redis_pool
        ) as mock_from_url:
            assert get_redis_pool() is mock_redis_pool
            assert get_redis_pool() is mock_redis_pool

        mock_from_url.assert_called_once()
        assert mock_from_url.call_args.kwargs["decode_responses"] is False


class TestBaseRedisClient:
    """Test BaseRedisClient class."""

    def test_local_environment_skips_redis(self):
        with (
            patch("assetgate.core.config.settings.current_environment", Environment.LOCAL),
            patch("assetgate.core.config.settings.redis_enabled_in_local", False),
        ):
            client = CacheManager()

            assert client.redis_client is None

    def test_non_local_environment_binds_shared_pool(self, mock_redis_pool):
        base_module._redis_pool = mock_redis_pool

        with patch("assetgate.core.config.settings.current_environment", Environment.DEV):
            client = CacheManager()

            assert client.redis_client is not None
            assert client.redis_client.connection_pool is mock_redis_pool

    def test_local_opt_in_binds_pool(self, mock_redis_pool):
        base_module._redis_pool = mock_redis_pool

        with patch("assetgate.core.config.settings.redis_enabled_in_local", True):
            client = CacheManager()

            assert client.redis_client is not None

    def test_uninitialized_client_raises_when_enabled(self):
        client = CacheManager()
        client.redis_client = None

        with patch("assetgate.core.config.settings.current_environment", Environment.PRD):
            with pytest.raises(ValueError, match="not initialized"):
                _ = client.redis_client

    @pytest.mark.anyio
    async def test_health_check_without_redis(self):
        client = CacheManager()
        client.redis_client = None

        assert await client.health_check() is False

    @pytest.mark.anyio
    async def test_close_without_redis(self):
        client = CacheManager()
        client.redis_client = None

        await client.close()

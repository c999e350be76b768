from typing import AsyncGenerator, Callable
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from redis.asyncio import Redis

from assetgate.core.auth import create_access_token
from assetgate.core.constants import Role, Tier
from assetgate.main import app
from assetgate.schemas import SessionClaims
from tests.utils import Clock, InMemoryCooldownStore, InMemoryOtpStore

DEFAULT_PASSWORD = "P@ssword123"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def default_password() -> str:
    return DEFAULT_PASSWORD


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def mock_redis_client() -> AsyncMock:
    """Create a mock Redis client."""
    mock_redis = AsyncMock(spec=Redis)
    mock_redis.ping = AsyncMock(return_value=True)
    mock_redis.get = AsyncMock(return_value=None)
    mock_redis.set = AsyncMock(return_value=True)
    mock_redis.setex = AsyncMock(return_value=True)
    mock_redis.delete = AsyncMock(return_value=1)
    mock_redis.exists = AsyncMock(return_value=0)
    mock_redis.incr = AsyncMock(return_value=1)
    mock_redis.expire = AsyncMock(return_value=True)
    mock_redis.eval = AsyncMock(return_value=1)
    mock_redis.aclose = AsyncMock()
    mock_redis.pipeline = Mock()

    # Setup pipeline mock
    mock_pipeline = AsyncMock()
    mock_pipeline.zremrangebyscore = Mock(return_value=mock_pipeline)
    mock_pipeline.zadd = Mock(return_value=mock_pipeline)
    mock_pipeline.zcard = Mock(return_value=mock_pipeline)
    mock_pipeline.expire = Mock(return_value=mock_pipeline)
    mock_pipeline.execute = AsyncMock(return_value=[0, 1, 5, True])
    mock_redis.pipeline.return_value = mock_pipeline

    return mock_redis


@pytest.fixture
def otp_codes() -> InMemoryOtpStore:
    return InMemoryOtpStore()


@pytest.fixture
def cooldowns() -> InMemoryCooldownStore:
    return InMemoryCooldownStore()


@pytest.fixture
def make_claims() -> Callable[..., SessionClaims]:
    def _make(user_id: int = 1, role: Role = Role.USER, tier: Tier = Tier.FREE, **kwargs):
        return SessionClaims(user_id=user_id, role=role, tier=tier, **kwargs)

    return _make


@pytest.fixture
def make_access_token() -> Callable[[SessionClaims], str]:
    def _make(claims: SessionClaims) -> str:
        return create_access_token(claims)["token"]

    return _make


@pytest.fixture
def test_app() -> FastAPI:
    """The application; dependency overrides are cleared after each test."""
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        yield ac

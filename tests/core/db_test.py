from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from assetgate.core.config import settings
from assetgate.core.db import async_session_factory, engine, get_session, meta, session_factory


class TestDatabaseConfiguration:
    """Test engine, metadata and session factory configuration."""

    def test_async_engine_for_requests(self):
        assert isinstance(engine, AsyncEngine)
        assert engine.dialect.is_async
        assert engine.url.drivername == "postgresql+asyncpg"

    def test_metadata_schema_and_conventions(self):
        assert meta.schema == settings.postgres_db_schema
        assert set(meta.naming_convention) >= {"pk", "fk", "ix", "uq", "ck"}

    def test_sessions_keep_attributes_after_commit(self):
        assert async_session_factory.kw["expire_on_commit"] is False
        assert session_factory.kw["expire_on_commit"] is False

    def test_sync_factory_uses_psycopg(self):
        assert session_factory.kw["bind"].url.drivername == "postgresql+psycopg"


def _session_context(session: MagicMock) -> MagicMock:
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


@pytest.mark.anyio
class TestGetSession:
    """Test the request-scoped session dependency."""

    async def test_commits_on_success(self):
        session = MagicMock(commit=AsyncMock(), rollback=AsyncMock(), close=AsyncMock())

        with patch(
            "assetgate.core.db.async_session_factory", return_value=_session_context(session)
        ):
            generator = get_session()
            assert await anext(generator) is session
            with pytest.raises(StopAsyncIteration):
                await anext(generator)

        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()
        session.close.assert_awaited_once()

    async def test_rollback_on_exception(self):
        session = MagicMock(commit=AsyncMock(), rollback=AsyncMock(), close=AsyncMock())

        with patch(
            "assetgate.core.db.async_session_factory", return_value=_session_context(session)
        ):
            generator = get_session()
            await anext(generator)
            with pytest.raises(ValueError):
                await generator.athrow(ValueError("boom"))

        session.commit.assert_not_awaited()
        session.rollback.assert_awaited_once()
        session.close.assert_awaited_once()

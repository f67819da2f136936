"""
Tests for the connection pool lifecycle.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pgcrud.database.pool import DatabasePool, PoolNotInitializedError


def _fake_asyncpg_pool(connection):
    pool = MagicMock()
    pool.close = AsyncMock()

    @asynccontextmanager
    async def acquire():
        yield connection

    pool.acquire = acquire
    return pool


class TestDatabasePoolConfig:
    """Settings resolution."""

    def test_dsn_from_environment(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_CONNECTION_STRING", "postgres://env/db")

        assert DatabasePool().dsn == "postgres://env/db"
        assert DatabasePool.from_env().dsn == "postgres://env/db"

    def test_explicit_dsn_wins(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_CONNECTION_STRING", "postgres://env/db")

        assert DatabasePool("postgres://explicit/db").dsn == "postgres://explicit/db"

    def test_from_env_accepts_explicit_dsn(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_CONNECTION_STRING", "postgres://env/db")

        pool = DatabasePool.from_env(dsn="postgres://explicit/db", max_size=3)

        assert pool.dsn == "postgres://explicit/db"
        assert pool.max_size == 3

    def test_ssl_required_in_production(self, monkeypatch):
        monkeypatch.setenv("PGCRUD_ENV", "production")

        assert DatabasePool("postgres://x/db").ssl == "require"

    def test_ssl_disabled_in_development(self, monkeypatch):
        monkeypatch.setenv("PGCRUD_ENV", "development")

        assert DatabasePool("postgres://x/db").ssl is False

    def test_explicit_ssl_wins(self, monkeypatch):
        monkeypatch.setenv("PGCRUD_ENV", "production")

        assert DatabasePool("postgres://x/db", ssl=False).ssl is False


class TestDatabasePoolLifecycle:
    """open / acquire / close."""

    @pytest.mark.asyncio
    async def test_acquire_before_open(self):
        pool = DatabasePool("postgres://x/db")

        with pytest.raises(PoolNotInitializedError):
            async with pool.acquire():
                pass

    @pytest.mark.asyncio
    async def test_open_acquire_close(self):
        connection = AsyncMock()
        fake = _fake_asyncpg_pool(connection)

        with patch("pgcrud.database.pool.asyncpg.create_pool", AsyncMock(return_value=fake)) as create_pool:
            pool = DatabasePool("postgres://x/db", ssl=False, min_size=2, max_size=5)
            await pool.open()
            await pool.open()

            create_pool.assert_awaited_once()
            kwargs = create_pool.await_args.kwargs
            assert kwargs["dsn"] == "postgres://x/db"
            assert kwargs["ssl"] is False
            assert kwargs["min_size"] == 2
            assert kwargs["max_size"] == 5
            assert pool.is_open

            async with pool.acquire() as acquired:
                assert acquired is connection

            await pool.close()

        fake.close.assert_awaited_once()
        assert not pool.is_open
        with pytest.raises(PoolNotInitializedError):
            async with pool.acquire():
                pass

    @pytest.mark.asyncio
    async def test_async_context_manager(self):
        fake = _fake_asyncpg_pool(AsyncMock())

        with patch("pgcrud.database.pool.asyncpg.create_pool", AsyncMock(return_value=fake)):
            async with DatabasePool("postgres://x/db") as pool:
                assert pool.is_open

        assert not pool.is_open
        fake.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_when_never_opened(self):
        await DatabasePool("postgres://x/db").close()

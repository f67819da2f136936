"""
Connection pool lifecycle.

One :class:`DatabasePool` is created per process by the application, opened
at startup, handed to every :class:`~pgcrud.database.service.DatabaseService`
and closed at shutdown.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

import asyncpg

from pgcrud.logging_config import get_logger
from pgcrud.settings import get_database_url, is_production

logger = get_logger(__name__)


class PoolNotInitializedError(RuntimeError):
    """Raised when the pool is used before ``open()`` or after ``close()``."""


class DatabasePool:
    """Owns an asyncpg pool with an explicit open/close lifecycle."""

    def __init__(
        self,
        dsn: Optional[str] = None,
        ssl: Union[str, bool, None] = None,
        min_size: int = 1,
        max_size: int = 10,
    ):
        self.dsn = dsn or get_database_url()
        self.ssl = ssl if ssl is not None else ("require" if is_production() else False)
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[asyncpg.Pool] = None

    @classmethod
    def from_env(cls, **kwargs) -> "DatabasePool":
        """
        Create a pool configured from ``POSTGRES_CONNECTION_STRING`` and ``PGCRUD_ENV``.

        Keyword arguments are passed to the constructor; an explicit ``dsn``
        takes precedence over the environment.
        """
        kwargs.setdefault("dsn", get_database_url())
        return cls(**kwargs)

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    async def open(self) -> "DatabasePool":
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                dsn=self.dsn,
                ssl=self.ssl,
                min_size=self.min_size,
                max_size=self.max_size,
                init=self._on_connect,
            )
            logger.info("Database pool opened (min_size=%d, max_size=%d)", self.min_size, self.max_size)
        return self

    async def close(self) -> None:
        if self._pool is not None:
            pool, self._pool = self._pool, None
            await pool.close()
            logger.info("Database pool closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection for the duration of the ``async with`` block."""
        if self._pool is None:
            raise PoolNotInitializedError("Database pool is not open; call open() first")
        async with self._pool.acquire() as connection:
            yield connection

    @staticmethod
    async def _on_connect(connection: asyncpg.Connection) -> None:
        logger.debug("Connected to the database")

    async def __aenter__(self) -> "DatabasePool":
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

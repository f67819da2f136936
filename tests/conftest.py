"""
Test configuration and fixtures for the pgcrud test suite.
Provides mocked database/S3 collaborators, an optional real database pool
and common test utilities.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import boto3
import pytest
import pytest_asyncio
from moto import mock_aws

from pgcrud.database.pool import DatabasePool
from pgcrud.database.service import DatabaseService
from pgcrud.query_builder.conditions import Condition, ConditionGroup
from pgcrud.storage.config import UploaderConfig
from pgcrud.storage.uploader import FileUploaderService
from tests.helpers import TEST_BASE_URL, TEST_BUCKET_NAME, TEST_DATABASE_URL, TEST_TABLE_SQL


@pytest.fixture
def mock_asyncpg_connection() -> AsyncMock:
    """Provide a mock asyncpg connection for unit testing."""
    mock_conn = AsyncMock(spec=asyncpg.Connection)
    mock_conn.fetch = AsyncMock(return_value=[])
    mock_conn.fetchval = AsyncMock()
    mock_conn.execute = AsyncMock()

    # connection.transaction() is a plain call returning an async context manager
    transaction = MagicMock()
    transaction.__aenter__ = AsyncMock(return_value=transaction)
    transaction.__aexit__ = AsyncMock(return_value=False)
    mock_conn.transaction = MagicMock(return_value=transaction)
    return mock_conn


@pytest.fixture
def mock_database_pool(mock_asyncpg_connection: AsyncMock) -> MagicMock:
    """Provide a DatabasePool double whose acquire() yields the mock connection."""
    pool = MagicMock(spec=DatabasePool)

    @asynccontextmanager
    async def acquire():
        yield mock_asyncpg_connection

    pool.acquire = acquire
    return pool


@pytest.fixture
def user_service(mock_database_pool: MagicMock) -> DatabaseService:
    """Provide a DatabaseService for the users table backed by mocks."""
    return DatabaseService("users", mock_database_pool)


@pytest.fixture
def nested_group() -> ConditionGroup:
    """(status = 'active' AND age >= 18) OR (department = 'IT' AND experience >= 5)"""
    return ConditionGroup(
        logic="OR",
        conditions=[
            ConditionGroup(
                logic="AND",
                conditions=[
                    Condition(field="status", operator="=", value="active"),
                    Condition(field="age", operator=">=", value=18),
                ],
            ),
            ConditionGroup(
                logic="AND",
                conditions=[
                    Condition(field="department", operator="=", value="IT"),
                    Condition(field="experience", operator=">=", value=5),
                ],
            ),
        ],
    )


@pytest.fixture
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fake credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def mocked_aws(aws_credentials) -> Generator:
    """Run the test against moto's in-memory S3 with the test bucket created."""
    with mock_aws():
        s3_client = boto3.client("s3", region_name="us-east-1")
        s3_client.create_bucket(Bucket=TEST_BUCKET_NAME)
        yield s3_client


@pytest.fixture
def uploader(mocked_aws) -> FileUploaderService:
    """Provide a FileUploaderService wired to the mocked S3 client."""
    config = UploaderConfig(base_remote_url=TEST_BASE_URL, region="us-east-1")
    return FileUploaderService(config=config, s3_client=mocked_aws)


@pytest_asyncio.fixture
async def db_pool() -> AsyncGenerator[DatabasePool, None]:
    """Open a real pool against TEST_DATABASE_URL, skipping when it is unreachable."""
    pool = DatabasePool(TEST_DATABASE_URL, ssl=False, min_size=1, max_size=4)
    try:
        await asyncio.wait_for(pool.open(), timeout=5)
    except (OSError, asyncpg.PostgresError, asyncio.TimeoutError) as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    async with pool.acquire() as conn:
        await conn.execute(TEST_TABLE_SQL)
    try:
        yield pool
    finally:
        async with pool.acquire() as conn:
            await conn.execute("DROP TABLE IF EXISTS pgcrud_test_users")
        await pool.close()


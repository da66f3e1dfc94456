"""Database manager: failures surface as StorageFailure / ConfigurationError."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest

from adboard.core import database
from adboard.core.database import DatabaseManager
from adboard.core.errors import ConfigurationError, StorageFailure


@pytest.fixture
def conn():
    connection = MagicMock()
    connection.fetchrow = AsyncMock()
    return connection


@pytest.fixture
def manager(conn, monkeypatch):
    monkeypatch.setattr(database, 'RETRY_DELAY_BASE', 0)

    @asynccontextmanager
    async def acquire():
        yield conn

    db = DatabaseManager('postgresql://test')
    db.pool = MagicMock()
    db.pool.acquire = acquire
    return db


async def test_missing_database_url_is_configuration_error(monkeypatch):
    monkeypatch.setattr(database.settings, 'database_url', '')

    with pytest.raises(ConfigurationError):
        await DatabaseManager().connect()


async def test_query_error_is_not_retried(manager, conn):
    conn.fetchrow.side_effect = asyncpg.UndefinedTableError('relation "api_tokens" does not exist')

    with pytest.raises(StorageFailure, match='Database operation failed'):
        await manager.fetch_one('SELECT 1')

    assert conn.fetchrow.await_count == 1


async def test_bad_argument_is_not_retried(manager, conn):
    conn.fetchrow.side_effect = asyncpg.DataError('invalid input for query argument $1')

    with pytest.raises(StorageFailure, match='Database operation failed'):
        await manager.fetch_one('SELECT * FROM leads WHERE id = $1', 'not-a-uuid')

    assert conn.fetchrow.await_count == 1


async def test_transient_error_is_retried_then_succeeds(manager, conn):
    conn.fetchrow.side_effect = [asyncpg.InterfaceError('connection is closed'), {'ok': 1}]

    assert await manager.fetch_one('SELECT 1 AS ok') == {'ok': 1}
    assert conn.fetchrow.await_count == 2


async def test_transient_errors_exhaust_retries(manager, conn):
    conn.fetchrow.side_effect = asyncpg.InterfaceError('connection is closed')

    with pytest.raises(StorageFailure, match='Database unavailable'):
        await manager.fetch_one('SELECT 1')

    assert conn.fetchrow.await_count == database.MAX_RETRIES


async def test_health_check_reports_unreachable_database(monkeypatch):
    monkeypatch.setattr(database.settings, 'database_url', '')

    status = await DatabaseManager().health_check()

    assert status['status'] == 'unhealthy'
    assert status['connected'] is False

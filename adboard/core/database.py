# adboard/core/database.py
"""
PostgreSQL access for the adboard stores.

One asyncpg pool per process, created lazily on first use. Every query runs
through ``_run``, which retries connection-level failures with exponential
backoff and converts whatever escapes into ``StorageFailure``:

    row = await db_manager.fetch_one("SELECT * FROM api_tokens WHERE user_id = $1", user_id)

asyncpg exceptions never reach the stores or the routers.
"""

import asyncio
import logging
from typing import Any, List, Optional

import asyncpg

from adboard.config.settings import settings
from adboard.core.errors import ConfigurationError, StorageFailure

logger = logging.getLogger(__name__)

__all__ = [
    'DatabaseManager',
    'db_manager',
]

MAX_RETRIES = 3
RETRY_DELAY_BASE = 0.1  # seconds; doubles each attempt

# Worth another attempt on a fresh connection
TRANSIENT_ERRORS = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    asyncpg.InternalClientError,
    ConnectionResetError,
    ConnectionRefusedError,
    TimeoutError,
)

# The pool itself is suspect after these
POOL_BREAKING_ERRORS = (asyncpg.PostgresConnectionError, ConnectionResetError)


class DatabaseManager:
    """asyncpg pool wrapper with retry and error translation"""

    def __init__(self, database_url: Optional[str] = None):
        self._database_url = database_url
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_lock = asyncio.Lock()

    @property
    def database_url(self) -> str:
        return self._database_url or settings.database_url

    async def connect(self) -> None:
        if self.pool is not None:
            return
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL is not configured")

        async with self._pool_lock:
            if self.pool is not None:
                return
            try:
                self.pool = await asyncpg.create_pool(
                    self.database_url,
                    min_size=1,
                    max_size=10,
                    command_timeout=60,
                )
            except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
                logger.error(f"❌ Could not open database pool: {e}")
                raise StorageFailure("Database unavailable") from e
            logger.info("✅ Database pool ready")

    async def disconnect(self) -> None:
        if self.pool is None:
            return
        pool, self.pool = self.pool, None
        await pool.close()
        logger.info("🔌 Database pool closed")

    async def fetch_one(self, query: str, *args) -> Optional[asyncpg.Record]:
        return await self._run('fetchrow', query, args)

    async def fetch_all(self, query: str, *args) -> List[asyncpg.Record]:
        return await self._run('fetch', query, args)

    async def execute(self, query: str, *args) -> str:
        return await self._run('execute', query, args)

    async def _run(self, method: str, query: str, args: tuple) -> Any:
        """Run ``conn.<method>(query, *args)`` with retries on transient failures"""
        for attempt in range(1, MAX_RETRIES + 1):
            await self.connect()
            try:
                async with self.pool.acquire() as conn:
                    return await getattr(conn, method)(query, *args)

            except asyncpg.DataError as e:
                # Arguments asyncpg could not encode; InterfaceError subclass
                logger.error(f"❌ Database {method} rejected arguments: {e}")
                raise StorageFailure("Database operation failed") from e

            except TRANSIENT_ERRORS as e:
                if attempt == MAX_RETRIES:
                    logger.error(f"❌ Database {method} gave up after {MAX_RETRIES} attempts: {e}")
                    raise StorageFailure("Database unavailable") from e

                delay = RETRY_DELAY_BASE * 2 ** (attempt - 1)
                logger.warning(f"⚠️ Database {method} attempt {attempt}/{MAX_RETRIES} failed, retry in {delay:.2f}s: {e}")
                await asyncio.sleep(delay)
                if isinstance(e, POOL_BREAKING_ERRORS):
                    await self._recycle_pool()

            except asyncpg.PostgresError as e:
                # Bad SQL, constraint violations: retrying gives the same answer
                logger.error(f"❌ Database {method} rejected: {e}")
                raise StorageFailure("Database operation failed") from e

    async def _recycle_pool(self) -> None:
        logger.info("🔄 Recycling database pool")
        await self.disconnect()
        try:
            await self.connect()
        except StorageFailure:
            # Next attempt reconnects
            pass

    async def health_check(self) -> dict:
        """Round-trip a trivial query; never raises"""
        try:
            row = await self.fetch_one("SELECT NOW() AS server_time")
        except (StorageFailure, ConfigurationError) as e:
            logger.error(f"❌ Database health check failed: {e}")
            return {"status": "unhealthy", "connected": False, "error": str(e)}

        status = {
            "status": "healthy",
            "connected": True,
            "server_time": row["server_time"].isoformat() if row else None,
        }
        if self.pool is not None:
            status["pool_size"] = self.pool.get_size()
            status["pool_idle"] = self.pool.get_idle_size()
        return status


# Global instance
db_manager = DatabaseManager()

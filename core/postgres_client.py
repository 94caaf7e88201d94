"""
PostgreSQL Client Wrapper

Centralized asyncpg pool wrapper with configuration from InfraConfig.
Provides a consistent database access pattern for reads and hands out
dedicated connections for explicit transactions.

Usage:
    from core.postgres_client import PostgresClient

    db = PostgresClient("inventory_service")

    # Execute queries
    async with db:
        rows = await db.query("SELECT * FROM inventory.inventory_items WHERE product_id = $1", [product_id])
"""

import logging
from typing import Any, Dict, List, Optional

import asyncpg

from core.config import InfraConfig

logger = logging.getLogger(__name__)


class PostgresClient:
    """
    PostgreSQL client wrapper around an asyncpg connection pool.

    Provides:
    - Lazy pool creation from InfraConfig
    - query / query_row / execute helpers returning plain dicts
    - acquire() for callers that manage their own transaction
    """

    def __init__(
        self,
        service_name: str,
        config: Optional[InfraConfig] = None,
        dsn: Optional[str] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        """
        Initialize PostgreSQL client wrapper.

        Args:
            service_name: Name of the service using this client
            config: Infrastructure config (loaded from environment if not provided)
            dsn: Full DSN override
            min_size: Pool minimum size override
            max_size: Pool maximum size override
        """
        if config is None:
            config = InfraConfig.from_env()

        self.service_name = service_name
        self.dsn = dsn or config.postgres_dsn
        self.min_size = min_size or config.postgres_pool_min
        self.max_size = max_size or config.postgres_pool_max
        self._pool: Optional[asyncpg.Pool] = None

        logger.info(
            f"PostgreSQL client initialized for {service_name}: "
            f"{config.postgres_host}:{config.postgres_port}/{config.postgres_db}"
        )

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError(f"PostgreSQL pool for {self.service_name} is not connected")
        return self._pool

    async def connect(self):
        """Create the connection pool (idempotent)"""
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                dsn=self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                server_settings={"application_name": self.service_name},
            )
            logger.info(f"PostgreSQL pool ready for {self.service_name} (max_size={self.max_size})")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        # Pool stays open for the life of the process
        return False

    def acquire(self):
        """Acquire a dedicated connection from the pool (async context manager)"""
        return self.pool.acquire()

    async def health_check(self) -> Dict[str, Any]:
        """Check database health"""
        try:
            await self.connect()
            version = await self.pool.fetchval("SELECT version()")
            return {"healthy": True, "version": version}
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return {"healthy": False, "error": str(e)}

    async def query(self, sql: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        """Execute query and return results"""
        rows = await self.pool.fetch(sql, *(params or []))
        return [dict(row) for row in rows]

    async def query_row(self, sql: str, params: Optional[List[Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute query and return single row"""
        row = await self.pool.fetchrow(sql, *(params or []))
        return dict(row) if row else None

    async def execute(self, sql: str, params: Optional[List[Any]] = None) -> str:
        """Execute SQL statement, returning the command status"""
        return await self.pool.execute(sql, *(params or []))

    async def close(self):
        """Close the pool"""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info(f"PostgreSQL pool closed for {self.service_name}")


__all__ = ["PostgresClient"]

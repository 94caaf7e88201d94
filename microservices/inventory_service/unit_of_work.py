"""
Inventory Service Unit of Work

Explicit begin/commit/rollback boundary over one pooled asyncpg connection.
Every mutating inventory operation runs inside exactly one unit of work so
that a multi-row change either commits as a whole or leaves nothing behind,
including when the calling task is cancelled mid-transaction.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

import asyncpg
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.postgres_client import PostgresClient

from .protocols import DataIntegrityError, TransactionConflictError, UnitOfWorkFactory, UnitOfWorkProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE 40P01, 40001, 55P03
TRANSIENT_ERRORS = (
    asyncpg.exceptions.DeadlockDetectedError,
    asyncpg.exceptions.SerializationError,
    asyncpg.exceptions.LockNotAvailableError,
)

ISOLATION_LEVELS = {"read_committed", "repeatable_read", "serializable"}


class PostgresUnitOfWork:
    """Transaction on a dedicated pooled connection"""

    def __init__(self, client: PostgresClient, isolation: str = "read_committed", lock_timeout_ms: int = 5000):
        if isolation not in ISOLATION_LEVELS:
            raise ValueError(f"isolation must be one of {sorted(ISOLATION_LEVELS)}, got {isolation!r}")
        self._client = client
        self._isolation = isolation
        self._lock_timeout_ms = int(lock_timeout_ms)
        self._conn: Optional[asyncpg.Connection] = None
        self._tx = None

    @property
    def connection(self) -> asyncpg.Connection:
        if self._conn is None:
            raise RuntimeError("Unit of work is not active")
        return self._conn

    @property
    def active(self) -> bool:
        return self._tx is not None

    async def begin(self) -> None:
        if self._tx is not None:
            raise RuntimeError("Unit of work already started")
        self._conn = await self._client.pool.acquire()
        try:
            self._tx = self._conn.transaction(isolation=self._isolation)
            await self._tx.start()
            if self._lock_timeout_ms > 0:
                await self._conn.execute(f"SET LOCAL lock_timeout = '{self._lock_timeout_ms}ms'")
        except BaseException:
            await self._release()
            raise

    async def commit(self) -> None:
        try:
            await self._tx.commit()
        finally:
            await self._release()

    async def rollback(self) -> None:
        if self._tx is None:
            return
        try:
            await self._tx.rollback()
        finally:
            await self._release()

    async def _release(self) -> None:
        conn, self._conn, self._tx = self._conn, None, None
        if conn is not None:
            await self._client.pool.release(conn)

    async def __aenter__(self) -> "PostgresUnitOfWork":
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            if self.active:
                await self.rollback()
            _translate(exc_val)
            return False

        try:
            await self.commit()
        except asyncpg.PostgresError as e:
            _translate(e)
            raise
        return False


def _translate(exc: Optional[BaseException]) -> None:
    """Map driver errors that carry inventory meaning onto service errors"""
    if isinstance(exc, TRANSIENT_ERRORS):
        raise TransactionConflictError(f"Transaction conflict: {exc}") from exc
    if isinstance(exc, asyncpg.exceptions.CheckViolationError):
        raise DataIntegrityError(f"Ledger constraint violated: {exc}") from exc


class PostgresUnitOfWorkFactory:
    """Creates a fresh PostgresUnitOfWork per attempt"""

    def __init__(self, client: PostgresClient, isolation: str = "read_committed", lock_timeout_ms: int = 5000):
        self.client = client
        self.isolation = isolation
        self.lock_timeout_ms = lock_timeout_ms

    def __call__(self) -> PostgresUnitOfWork:
        return PostgresUnitOfWork(self.client, isolation=self.isolation, lock_timeout_ms=self.lock_timeout_ms)


async def run_atomic(
    uow_factory: UnitOfWorkFactory,
    work: Callable[[UnitOfWorkProtocol], Awaitable[T]],
    attempts: int = 3,
    max_wait: float = 1.0,
) -> T:
    """
    Run `work` inside a new unit of work, committing on success.

    A TransactionConflictError rolls back and re-runs the whole unit of work
    with exponential backoff, up to `attempts` times. Any other exception
    rolls back and propagates.
    """
    result = None
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=0.05, max=max_wait),
        retry=retry_if_exception_type(TransactionConflictError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            async with uow_factory() as uow:
                result = await work(uow)
    return result


__all__ = [
    "TRANSIENT_ERRORS",
    "PostgresUnitOfWork",
    "PostgresUnitOfWorkFactory",
    "run_atomic",
]

"""
DatabaseService: async engine, sessions and transactions.

Purpose
-------
Own one SQLAlchemy async engine and session factory, and hand out sessions
with clear transaction semantics. It is the only place that commits or rolls
back.

Responsibilities
----------------
- Build the engine from `Config` (or explicit arguments) and dispose it.
- `get_session()`: a plain session for reads.
- `get_transaction()`: a session inside one atomic transaction. It commits
  on success and rolls back on any exception, then re-raises.
- Apply a PostgreSQL `statement_timeout` to every transaction.
- Lightweight health check.

Design Notes
------------
- A DatabaseService is an instance. The SQL store receives one explicitly;
  nothing in the engine reaches for a process-wide handle.
- Never call `session.commit()` / `session.rollback()` inside a
  `get_transaction()` block.

Usage
-----
>>> db = DatabaseService(Config.DATABASE_URL)
>>> await db.initialize()
>>> async with db.get_transaction() as session:
...     row = await session.get(CharacterPoolsRow, 1, with_for_update=True)
...     row.stamina -= 10
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from netrunner.core.config.config import Config
from netrunner.core.exceptions import DatabaseNotInitializedError
from netrunner.core.logging.logger import get_logger

logger = get_logger(__name__)


class DatabaseService:
    """Async engine + session factory owner."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        pool_size: Optional[int] = None,
        max_overflow: Optional[int] = None,
        echo: Optional[bool] = None,
        statement_timeout_ms: Optional[int] = None,
        use_null_pool: bool = False,
    ) -> None:
        self.url = url or Config.DATABASE_URL
        self.pool_size = pool_size if pool_size is not None else Config.DATABASE_POOL_SIZE
        self.max_overflow = max_overflow if max_overflow is not None else Config.DATABASE_MAX_OVERFLOW
        self.echo = echo if echo is not None else Config.DATABASE_ECHO
        self.statement_timeout_ms = (
            statement_timeout_ms
            if statement_timeout_ms is not None
            else Config.DATABASE_STATEMENT_TIMEOUT_MS
        )
        self.use_null_pool = use_null_pool

        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._init_lock = asyncio.Lock()

    # ========================================================================
    # Lifecycle
    # ========================================================================

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith("postgresql")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseNotInitializedError()
        return self._engine

    async def initialize(self) -> None:
        """Create the engine and session factory. Idempotent."""
        async with self._init_lock:
            if self._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            engine_kwargs: dict[str, Any] = {"echo": self.echo}
            if self.use_null_pool:
                engine_kwargs["poolclass"] = NullPool
            else:
                engine_kwargs.update(
                    {
                        "pool_size": self.pool_size,
                        "max_overflow": self.max_overflow,
                        "pool_recycle": Config.DATABASE_POOL_RECYCLE,
                        "pool_pre_ping": True,
                    }
                )

            try:
                self._engine = create_async_engine(self.url, **engine_kwargs)
                self._session_factory = async_sessionmaker(
                    bind=self._engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                )
            except Exception as exc:
                logger.error(
                    "DatabaseService initialization failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise

            logger.info(
                "DatabaseService initialized",
                extra={
                    "url_scheme": self.url.split("://", 1)[0],
                    "null_pool": self.use_null_pool,
                    "pool_size": self.pool_size,
                },
            )

    async def shutdown(self) -> None:
        async with self._init_lock:
            if self._engine is None:
                return
            try:
                await self._engine.dispose()
                logger.info("DatabaseService shutdown complete")
            finally:
                self._engine = None
                self._session_factory = None

    async def health_check(self) -> bool:
        """Run `SELECT 1`; returns False instead of raising."""
        if self._engine is None:
            logger.warning("Health check called on uninitialized DatabaseService")
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (OperationalError, DBAPIError, OSError) as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

    # ========================================================================
    # Sessions
    # ========================================================================

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise DatabaseNotInitializedError()
        return self._session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session without automatic commit; for reads."""
        async with self._factory()() as session:
            logger.debug("Database session opened (read-only)")
            yield session

    @asynccontextmanager
    async def get_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session wrapped in an atomic transaction.

        Commits on success. On any exception rolls back, logs with context and
        re-raises the original exception.
        """
        start = time.perf_counter()
        async with self._factory()() as session:
            try:
                if self.is_postgres:
                    await session.execute(
                        text(f"SET LOCAL statement_timeout = {int(self.statement_timeout_ms)}")
                    )
                yield session
                await session.commit()
                logger.debug(
                    "Database transaction committed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )
            except (OperationalError, DBAPIError) as exc:
                await session.rollback()
                logger.error(
                    f"{type(exc).__name__} in transaction; rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                    exc_info=True,
                )
                raise
            except BaseException as exc:
                await session.rollback()
                logger.debug(
                    "Database transaction rolled back",
                    extra={
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
                raise

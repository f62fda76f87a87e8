"""
Database Service

Owns the single async engine and hands out sessions for quest persistence.

- `get_transaction()` is the way to write: it commits when the block exits
  normally and rolls back and re-raises on any exception, so a domain error
  raised mid-operation undoes every write made in the block. Service code
  never calls `session.commit()` itself.
- `get_session()` is for reads.
- PostgreSQL sessions get `SET LOCAL statement_timeout`.
- PostgreSQL outside tests uses a queue pool sized from `Config`; tests and
  SQLite use `NullPool`.

Example
-------
>>> async with DatabaseService.get_transaction() as session:
...     quest = await repo.find_for_update(session, quest_id)
...     quest.status = QuestStatus.CLAIMED.value
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from questline.core.config.config import Config
from questline.core.database.base import Base
from questline.core.logging.logger import get_logger

logger = get_logger(__name__)

STATEMENT_TIMEOUT_MS = 30_000


class DatabaseInitializationError(RuntimeError):
    """The URL is missing or invalid, or the engine could not be created."""


class DatabaseNotInitializedError(RuntimeError):
    """A session was requested before `DatabaseService.initialize()`."""


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


@dataclass(frozen=True)
class _EngineSettings:
    url: str
    dialect: str
    echo: bool = False
    pool_options: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_postgres(self) -> bool:
        return self.dialect == "postgresql"

    @classmethod
    def resolve(cls, url: Optional[str]) -> "_EngineSettings":
        database_url = url or Config.DATABASE_URL
        if not database_url:
            raise DatabaseInitializationError("DATABASE_URL is not configured")
        try:
            dialect = make_url(database_url).get_backend_name()
        except ArgumentError as exc:
            raise DatabaseInitializationError(f"Invalid database URL: {exc}") from exc

        if Config.is_testing() or dialect == "sqlite":
            pool_options: Dict[str, Any] = {"poolclass": NullPool}
        else:
            pool_options = {
                "pool_size": Config.DATABASE_POOL_SIZE,
                "max_overflow": Config.DATABASE_MAX_OVERFLOW,
                "pool_recycle": Config.DATABASE_POOL_RECYCLE,
                "pool_timeout": Config.DATABASE_POOL_TIMEOUT,
            }
        return cls(database_url, dialect, Config.DATABASE_ECHO, pool_options)


class DatabaseService:
    """Process-wide engine and session factory, used through classmethods."""

    _engine: Optional[AsyncEngine] = None
    _sessions: Optional[async_sessionmaker[AsyncSession]] = None
    _settings: Optional[_EngineSettings] = None
    _lock: asyncio.Lock = asyncio.Lock()

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Create the engine. A second call is a no-op until `shutdown()`.

        Args:
            url: Overrides `Config.DATABASE_URL`.

        Raises:
            DatabaseInitializationError
        """
        async with cls._lock:
            if cls._engine is not None:
                return

            settings = _EngineSettings.resolve(url)
            try:
                engine = create_async_engine(
                    settings.url, echo=settings.echo, **settings.pool_options
                )
            except Exception as exc:
                logger.error(
                    "Database engine creation failed",
                    extra={"dialect": settings.dialect, "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

            cls._engine = engine
            cls._sessions = async_sessionmaker(engine, expire_on_commit=False)
            cls._settings = settings
            logger.info(
                "DatabaseService initialized",
                extra={
                    "dialect": settings.dialect,
                    "pooled": "poolclass" not in settings.pool_options,
                },
            )

    @classmethod
    async def shutdown(cls) -> None:
        async with cls._lock:
            engine, cls._engine = cls._engine, None
            cls._sessions = None
            cls._settings = None
            if engine is not None:
                await engine.dispose()
                logger.info("DatabaseService shut down")

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None and cls._sessions is not None

    @classmethod
    async def create_all(cls) -> None:
        """Create missing tables for every registered model."""
        import questline.database.models  # noqa: F401  registers the models

        async with cls._require_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(
            "Database schema ensured",
            extra={"tables": sorted(Base.metadata.tables)},
        )

    @classmethod
    async def health_check(cls) -> bool:
        """`SELECT 1`; False when uninitialized or unreachable, never raises."""
        if not cls.is_initialized():
            return False
        started = time.perf_counter()
        try:
            async with cls._require_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (OperationalError, DBAPIError, OSError) as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "duration_ms": _elapsed_ms(started)},
            )
            return False
        return True

    @classmethod
    def _require_engine(cls) -> AsyncEngine:
        if not cls.is_initialized():
            raise DatabaseNotInitializedError(
                "Call DatabaseService.initialize() before using the database"
            )
        assert cls._engine is not None
        return cls._engine

    @classmethod
    @asynccontextmanager
    async def _open_session(cls) -> AsyncGenerator[AsyncSession, None]:
        cls._require_engine()
        assert cls._sessions is not None and cls._settings is not None

        async with cls._sessions() as session:
            if cls._settings.is_postgres:
                await session.execute(
                    text(f"SET LOCAL statement_timeout = {STATEMENT_TIMEOUT_MS}")
                )
            yield session

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """Session without automatic commit, for reads."""
        async with cls._open_session() as session:
            yield session

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on normal exit and rolls back on any exception."""
        started = time.perf_counter()
        async with cls._open_session() as session:
            try:
                yield session
                await session.commit()
            except BaseException as exc:
                await session.rollback()
                level = logging.ERROR if isinstance(exc, OperationalError) else logging.DEBUG
                logger.log(
                    level,
                    "Database transaction rolled back",
                    extra={
                        "error_type": type(exc).__name__,
                        "duration_ms": _elapsed_ms(started),
                    },
                    exc_info=level == logging.ERROR,
                )
                raise
        logger.debug("Database transaction committed", extra={"duration_ms": _elapsed_ms(started)})

"""Database engine lifecycle and session management."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app.config.settings import DatabaseConfig

# Import models so they are attached to Base.metadata before table creation
from app.models import Base  # noqa: F401 - ensures metadata is registered

logger = logging.getLogger(__name__)


class DatabaseUnavailable(RuntimeError):
    """Raised when no connection could be acquired within the configured attempts."""


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def backoff_delays(attempts: int, base_delay: float, max_delay: float) -> list[float]:
    """Return the sleep before each retry: base * 2**n, capped at max_delay."""

    return [min(max_delay, base_delay * (2**n)) for n in range(max(0, attempts - 1))]


class Database:
    """Process-wide handle owning the async engine and its session factory.

    Created once at startup, shared by every repository instance and disposed
    at shutdown.
    """

    def __init__(self, config: DatabaseConfig, *, echo: bool = False) -> None:
        self._config = config
        self.engine: AsyncEngine = self._create_engine(config, echo=echo)
        self.session_factory = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
            class_=AsyncSession,
        )

    @staticmethod
    def _create_engine(config: DatabaseConfig, *, echo: bool) -> AsyncEngine:
        """Create an async engine with environment-appropriate pooling."""

        url = make_url(config.url)
        engine_options: dict[str, Any] = {
            "echo": echo,
            "future": True,
            "pool_pre_ping": True,
        }

        if config.serverless:
            # Disable pooling when working with serverless databases.
            engine_options["poolclass"] = NullPool

        engine = create_async_engine(url, **engine_options)
        if url.get_backend_name() == "sqlite":
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    async def connect(self) -> int:
        """Wait for the database with bounded exponential backoff.

        Returns the number of attempts used; raises ``DatabaseUnavailable``
        once every attempt has failed.
        """

        attempts = self._config.connect_attempts
        delays = backoff_delays(
            attempts,
            self._config.connect_base_delay,
            self._config.connect_max_delay,
        )
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            logger.info("Connecting to database (%d/%d)...", attempt, attempts)
            try:
                async with self.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
            except (OperationalError, DBAPIError, OSError) as exc:
                last_error = exc
                logger.warning(
                    "Database connection failed (%d/%d): %s", attempt, attempts, exc
                )
                if attempt < attempts:
                    await asyncio.sleep(delays[attempt - 1])
                continue
            logger.info("Database connection established.")
            return attempt

        raise DatabaseUnavailable(
            f"Could not connect to the database after {attempts} attempts"
        ) from last_error

    async def init_models(self) -> None:
        """Create database tables if they do not exist."""

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Ensured database tables in default schema.")

    @asynccontextmanager
    async def session_scope(self) -> AsyncIterator[AsyncSession]:
        """Async context manager that yields a configured SQLAlchemy session."""

        async with self.session_factory() as session:
            yield session

    async def dispose(self) -> None:
        """Dispose of the engine and release pooled connections."""

        await self.engine.dispose()


__all__ = ["Database", "DatabaseUnavailable", "backoff_delays"]

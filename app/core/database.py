"""Database engine, session lifecycle and health checks.

The connection pool is a process-wide resource owned by ``db_client``. The
engine is created on first use and disposed on shutdown, so importing the
application never opens a connection.
"""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings
from app.utils.logging import get_logger, mask_url

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class DatabaseClient:
    """PostgreSQL client managing the pooled engine and sessions."""

    def __init__(self, url: Optional[str] = None):
        """Initialize database client.

        Args:
            url: SQLAlchemy async connection URL (defaults to settings)
        """
        self.url = url or settings.database_url
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        """Pooled engine, created on first access."""
        if self._engine is None:
            LOGGER.info(f"Creating database connection pool for {mask_url(self.url)}")
            self._engine = create_async_engine(
                self.url,
                pool_size=settings.db.pool_size,
                max_overflow=settings.db.max_overflow,
                pool_timeout=settings.db.pool_timeout,
                pool_recycle=settings.db.pool_recycle,
                pool_pre_ping=True,
                echo=settings.db.echo,
                # asyncpg connect timeout, in seconds
                connect_args={"timeout": settings.db.connect_timeout},
            )
            self._session_maker = async_sessionmaker(
                self._engine, class_=AsyncSession, expire_on_commit=False
            )
        return self._engine

    @property
    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        if self._session_maker is None:
            _ = self.engine
        return self._session_maker

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Acquire a session from the pool; it is released on exit."""
        async with self.session_maker() as session:
            try:
                yield session
            finally:
                await session.close()

    async def ping(self) -> bool:
        """Return True when the database answers ``SELECT 1``."""
        try:
            async with self.engine.connect() as conn:
                await conn.scalar(text("SELECT 1"))
            return True
        except Exception as e:
            LOGGER.warning(f"Database ping failed: {e}")
            return False

    async def disconnect(self) -> None:
        """Dispose the pool. A later access recreates it."""
        if self._engine is None:
            return
        try:
            await self._engine.dispose()
            LOGGER.info("Database connection pool closed")
        except Exception as e:
            LOGGER.error(
                "Error closing database connection",
                exc_info=True,
                extra={"error": str(e)}
            )
        finally:
            self._engine = None
            self._session_maker = None

    async def health_check(self) -> dict:
        """Check database health, including round-trip latency in milliseconds."""
        start = time.perf_counter()
        try:
            async with self.engine.connect() as conn:
                val = await conn.scalar(text("SELECT 1"))
            elapsed_ms = round((time.perf_counter() - start) * 1000)
            return {
                "status": "healthy",
                "message": f"Connected successfully (SELECT 1 returned {val})",
                "responseTime": elapsed_ms,
            }
        except Exception as e:
            elapsed_ms = round((time.perf_counter() - start) * 1000)
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {
                "status": "unhealthy",
                "message": str(e) or type(e).__name__,
                "responseTime": elapsed_ms,
            }


# Global database client instance
db_client = DatabaseClient()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting async database session.

    Yields:
        AsyncSession: Database session
    """
    async with db_client.session() as session:
        yield session


async def close_database() -> None:
    """Close database connection."""
    LOGGER.info("Closing database connection...")
    await db_client.disconnect()

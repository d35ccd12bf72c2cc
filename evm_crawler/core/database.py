"""
Database configuration and session management.
Uses SQLAlchemy 2.0 with async support.
"""

from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine
)

from .config import Settings, settings as default_settings, DatabaseConfig
from .logging import get_logger

logger = get_logger(__name__)

# Global engine and session maker
async_engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def _ensure_sqlite_directory(url: str) -> None:
    parsed = make_url(url)
    if parsed.drivername.split("+")[0] != "sqlite":
        return
    if parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


async def init_database(config: Optional[Settings] = None) -> async_sessionmaker[AsyncSession]:
    """Initialize database connections and return the session maker."""
    global async_engine, async_session_maker

    config = config or default_settings
    url = DatabaseConfig.get_database_url(config)

    logger.info("Initializing database connections", url=make_url(url).render_as_string(hide_password=True))

    _ensure_sqlite_directory(url)

    async_engine = create_async_engine(
        url,
        **DatabaseConfig.get_engine_config(url, config),
        echo=config.debug
    )

    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    logger.info("Database connections initialized")
    return async_session_maker


async def close_database() -> None:
    """Close database connections."""
    global async_engine, async_session_maker

    logger.info("Closing database connections")

    if async_engine:
        await async_engine.dispose()

    async_engine = None
    async_session_maker = None

    logger.info("Database connections closed")


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the initialized session maker."""
    if not async_session_maker:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return async_session_maker


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get an async database session with automatic cleanup.

    Usage:
        async with get_async_session() as session:
            # Use session here
            pass
    """
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


class DatabaseManager:
    """Database manager for administrative operations."""

    @staticmethod
    async def create_tables() -> None:
        """Create all tables in the database."""
        from evm_crawler.models.base import Base
        import evm_crawler.models  # noqa: F401  registers the tables

        if not async_engine:
            raise RuntimeError("Database not initialized")

        logger.info("Creating database tables")
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    @staticmethod
    async def drop_tables() -> None:
        """Drop all tables in the database."""
        from evm_crawler.models.base import Base

        if not async_engine:
            raise RuntimeError("Database not initialized")

        logger.warning("Dropping all database tables")
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database tables dropped")

    @staticmethod
    async def health_check() -> bool:
        """Check database connectivity."""
        try:
            async with get_async_session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False

"""
Database session management for async SQLAlchemy operations.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlmodel import SQLModel

from ..config.settings import settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine; pool and timeout tuning only applies to asyncpg."""
    if "+asyncpg" not in database_url:
        return create_async_engine(database_url, echo=False)

    return create_async_engine(
        database_url,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,   # Detect stale connections before use
        pool_recycle=3600,    # Recycle connections every hour
        pool_timeout=30,      # Wait max 30s for connection from pool
        connect_args={
            "command_timeout": 30,  # Timeout for individual queries (asyncpg)
            "server_settings": {
                "statement_timeout": "30000",  # PostgreSQL statement timeout (ms)
            },
        },
    )


engine = build_engine(settings.database_url)

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db(target: Optional[AsyncEngine] = None):
    """Initialize database tables."""
    async with (target or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def close_db():
    """Close database connections."""
    await engine.dispose()


@asynccontextmanager
async def get_session(
    session_factory: Optional[async_sessionmaker] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session that commits on success and rolls back on error.

    PostgreSQL statement_timeout (30s) handles stuck transactions at the
    database level, so commit() is not wrapped in asyncio.wait_for().
    """
    async with (session_factory or async_session_factory)() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Database session error, rolling back: {e}")
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    Use get_session() for non-FastAPI code (pipeline store, scripts).
    Use get_db() only as a FastAPI Depends() injection.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Database session error, rolling back: {e}")
            await session.rollback()
            raise

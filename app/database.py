"""Async engine and session factory for the appointment and notification tables."""

from collections.abc import AsyncGenerator

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings

logger = structlog.get_logger(__name__)

# asyncpg driver for a plain postgresql:// URL
DATABASE_URL = settings.database_url.replace("postgresql://", "postgresql+asyncpg://")

engine: AsyncEngine = create_async_engine(
    DATABASE_URL,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    pool_recycle=3600,
    connect_args={
        "server_settings": {
            "application_name": settings.app_name,
        },
    },
)

# Request handlers and background notification dispatch each open their own session
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Repositories decide when to commit; anything left uncommitted when the
    request fails is rolled back here.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """Run ``SELECT 1``; False when the database cannot be reached."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("database_unreachable", error=str(e))
        return False
    return True


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()
    logger.info("database_connections_closed")

"""
Database configuration and connection management for the account service.
Implements async SQLAlchemy with one engine per application instance.
"""
from typing import AsyncGenerator
from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
import structlog

from .config import Settings
from ..models.base import Base

logger = structlog.get_logger()


class Database:
    """Owns the async engine and session factory built from settings."""

    def __init__(self, settings: Settings):
        engine_kwargs = {"echo": settings.DATABASE_ECHO}
        if settings.DATABASE_URL.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            engine_kwargs["pool_pre_ping"] = True  # Validate connections before use

        self.engine = create_async_engine(settings.DATABASE_URL, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )

    async def create_all(self) -> None:
        """Create tables and unique indexes that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")

    async def check_connection(self) -> bool:
        """Check if database connection is healthy."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False

    async def dispose(self) -> None:
        """Close all database connections on shutdown."""
        await self.engine.dispose()
        logger.info("Database connections closed")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency that provides an async session.
    Handles rollback on error and connection cleanup.
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error("Database session error", error=str(e))
            raise

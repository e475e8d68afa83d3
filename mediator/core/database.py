"""
Database layer using SQLAlchemy Async.

Provides the async engine, session maker, and declarative base for the
durable conversation store.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from mediator.core.logger import logger


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Database:
    """
    Owner of one async engine and its session maker.

    Constructed explicitly and handed to whichever store needs it.
    """

    def __init__(self, url: str):
        self.url = url
        self._engine: AsyncEngine | None = None
        self._session_maker: async_sessionmaker[AsyncSession] | None = None

    async def init(self) -> None:
        """
        Create the engine and tables.

        Must be called in async context (e.g., FastAPI lifespan).
        Sets file permissions to 0o600 for file-backed SQLite on non-Windows systems.
        """
        # Table models register themselves with Base on import
        from mediator.conversations import models  # noqa: F401

        connect_args = {}
        if self.url.startswith("sqlite"):
            connect_args["check_same_thread"] = False  # Required for SQLite async

        self._engine = create_async_engine(
            self.url,
            echo=False,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        self._session_maker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        db_path = make_url(self.url).database
        if os.name != "nt" and self.url.startswith("sqlite") and db_path and db_path != ":memory:":
            try:
                os.chmod(db_path, 0o600)
            except OSError as e:
                logger.warning(f"Failed to set database permissions: {e}")

        logger.info(f"Database initialized: {self.url}")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Get an async database session.

        Must be used as async context manager:
            async with database.session() as session:
                ...
        """
        if self._session_maker is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        async with self._session_maker() as session:
            yield session

    async def close(self) -> None:
        """Dispose of the engine."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None
            logger.info("Database connection closed")

"""
Database Connection Module
Handles the async SQLAlchemy engine, session factory and schema creation.
"""

import logging
from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from orderhub.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


def build_engine(settings: Optional[Settings] = None, **overrides) -> AsyncEngine:
    """
    Create the async engine.

    The pool is bounded: at most db_pool_size + db_max_overflow connections
    are shared by every request and every order transaction.
    """
    settings = settings or get_settings()
    options = {"echo": settings.db_echo}

    if not settings.database_url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
        options["pool_pre_ping"] = True

    options.update(overrides)
    return create_async_engine(settings.database_url, **options)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory - creates new database sessions."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Objects remain accessible after commit
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Register models on the metadata
    from orderhub import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ Database tables created successfully")


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session from the application's session factory
    and ensures cleanup.
    """
    session_maker: async_sessionmaker[AsyncSession] = request.app.state.session_maker
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.close()

"""Async SQLAlchemy engine and session factory.

With DATABASE_URL set (postgresql+asyncpg://...), repositories open one
short session per store call from ``async_session_factory``.  Without
it, every export here is None and the portal runs on the in-memory
store.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for every table in app/db/tables.py."""


if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
    async_session_factory: async_sessionmaker[AsyncSession] | None = (
        async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    )
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def lifespan_db() -> AsyncIterator[None]:
    """Startup/shutdown hook for the engine.

    In dev the schema is created on startup so a fresh database works
    without running migrations; other environments rely on Alembic.
    """
    if engine is None:
        logger.info("No DATABASE_URL configured — using the in-memory store")
        yield
        return

    if SETTINGS.is_dev:
        import app.db.tables  # noqa: F401  registers tables on Base.metadata

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Dev schema ensured")

    logger.info("Database engine ready: %s", engine.url)
    yield
    await engine.dispose()
    logger.info("Database engine disposed")

"""
Engine and session management.

The API process owns one engine for its lifetime (``init_database`` /
``close_database``). Celery workers, scripts and tests build their own engine
with ``create_database_engine`` and a factory with ``create_session_factory``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings
from .models.base import Base

logger = logging.getLogger(__name__)

engine: Optional[AsyncEngine] = None
async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_database_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Build an engine for ``database_url`` (defaults to the configured one)."""
    settings = get_settings()
    url = database_url or settings.database_url

    if url.startswith("sqlite"):
        # A losing writer blocks on the file lock until the winner commits.
        return create_async_engine(url, echo=settings.debug, connect_args={"timeout": 30})

    return create_async_engine(
        url,
        echo=settings.debug,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        pool_recycle=1800,
        connect_args={"server_settings": {"application_name": "event_management_platform"}},
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Services keep using loaded rows after commit to build their responses.
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


async def create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database() -> None:
    global engine, async_session_factory

    engine = create_database_engine()
    async_session_factory = create_session_factory(engine)
    await create_tables(engine)
    logger.info("Database ready (%s)", engine.url.render_as_string(hide_password=True))


async def close_database() -> None:
    global engine, async_session_factory

    if engine is not None:
        await engine.dispose()
        logger.info("Database connections closed")
    engine = None
    async_session_factory = None


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session on the process-wide factory.

    Whatever is still pending when the block exits is committed; an exception
    rolls it back.
    """
    if async_session_factory is None:
        raise RuntimeError("init_database() has not been called")

    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_db_session() as session:
        yield session

"""Connections shared by the whole process: PostgreSQL and Redis.

Request handlers get a session through `get_session`; background work (the
retention job, the audit subscriber) opens its own from `async_session_factory`.
Redis only carries the per-application chat channels.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.config import settings

logger = logging.getLogger(__name__)

engine: AsyncEngine = create_async_engine(
    settings.db.database_url,
    echo=settings.log_level == "DEBUG",
    pool_size=settings.db.pool_size,
    max_overflow=settings.db.pool_overflow,
    pool_pre_ping=True,
    pool_recycle=3600,
)

# Lifecycle transitions read timestamps back after commit
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

redis_client: aioredis.Redis = aioredis.from_url(settings.db.redis_url, decode_responses=True)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; commits when the route returns, rolls back if it raises."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Check both backends answer, and create tables in non-production setups."""
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if settings.db.create_schema and not settings.is_production:
            from src.models import Base

            await conn.run_sync(Base.metadata.create_all)
            logger.info("Schema ensured via metadata.create_all")

    # Stored messages stay readable without Redis; only live streams break
    try:
        await redis_client.ping()
    except RedisError:
        logger.exception("Redis unreachable at startup; live chat streams will fail")


async def close_db() -> None:
    await engine.dispose()
    await redis_client.aclose()
    logger.info("Database and Redis connections closed")


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """Hold the PostgreSQL pool and Redis client open for the app's lifetime."""
    await init_db()
    try:
        yield
    finally:
        await close_db()

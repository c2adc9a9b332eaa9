"""
Async SQLAlchemy database session configuration.

Closing an event is serialized by locking the event row (SELECT ... FOR
UPDATE) and backed by the unique constraint on event_closures.event_id,
so the default READ COMMITTED isolation is enough: a waiting finalize
sees the winner's closure once the lock is released.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from src.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    if settings.is_sqlite:
        return {"echo": False}
    return {
        # NullPool is recommended for serverless environments behind a pooler
        "poolclass": NullPool,
        "echo": not settings.is_production,  # SQL logging in dev
        "connect_args": {
            "statement_cache_size": 0,  # Required for transaction poolers
        },
    }


# Create async engine
engine = create_async_engine(settings.database_url, **_engine_options())

# Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.
    Usage:
        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions.
    Use in non-FastAPI contexts (scripts, startup, etc).
    Usage:
        async with get_db_context() as db:
            result = await db.execute(...)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

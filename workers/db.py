"""Database sessions for Celery tasks."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from core.config import settings


@asynccontextmanager
async def task_session() -> AsyncIterator[AsyncSession]:
    """
    A session on a throwaway engine. Each task runs in its own event loop
    via asyncio.run, so pooled connections from another loop cannot be reused.
    """
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    try:
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with session_factory() as session:
            yield session
    finally:
        await engine.dispose()

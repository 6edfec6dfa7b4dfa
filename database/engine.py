import logging

from sqlalchemy import BigInteger, Integer
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from core.config import settings

logger = logging.getLogger(__name__)

# SQLite only autoincrements INTEGER primary keys
BigIntId = BigInteger().with_variant(Integer(), "sqlite")


def _engine_options() -> dict:
    options = {"echo": settings.database_echo, "pool_pre_ping": True}
    if not settings.is_sqlite:
        options["pool_size"] = settings.database_pool_size
        options["max_overflow"] = settings.database_max_overflow
    return options


db_engine = create_async_engine(settings.database_url, **_engine_options())


# Create async session maker to be used throughout the application
AsyncSessionLocal = async_sessionmaker(
    db_engine, class_=AsyncSession, expire_on_commit=False
)


# Base class for declarative models
class Base(DeclarativeBase):
    pass


# Dependency to get DB session
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


async def init_db():
    """Create tables for every registered model."""
    # Register models on Base.metadata
    import database.models.users  # noqa: F401
    import database.models.jobs  # noqa: F401
    import database.models.applications  # noqa: F401

    logger.info("Initializing database schema")
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Function to close database connections
async def close_db():
    """Close database engine and connections."""
    await db_engine.dispose()

"""
trickfish/database.py
Database engine, session factory and schema initialisation
"""
import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.pool import StaticPool

from trickfish.config import settings
from trickfish.orm.base import Base
import trickfish.orm  # noqa: F401 - registers every table on Base.metadata

logger = logging.getLogger(__name__)


def build_engine(database_url: str = None, echo: bool = None) -> AsyncEngine:
    """
    Create an async engine for `database_url`.

    In-memory SQLite shares one connection so every session sees the same
    database.
    """
    database_url = database_url or settings.DATABASE_URL
    echo = settings.DB_ECHO if echo is None else echo

    if not database_url:
        raise ValueError("DATABASE_URL environment variable is not set")

    if "sqlite" in database_url.lower():
        if ":memory:" in database_url:
            return create_async_engine(
                database_url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_async_engine(
            database_url,
            echo=echo,
            pool_pre_ping=True,
            connect_args={
                "timeout": 30.0,   # SQLite busy timeout in seconds
            }
        )

    # PostgreSQL/MySQL: Use standard pool
    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_timeout=30,
        pool_recycle=3600,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    logger.info("Initializing database...")
    logger.info(f"Database dialect: {engine.url.get_backend_name()}")
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise
    logger.info("✓ Database initialization complete")


async def drop_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def close_db(engine: AsyncEngine) -> None:
    """Close database connection"""
    await engine.dispose()
    logger.info("Database connection closed")

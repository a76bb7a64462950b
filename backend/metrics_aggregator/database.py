"""
Database configuration and engine management.
Uses PostgreSQL via asyncpg with SQLAlchemy 2 async engine.
SQLite is accepted for local runs and tests (install the `sqlite` extra for aiosqlite).
"""

import logging
from functools import lru_cache
from typing import Optional
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from metrics_aggregator.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores FOREIGN KEY clauses unless the pragma is set per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, settings: Optional[Settings] = None) -> AsyncEngine:
    """
    Create an async engine for the given URL.
    Pool sizing only applies to server databases; SQLite gets foreign keys switched on.
    """
    settings = settings or get_settings()
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=False,
            connect_args={"timeout": settings.db_connect_timeout},
        )
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        database_url,
        echo=False,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        connect_args={"timeout": settings.db_connect_timeout},  # Fail fast if DB unreachable
    )


@lru_cache
def get_engine() -> AsyncEngine:
    """Process-wide engine built from settings."""
    settings = get_settings()
    return build_engine(settings.database_url, settings)


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: Optional[AsyncEngine] = None):
    """
    Create all tables defined in models.
    Uses create_all which is safe — it only creates tables that don't exist yet.
    """
    # Import models to ensure they are registered with Base.metadata
    import metrics_aggregator.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"Database initialized with {len(Base.metadata.tables)} tables: "
                f"{', '.join(Base.metadata.tables.keys())}")


async def drop_and_recreate_db(engine: Optional[AsyncEngine] = None, settings: Optional[Settings] = None):
    """
    Drop all tables and recreate them. Destroys all generated data.
    Only allowed in development environments.
    """
    settings = settings or get_settings()
    if settings.is_production:
        raise RuntimeError(
            "drop_and_recreate_db() is disabled in production. "
            "Use Alembic migrations instead."
        )

    import metrics_aggregator.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database dropped and recreated.")


async def check_db_connection(engine: Optional[AsyncEngine] = None) -> bool:
    """Test database connectivity."""
    engine = engine or get_engine()
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False

"""
Database Configuration for User Management API
Async SQLAlchemy engine, session factory and declarative base.

Uniqueness of user and admin emails is backed by unique indexes; the
service-level pre-checks only produce friendlier errors.
"""

from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy import MetaData, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool, StaticPool

from usermanager.config.settings import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

# Database metadata with naming convention for constraints
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s"
    }
)

Base = declarative_base(metadata=metadata)

# Global engine and session maker
engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker] = None


def get_database_url(override: Optional[str] = None) -> str:
    """Get database URL with environment-specific configuration."""
    if override:
        return override
    if settings.TESTING:
        return settings.TEST_DATABASE_URL or settings.DATABASE_URL
    return settings.DATABASE_URL


def create_database_engine(database_url: str) -> AsyncEngine:
    """
    Create database engine.

    PostgreSQL gets a bounded connection pool; SQLite is used for local
    development and tests.
    """
    engine_kwargs = {
        "url": database_url,
        "echo": settings.DEBUG and not settings.TESTING,
    }

    if "sqlite" not in database_url:
        engine_kwargs.update({
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
            "pool_recycle": settings.DB_POOL_RECYCLE,
            "pool_pre_ping": True,
        })

        logger.info(
            "Configuring PostgreSQL connection pool",
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            timeout=settings.DB_POOL_TIMEOUT
        )
    else:
        # An in-memory database only lives as long as its single connection
        in_memory = ":memory:" in database_url
        engine_kwargs.update({
            "poolclass": StaticPool if in_memory else NullPool,
            "connect_args": {"check_same_thread": False}
        })

        logger.info("Configuring SQLite database", in_memory=in_memory)

    new_engine = create_async_engine(**engine_kwargs)

    @event.listens_for(new_engine.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        logger.debug("Database connection established")

    return new_engine


async def init_database(database_url: Optional[str] = None) -> None:
    """
    Initialize database connection and create tables.

    Called from the application lifespan on startup.
    """
    global engine, async_session_maker

    try:
        logger.info("Initializing database connection")

        engine = create_database_engine(get_database_url(database_url))

        async_session_maker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        async with engine.begin() as conn:
            # Import all models to ensure they're registered
            from usermanager.models import admin, user  # noqa: F401

            await conn.run_sync(Base.metadata.create_all)

            logger.info("Database tables created successfully")

        logger.info("Database initialization completed")

    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise


async def close_database() -> None:
    """
    Close database connections gracefully.

    Called from the application lifespan on shutdown.
    """
    global engine, async_session_maker

    if engine:
        logger.info("Closing database connections")
        await engine.dispose()
        engine = None
        async_session_maker = None
        logger.info("Database connections closed")


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get async database session.

    Commits when the request finishes cleanly and rolls back otherwise.

    Raises:
        RuntimeError: If database is not initialized
    """
    if not async_session_maker:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("Database session error", error=str(e))
            raise
        except Exception:
            await session.rollback()
            raise

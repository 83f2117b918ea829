from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from fastapi import Request
from app.core.config import Settings
from app.db.base import Base  # registers every model on the metadata
import logging
from typing import AsyncGenerator, Any, Dict
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE and FK checks unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def normalize_database_url(db_url: str) -> str:
    """
    Convert plain postgres URLs to use the asyncpg driver.
    """
    # If using postgresql://, convert to postgresql+asyncpg://
    if db_url.startswith('postgresql://'):
        return db_url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    # If using postgres://, convert to postgresql+asyncpg://
    if db_url.startswith('postgres://'):
        return db_url.replace('postgres://', 'postgresql+asyncpg://', 1)
    return db_url


class Database:
    """
    Owns the async engine and session factory for one application instance.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.url = normalize_database_url(settings.DATABASE_URL)

        engine_kwargs: Dict[str, Any] = {
            "echo": settings.SQL_ECHO,
            "future": True,
        }
        if self.url.startswith("postgresql+asyncpg"):
            logger.info("Using async database connection with asyncpg")
            engine_kwargs.update(
                pool_pre_ping=True,  # Verify connections before using them
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
                connect_args={"command_timeout": settings.DB_COMMAND_TIMEOUT},
            )

        self.engine: AsyncEngine = create_async_engine(self.url, **engine_kwargs)
        if self.url.startswith("sqlite"):
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
            autoflush=False,
        )

    async def initialize(self) -> bool:
        """
        Verify the connection and create tables when configured to.
        """
        async with self.engine.begin() as conn:
            if self.settings.DB_CREATE_ALL:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database connection initialized successfully")
        return True

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def close(self) -> None:
        """
        Close database connection pool.
        """
        await self.engine.dispose()
        logger.info("Database connection pool closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for database sessions outside of request handlers.
        """
        async with self.session_factory() as session:
            yield session


def get_database(request: Request) -> Database:
    return request.app.state.database


# Dependency to use in FastAPI endpoints
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides an async database session.
    """
    async with request.app.state.database.session() as session:
        yield session

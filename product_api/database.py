import logging
from typing import Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from product_api.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


def _engine_options(url: str, settings: Settings) -> dict:
    """Pool options for the given database URL."""
    if url.startswith("sqlite"):
        # One shared connection so in-memory databases survive between sessions
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }

    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": 0,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


class Database:
    """
    Storage handle owning an async engine and its connection pool.

    A handle is created once and passed to every `ProductService`; sessions are
    opened per operation and return their connection to the pool on exit.
    """

    def __init__(self, url: str, **engine_options):
        self.url = url
        self.engine = create_async_engine(url, **engine_options)
        self.session_factory = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings, is_test: bool = False) -> "Database":
        url = settings.database_url(is_test=is_test)
        return cls(url, **_engine_options(url, settings))

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def ping(self) -> None:
        """Run a trivial query; raises if the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()


_database: Optional[Database] = None


def acquire_database(is_test: bool = False, settings: Settings = None) -> Database:
    """
    Get a storage handle.

    The service handle is created on first use and shared afterwards. Test
    handles are always new, built from the TEST_ settings, and never replace
    the shared one.
    """
    global _database

    if _database is not None and not is_test:
        return _database

    database = Database.from_settings(settings or get_settings(), is_test=is_test)

    if not is_test:
        _database = database
        logger.info("Database connection pool created")

    return database


async def close_database(database: Database = None) -> None:
    """Dispose of the given handle, or of the shared one if none is given."""
    global _database

    if database is not None and database is not _database:
        await database.dispose()
    elif _database is not None:
        await _database.dispose()
        _database = None
        logger.info("Database connection pool closed")


def get_database(request: Request) -> Database:
    """
    Dependency to get the storage handle.
    Returns the handle stored on the application at startup.
    """
    return request.app.state.database

"""Async database engine and session management.

Provides the :class:`Database` holder for the async engine and session
factory using SQLAlchemy 2.x (asyncpg in production, aiosqlite in tests).
One instance is created at startup and passed to the services that need it.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from user_api.models.base import Base


def create_engine(database_url: str, **kwargs: object) -> AsyncEngine:
    """Create an async engine with pool defaults for server databases.

    Args:
        database_url: SQLAlchemy async connection string.
        **kwargs: Additional arguments passed to create_async_engine.

    Returns:
        The created async engine.
    """
    # Only set pool defaults for connection-pooled engines (not SQLite/StaticPool)
    uses_static_pool = kwargs.get("poolclass") is StaticPool or "sqlite" in database_url
    if not uses_static_pool:
        kwargs.setdefault("pool_size", 10)
        kwargs.setdefault("max_overflow", 5)
    return create_async_engine(database_url, **kwargs)


class Database:
    """Owns an async engine and its session factory."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, **kwargs: object) -> "Database":
        return cls(create_engine(database_url, **kwargs))

    async def create_all(self) -> None:
        """Create all tables.  Used by tests; deployments run Alembic migrations."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        """Execute a trivial query, raising if the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        """Dispose of the async engine and release connections."""
        await self.engine.dispose()

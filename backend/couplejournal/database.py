"""
CoupleJournal Backend - Database Session Management
=====================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   A `Database` object owns the engine and session factory. It is built
       explicitly in the app lifespan, stored on `app.state.database`, and
       handed to route handlers through `get_db_session`, which commits on
       success and rolls back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at startup and disposed at shutdown; sessions are
       created per request.

Connection Pooling Strategy (PostgreSQL):
    pool_size / max_overflow: from settings
    pool_pre_ping:            validates connections before use
    pool_recycle=3600:        recycles connections every hour

SQLite (tests, local hacking) uses the driver's default pool; in-memory
databases use a StaticPool so every session sees the same connection.
"""

import logging
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from couplejournal.config import settings

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so they share one metadata object,
    which Alembic reads for migrations and tests use for create_all().
    """
    pass


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool options appropriate for the database backend behind `url`."""
    if url.startswith("sqlite"):
        if ":memory:" in url:
            return {"poolclass": StaticPool}
        return {}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": 3600,
    }


class Database:
    """
    Explicitly constructed persistence handle.

    Lifecycle:
        db = Database(settings.database_url)   # startup
        async with db.session() as session: ...
        await db.dispose()                     # shutdown
    """

    def __init__(self, url: Optional[str] = None, echo: bool = False):
        self.url = url or settings.database_url
        self.engine: AsyncEngine = create_async_engine(
            self.url,
            echo=echo,
            **_engine_options(self.url),
        )
        # expire_on_commit=False: attributes stay readable after commit
        # (response serialization happens after the transaction ends)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        """Open a new session; use as `async with db.session() as s:`."""
        return self.session_factory()

    async def create_all(self) -> None:
        """Create every table known to Base.metadata (tests and first runs)."""
        # Import models so they register with Base.metadata
        from couplejournal import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Run SELECT 1; returns False instead of raising when unreachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the application's Database
        2. Yields it to the route handler (and to the auth guard, which
           shares the same session because FastAPI caches dependencies
           per request)
        3. On success: commits the transaction. Routes request it with
           scope="function" so the commit (and any commit error) happens
           before the response is sent
        4. On error: rolls back and re-raises for the global handlers
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/entries")
        async def list_entries(db: AsyncSession = Depends(get_db_session, scope="function")):
            ...
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

"""
Bazaar Backend — Database Session Management
=============================================

What:  Async SQLAlchemy engine + session factory wrapped in an explicitly
       constructed Database object, and the FastAPI session dependency.
How:   create_app() receives (or builds) a Database and stores it on
       app.state; get_db_session() pulls it from there per request, so tests
       can hand the application an in-memory SQLite database instead.

Session lifecycle (per request):
    1. Open a session from the factory
    2. Yield it to guards / route handlers
    3. Commit on success, roll back on any error
    4. Translate SQLAlchemy failures into PersistenceError
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from bazaar.config import Settings
from bazaar.exceptions import persistence_error_from_sqlalchemy


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shared metadata for Alembic)."""
    pass


class Database:
    """
    Owns one async engine and its session factory.

    Args:
        url:            SQLAlchemy async URL.
        engine_options: Passed straight to create_async_engine().
    """

    def __init__(self, url: str, **engine_options: Any):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_options)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        options: dict = {"echo": settings.log_level == "DEBUG"}
        # SQLite dialects reject queue-pool sizing arguments
        if not settings.database_url.startswith("sqlite"):
            options.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
                pool_recycle=3600,
            )
        return cls(settings.database_url, **options)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Transactional session scope.

        Commits when the block exits cleanly, rolls back otherwise. SQLAlchemy
        errors leave this scope as PersistenceError; every other exception is
        re-raised untouched.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise persistence_error_from_sqlalchemy(exc) from exc
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create every mapped table (tests and local bootstrap; production uses Alembic)."""
        import bazaar.models  # noqa: F401  registers all models on Base.metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close all pooled connections (application shutdown)."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Example usage in a route:
        @router.get("/addresses")
        async def list_addresses(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session


@asynccontextmanager
async def translate_db_errors() -> AsyncIterator[None]:
    """Re-raise SQLAlchemy failures inside the block as PersistenceError."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise persistence_error_from_sqlalchemy(exc) from exc

"""
Database connection and session management.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from app.core.config import get_settings
from app.core.errors import ConflictError, DependencyError

log = structlog.get_logger()
settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Create all tables (development only, use migrations in production)."""
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    The identity store commits each write on its own, so there is nothing
    left to commit here; a failed request only rolls back uncommitted work.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context():
    """Context manager for use outside of FastAPI request lifecycle."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def commit_or_raise(session: AsyncSession, conflict_message: str | None = None) -> None:
    """Commit one store write, translating driver errors into service errors.

    Unique-constraint violations are the authoritative conflict signal, so
    they surface as ``ConflictError`` rather than a 500.
    """
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        log.info("store.integrity_error", detail=str(exc.orig))
        raise ConflictError(conflict_message) from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        log.error("store.write_failed", error=type(exc).__name__, detail=str(exc))
        raise DependencyError() from exc

"""
Drone Routes Backend — Database Session Management
=====================================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       per-request session dependency.
How:   One pooled engine per process. Each request gets its own AsyncSession
       that commits when the handler returns and rolls back when it raises.

Route rows are committed twice per create-route request: once before the
photo fan-out (commit_or_raise) and once after it settles (get_db_session).
No transaction or pooled connection is held while photos upload, and a
failure in the second write cannot roll back the route itself.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from droneroutes.config import settings
from droneroutes.exceptions import DatabaseError

logger = logging.getLogger(__name__)


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=settings.db_pool_pre_ping,
    pool_recycle=3600,
    echo=settings.log_level == "DEBUG",
)

# expire_on_commit=False: ORM objects stay readable after the commit in
# get_db_session without a lazy reload
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Shared declarative base; Alembic reads Base.metadata for autogenerate."""


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits on success, rolls back on any exception and re-raises it so the
    global handlers can shape the response. Services may commit earlier
    through commit_or_raise; the session autobegins a new transaction on
    its next use.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_database() -> bool:
    """Runs SELECT 1; used by the health endpoint."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


async def dispose_engine() -> None:
    """Closes all pooled connections. Called from the app lifespan on shutdown."""
    await engine.dispose()


async def flush_or_raise(db: AsyncSession, action: str) -> None:
    """
    Flush pending changes, turning driver/ORM failures into DatabaseError.

    Args:
        action: What was being saved, used in the user-facing message
                ("save the route" → "Could not save the route.").
    """
    try:
        await db.flush()
    except SQLAlchemyError as e:
        logger.error("Flush failed while trying to %s: %s", action, str(e))
        raise DatabaseError(
            message=f"Could not {action}. Please try again.",
            context={"original_error": type(e).__name__},
        ) from e


async def commit_or_raise(db: AsyncSession, action: str) -> None:
    """
    Commit the current transaction, turning failures into DatabaseError.

    Ends the transaction and returns the connection to the pool; with
    expire_on_commit=False the loaded objects stay usable afterwards.
    """
    try:
        await db.commit()
    except SQLAlchemyError as e:
        logger.error("Commit failed while trying to %s: %s", action, str(e))
        await db.rollback()
        raise DatabaseError(
            message=f"Could not {action}. Please try again.",
            context={"original_error": type(e).__name__},
        ) from e

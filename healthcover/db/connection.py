"""
Database Connection Management
Async SQLAlchemy with connection pooling, wired to the change feed
Source: https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from healthcover.api.config import settings
from healthcover.db.change_feed import FEED_KEY, ChangeFeed, get_change_feed
from healthcover.models import Base
from healthcover.utils.errors import InvalidInput, StoreFailure
from healthcover.utils.logging import get_logger

logger = get_logger(__name__)


_engine: AsyncEngine | None = None
_async_session_maker: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """
    Get or create the global async engine.

    Returns:
        AsyncEngine instance
    """
    global _engine

    if _engine is None:
        logger.info(f"Creating database engine: {settings.database_url.split('@')[-1]}")

        if settings.is_testing or settings.is_sqlite:
            # NullPool: no pool parameters, one connection per checkout
            _engine = create_async_engine(
                settings.database_url,
                echo=settings.DEBUG,
                poolclass=NullPool,
            )
        else:
            _engine = create_async_engine(
                settings.database_url,
                echo=settings.DEBUG,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_pre_ping=True,
            )

        logger.info("Database engine created successfully")

    return _engine


def create_session_maker(
    engine: AsyncEngine,
    feed: Optional[ChangeFeed] = None,
) -> async_sessionmaker[AsyncSession]:
    """
    Build a session maker whose sessions publish committed changes to ``feed``.

    Args:
        engine: Engine to bind
        feed: Change feed; pass None for sessions that must stay silent
    """
    info = {FEED_KEY: feed} if feed is not None else {}
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Don't expire objects after commit
        autoflush=False,  # Manual flush control
        info=info,
    )


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """
    Get or create the global session maker.

    Returns:
        Async session maker bound to the global engine and change feed
    """
    global _async_session_maker

    if _async_session_maker is None:
        _async_session_maker = create_session_maker(get_engine(), get_change_feed())
        logger.info("Session maker created successfully")

    return _async_session_maker


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database sessions.

    Yields:
        AsyncSession instance

    Example:
        >>> from fastapi import Depends
        >>> from healthcover.db.connection import get_session
        >>>
        >>> @app.get("/claims")
        >>> async def list_claims(session: AsyncSession = Depends(get_session)):
        >>>     result = await session.execute(select(Claim))
        >>>     return result.scalars().all()
    """
    session_maker = get_session_maker()

    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            await session.close()


async def init_models(engine: Optional[AsyncEngine] = None) -> None:
    """Create missing tables (development and tests; production uses migrations)."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def close_db_connection() -> None:
    """Close database connection pool."""
    global _engine, _async_session_maker

    if _engine is not None:
        logger.info("Closing database connection pool...")
        await _engine.dispose()
        _engine = None
        _async_session_maker = None
        logger.info("Database connection pool closed")


async def check_db_connection() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        engine = get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


@asynccontextmanager
async def store_operation(session: AsyncSession, action: str) -> AsyncIterator[AsyncSession]:
    """
    Run one public store operation.

    Any failure rolls the session back so the records keep their previous
    state. Unique-constraint violations become InvalidInput; every other
    SQLAlchemy error becomes StoreFailure. Domain errors pass through.

    Example:
        >>> async with store_operation(session, "create claim"):
        >>>     session.add(claim)
        >>>     await session.commit()
    """
    try:
        yield session
    except IntegrityError as e:
        await session.rollback()
        logger.warning(f"{action} rejected by a constraint: {e.orig}")
        raise InvalidInput(f"{action}: conflicts with an existing record") from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"{action} failed: {e}")
        raise StoreFailure(f"{action} failed: store unavailable") from e
    except Exception:
        await session.rollback()
        raise

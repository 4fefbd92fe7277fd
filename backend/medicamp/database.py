"""
MediCamp Backend - Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
How:   One engine with a connection pool; one session per request that commits
       on success and rolls back on error.
Who:   Route handlers via Depends(get_db_session); the lifespan handler for
       table creation and shutdown.

The store is the only synchronization point of the service. Uniqueness of
(camp_id, participant_email) and the participant counter arithmetic are both
enforced by statements executed here, never by in-process state.
"""

import logging
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from medicamp.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool options for server databases; SQLite picks its own pool class."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


def build_engine(url: str) -> AsyncEngine:
    return create_async_engine(url, **_engine_options(url))


engine = build_engine(settings.database_url)

# expire_on_commit=False: ORM objects stay readable after the request commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata is what Alembic tracks."""
    pass


def violates_unique(exc: IntegrityError, constraint: str, table: str, *columns: str) -> bool:
    """
    True when exc is a uniqueness violation of the named constraint.

    PostgreSQL reports the constraint name; SQLite only lists the columns.
    """
    detail = str(exc.orig)
    if constraint in detail:
        return True
    sqlite_columns = ", ".join(f"{table}.{column}" for column in columns)
    return f"UNIQUE constraint failed: {sqlite_columns}" in detail


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits when the handler returns normally, rolls back on any exception
    and re-raises it so the global handlers can format the response.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@retry(
    retry=retry_if_exception_type((OperationalError, OSError)),
    stop=stop_after_attempt(settings.db_connect_attempts),
    wait=wait_exponential_jitter(initial=1, max=10, jitter=1),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def create_tables(bind: AsyncEngine = engine) -> None:
    """
    Creates any missing tables.

    Retried with exponential backoff because the database container is often
    still starting when the API boots. Production schemas are owned by
    Alembic; this is a no-op for tables that already exist.
    """
    # Models must be imported so they register with Base.metadata
    from medicamp import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified")


async def dispose_engine() -> None:
    """Closes all pooled connections; called on application shutdown."""
    await engine.dispose()

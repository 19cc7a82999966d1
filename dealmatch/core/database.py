import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from .config import settings
from .exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Create async engine with asyncpg
engine = create_async_engine(
    settings.database_url,
    echo=settings.app_env == "dev",
    future=True,
    pool_pre_ping=True,
)

# AsyncSessionLocal class for creating async database sessions
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Base class for SQLAlchemy models
Base = declarative_base()


# Dependency to get async DB session
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def bounded(awaitable: Awaitable[T], operation: str, timeout: Optional[float] = None) -> T:
    """
    Await a storage round-trip with an explicit deadline.

    Timeouts and connection-level driver failures are converted into
    StorageUnavailableError so callers can offer a retry. IntegrityError and
    other constraint failures propagate unchanged; they carry meaning.

    Args:
        awaitable: The pending storage call
        operation: Short label used in logs and the error message
        timeout: Seconds to wait (defaults to settings.storage_timeout_seconds)

    Example:
        swipe = await bounded(repo.create(db, data), "record swipe")
    """
    limit = settings.storage_timeout_seconds if timeout is None else timeout
    try:
        return await asyncio.wait_for(awaitable, timeout=limit)
    except asyncio.TimeoutError:
        logger.warning(f"Storage call '{operation}' timed out after {limit}s")
        raise StorageUnavailableError(f"Timed out during {operation}")
    except (OperationalError, DBAPIError) as e:
        if getattr(e, "connection_invalidated", False) or isinstance(e, OperationalError):
            logger.error(f"Storage unavailable during '{operation}': {e}")
            raise StorageUnavailableError(f"Storage unavailable during {operation}") from e
        raise

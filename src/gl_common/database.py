from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError, InterfaceError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings
from src.gl_common.errors import AppError, ConcurrencyConflictError, StorageUnavailableError

# serialization_failure, deadlock_detected, lock_not_available
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    async with async_session_factory() as session:
        yield session


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_storage_error(exc: BaseException) -> AppError | None:
    """Map a driver/DB failure to ConcurrencyConflict or StorageUnavailable.

    Returns None for failures that are neither (constraint violations,
    programming errors), which the caller re-raises untouched.
    """
    if isinstance(exc, DBAPIError):
        if _sqlstate(exc) in _CONFLICT_SQLSTATES:
            return ConcurrencyConflictError()
        if exc.connection_invalidated or isinstance(exc, InterfaceError):
            return StorageUnavailableError()
        if isinstance(exc.orig, (OSError, TimeoutError)):
            return StorageUnavailableError()
        return None
    if isinstance(exc, (OSError, TimeoutError)):
        return StorageUnavailableError()
    return None


@asynccontextmanager
async def storage_guard() -> AsyncIterator[None]:
    """Re-raise storage failures as typed, retryable AppErrors."""
    try:
        yield
    except AppError:
        raise
    except Exception as exc:
        translated = translate_storage_error(exc)
        if translated is None:
            raise
        raise translated from exc

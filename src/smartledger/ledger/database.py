"""Ledger database engine and units of work.

One async engine per process. A session is one unit of work: every ledger
operation inside it commits together or not at all.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from smartledger.config import get_settings
from smartledger.ledger.models import Base

logger = logging.getLogger(__name__)

# Process-wide engine and session factory
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def async_database_url(url: str) -> str:
    """Pin a plain sqlite URL to the aiosqlite driver."""
    parsed = make_url(url)
    if parsed.drivername == "sqlite":
        parsed = parsed.set(drivername="sqlite+aiosqlite")
    return parsed.render_as_string(hide_password=False)


def ensure_sqlite_directory(url: str) -> Optional[Path]:
    """Create the parent directory of a file-backed sqlite database.

    Returns the directory, or None for in-memory and non-sqlite URLs.
    """
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite"):
        return None
    database = parsed.database
    if not database or database == ":memory:" or database.startswith("file:"):
        return None

    directory = Path(database).expanduser().parent
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine, preparing the sqlite file location if needed."""
    url = async_database_url(database_url)
    directory = ensure_sqlite_directory(url)
    if directory is not None:
        logger.debug(f"Ledger database directory: {directory}")
    return create_async_engine(url, echo=echo)


def get_engine() -> AsyncEngine:
    """Get or create the ledger engine from settings."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(
            settings.database_url,
            echo=settings.debug and not settings.is_production,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory.

    Autoflush is off: the repository flushes explicitly after each write.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Open a unit of work.

    Committed when the block exits normally, rolled back on any exception
    (rejected operations included).
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create the ledger tables if they do not exist."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.debug("Ledger tables ready")


async def close_db() -> None:
    """Dispose of the engine; the next get_engine() starts fresh."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None

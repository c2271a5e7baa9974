"""
JSONWire — Database Engine Management
=======================================

What:  Async SQLAlchemy engine factory, session factory and declarative base
       used by the SQL session store.
How:   `create_engine()` builds an async engine from settings (or an explicit
       URL). The default engine is created lazily on first use, so
       applications that only use the memory store never open a connection.
Who:   SQLStore, the Alembic environment and the application lifespan.

Connection Pooling Strategy:
    pool_size / max_overflow:  from settings, for server databases
    pool_pre_ping:             validates connections before use
    pool_recycle=3600:         recycles connections every hour
    SQLite:                    pool options are skipped, SQLAlchemy picks the
                               pool suited to the file or in-memory database
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from jsonwire.config import settings


# ── Base Model ────────────────────────────────────────────────────────────
# What: Base class for all SQLAlchemy models
# How: All model classes inherit from this to get ORM mapping
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for migrations.
    """
    pass


# ── Engine Configuration ──────────────────────────────────────────────────
def create_engine(url: Optional[str] = None, **kwargs) -> AsyncEngine:
    """
    Create an async engine.

    Args:
        url:    Async database URL, defaults to settings.database_url.
        kwargs: Extra create_async_engine() options, overriding the defaults.
    """
    url = url or settings.database_url
    options = {"echo": settings.db_echo}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    options.update(kwargs)
    return create_async_engine(url, **options)


# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit
def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


_engine: Optional[AsyncEngine] = None


def get_engine() -> AsyncEngine:
    """The process-wide engine built from settings, created on first call."""
    global _engine
    if _engine is None:
        _engine = create_engine()
    return _engine


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections of the default engine.
    When:  Called during application shutdown (lifespan handler).
    """
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None

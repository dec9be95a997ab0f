"""
Database Infrastructure
=======================

Engine and session lifecycle for the engine's PostgreSQL access.

The engine only reads work items, users, categories and the assignment
audit log, and writes SLA status columns. Each repository call runs in its
own short session obtained from ``get_session_context``.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from compliance_engine.config import settings
from compliance_engine.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Deterministic constraint names keep migrations generated elsewhere stable
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base shared by the SLA and assignment ORM models."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def _engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    # SQLite drivers reject pool sizing arguments
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the engine and session factory. Called once at worker startup.

    Args:
        database_url: Override for ``settings.database_url``
    """
    global _engine, _session_maker

    # asyncpg takes ssl= where libpq URLs carry sslmode=
    url = (database_url or settings.database_url).replace("sslmode=", "ssl=")

    _engine = create_async_engine(url, **_engine_options(url))
    _session_maker = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    logger.info("Database engine initialized", extra={"dialect": _engine.dialect.name})
    return _engine


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_database() first.")
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _session_maker


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    One unit of work: commit on clean exit, roll back and re-raise on error.

    Usage:
        async with get_session_context() as session:
            await session.execute(update(WorkflowInstanceModel)...)
    """
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create every mapped table. Local development and tests only."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_database() -> None:
    """Dispose of pooled connections. Called at worker shutdown."""
    global _engine, _session_maker

    if _engine is None:
        return

    await _engine.dispose()
    _engine = None
    _session_maker = None
    logger.info("Database connections closed")

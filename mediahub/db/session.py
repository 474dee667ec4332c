"""
Async SQLAlchemy engine and session factory.

Engines are built on first use rather than at import time so that
tests and scripts can point the catalog at another database.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from mediahub.core.config import settings
from mediahub.db.models import Base

_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_engine(url: str | None = None, echo: bool = False) -> AsyncEngine:
    return create_async_engine(url or settings.DATABASE_URL, echo=echo, pool_pre_ping=True)


def build_session_factory(
    url: str | None = None,
    echo: bool = False,
    *,
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``, or to a fresh engine for ``url``."""
    engine = engine or build_engine(url, echo=echo)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Process-wide session factory for the configured database."""
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(
            echo=(settings.APP_ENV == "development"),
        )
    return _session_factory


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables (development and tests; production uses migrations)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

"""Database engine and session factory for the local comment store."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from .config import settings
from .models import Base


def make_engine(url: str) -> AsyncEngine:
    """Create an async engine; in-memory SQLite shares one connection."""
    kwargs: dict[str, Any] = {"echo": False}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_async_engine(url, **kwargs)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async_engine = make_engine(settings.database_url)
async_session_factory = make_session_factory(async_engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI to get a database session."""
    async with async_session_factory() as session:
        yield session


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create the comment tables if they do not exist yet (called on startup)."""
    async with (engine or async_engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

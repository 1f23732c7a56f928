"""Async engine and the request-scoped unit of work."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from autolend.config import settings


def _engine_options() -> dict:
    options = {"echo": settings.ENVIRONMENT == "development", "pool_pre_ping": True}
    if settings.ENVIRONMENT == "test":
        # Each test owns its event loop; pooled connections would outlive it.
        options["poolclass"] = NullPool
    return options


engine = create_async_engine(settings.async_database_url, **_engine_options())

# Ledger reservations open their own sessions from this factory too.
SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session that commits when the request succeeds and rolls back otherwise."""
    async with SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        else:
            await session.commit()

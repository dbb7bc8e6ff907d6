"""
Campus Portal Backend — Engine and Sessions
=============================================

What:  The async SQLAlchemy engine, its session maker, the declarative base
       and the per-request session dependency.
How:   PostgreSQL (asyncpg) URLs get a sized, pre-pinged pool that recycles
       hourly; SQLite URLs (tests, local demos) keep SQLAlchemy's default
       pool, which rejects the sizing arguments.
Who:   Route handlers through `Depends(get_db_session)`; ScopedLookup opens
       its own short sessions for filters that run before the handler.
When:  Engine built at import from `settings.database_url`.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from campus.config import settings

POOL_RECYCLE_SECONDS = 3600


def _engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=POOL_RECYCLE_SECONDS,
    )
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# Loaded rows stay readable after commit; handlers serialize them afterwards
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    """Declarative base shared by Department and Course."""


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request: committed when the handler returns, rolled back
    and re-raised when it fails, so the exception boundary still sees the
    original error.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        else:
            await session.commit()


async def create_tables() -> None:
    """Create missing tables; the lifespan calls this for SQLite URLs."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()

"""Engine, session factory and schema lifecycle for the link store.

Engine Selection
================
::
    DATABASE_URL
        ├─ postgresql+asyncpg://...  → pooled engine (pool_size 20, overflow 10, pre-ping)
        └─ sqlite+aiosqlite://...    → driver defaults, used by the test suite

Sessions are request-scoped: ``get_db`` yields one from ``async_session`` and
closes it when the request finishes. Objects are not expired on commit, so a
refreshed ``Link`` can still be serialized after the store commits.

``init_db`` creates the ``links`` table at startup when it is missing;
``close_db`` disposes the engine at shutdown.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from dynalink.config import get_settings

__all__ = ["Base", "build_engine", "get_db", "init_db", "close_db"]

settings = get_settings()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    # Import registers the mapped tables on Base.metadata.
    import dynalink.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()

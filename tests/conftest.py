"""Shared pytest fixtures for API, database, and cache tests."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_dynalink.db")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("APP_ENV", "test")

from collections.abc import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
import redis.asyncio as redis  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from dynalink import background  # noqa: E402
from dynalink.cache import ResolutionCache  # noqa: E402
from dynalink.config import get_settings  # noqa: E402
from dynalink.database import Base, build_engine, get_db  # noqa: E402
from dynalink.dependencies import get_cache  # noqa: E402
from dynalink.main import app  # noqa: E402
from dynalink.models import Link  # noqa: E402,F401

settings = get_settings()

test_engine = build_engine(settings.DATABASE_URL)

test_session = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture
def redis_store() -> dict[str, str]:
    """Backing dict for the mocked redis client."""
    return {}


@pytest.fixture
def mock_redis(redis_store: dict[str, str]) -> AsyncMock:
    """Mock Redis client that keeps values in ``redis_store``."""

    def _setex(key: str, ttl: int, value: str) -> bool:
        redis_store[key] = value
        return True

    def _set(key: str, value: str, ex: int | None = None, nx: bool = False) -> bool | None:
        if nx and key in redis_store:
            return None
        redis_store[key] = value
        return True

    redis_client = AsyncMock(spec=redis.Redis)
    redis_client.get = AsyncMock(side_effect=lambda key: redis_store.get(key))
    redis_client.setex = AsyncMock(side_effect=_setex)
    redis_client.set = AsyncMock(side_effect=_set)
    redis_client.ping = AsyncMock(return_value=True)
    redis_client.aclose = AsyncMock()
    return redis_client


@pytest.fixture
def cache(mock_redis: AsyncMock) -> ResolutionCache:
    return ResolutionCache(mock_redis, ttl_seconds=settings.CACHE_TTL_SECONDS, key_prefix=settings.CACHE_KEY_PREFIX)


@pytest.fixture
def mock_logger() -> MagicMock:
    return MagicMock()


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, cache: ResolutionCache) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_cache() -> ResolutionCache:
        return cache

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = override_get_cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await background.drain()
    app.dependency_overrides.clear()

"""Dependency injection with a singleton service manager.

This module provides a centralized way to inject database and cache dependencies
into the endpoints. Shared resources (settings, logger, the single redis client
behind the resolution cache) are created once at startup and torn down at
shutdown; only the database session is per request.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dynalink.cache import ResolutionCache
from dynalink.config import Settings, get_settings
from dynalink.database import get_db
from dynalink.link_service import LinkService


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton owner of the process-wide resources."""

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if not self._initialized:
            self.settings = get_settings()
            self.logger = self._setup_logger()
            self.cache = ResolutionCache(
                self._setup_redis(),
                ttl_seconds=self.settings.CACHE_TTL_SECONDS,
                key_prefix=self.settings.CACHE_KEY_PREFIX,
            )
            self._initialized = True
            self.logger.info(f"{self.settings.APP_NAME} resources initialized ({self.settings.APP_ENV})")

    def _setup_logger(self) -> logging.Logger:
        """Setup the package logger once; module loggers propagate to it."""
        logger = logging.getLogger("dynalink")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    def _setup_redis(self) -> redis.Redis:
        """Setup the redis client once; connections are opened lazily by the pool."""
        return redis.from_url(
            self.settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=self.settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=self.settings.REDIS_CONNECT_TIMEOUT_SECONDS,
        )

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if hasattr(self, "cache"):
            await self.cache.close()
            del self.cache
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view over the shared resources.

    Attributes:
        database: Async database session (only per-request resource)
        service_manager: Singleton service manager with shared resources
        cache: Resolution cache shared by all requests
        request_id: Unique identifier for this request
        trace_id: Correlation ID for distributed tracing
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    database: AsyncSession
    service_manager: ServiceManager
    cache: ResolutionCache
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    @property
    def settings(self) -> Settings:
        """Get shared settings."""
        return self.service_manager.settings

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_cache(manager: ServiceManager = Depends(get_service_manager)) -> ResolutionCache:
    return manager.cache


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: ServiceManager = Depends(get_service_manager),
    cache: ResolutionCache = Depends(get_cache),
) -> RequestContext:
    client_ip = request.client.host if request.client else None
    return RequestContext(
        database=db,
        service_manager=manager,
        cache=cache,
        trace_id=request.headers.get("x-trace-id"),
        user_agent=request.headers.get("user-agent"),
        client_ip=client_ip,
    )


def get_link_service(ctx: RequestContext = Depends(get_request_context)) -> LinkService:
    return LinkService.from_context(ctx)

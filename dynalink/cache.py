"""Resolution cache in front of the link store.

Stores LinkConfig as JSON under ``{prefix}:{short_code}`` with a fixed TTL.
The cache is an optimization only: every redis failure is logged, counted and
reported to the caller as a miss (reads) or a no-op (writes).
"""

import logging

import redis.asyncio as redis
from prometheus_client import Counter
from pydantic import ValidationError

from dynalink.schemas import LinkConfig

__all__ = ["ResolutionCache", "CACHE_ERRORS_TOTAL"]

logger = logging.getLogger(__name__)

CACHE_ERRORS_TOTAL = Counter(
    "dynalink_cache_errors_total",
    "Redis failures absorbed by the resolution cache",
    ["operation"],
)


class ResolutionCache:
    def __init__(self, client: redis.Redis, ttl_seconds: int = 3600, key_prefix: str = "link") -> None:
        self._redis = client
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    def key(self, short_code: str) -> str:
        return f"{self.key_prefix}:{short_code}"

    async def get(self, short_code: str) -> LinkConfig | None:
        try:
            raw = await self._redis.get(self.key(short_code))
        except (redis.RedisError, OSError) as exc:
            CACHE_ERRORS_TOTAL.labels(operation="get").inc()
            logger.error(f"[Cache Error] Failed to read link {short_code}: {exc}")
            return None
        if raw is None:
            return None
        try:
            return LinkConfig.model_validate_json(raw)
        except ValidationError as exc:
            CACHE_ERRORS_TOTAL.labels(operation="decode").inc()
            logger.error(f"[Cache Error] Undecodable entry for link {short_code}: {exc}")
            return None

    async def set(self, config: LinkConfig, only_if_absent: bool = False) -> bool:
        """Cache ``config`` for the TTL.

        With ``only_if_absent`` an existing entry is left untouched, so a fill
        from an older store read never replaces a newer write-through.
        Returns False only when redis failed.
        """
        key = self.key(config.short_code)
        value = config.model_dump_json(by_alias=True)
        try:
            if only_if_absent:
                stored = await self._redis.set(key, value, ex=self.ttl_seconds, nx=True)
            else:
                stored = await self._redis.setex(key, self.ttl_seconds, value)
        except (redis.RedisError, OSError) as exc:
            CACHE_ERRORS_TOTAL.labels(operation="set").inc()
            logger.error(f"[Cache Error] Failed to cache link {config.short_code}: {exc}")
            return False
        if stored:
            logger.debug(f"[Cache SET] Link {config.short_code} cached for {self.ttl_seconds}s")
        else:
            logger.debug(f"[Cache SET] Link {config.short_code} already cached, fill skipped")
        return True

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except (redis.RedisError, OSError) as exc:
            logger.error(f"Cache ping failed: {exc}")
            return False

    async def close(self) -> None:
        await self._redis.aclose()

"""Link Service Layer - Core Business Logic

This module provides the service layer for resolving short codes and for the
dashboard's create / update / list operations.

Architecture Overview
==================
::
    ┌──────────────────────────────────────────────────────────┐
    │                     Service Layer                        │
    │  ┌──────────────────┐  ┌───────────────┐  ┌───────────┐  │
    │  │   LinkService    │  │  Short Codes  │  │ Detached  │  │
    │  │ • Resolve codes  │  │ • nanoid(7)   │  │  tasks    │  │
    │  │ • Create links   │  │ • Regenerate  │  │ • Cache   │  │
    │  │ • Update links   │  │   on collide  │  │   fill    │  │
    │  └──────────────────┘  └───────────────┘  └───────────┘  │
    └──────────────────────────────────────────────────────────┘
                │                                   │
                ▼                                   ▼
    ┌─────────────────┐                   ┌─────────────────┐
    │   PostgreSQL    │                   │      Redis      │
    │ (authoritative) │                   │ (derived cache) │
    └─────────────────┘                   └─────────────────┘

Request Flow Diagrams
=====================

Resolution Flow (cache-aside)
-----------------------------
::
    ┌─────────────┐
    │  GET /:code │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check Redis  │   read error → treated as a miss
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Query   │  │ Return  │
│PostgreSQL│  │ cached  │
└────┬────┘  └─────────┘
     │
  FOUND?──NO──▶ LinkNotFoundError (404)
     │ YES
     ▼
┌───────────────┐
│ spawn cache   │  fire-and-forget SET NX, never awaited by the request
│ population    │
└──────┬────────┘
       ▼
   return config

Creation Flow
-------------
::
    nanoid(7) ──▶ INSERT ──collision?──▶ regenerate (bounded attempts) ──▶ 409
                    │
                    ▼
           write-through cache (best-effort) ──▶ 201

Usage Examples
=============
```python
@router.get("/{short_code}")
async def resolve(short_code: str, service: LinkService = Depends(get_link_service)):
    config = await service.resolve(short_code)
```
"""

import time

from nanoid import generate
from prometheus_client import Counter, Histogram

from dynalink import background
from dynalink.enums import CacheStatus, Platform, RequestStatus
from dynalink.exceptions import LinkNotFoundError, ShortCodeCollisionError
from dynalink.models import Link
from dynalink.schemas import LinkConfig, LinkPayload
from dynalink.store import LinkStore

__all__ = ["ALPHABET", "LinkService", "generate_short_code"]

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"

_EDITABLE_FIELDS = tuple(LinkPayload.model_fields)


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

LINK_RESOLUTIONS_TOTAL = Counter(
    "dynalink_resolutions_total",
    "Resolved link requests by requester platform",
    ["platform"],
)
LINK_LOOKUPS_TOTAL = Counter(
    "dynalink_lookups_total",
    "Short code lookups by cache outcome",
    ["cache"],
)
LINK_LOOKUP_DURATION = Histogram(
    "dynalink_lookup_duration_seconds",
    "Time taken to resolve a short code to its configuration",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)
DATABASE_READS_TOTAL = Counter(
    "dynalink_database_reads_total",
    "Link store reads on the resolution path",
)
LINK_CREATIONS_TOTAL = Counter(
    "dynalink_link_creations_total",
    "Link creation requests by outcome",
    ["status"],
)


def generate_short_code(length: int = 7) -> str:
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    return generate(ALPHABET, length)


class LinkService:
    """Resolution and management of link configurations.

    Built per request from the RequestContext: the database session is
    request-scoped, the cache and settings are shared process-wide.

    Example:
        >>> service = LinkService.from_context(ctx)
        >>> config = await service.resolve("aB3dE9f")
    """

    def __init__(self, ctx: "RequestContext"):
        self._store = LinkStore(ctx.database)
        self._cache = ctx.cache
        self._logger = ctx.logger
        self._settings = ctx.settings
        self._ctx = ctx

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkService":
        return cls(ctx)

    # ========================================================================
    # RESOLUTION
    # ========================================================================

    async def resolve(self, short_code: str) -> LinkConfig:
        """Return the configuration for ``short_code`` using the cache-aside strategy.

        A cache hit is returned as-is, without consulting the store. On a miss
        the store is queried and, when the link exists, the cache is populated
        by a detached task so the response never waits on redis. The fill never
        overwrites an entry written by a concurrent create or update.

        Raises:
            LinkNotFoundError: The short code exists in neither cache nor store.
        """
        start_time = time.perf_counter()

        cached = await self._cache.get(short_code)
        if cached is not None:
            LINK_LOOKUPS_TOTAL.labels(cache=CacheStatus.HIT).inc()
            LINK_LOOKUP_DURATION.observe(time.perf_counter() - start_time)
            self._logger.info(f"[Cache HIT] Found link {short_code} in cache.")
            return cached

        LINK_LOOKUPS_TOTAL.labels(cache=CacheStatus.MISS).inc()
        self._logger.info(f"[Cache MISS] Link {short_code} not in cache.")

        link = await self._store.get_by_short_code(short_code)
        DATABASE_READS_TOTAL.inc()
        LINK_LOOKUP_DURATION.observe(time.perf_counter() - start_time)
        if link is None:
            self._logger.info(f"[Not Found] Link {short_code} not found in store.")
            raise LinkNotFoundError(short_code)

        config = LinkConfig.model_validate(link)
        background.spawn(self._cache.set(config, only_if_absent=True), name=f"cache-fill:{short_code}")
        self._logger.info(f"[DB Success] Found link {short_code} in store.")
        return config

    def record_click(self, config: LinkConfig, platform: Platform) -> None:
        LINK_RESOLUTIONS_TOTAL.labels(platform=platform.value).inc()
        self._logger.info(
            f"[Analytics] Link Click: {config.short_code}, Platform: {platform.value}, "
            f"User-Agent: {self._ctx.user_agent}"
        )

    # ========================================================================
    # MANAGEMENT
    # ========================================================================

    async def create_link(self, payload: LinkPayload) -> Link:
        """Create a link under a freshly generated short code.

        Collisions are retried with a new code up to SHORT_CODE_MAX_ATTEMPTS
        times before ShortCodeCollisionError is raised.
        """
        attempts = max(1, self._settings.SHORT_CODE_MAX_ATTEMPTS)
        for attempt in range(1, attempts + 1):
            link = Link(
                short_code=generate_short_code(self._settings.SHORT_CODE_LENGTH),
                **payload.model_dump(include=set(_EDITABLE_FIELDS)),
            )
            try:
                link = await self._store.add(link)
            except ShortCodeCollisionError:
                self._logger.warning(f"Short code collision on attempt {attempt}/{attempts}: {link.short_code}")
                continue
            except Exception as exc:
                LINK_CREATIONS_TOTAL.labels(status=RequestStatus.ERROR).inc()
                self._logger.error(f"Error creating link: {exc}")
                raise

            LINK_CREATIONS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
            self._logger.info(f"Link created: {link.short_code} (id={link.id})")
            await self._write_through(link)
            return link

        LINK_CREATIONS_TOTAL.labels(status=RequestStatus.COLLISION).inc()
        raise ShortCodeCollisionError(attempts=attempts)

    async def update_link(self, link_id: int, payload: LinkPayload) -> Link:
        """Replace every editable field of a link, keeping its short code."""
        link = await self._store.get_by_id(link_id)
        if link is None:
            raise LinkNotFoundError(link_id)

        for field_name, value in payload.model_dump(include=set(_EDITABLE_FIELDS)).items():
            setattr(link, field_name, value)
        link = await self._store.save(link)

        self._logger.info(f"Link updated: {link.short_code} (id={link.id})")
        await self._write_through(link)
        return link

    async def list_links(self) -> list[Link]:
        return await self._store.list_recent()

    async def _write_through(self, link: Link) -> None:
        # Failures are absorbed by the cache; the store write already succeeded.
        if not await self._cache.set(LinkConfig.model_validate(link)):
            self._logger.warning(f"Cache write-through failed for {link.short_code}; entry may be stale until TTL")

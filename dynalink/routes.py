"""FastAPI route definitions for the dynamic link service.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /api/links
        ├─ LinkPayload (request body)
        └─ LinkResponse (201) or 400/409

    PUT  /api/links/:id
        ├─ LinkPayload (request body)
        └─ LinkResponse (200) or 400/404

    GET  /api/links
        └─ list[LinkResponse] (200), newest first

    GET  /api/deferred/:device_id
        └─ DeferredLinkResponse (200), placeholder, never matches

    GET  /:short_code
        ├─ crawler        → 200 social preview HTML
        ├─ ios / android  → 200 interstitial HTML
        ├─ web            → 302 web fallback URL
        └─ 404 "Link not found" / 500 "Error resolving link"

Key Behaviours
===============
- Requester classification never consults the cache or store.
- Cache failures never reach these handlers; the store is the backstop.
- Store failures on the resolution path become a plain-text 500.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from dynalink.classifier import classify_requester
from dynalink.dependencies import RequestContext, get_link_service, get_request_context
from dynalink.enums import HealthStatus
from dynalink.exceptions import LinkNotFoundError, ShortCodeCollisionError
from dynalink.link_service import LinkService
from dynalink.models import Link
from dynalink.rendering import build_response
from dynalink.schemas import DeferredLinkResponse, HealthResponse, LinkConfig, LinkPayload, LinkResponse

__all__ = ["router"]

router = APIRouter()


def _to_response(link: Link, base_url: str) -> LinkResponse:
    config = LinkConfig.model_validate(link)
    return LinkResponse(**config.model_dump(), short_url=f"{base_url.rstrip('/')}/{link.short_code}")


def _short_link_url(request: Request, short_code: str) -> str:
    host = request.headers.get("host") or request.url.netloc
    return f"{request.url.scheme}://{host}/{short_code}"


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await ctx.database.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    if not await ctx.cache.ping():
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post("/api/links", response_model=LinkResponse, status_code=201, tags=["links"])
async def create_link(
    payload: LinkPayload,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkResponse:
    try:
        link = await service.create_link(payload)
    except ShortCodeCollisionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        ctx.logger.error(f"Error creating link: {exc}")
        raise HTTPException(status_code=500, detail="Server error creating link.") from exc

    ctx.logger.info(f"Link {link.short_code} created in {ctx.get_duration():.1f}ms")
    return _to_response(link, ctx.settings.BASE_URL)


@router.put("/api/links/{link_id}", response_model=LinkResponse, tags=["links"])
async def update_link(
    link_id: int,
    payload: LinkPayload,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkResponse:
    try:
        link = await service.update_link(link_id, payload)
    except LinkNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Link not found") from exc
    except SQLAlchemyError as exc:
        ctx.logger.error(f"Error updating link {link_id}: {exc}")
        raise HTTPException(status_code=500, detail="Server error updating link.") from exc

    return _to_response(link, ctx.settings.BASE_URL)


@router.get("/api/links", response_model=list[LinkResponse], tags=["links"])
async def list_links(
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> list[LinkResponse]:
    try:
        links = await service.list_links()
    except SQLAlchemyError as exc:
        ctx.logger.error(f"Error fetching links: {exc}")
        raise HTTPException(status_code=500, detail="Server error fetching links.") from exc
    return [_to_response(link, ctx.settings.BASE_URL) for link in links]


@router.get("/api/deferred/{device_id}", response_model=DeferredLinkResponse, tags=["deferred"])
async def check_deferred_link(
    device_id: str,
    ctx: RequestContext = Depends(get_request_context),
) -> DeferredLinkResponse:
    ctx.logger.info(f"[Deferred Check] Received request for deviceId: {device_id}")
    return DeferredLinkResponse(message="Deferred link check placeholder.", deep_link_data=None)


@router.get("/{short_code}", tags=["redirect"])
async def resolve_link(
    short_code: str,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> Response:
    platform = classify_requester(ctx.user_agent)
    try:
        config = await service.resolve(short_code)
        service.record_click(config, platform)
        return build_response(config, platform, _short_link_url(request, short_code), ctx.settings)
    except LinkNotFoundError:
        return PlainTextResponse("Link not found", status_code=404)
    except Exception:
        ctx.logger.exception(f"Error resolving link {short_code}")
        return PlainTextResponse("Error resolving link", status_code=500)

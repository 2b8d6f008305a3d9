"""FastAPI route definitions for the shortlink REST API.

API Endpoint Overview
=====================
::
    GET  /
        └─ ApiInfo (200)

    GET  /health
        └─ HealthResponse (200)

    POST /api/shorten
        ├─ ShortenRequest (request body)
        └─ ShortLinkResponse (201) or 422/503

    GET  /api/stats/:short_code
        └─ ShortLinkStats (200) or 404/503

    GET  /:short_code
        └─ 302 Redirect or 404/503

Key Behaviours
===============
- Request bodies are validated by Pydantic before the service is called.
- ``LinkNotFoundError`` becomes 404, ``StorageError`` becomes 503.
- Cache trouble never changes a response; the service absorbs it.
- The redirect route is registered last so it never shadows fixed paths.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from shortlink.dependencies import RequestContext, get_link_service, get_request_context
from shortlink.enums import HealthStatus
from shortlink.exceptions import CacheError, LinkNotFoundError, StorageError
from shortlink.models import utcnow
from shortlink.schemas import ApiInfo, HealthResponse, ShortenRequest, ShortLinkResponse, ShortLinkStats
from shortlink.service import LinkResolutionService

__all__ = ["router"]

router = APIRouter()


@router.get("/", response_model=ApiInfo, tags=["info"])
async def api_info(ctx: RequestContext = Depends(get_request_context)) -> ApiInfo:
    return ApiInfo(
        name=ctx.settings.APP_NAME,
        version=ctx.settings.APP_VERSION,
        description="URL shortener with Redis caching and PostgreSQL storage.",
    )


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await ctx.store.ping()
    except StorageError as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await ctx.cache.ping()
    except CacheError as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    ctx.logger.debug(f"Health check completed: {status.value}")
    return HealthResponse(status=status, database=db_status, cache=cache_status, timestamp=utcnow())


@router.post("/api/shorten", response_model=ShortLinkResponse, status_code=201, tags=["links"])
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkResolutionService = Depends(get_link_service),
) -> ShortLinkResponse:
    try:
        link = await service.create(payload.url)
    except StorageError as exc:
        raise HTTPException(status_code=503, detail="Link storage unavailable") from exc

    ctx.logger.info(
        f"Shortened {payload.url} -> {link.short_code}",
        extra={"operation": "create", "short_code": link.short_code, "duration_ms": ctx.get_duration()},
    )
    return ShortLinkResponse.from_link(link, ctx.settings.BASE_URL)


@router.get("/api/stats/{short_code}", response_model=ShortLinkStats, tags=["links"])
async def get_stats(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkResolutionService = Depends(get_link_service),
) -> ShortLinkStats:
    try:
        link = await service.get_stats(short_code)
    except LinkNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Short URL not found") from exc
    except StorageError as exc:
        raise HTTPException(status_code=503, detail="Link storage unavailable") from exc

    return ShortLinkStats.from_link(link, ctx.settings.BASE_URL)


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkResolutionService = Depends(get_link_service),
) -> RedirectResponse:
    try:
        long_url = await service.resolve_url(short_code)
    except LinkNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Short URL not found") from exc
    except StorageError as exc:
        raise HTTPException(status_code=503, detail="Link storage unavailable") from exc

    ctx.logger.info(
        f"Redirect {short_code} -> {long_url}",
        extra={"operation": "redirect", "short_code": short_code, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=long_url, status_code=ctx.settings.REDIRECT_STATUS_CODE)

"""FastAPI route definitions for the shortlinks REST API.

API Endpoint Overview
=====================
::
    GET    /api/health
        └─ HealthResponse (200) or (503)

    POST   /api/urls
        ├─ URLCreate (request body)
        └─ URLResponse (201) or 400/409/422/500

    GET    /api/urls?page=&limit=
        └─ URLListResponse (200)

    GET    /api/urls/:id
        └─ URLResponse (200) or 400/404

    PUT    /api/urls/:id
    PATCH  /api/urls/:id
        ├─ URLUpdate (request body, partial)
        └─ URLResponse (200) or 400/404/409

    DELETE /api/urls/:id
        └─ 204 or 400/404

    GET    /:short_path
        └─ 307 Redirect or 404

Key Behaviours
===============
- Domain errors are raised from the service and mapped to status codes by
  the exception handler registered in ``shortlinks.main``.
- PUT and PATCH share the same partial-merge semantics.
- The redirect route is registered last so it never shadows ``/api``.
- 307 redirects preserve the HTTP method.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse, RedirectResponse

from shortlinks.dependencies import ServiceContainer, get_container, get_request_logger, get_url_service
from shortlinks.enums import HealthStatus
from shortlinks.schemas import HealthResponse, URLCreate, URLListResponse, URLResponse, URLUpdate
from shortlinks.url_service import URLService, parse_url_id

__all__ = ["router"]

router = APIRouter()


async def _probe(check, timeout: float, name: str, logger: logging.LoggerAdapter) -> HealthStatus:
    try:
        await asyncio.wait_for(check(), timeout=timeout)
    except Exception as exc:
        logger.error(f"{name} health check failed: {exc!r}")
        return HealthStatus.UNHEALTHY
    return HealthStatus.HEALTHY


@router.get("/api/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    container: ServiceContainer = Depends(get_container),
    logger: logging.LoggerAdapter = Depends(get_request_logger),
):
    timeout = container.settings.HEALTH_CHECK_TIMEOUT_SECONDS
    db_status = await _probe(container.database.ping, timeout, "Database", logger)
    cache_status = await _probe(container.cache.ping, timeout, "Cache", logger)

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    body = HealthResponse(status=status, database=db_status, cache=cache_status)
    if status is HealthStatus.UNHEALTHY:
        return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
    return body


@router.post("/api/urls", response_model=URLResponse, status_code=201, tags=["urls"])
async def create_url(
    payload: URLCreate,
    service: URLService = Depends(get_url_service),
) -> URLResponse:
    record = await service.create_url(payload)
    return URLResponse.from_record(record, service.settings.BASE_URL)


@router.get("/api/urls", response_model=URLListResponse, tags=["urls"])
async def list_urls(
    page: int = Query(1),
    limit: int | None = Query(None),
    service: URLService = Depends(get_url_service),
) -> URLListResponse:
    settings = service.settings
    if page < 1:
        page = 1
    if limit is None or limit < 1 or limit > settings.MAX_PAGE_LIMIT:
        limit = settings.DEFAULT_PAGE_LIMIT

    records, total = await service.list_urls(page, limit)
    return URLListResponse(
        urls=[URLResponse.from_record(record, settings.BASE_URL) for record in records],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/api/urls/{url_id}", response_model=URLResponse, tags=["urls"])
async def get_url(
    url_id: str,
    service: URLService = Depends(get_url_service),
) -> URLResponse:
    record = await service.get_url(parse_url_id(url_id))
    return URLResponse.from_record(record, service.settings.BASE_URL)


@router.put("/api/urls/{url_id}", response_model=URLResponse, tags=["urls"])
@router.patch("/api/urls/{url_id}", response_model=URLResponse, tags=["urls"])
async def update_url(
    url_id: str,
    payload: URLUpdate,
    service: URLService = Depends(get_url_service),
) -> URLResponse:
    record = await service.update_url(parse_url_id(url_id), payload)
    return URLResponse.from_record(record, service.settings.BASE_URL)


@router.delete("/api/urls/{url_id}", status_code=204, tags=["urls"])
async def delete_url(
    url_id: str,
    service: URLService = Depends(get_url_service),
) -> Response:
    await service.delete_url(parse_url_id(url_id))
    return Response(status_code=204)


@router.get("/{short_path}", tags=["redirect"])
async def redirect_to_destination(
    short_path: str,
    service: URLService = Depends(get_url_service),
) -> RedirectResponse:
    record = await service.resolve_short_path(short_path)
    return RedirectResponse(url=record.destination, status_code=307)

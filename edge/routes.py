"""FastAPI route definitions for the edge redirect node.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    GET  /internal/status
        └─ StatusResponse (200) or 500 when the store is down

    GET  /:short_path
        ├─ 302 Redirect (hit)
        ├─ 404 "URL not found" (miss)
        └─ 500 "Internal Server Error" (store failure)

Key Behaviours
===============
- The redirect handler never retries; one lookup per request.
- Recording the access is best-effort and never blocks the redirect.
- 302 matches what browsers and the origin expect from a short link.

Endpoints:
    /health:  Store ping plus the last known origin reachability.
    /internal/status:  Cache size, buffer depth and last sync reports.
    /:short_path:  Redirect to the cached destination.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse, RedirectResponse

from edge.dependencies import (
    RequestContext,
    ServiceManager,
    get_redirect_service,
    get_request_context,
    get_service_manager,
)
from edge.enums import HealthStatus, SyncKind
from edge.exceptions import StoreUnavailableError
from edge.redirect_service import RedirectService
from edge.schemas import HealthResponse, StatusResponse

__all__ = ["router"]

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(manager: ServiceManager = Depends(get_service_manager)) -> HealthResponse:
    store_status = HealthStatus.HEALTHY
    try:
        await manager.store.ping()
    except StoreUnavailableError as e:
        manager.logger.error(f"Store health check failed: {e}")
        store_status = HealthStatus.UNHEALTHY

    return HealthResponse(status=store_status, store=store_status, origin=manager.origin_status)


@router.get("/internal/status", response_model=StatusResponse, tags=["internal"])
async def sync_status(manager: ServiceManager = Depends(get_service_manager)) -> StatusResponse:
    try:
        cached_paths = await manager.path_cache.size()
        buffered_logs = await manager.log_buffer.size()
    except StoreUnavailableError as exc:
        manager.logger.error(f"Status lookup failed: {exc}")
        raise HTTPException(status_code=500, detail="Store unavailable") from exc

    reports = manager.sync_service.last_reports
    return StatusResponse(
        edge_hostname=manager.settings.EDGE_HOSTNAME,
        cached_paths=cached_paths,
        buffered_logs=buffered_logs,
        scheduler_running=manager.scheduler.running,
        last_path_sync=reports.get(SyncKind.PATHS),
        last_log_sync=reports.get(SyncKind.LOGS),
    )


@router.get("/{short_path}", tags=["redirect"], response_model=None)
async def redirect_to_url(
    short_path: str,
    ctx: RequestContext = Depends(get_request_context),
    service: RedirectService = Depends(get_redirect_service),
) -> RedirectResponse | PlainTextResponse:
    try:
        destination = await service.resolve(short_path, ctx.client_ip, ctx.user_agent)
    except StoreUnavailableError as exc:
        ctx.logger.error(
            f"Redirect lookup failed for {short_path}: {exc}",
            extra={
                "operation": "redirect",
                "short_path": short_path,
                "error": str(exc),
                "duration_ms": ctx.get_duration(),
            },
        )
        return PlainTextResponse("Internal Server Error", status_code=500)

    if destination is None:
        ctx.logger.info(
            f"Redirect miss - short path not found: {short_path}",
            extra={
                "operation": "redirect",
                "short_path": short_path,
                "error": "not_found",
                "duration_ms": ctx.get_duration(),
            },
        )
        return PlainTextResponse("URL not found", status_code=404)

    ctx.logger.info(
        f"Redirect successful: {short_path} -> {destination}",
        extra={
            "operation": "redirect",
            "short_path": short_path,
            "target_url": destination,
            "duration_ms": ctx.get_duration(),
        },
    )
    return RedirectResponse(url=destination, status_code=302)

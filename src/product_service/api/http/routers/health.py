"""Liveness, readiness and per-dependency health probes."""

from typing import Any

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from src.product_service.api.http.app_data import ApplicationDependencies
from src.product_service.runtime.context import get_config

router = APIRouter(tags=["health"])


def _deps(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def _unavailable(exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"status": "unhealthy", "error": str(exc), "error_type": type(exc).__name__},
    )


async def _check_database(deps: ApplicationDependencies) -> tuple[dict[str, Any], bool]:
    try:
        healthy = deps.database_service.health_check()
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}, False
    kind = "sqlite" if get_config().database.is_sqlite else "postgresql"
    return {"status": "healthy" if healthy else "unhealthy", "type": kind}, healthy


async def _check_redis(deps: ApplicationDependencies) -> tuple[dict[str, Any], bool]:
    # Without Redis the product cache only misses, so this never fails readiness
    try:
        healthy = await deps.redis_service.health_check()
    except Exception as e:
        return {"status": "degraded", "error": str(e)}, True
    kind = "redis" if get_config().redis.enabled else "disabled"
    return {"status": "healthy" if healthy else "degraded", "type": kind}, True


async def _check_search(deps: ApplicationDependencies) -> tuple[dict[str, Any], bool]:
    if not deps.search.is_enabled:
        return {"status": "disabled"}, True
    healthy = await deps.search.health_check()
    return {
        "status": "healthy" if healthy else "unhealthy",
        "index": deps.search.index_name,
    }, healthy


async def _check_temporal(deps: ApplicationDependencies) -> tuple[dict[str, Any], bool]:
    if not get_config().temporal.enabled:
        return {"status": "disabled"}, True
    try:
        healthy = await deps.temporal_service.health_check()
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}, False
    return {
        "status": "healthy" if healthy else "unhealthy",
        "url": deps.temporal_service.url,
        "namespace": deps.temporal_service.namespace,
    }, healthy


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: 200 while the process is running, no dependency checks."""
    return {"status": "healthy", "service": "product"}


@router.get("/ready", response_model=None)
async def readiness(request: Request) -> dict[str, Any] | JSONResponse:
    """Readiness probe: 503 unless the database and the search cluster answer."""
    deps = _deps(request)
    probes = {
        "database": _check_database,
        "redis": _check_redis,
        "search": _check_search,
        "temporal": _check_temporal,
    }

    checks: dict[str, Any] = {}
    ready = True
    for name, probe in probes.items():
        checks[name], ok = await probe(deps)
        ready = ready and ok

    body = {
        "status": "ready" if ready else "not_ready",
        "environment": get_config().app.environment,
        "checks": checks,
    }
    return body if ready else JSONResponse(status_code=503, content=body)


@router.get("/health/database", response_model=None)
async def health_database(request: Request) -> dict[str, Any] | JSONResponse:
    """Database health with connection pool status."""
    db = _deps(request).database_service
    try:
        return {
            "status": "healthy" if db.health_check() else "unhealthy",
            "pool": db.get_pool_status(),
        }
    except Exception as e:
        return _unavailable(e)


@router.get("/health/redis", response_model=None)
async def health_redis(request: Request) -> dict[str, Any] | JSONResponse:
    redis_service = _deps(request).redis_service
    if not redis_service.is_enabled:
        return {"status": "disabled", "note": "Product cache runs without Redis"}

    try:
        result: dict[str, Any] = {
            "status": "healthy" if await redis_service.health_check() else "unhealthy",
            "url": redis_service.url,
        }
        if info := await redis_service.get_info():
            result["info"] = info
        return result
    except Exception as e:
        return _unavailable(e)


@router.get("/health/temporal", response_model=None)
async def health_temporal(request: Request) -> dict[str, Any] | JSONResponse:
    temporal = _deps(request).temporal_service
    if not temporal.is_enabled:
        return {"status": "disabled", "note": "Temporal service is not enabled"}

    try:
        return {
            "status": "healthy" if await temporal.health_check() else "unhealthy",
            "url": temporal.url,
            "namespace": temporal.namespace,
            "task_queue": temporal.task_queue,
        }
    except Exception as e:
        return _unavailable(e)

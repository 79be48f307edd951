"""FastAPI application: middleware, error mapping and service lifecycle."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from src.product_service.api.http.app_data import ApplicationDependencies
from src.product_service.api.http.routers.health import router as health_router
from src.product_service.api.http.routers.service.product import (
    router as product_router,
)
from src.product_service.api.utils.app_startup import configure_logging
from src.product_service.core.errors import ProductServiceError
from src.product_service.core.services import (
    DbSessionService,
    HttpAuthorityClient,
    HttpObjectMetadataClient,
    RedisService,
    SearchProjection,
    TemporalClientService,
)
from src.product_service.runtime.context import get_config
from src.product_service.runtime.wiring import build_product_service, build_product_store

configure_logging()

_app_config = get_config().app
_is_production = _app_config.environment == "production"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        if _is_production:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup()
    try:
        yield
    finally:
        await shutdown()


app = FastAPI(
    title="Product Service",
    lifespan=lifespan,
    docs_url=None if _is_production else "/docs",
    redoc_url=None if _is_production else "/redoc",
)

__all__ = ["app", "startup", "shutdown"]

# Browsers reject a wildcard origin combined with credentials
if _is_production and "*" in _app_config.cors.origins:
    raise RuntimeError("CORS origin '*' is not allowed in production")

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_app_config.cors.origins,
    allow_credentials=_app_config.cors.allow_credentials,
    allow_methods=_app_config.cors.allow_methods,
    allow_headers=_app_config.cors.allow_headers,
)


# --- Domain error mapping ---
@app.exception_handler(ProductServiceError)
async def handle_product_service_error(request: Request, exc: ProductServiceError):
    request_id = request.headers.get("X-Request-ID", "-")
    # Internal failures never leak their message
    detail = exc.message if exc.status_code < 500 else "Internal Server Error"
    if exc.status_code >= 500:
        logger.bind(error_type=type(exc).__name__).error(
            "request.store_error", error_message=exc.message
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail, "request_id": request_id},
    )


@app.exception_handler(TimeoutError)
async def handle_deadline_exceeded(request: Request, exc: TimeoutError):
    return JSONResponse(
        status_code=504,
        content={
            "detail": "Deadline exceeded",
            "request_id": request.headers.get("X-Request-ID", "-"),
        },
    )


# --- Request logging middleware ---
def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _failure(request_id: str, status_code: int, detail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "request_id": request_id},
        headers={"X-Request-ID": request_id},
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Attach a request id to every log line emitted while serving the request."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    started = time.perf_counter()

    def elapsed_ms() -> float:
        return round((time.perf_counter() - started) * 1000, 1)

    with logger.contextualize(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
        client_ip=_client_ip(request),
        user_id=request.headers.get("X-User-ID") or "-",
        user_agent=request.headers.get("user-agent", "unknown"),
    ):
        logger.info("request.start")
        try:
            response = await call_next(request)
        except HTTPException as exc:
            logger.bind(status_code=exc.status_code, duration_ms=elapsed_ms()).exception(
                "request.error"
            )
            return _failure(request_id, exc.status_code, exc.detail)
        except RequestValidationError as exc:
            logger.bind(status_code=422, duration_ms=elapsed_ms()).exception(
                "request.validation_error"
            )
            return _failure(request_id, 422, exc.errors())
        except Exception as exc:
            logger.bind(
                status_code=500, duration_ms=elapsed_ms(), error_type=type(exc).__name__
            ).exception("request.error")
            return _failure(request_id, 500, "Internal Server Error")

        logger.bind(status_code=response.status_code, duration_ms=elapsed_ms()).info(
            "request.end"
        )
        response.headers.setdefault("X-Request-ID", request_id)
        return response


# --- Router registration ---
app.include_router(health_router)
app.include_router(product_router, prefix="/products", tags=["products"])


# --- Lifecycle hooks ---
async def startup() -> None:
    config = get_config()
    logger.info("Starting up application in {} environment", config.app.environment)

    database_service = DbSessionService()
    redis_service = RedisService()
    temporal_service = TemporalClientService()
    search = SearchProjection()
    authority = HttpAuthorityClient()
    object_metadata = HttpObjectMetadataClient()

    store = build_product_store(database_service, search, redis_service.get_client())
    product_service = build_product_service(store, authority, object_metadata)

    app.state.app_dependencies = ApplicationDependencies(
        database_service=database_service,
        redis_service=redis_service,
        temporal_service=temporal_service,
        search=search,
        authority=authority,
        object_metadata=object_metadata,
        store=store,
        product_service=product_service,
    )


async def shutdown() -> None:
    logger.info("Shutting down application")
    app_dependencies: ApplicationDependencies | None = getattr(
        app.state, "app_dependencies", None
    )
    if app_dependencies is None:
        return

    await app_dependencies.store.drain()
    await app_dependencies.authority.close()
    await app_dependencies.object_metadata.close()
    await app_dependencies.search.close()
    await app_dependencies.redis_service.close()
    await app_dependencies.temporal_service.close()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=get_config().app.host,
        port=get_config().app.port,
        access_log=False,  # request logging is done in middleware
    )

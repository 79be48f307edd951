"""FastAPI dependency implementations."""

from __future__ import annotations

from fastapi import Header, Query, Request

from src.product_service.api.http.app_data import ApplicationDependencies
from src.product_service.core.models.request import DataSource, RequestContext
from src.product_service.core.permissions import GUEST_ID
from src.product_service.core.services import (
    ProductService,
    RedisService,
    TemporalClientService,
)
from src.product_service.runtime.context import get_config


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_product_service(request: Request) -> ProductService:
    """Get the product service instance."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.product_service


def get_temporal_service(request: Request) -> TemporalClientService:
    """Get the Temporal Client service instance."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.temporal_service


def get_redis_service(request: Request) -> RedisService:
    """Get the Redis service instance."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.redis_service


def get_request_context(
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
    source: DataSource = Query(default=DataSource.SEARCH),
) -> RequestContext:
    """Build the per-call context from the caller identity header and routing hint.

    A missing identity header means the guest caller. The deadline comes from
    ``product.request_timeout_s``.
    """
    return RequestContext(
        caller_id=x_user_id or GUEST_ID,
        source=source,
        timeout=get_config().product.request_timeout_s,
    )

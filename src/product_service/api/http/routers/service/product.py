"""Product API router.

Every route resolves a :class:`RequestContext` from the ``X-User-ID`` header
and the ``source`` query parameter, then delegates to :class:`ProductService`.
Domain errors are mapped to HTTP statuses by the application's exception
handler.
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from src.product_service.api.http.deps import get_product_service, get_request_context
from src.product_service.core.models.pagination import PaginationRequest, PaginationResult
from src.product_service.core.models.product import (
    CreateProductPayload,
    UpdateProductPayload,
)
from src.product_service.core.models.request import RequestContext
from src.product_service.core.services import ProductService
from src.product_service.entities.service.product import Product

router = APIRouter()


class BatchRequest(BaseModel):
    ids: list[str] = Field(default_factory=list)


@router.post("", response_model=Product, status_code=201)
async def create_product(
    payload: CreateProductPayload,
    ctx: RequestContext = Depends(get_request_context),
    service: ProductService = Depends(get_product_service),
) -> Product:
    """Create a product owned by the caller."""
    return await service.create(ctx, payload)


@router.post("/batch", response_model=list[Product])
async def get_products(
    body: BatchRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: ProductService = Depends(get_product_service),
) -> list[Product]:
    """Return the products found for ``ids``, in request order; unknown ids are skipped."""
    return await service.find_by_ids(ctx, body.ids)


@router.get("", response_model=PaginationResult[str])
async def list_product_ids(
    search: str = "",
    sort: list[str] | None = Query(default=None),
    limit: int = 0,
    page: int = 0,
    include_deleted: bool = False,
    ctx: RequestContext = Depends(get_request_context),
    service: ProductService = Depends(get_product_service),
) -> PaginationResult[str]:
    request = PaginationRequest(
        search=search,
        sort=sort or [],
        limit=limit,
        page=page,
        include_deleted=include_deleted,
    )
    return await service.find_paginated_ids(ctx, request)


@router.get("/{product_id}", response_model=Product)
async def get_product(
    product_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ProductService = Depends(get_product_service),
) -> Product:
    return await service.find_by_id(ctx, product_id)


@router.put("/{product_id}", response_model=Product)
async def update_product(
    product_id: str,
    payload: UpdateProductPayload,
    ctx: RequestContext = Depends(get_request_context),
    service: ProductService = Depends(get_product_service),
) -> Product:
    return await service.update(ctx, product_id, payload)


@router.delete("/{product_id}", response_model=Product)
async def delete_product(
    product_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ProductService = Depends(get_product_service),
) -> Product:
    """Soft-delete a product and return its tombstone."""
    return await service.delete(ctx, product_id)

"""Product use cases: every public operation composed from guard, store and readers."""

import asyncio
from contextlib import asynccontextmanager

from loguru import logger

from src.product_service.core.errors import (
    ProductAlreadyDeletedError,
    ProductNotFoundError,
    ThumbnailNotFoundError,
    ThumbnailNotPublicError,
    ThumbnailTypeNotAllowedError,
    UnauthorizedError,
)
from src.product_service.core.models.pagination import PaginationRequest, PaginationResult
from src.product_service.core.models.product import (
    CreateProductPayload,
    UpdateProductPayload,
)
from src.product_service.core.models.request import RequestContext
from src.product_service.core.permissions import (
    PRODUCT_ALL,
    PRODUCT_READ,
    PRODUCT_READ_DELETED,
    PRODUCT_READ_OTHER,
    Action,
)
from src.product_service.core.services.access_guard import AccessGuard
from src.product_service.core.services.object_metadata import ObjectMetadata
from src.product_service.core.services.product.batch_fetch import ConcurrentBatchFetch
from src.product_service.core.services.product.pagination import PaginationRouter
from src.product_service.core.services.product.product_store import ProductStore
from src.product_service.entities.service.product import Product


class ProductService:
    """Entry point for Create, Update, Delete, FindByID, FindByIDs and FindPaginatedIDs.

    Each operation takes an explicit :class:`RequestContext`; its ``timeout``
    bounds every collaborator call made on the caller's behalf.
    """

    def __init__(
        self,
        store: ProductStore,
        guard: AccessGuard,
        object_metadata: ObjectMetadata,
        pagination: PaginationRouter,
        batch_concurrency: int = 16,
        thumbnail_type: str = "IMAGE",
    ) -> None:
        self._store = store
        self._guard = guard
        self._object_metadata = object_metadata
        self._pagination = pagination
        self._batch = ConcurrentBatchFetch(store.find_by_id, concurrency=batch_concurrency)
        self._thumbnail_type = thumbnail_type

    @asynccontextmanager
    async def _deadline(self, ctx: RequestContext):
        async with asyncio.timeout(ctx.timeout):
            yield

    async def _validate_thumbnail(self, ctx: RequestContext, thumbnail_id: str) -> None:
        try:
            info = await self._object_metadata.get_by_id(ctx.caller_id, thumbnail_id)
        except Exception as e:
            logger.info(
                "Thumbnail lookup failed",
                user_id=ctx.caller_id,
                thumbnail_id=thumbnail_id,
                error_message=str(e),
            )
            raise ThumbnailNotFoundError() from e

        if info.type != self._thumbnail_type:
            raise ThumbnailTypeNotAllowedError()
        if not info.is_public:
            raise ThumbnailNotPublicError()

    async def _require(self, product_id: str) -> Product:
        product = await self._store.find_by_id(product_id)
        if product is None:
            raise ProductNotFoundError()
        return product

    async def create(self, ctx: RequestContext, payload: CreateProductPayload) -> Product:
        async with self._deadline(ctx):
            await self._guard.check(ctx, Action.CREATE)
            await self._validate_thumbnail(ctx, payload.thumbnail_id)

            product = await self._store.create(payload.to_product(ctx.caller_id))
            logger.info("Product created", user_id=ctx.caller_id, product_id=product.id)
            return product

    async def update(
        self, ctx: RequestContext, product_id: str, payload: UpdateProductPayload
    ) -> Product:
        """Replace the editable fields of a live product.

        The thumbnail is validated only when it changes. A product whose
        thumbnail was rewritten to the default by the repair pipeline stays
        editable even though the default is not a stored object.
        """
        async with self._deadline(ctx):
            product = await self._require(product_id)
            if product.is_deleted:
                raise ProductNotFoundError()
            await self._guard.check(ctx, Action.UPDATE, product)

            if payload.thumbnail_id != product.thumbnail_id:
                await self._validate_thumbnail(ctx, payload.thumbnail_id)

            updated = await self._store.update(payload.apply(product))
            logger.info("Product updated", user_id=ctx.caller_id, product_id=product_id)
            return updated

    async def delete(self, ctx: RequestContext, product_id: str) -> Product:
        async with self._deadline(ctx):
            product = await self._require(product_id)
            if product.is_deleted:
                raise ProductAlreadyDeletedError()
            await self._guard.check(ctx, Action.DELETE, product)

            deleted = await self._store.delete_by_id(product_id)
            logger.info("Product deleted", user_id=ctx.caller_id, product_id=product_id)
            return deleted

    async def find_by_id(self, ctx: RequestContext, product_id: str) -> Product:
        async with self._deadline(ctx):
            product = await self._require(product_id)
            try:
                await self._guard.check(ctx, Action.READ, product)
            except UnauthorizedError:
                # Tombstones stay invisible to callers who may not see them
                if product.is_deleted:
                    raise ProductNotFoundError() from None
                raise
            return product

    async def find_by_ids(self, ctx: RequestContext, product_ids: list[str]) -> list[Product]:
        """Hydrate ``product_ids`` after one read check; unknown ids are skipped."""
        async with self._deadline(ctx):
            await self._guard.check(ctx, Action.READ)
            return await self._batch.fetch_many(product_ids)

    async def find_paginated_ids(
        self, ctx: RequestContext, request: PaginationRequest
    ) -> PaginationResult[str]:
        """Return one page of ids from the source picked in ``ctx``.

        Callers who may not read other users' products only see their own.
        """
        async with self._deadline(ctx):
            if request.include_deleted:
                permissions = [PRODUCT_ALL, PRODUCT_READ_DELETED]
            else:
                permissions = [PRODUCT_ALL, PRODUCT_READ, PRODUCT_READ_OTHER]
            if not await self._guard.has_access(ctx, permissions):
                logger.info(
                    "Pagination denied",
                    user_id=ctx.caller_id,
                    include_deleted=request.include_deleted,
                )
                raise UnauthorizedError()

            may_read_other = await self._guard.has_access(
                ctx, [PRODUCT_ALL, PRODUCT_READ_OTHER]
            )
            owner_id = None if may_read_other else ctx.caller_id
            return await self._pagination.paginate(request, ctx.source, owner_id=owner_id)

"""Source-of-record product storage with cache and search propagation.

Every mutation writes the database first. Only after that succeeds is the
search document rewritten, and the cache entry is dropped after both steps.
Failures of the secondary steps are logged and never reach the caller.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from src.product_service.core.errors import StoreError
from src.product_service.core.models.pagination import PaginationRequest
from src.product_service.core.services.database.db_session import DbSessionService
from src.product_service.core.services.search.search_projection import SearchProjection
from src.product_service.core.storage.product_cache import ProductCache
from src.product_service.entities.service.product import Product, ProductRepository


class ProductStore:
    def __init__(
        self,
        database: DbSessionService,
        cache: ProductCache,
        search: SearchProjection,
        cache_ttl_s: int,
    ) -> None:
        self._database = database
        self._cache = cache
        self._search = search
        self._cache_ttl_s = cache_ttl_s
        self._pending: set[asyncio.Task[Product]] = set()

    async def _run_db[T](self, operation: Callable[..., T], *args: Any) -> T:
        """Run a repository call in its own transaction on a worker thread.

        Cancelling the caller does not stop a statement already sent; the
        thread finishes and its transaction commits or rolls back on its own.
        """

        def _in_session() -> T:
            with self._database.session_scope() as session:
                return operation(ProductRepository(session), *args)

        try:
            return await asyncio.to_thread(_in_session)
        except SQLAlchemyError as e:
            raise StoreError(f"database operation failed: {e}") from e

    async def _reindex(self, product: Product) -> None:
        try:
            await self._search.index(product)
        except Exception as e:
            logger.error(
                "Failed to index product",
                product_id=product.id,
                error_type=type(e).__name__,
                error_message=str(e),
            )

    async def _invalidate(self, *product_ids: str) -> None:
        try:
            await self._cache.delete(*product_ids)
        except Exception as e:
            logger.error(
                "Failed to invalidate product cache",
                product_ids=list(product_ids),
                error_type=type(e).__name__,
                error_message=str(e),
            )

    async def _write_through(self, operation: Callable[..., Product], *args: Any) -> Product:
        product = await self._run_db(operation, *args)
        # The cache entry is dropped once the row commits and again after re-indexing
        await self._invalidate(product.id)
        try:
            await self._reindex(product)
        finally:
            await self._invalidate(product.id)
        return product

    def _forget(self, task: asyncio.Task[Product]) -> None:
        self._pending.discard(task)
        # Failures were logged by the session scope; a caller still waiting re-raises them
        if not task.cancelled():
            task.exception()

    async def _mutate(self, operation: Callable[..., Product], *args: Any) -> Product:
        """Apply a write and its propagation, even if the caller stops waiting.

        A caller whose deadline expires gets the cancellation right away while
        the write keeps going in the background; :meth:`drain` waits for it.
        """
        task = asyncio.create_task(self._write_through(operation, *args))
        self._pending.add(task)
        task.add_done_callback(self._forget)
        return await asyncio.shield(task)

    async def drain(self) -> None:
        """Wait for writes whose callers already gave up."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def create(self, product: Product) -> Product:
        return await self._mutate(ProductRepository.create, product)

    async def update(self, product: Product) -> Product:
        return await self._mutate(ProductRepository.update, product)

    async def delete_by_id(self, product_id: str, deleted_at: datetime | None = None) -> Product:
        """Tombstone the product; the tombstoned document is re-indexed, not removed."""
        return await self._mutate(ProductRepository.soft_delete, product_id, deleted_at)

    async def find_by_id(self, product_id: str) -> Product | None:
        """Read through the cache; misses are cached as negative entries."""
        try:
            entry = await self._cache.get(product_id)
        except Exception as e:
            logger.warning(
                "Product cache read failed, falling back to database",
                product_id=product_id,
                error_message=str(e),
            )
            entry = None

        if entry is not None:
            return entry.product

        product = await self._run_db(ProductRepository.get, product_id)
        try:
            await self._cache.set(product_id, product, self._cache_ttl_s)
        except Exception as e:
            logger.warning(
                "Product cache write failed",
                product_id=product_id,
                error_message=str(e),
            )
        return product

    async def find_paginated_ids(
        self, request: PaginationRequest, owner_id: str | None = None
    ) -> tuple[list[str], int]:
        return await self._run_db(ProductRepository.find_paginated_ids, request, owner_id)

    async def find_search_paginated_ids(
        self, request: PaginationRequest, owner_id: str | None = None
    ) -> tuple[list[str], int]:
        return await self._search.find_paginated_ids(request, owner_id)

    async def update_all_thumbnail(self, old_thumbnail_id: str, new_thumbnail_id: str) -> int:
        """Point every product referencing ``old_thumbnail_id`` at ``new_thumbnail_id``.

        Idempotent: a second run with the same arguments changes nothing. The
        rewrite commits before any propagation, so a product that cannot be
        reloaded or re-indexed is logged and skipped rather than failing the run.
        """

        def _rewrite(repo: ProductRepository) -> tuple[list[str], int]:
            affected = repo.ids_by_thumbnail(old_thumbnail_id)
            if not affected:
                return [], 0
            return affected, repo.update_all_thumbnail(old_thumbnail_id, new_thumbnail_id)

        affected, updated = await self._run_db(_rewrite)
        if not affected:
            return 0

        await self._invalidate(*affected)
        for product_id in affected:
            try:
                product = await self._run_db(ProductRepository.get, product_id)
            except StoreError as e:
                logger.error(
                    "Failed to reload product after thumbnail rewrite",
                    product_id=product_id,
                    error_message=str(e),
                )
                continue
            if product is not None:
                await self._reindex(product)
        await self._invalidate(*affected)

        logger.info(
            "Rewrote thumbnail references",
            old_thumbnail_id=old_thumbnail_id,
            new_thumbnail_id=new_thumbnail_id,
            updated=updated,
        )
        return updated

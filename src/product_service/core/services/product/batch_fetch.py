"""Concurrent hydration of product ids into products."""

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

from src.product_service.entities.service.product import Product


class ConcurrentBatchFetch:
    """Looks up many ids at once with at most ``concurrency`` lookups in flight.

    Per-id failures and misses are dropped from the result; they never fail
    the whole call. Cancelling the caller cancels every outstanding lookup.
    """

    def __init__(
        self,
        lookup: Callable[[str], Awaitable[Product | None]],
        concurrency: int = 16,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._lookup = lookup
        self._concurrency = concurrency

    async def fetch_many(self, ids: list[str]) -> list[Product]:
        """Return the products found, in the order of ``ids``, each at most once."""
        unique_ids = list(dict.fromkeys(ids))
        found: dict[str, Product] = {}
        lock = asyncio.Lock()
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _fetch(product_id: str) -> None:
            async with semaphore:
                try:
                    product = await self._lookup(product_id)
                except Exception as e:
                    logger.warning(
                        "Batch lookup failed",
                        product_id=product_id,
                        error_type=type(e).__name__,
                        error_message=str(e),
                    )
                    return
            if product is None:
                return
            async with lock:
                found[product_id] = product

        async with asyncio.TaskGroup() as group:
            for product_id in unique_ids:
                group.create_task(_fetch(product_id))

        return [found[product_id] for product_id in unique_ids if product_id in found]

"""Product cache interface and implementations.

Entries are keyed by product id and hold either a serialized product or an
explicit "not found" marker, so repeated lookups of a missing id are served
from the cache too.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from src.product_service.entities.service.product import Product
from src.product_service.runtime.context import get_config

CACHE_KEY_PREFIX = "products:id:"


def product_cache_key(product_id: str) -> str:
    return f"{CACHE_KEY_PREFIX}{product_id}"


class ProductCacheEntry(BaseModel):
    """Cached lookup result; ``product`` is None for a negative entry."""

    product: Product | None = None

    @property
    def is_negative(self) -> bool:
        return self.product is None


class ProductCache(ABC):
    """Abstract interface for product cache backends."""

    @abstractmethod
    async def get(self, product_id: str) -> ProductCacheEntry | None:
        """Return the cached entry, or None on a miss.

        A hit on a negative entry returns an entry whose ``product`` is None.
        """

    @abstractmethod
    async def set(self, product_id: str, product: Product | None, ttl_seconds: int) -> None:
        """Cache ``product`` (or a negative entry when None) with a TTL."""

    @abstractmethod
    async def delete(self, *product_ids: str) -> None:
        """Invalidate the entries of the given products."""

    @abstractmethod
    def is_available(self) -> bool:
        pass


class InMemoryProductCache(ProductCache):
    """In-memory cache with TTL support, used in tests and without Redis."""

    def __init__(self):
        self._data: dict[str, dict[str, Any]] = {}

    async def get(self, product_id: str) -> ProductCacheEntry | None:
        key = product_cache_key(product_id)
        entry = self._data.get(key)
        if entry is None:
            return None

        if time.time() > entry["expires_at"]:
            del self._data[key]
            return None

        return ProductCacheEntry.model_validate_json(entry["data"])

    async def set(self, product_id: str, product: Product | None, ttl_seconds: int) -> None:
        self._data[product_cache_key(product_id)] = {
            "data": ProductCacheEntry(product=product).model_dump_json(),
            "expires_at": time.time() + ttl_seconds,
        }

    async def delete(self, *product_ids: str) -> None:
        for product_id in product_ids:
            self._data.pop(product_cache_key(product_id), None)

    def is_available(self) -> bool:
        return True


class RedisProductCache(ProductCache):
    """Redis-backed cache storing entries as JSON strings."""

    def __init__(self, redis_client):
        self._redis = redis_client
        self._available = True

    async def get(self, product_id: str) -> ProductCacheEntry | None:
        try:
            data = await self._redis.get(product_cache_key(product_id))
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis get failed: {e}") from e

        self._available = True
        if data is None:
            return None
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return ProductCacheEntry.model_validate_json(data)

    async def set(self, product_id: str, product: Product | None, ttl_seconds: int) -> None:
        try:
            await self._redis.setex(
                product_cache_key(product_id),
                ttl_seconds,
                ProductCacheEntry(product=product).model_dump_json(),
            )
            self._available = True
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis set failed: {e}") from e

    async def delete(self, *product_ids: str) -> None:
        if not product_ids:
            return
        try:
            await self._redis.delete(*(product_cache_key(i) for i in product_ids))
            self._available = True
        except Exception as e:
            self._available = False
            raise RuntimeError(f"Redis delete failed: {e}") from e

    def is_available(self) -> bool:
        return self._available


class DisabledProductCache(ProductCache):
    """Cache used when caching is turned off: every lookup is a miss."""

    async def get(self, product_id: str) -> ProductCacheEntry | None:
        return None

    async def set(self, product_id: str, product: Product | None, ttl_seconds: int) -> None:
        return None

    async def delete(self, *product_ids: str) -> None:
        return None

    def is_available(self) -> bool:
        return True


def build_product_cache(redis_client=None) -> ProductCache:
    """Pick the cache backend for the current configuration."""
    if not get_config().product.cache_enabled:
        return DisabledProductCache()
    if redis_client is None:
        return InMemoryProductCache()
    return RedisProductCache(redis_client)

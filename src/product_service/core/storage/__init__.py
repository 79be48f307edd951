"""Cache backends for product lookups."""

from .product_cache import (
    DisabledProductCache,
    InMemoryProductCache,
    ProductCache,
    ProductCacheEntry,
    RedisProductCache,
    build_product_cache,
)

__all__ = [
    "DisabledProductCache",
    "InMemoryProductCache",
    "ProductCache",
    "ProductCacheEntry",
    "RedisProductCache",
    "build_product_cache",
]

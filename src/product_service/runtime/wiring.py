"""Builds the product object graph from configuration.

Shared by the HTTP application and the worker so both processes write
through the same store setup.
"""

from src.product_service.core.services.access_guard import AccessGuard
from src.product_service.core.services.authority import Authority
from src.product_service.core.services.database.db_session import DbSessionService
from src.product_service.core.services.object_metadata import ObjectMetadata
from src.product_service.core.services.product.pagination import PaginationRouter
from src.product_service.core.services.product.product_service import ProductService
from src.product_service.core.services.product.product_store import ProductStore
from src.product_service.core.services.search.search_projection import SearchProjection
from src.product_service.core.storage.product_cache import build_product_cache
from src.product_service.runtime.context import get_config


def build_product_store(
    database: DbSessionService,
    search: SearchProjection,
    redis_client=None,
) -> ProductStore:
    return ProductStore(
        database=database,
        cache=build_product_cache(redis_client),
        search=search,
        cache_ttl_s=get_config().product.cache_ttl_s,
    )


def build_product_service(
    store: ProductStore,
    authority: Authority,
    object_metadata: ObjectMetadata,
) -> ProductService:
    cfg = get_config().product
    return ProductService(
        store=store,
        guard=AccessGuard(authority),
        object_metadata=object_metadata,
        pagination=PaginationRouter.for_store(
            store,
            default_limit=cfg.default_page_limit,
            max_limit=cfg.max_page_limit,
        ),
        batch_concurrency=cfg.batch_fetch_concurrency,
        thumbnail_type=cfg.thumbnail_object_type,
    )

"""Core services exports."""

from .access_guard import AccessGuard
from .authority import Authority, HttpAuthorityClient
from .database.db_session import DbSessionService
from .object_metadata import HttpObjectMetadataClient, ObjectMetadata
from .product.pagination import PaginationRouter
from .product.product_service import ProductService
from .product.product_store import ProductStore
from .product.thumbnail_repair import ThumbnailRepairConsumer
from .redis_service import RedisService
from .search.search_projection import SearchProjection
from .tasks.task_queue import TaskQueue, TemporalTaskQueue
from .temporal.temporal_client import TemporalClientService

__all__ = [
    "AccessGuard",
    "Authority",
    "DbSessionService",
    "HttpAuthorityClient",
    "HttpObjectMetadataClient",
    "ObjectMetadata",
    "PaginationRouter",
    "ProductService",
    "ProductStore",
    "RedisService",
    "SearchProjection",
    "TaskQueue",
    "TemporalClientService",
    "TemporalTaskQueue",
    "ThumbnailRepairConsumer",
]

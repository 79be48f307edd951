from dataclasses import dataclass

from src.product_service.core.services import (
    DbSessionService,
    HttpAuthorityClient,
    HttpObjectMetadataClient,
    ProductService,
    ProductStore,
    RedisService,
    SearchProjection,
    TemporalClientService,
)


@dataclass
class ApplicationDependencies:
    database_service: DbSessionService
    redis_service: RedisService
    temporal_service: TemporalClientService
    search: SearchProjection
    authority: HttpAuthorityClient
    object_metadata: HttpObjectMetadataClient
    store: ProductStore
    product_service: ProductService

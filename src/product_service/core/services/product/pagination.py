"""Paginated id lookups served either by the database or by the search projection."""

from typing import Protocol

from src.product_service.core.models.pagination import (
    PaginationRequest,
    PaginationResult,
    max_page,
)
from src.product_service.core.models.request import DataSource
from src.product_service.core.services.product.product_store import ProductStore


class PaginationSource(Protocol):
    async def find_ids(
        self, request: PaginationRequest, owner_id: str | None
    ) -> tuple[list[str], int]: ...


class DatabasePaginationSource:
    """Substring search and exact column sort over the relational store."""

    def __init__(self, store: ProductStore) -> None:
        self._store = store

    async def find_ids(
        self, request: PaginationRequest, owner_id: str | None
    ) -> tuple[list[str], int]:
        return await self._store.find_paginated_ids(request, owner_id)


class SearchPaginationSource:
    """Relevance-scored full-text search over the projection."""

    def __init__(self, store: ProductStore) -> None:
        self._store = store

    async def find_ids(
        self, request: PaginationRequest, owner_id: str | None
    ) -> tuple[list[str], int]:
        return await self._store.find_search_paginated_ids(request, owner_id)


class PaginationRouter:
    """Sanitizes a request and dispatches it to the source the caller picked."""

    def __init__(
        self,
        sources: dict[DataSource, PaginationSource],
        default_limit: int,
        max_limit: int,
    ) -> None:
        self._sources = sources
        self._default_limit = default_limit
        self._max_limit = max_limit

    @classmethod
    def for_store(
        cls, store: ProductStore, default_limit: int, max_limit: int
    ) -> "PaginationRouter":
        return cls(
            {
                DataSource.DATABASE: DatabasePaginationSource(store),
                DataSource.SEARCH: SearchPaginationSource(store),
            },
            default_limit=default_limit,
            max_limit=max_limit,
        )

    async def paginate(
        self,
        request: PaginationRequest,
        source: DataSource,
        owner_id: str | None = None,
    ) -> PaginationResult[str]:
        """Return one page of ids; ``owner_id`` restricts results to that owner."""
        sanitized = request.sanitize(self._default_limit, self._max_limit)
        ids, count = await self._sources[source].find_ids(sanitized, owner_id)
        return PaginationResult[str](
            meta=sanitized,
            count=count,
            max_page=max_page(count, sanitized.limit),
            items=ids,
        )

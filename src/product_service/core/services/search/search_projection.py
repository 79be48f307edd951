"""Search projection of products, kept in an OpenSearch index over its REST API."""

from typing import Any

import httpx
from loguru import logger

from src.product_service.core.errors import StoreError
from src.product_service.core.models.pagination import PaginationRequest
from src.product_service.core.services.search.index_definition import (
    KEYWORD_SUFFIX,
    SEARCH_FIELDS,
    SORTABLE_FIELDS,
    index_mapping,
    index_settings,
)
from src.product_service.entities.service.product import Product
from src.product_service.runtime.config.config_data import SearchConfig
from src.product_service.runtime.context import get_config


def build_search_query(
    request: PaginationRequest,
    analyzer: str,
    minimum_should_match: str,
    owner_id: str | None = None,
) -> dict[str, Any]:
    """Translate a sanitized pagination request into a search request body.

    Sort keys prefixed with ``+`` are ascending, every other key is descending.
    """
    if request.search:
        must: dict[str, Any] = {
            "multi_match": {
                "query": request.search,
                "analyzer": analyzer,
                "fields": list(SEARCH_FIELDS),
                "minimum_should_match": minimum_should_match,
            }
        }
    else:
        must = {"match_all": {}}

    bool_query: dict[str, Any] = {"must": must}
    if not request.include_deleted:
        bool_query["must_not"] = [{"exists": {"field": "deleted_at"}}]
    if owner_id is not None:
        bool_query["filter"] = [{"term": {"owner_id": owner_id}}]

    sort = []
    for key in request.sort:
        field = key.lstrip("+-")
        if field not in SORTABLE_FIELDS:
            continue
        order = "asc" if key.startswith("+") else "desc"
        sort.append({f"{field}.{KEYWORD_SUFFIX}": {"order": order}})

    return {
        "from": request.offset,
        "size": request.limit,
        "track_total_hits": True,
        "query": {"bool": bool_query},
        "sort": sort,
    }


class SearchProjection:
    """Denormalized product documents used for full-text paginated search.

    Documents are rewritten wholesale on every mutation and keep the
    ``deleted_at`` tombstone so deletion filtering matches the database.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        config: SearchConfig | None = None,
    ) -> None:
        self._config = config or get_config().search
        self._index = self._config.index
        if client is None:
            auth = None
            if self._config.username:
                auth = httpx.BasicAuth(self._config.username, self._config.password or "")
            client = httpx.AsyncClient(
                base_url=self._config.url,
                auth=auth,
                verify=self._config.verify_tls,
                timeout=self._config.timeout_s,
            )
        self._client = client

    @property
    def is_enabled(self) -> bool:
        return self._config.enabled

    @property
    def index_name(self) -> str:
        return self._index

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(f"search request failed: {e}") from e

        if response.is_error:
            raise StoreError(
                f"search {method} {path} returned {response.status_code}: {response.text[:200]}"
            )
        return response

    async def index(self, product: Product) -> None:
        """Create or replace the document of ``product``."""
        if not self.is_enabled:
            return
        await self._request(
            "PUT",
            f"/{self._index}/_doc/{product.id}",
            json=product.model_dump(mode="json"),
        )

    async def find_paginated_ids(
        self, request: PaginationRequest, owner_id: str | None = None
    ) -> tuple[list[str], int]:
        if not self.is_enabled:
            raise StoreError("search is disabled")
        body = build_search_query(
            request,
            analyzer=self._config.analyzer,
            minimum_should_match=self._config.minimum_should_match,
            owner_id=owner_id,
        )
        response = await self._request("POST", f"/{self._index}/_search", json=body)
        hits = response.json().get("hits", {})
        ids = [hit["_id"] for hit in hits.get("hits", [])]
        count = int(hits.get("total", {}).get("value", 0))
        return ids, count

    async def create_index(self) -> bool:
        """Create the index and put its mapping.

        Failures are logged and reported through the return value.
        """
        ok = True
        try:
            await self._request(
                "PUT", f"/{self._index}", json=index_settings(self._config.analyzer)
            )
            logger.info("Search index created", index=self._index)
        except StoreError as e:
            ok = False
            logger.error("Failed to create search index", index=self._index, error_message=str(e))

        try:
            await self._request(
                "PUT",
                f"/{self._index}/_mapping",
                json=index_mapping(self._config.analyzer),
            )
            logger.info("Search index mapping updated", index=self._index)
        except StoreError as e:
            ok = False
            logger.error("Failed to update search mapping", index=self._index, error_message=str(e))

        return ok

    async def health_check(self) -> bool:
        try:
            await self._request("GET", "/_cluster/health")
            return True
        except StoreError as e:
            logger.error("Search health check failed", error_message=str(e))
            return False

    async def close(self) -> None:
        await self._client.aclose()

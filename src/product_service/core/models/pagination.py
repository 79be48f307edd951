"""Pagination request and result models."""

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginationRequest(BaseModel):
    """Paginated search request as sent by a caller."""

    search: str = Field(default="", description="Free-text search term")
    sort: list[str] = Field(default_factory=list, description="Sort keys, e.g. -price")
    limit: int = Field(default=0, description="Page size")
    page: int = Field(default=0, description="1-based page number")
    include_deleted: bool = Field(
        default=False, description="Include soft-deleted products"
    )

    def sanitize(self, default_limit: int, max_limit: int) -> "PaginationRequest":
        """Return a copy with limit clamped to (0, max_limit] and page to >= 1."""
        limit = self.limit
        if limit <= 0:
            limit = default_limit
        if limit > max_limit:
            limit = max_limit
        return self.model_copy(
            update={
                "limit": limit,
                "page": max(self.page, 1),
                "search": self.search.strip(),
            }
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def max_page(count: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(count / limit)


class PaginationResult(BaseModel, Generic[T]):
    """One page of results with the sanitized request echoed back as ``meta``."""

    meta: PaginationRequest
    count: int = 0
    max_page: int = 0
    items: list[T] = Field(default_factory=list)

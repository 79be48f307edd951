"""Entity: Product."""

from datetime import datetime

from pydantic import Field

from src.product_service.entities.core._base import Entity


class Product(Entity):
    """A product offered by its owner.

    ``owner_id`` is fixed at creation. Deleting a product only sets
    ``deleted_at``; the row is never removed.
    """

    name: str = Field(default="", max_length=255)
    description: str = Field(default="")
    price: float = Field(default=0.0, ge=0)
    thumbnail_id: str = Field(default="", description="Object storage reference")
    owner_id: str = Field(default="")
    deleted_at: datetime | None = Field(default=None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def is_owned_by(self, user_id: str) -> bool:
        return self.owner_id == user_id

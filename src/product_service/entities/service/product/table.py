"""Product database table model."""

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from src.product_service.entities.core._base import EntityTable


class ProductTable(EntityTable, table=True):
    """Database persistence model for products."""

    __tablename__ = "products"

    name: str = Field(default="", max_length=255, index=True)
    description: str = Field(default="", sa_type=sa.Text)
    price: float = Field(default=0.0)
    thumbnail_id: str = Field(default="", index=True)
    owner_id: str = Field(default="", index=True)
    deleted_at: datetime | None = Field(
        default=None, nullable=True, sa_type=sa.DateTime(timezone=True)
    )

"""Request payloads for product mutations."""

from pydantic import BaseModel, Field

from src.product_service.entities.service.product import Product


class CreateProductPayload(BaseModel):
    id: str | None = Field(default=None, description="Client-chosen id, generated if absent")
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    price: float = Field(default=0.0, ge=0)
    thumbnail_id: str = Field(min_length=1)

    def to_product(self, owner_id: str) -> Product:
        fields = self.model_dump(exclude={"id"})
        if self.id:
            return Product(id=self.id, owner_id=owner_id, **fields)
        return Product(owner_id=owner_id, **fields)


class UpdateProductPayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    price: float = Field(default=0.0, ge=0)
    thumbnail_id: str = Field(min_length=1)

    def apply(self, product: Product) -> Product:
        """Return ``product`` with the mutable fields replaced."""
        return product.model_copy(update=self.model_dump())

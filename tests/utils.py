from src.product_service.core.models.request import DataSource, RequestContext
from src.product_service.entities.service.product import Product

OWNER = "user-owner"
OTHER = "user-other"
ADMIN = "user-admin"


def make_product(**overrides) -> Product:
    fields = {
        "name": "Desk lamp",
        "description": "Warm white LED lamp",
        "price": 39.5,
        "thumbnail_id": "thumb-1",
        "owner_id": OWNER,
    }
    fields.update(overrides)
    return Product(**fields)


def ctx_for(
    caller_id: str, source: DataSource = DataSource.DATABASE, timeout: float | None = None
) -> RequestContext:
    return RequestContext(caller_id=caller_id, source=source, timeout=timeout)

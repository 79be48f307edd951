"""Data-access layer for products."""

from datetime import datetime

from sqlalchemy import func, or_, update
from sqlmodel import Session, col, select

from src.product_service.core.models.pagination import PaginationRequest
from src.product_service.entities.core._base import utc_now

from .entity import Product
from .table import ProductTable

# Columns a caller may sort on; anything else is ignored
SORTABLE_COLUMNS = {
    "name": ProductTable.name,
    "description": ProductTable.description,
    "price": ProductTable.price,
    "created_at": ProductTable.created_at,
    "updated_at": ProductTable.updated_at,
    "deleted_at": ProductTable.deleted_at,
}

SEARCH_COLUMNS = (ProductTable.name, ProductTable.description)


class ProductRepository:
    """Synchronous product queries bound to one session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, product_id: str) -> Product | None:
        row = self._session.get(ProductTable, product_id)
        if row is None:
            return None
        return Product.model_validate(row, from_attributes=True)

    def create(self, product: Product) -> Product:
        row = ProductTable.model_validate(product.model_dump())
        self._session.add(row)
        self._session.flush()
        self._session.refresh(row)
        return Product.model_validate(row, from_attributes=True)

    def update(self, product: Product) -> Product:
        """Persist the mutable fields of ``product``; identity and owner are kept."""
        row = self._session.get(ProductTable, product.id)
        if row is None:
            raise ValueError(f"Product {product.id} not found")

        row.name = product.name
        row.description = product.description
        row.price = product.price
        row.thumbnail_id = product.thumbnail_id
        row.updated_at = utc_now()
        self._session.add(row)
        self._session.flush()
        self._session.refresh(row)
        return Product.model_validate(row, from_attributes=True)

    def soft_delete(self, product_id: str, deleted_at: datetime | None = None) -> Product:
        row = self._session.get(ProductTable, product_id)
        if row is None:
            raise ValueError(f"Product {product_id} not found")

        now = deleted_at or utc_now()
        row.deleted_at = now
        row.updated_at = now
        self._session.add(row)
        self._session.flush()
        self._session.refresh(row)
        return Product.model_validate(row, from_attributes=True)

    def find_paginated_ids(
        self, request: PaginationRequest, owner_id: str | None = None
    ) -> tuple[list[str], int]:
        """Return one page of ids plus the total number of matching rows.

        ``request`` must already be sanitized.
        """
        conditions = []
        if not request.include_deleted:
            conditions.append(col(ProductTable.deleted_at).is_(None))
        if owner_id is not None:
            conditions.append(col(ProductTable.owner_id) == owner_id)
        if request.search:
            term = request.search.lower()
            conditions.append(
                or_(
                    *(
                        func.lower(column).contains(term, autoescape=True)
                        for column in SEARCH_COLUMNS
                    )
                )
            )

        count_statement = select(func.count()).select_from(ProductTable)
        ids_statement = select(ProductTable.id)
        for condition in conditions:
            count_statement = count_statement.where(condition)
            ids_statement = ids_statement.where(condition)

        for key in request.sort:
            column = SORTABLE_COLUMNS.get(key.lstrip("+-"))
            if column is None:
                continue
            ids_statement = ids_statement.order_by(
                col(column).desc() if key.startswith("-") else col(column).asc()
            )
        ids_statement = ids_statement.order_by(col(ProductTable.id))

        count = self._session.exec(count_statement).one()
        ids = self._session.exec(
            ids_statement.offset(request.offset).limit(request.limit)
        ).all()
        return list(ids), int(count)

    def ids_by_thumbnail(self, thumbnail_id: str) -> list[str]:
        statement = select(ProductTable.id).where(
            col(ProductTable.thumbnail_id) == thumbnail_id
        )
        return list(self._session.exec(statement).all())

    def update_all_thumbnail(self, old_thumbnail_id: str, new_thumbnail_id: str) -> int:
        """Rewrite every reference to ``old_thumbnail_id``; returns rows touched.

        Running it again with the same arguments matches no rows.
        """
        statement = (
            update(ProductTable)
            .where(col(ProductTable.thumbnail_id) == old_thumbnail_id)
            .values(thumbnail_id=new_thumbnail_id, updated_at=utc_now())
        )
        result = self._session.execute(statement)
        return result.rowcount or 0

"""HTTP surface of the product service: routing, caller identity and error mapping."""

from collections.abc import Generator
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.product_service.api.http.app import app
from src.product_service.core.errors import StoreError
from src.product_service.core.permissions import FULL_ACCESS, SEED_GROUPS
from src.product_service.core.services import ProductService
from tests.fixtures.dummies import FakeAuthority
from tests.utils import OTHER, OWNER


def _health_dependencies(
    db_healthy: bool = True, search_healthy: bool = True, redis_healthy: bool = True
):
    database_service = MagicMock()
    database_service.health_check.return_value = db_healthy
    database_service.get_pool_status.return_value = {"size": 1}

    redis_service = MagicMock(is_enabled=True, url="redis://redis:6379")
    redis_service.health_check = AsyncMock(return_value=redis_healthy)
    redis_service.get_info = AsyncMock(return_value={})

    search = MagicMock(is_enabled=True, index_name="products")
    search.health_check = AsyncMock(return_value=search_healthy)

    temporal_service = MagicMock(
        is_enabled=True, url="temporal:7233", namespace="default", task_queue="product"
    )
    temporal_service.health_check = AsyncMock(return_value=True)

    return SimpleNamespace(
        database_service=database_service,
        redis_service=redis_service,
        search=search,
        temporal_service=temporal_service,
    )


@pytest.fixture
def client(
    app_config, product_service: ProductService, authority: FakeAuthority
) -> Generator[TestClient]:
    """Test client wired to in-memory services; the lifespan hooks are not run."""
    authority.grant(OWNER, *SEED_GROUPS["DEFAULT"])
    authority.grant(OTHER, *SEED_GROUPS["DEFAULT"])

    previous = getattr(app.state, "app_dependencies", None)
    deps = _health_dependencies()
    deps.product_service = product_service
    app.state.app_dependencies = deps
    try:
        yield TestClient(app)
    finally:
        app.state.app_dependencies = previous


def _create(client: TestClient, user: str = OWNER, **fields):
    body = {"name": "Desk lamp", "price": 39.5, "thumbnail_id": "thumb-1"}
    body.update(fields)
    return client.post("/products", json=body, headers={"X-User-ID": user})


class TestProductRoutes:
    def test_create_and_get(self, client: TestClient):
        response = _create(client)
        assert response.status_code == 201
        product = response.json()
        assert product["owner_id"] == OWNER

        response = client.get(
            f"/products/{product['id']}",
            params={"source": "database"},
            headers={"X-User-ID": OWNER},
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Desk lamp"

    def test_missing_identity_is_guest(self, client: TestClient):
        response = _create(client, user="")
        assert response.status_code == 401

    def test_update(self, client: TestClient):
        product = _create(client).json()

        response = client.put(
            f"/products/{product['id']}",
            json={"name": "Floor lamp", "price": 80, "thumbnail_id": "thumb-1"},
            headers={"X-User-ID": OWNER},
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Floor lamp"

    def test_delete_twice_is_precondition_failed(self, client: TestClient):
        product = _create(client).json()

        first = client.delete(f"/products/{product['id']}", headers={"X-User-ID": OWNER})
        second = client.delete(f"/products/{product['id']}", headers={"X-User-ID": OWNER})

        assert first.status_code == 200
        assert first.json()["deleted_at"] is not None
        assert second.status_code == 412

    def test_not_found(self, client: TestClient):
        response = client.get("/products/missing", headers={"X-User-ID": OWNER})
        assert response.status_code == 404
        assert response.json()["detail"] == "product not found"

    def test_other_users_product_cannot_be_modified(self, client: TestClient):
        product = _create(client).json()

        response = client.delete(f"/products/{product['id']}", headers={"X-User-ID": OTHER})

        assert response.status_code == 401

    def test_thumbnail_type_rejected(self, client: TestClient):
        response = _create(client, thumbnail_id="doc-1")
        assert response.status_code == 412

    def test_invalid_body(self, client: TestClient):
        response = client.post(
            "/products", json={"name": ""}, headers={"X-User-ID": OWNER}
        )
        assert response.status_code == 422

    def test_batch_keeps_order(self, client: TestClient):
        a = _create(client, name="A").json()
        b = _create(client, name="B").json()

        response = client.post(
            "/products/batch",
            json={"ids": [b["id"], "missing", a["id"]]},
            headers={"X-User-ID": OWNER},
        )

        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == [b["id"], a["id"]]

    def test_list_from_database(self, client: TestClient, authority: FakeAuthority):
        authority.grant(OWNER, FULL_ACCESS)
        for name in ("Lamp", "Chair", "Table"):
            _create(client, name=name)

        response = client.get(
            "/products",
            params={"source": "database", "limit": 2, "sort": ["name"]},
            headers={"X-User-ID": OWNER},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 3
        assert body["max_page"] == 2
        assert len(body["items"]) == 2
        assert body["meta"]["limit"] == 2

    def test_store_failure_is_internal_error(
        self, client: TestClient, product_service: ProductService
    ):
        """Store failures never leak their message."""
        product_service._store.find_by_id = AsyncMock(side_effect=StoreError("db host x down"))

        response = client.get("/products/p-1", headers={"X-User-ID": OWNER})

        assert response.status_code == 500
        assert response.json()["detail"] == "Internal Server Error"

    def test_request_id_echoed(self, client: TestClient):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestHealthRoutes:
    def test_liveness(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client: TestClient):
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_database_down_is_not_ready(self, client: TestClient):
        deps = _health_dependencies(db_healthy=False)
        deps.product_service = app.state.app_dependencies.product_service
        app.state.app_dependencies = deps

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["database"]["status"] == "unhealthy"

    def test_redis_down_only_degrades(self, client: TestClient):
        deps = _health_dependencies(redis_healthy=False)
        deps.product_service = app.state.app_dependencies.product_service
        app.state.app_dependencies = deps

        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["checks"]["redis"]["status"] == "degraded"

    def test_search_down_is_not_ready(self, client: TestClient):
        deps = _health_dependencies(search_healthy=False)
        deps.product_service = app.state.app_dependencies.product_service
        app.state.app_dependencies = deps

        assert client.get("/ready").status_code == 503

    def test_database_health(self, client: TestClient):
        response = client.get("/health/database")
        assert response.json() == {"status": "healthy", "pool": {"size": 1}}

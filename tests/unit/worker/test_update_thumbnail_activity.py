"""The thumbnail repair activity run inside Temporal's activity test environment."""

import pytest
from temporalio.exceptions import ApplicationError
from temporalio.testing import ActivityEnvironment

from src.product_service.core.models.task import TASK_DECODE_FAILURE, RepairTaskPayload
from src.product_service.core.services import ProductStore
from src.product_service.worker.activities.thumbnail import update_thumbnail
from src.product_service.worker.dependencies import (
    WorkerDependencies,
    _reset_dependencies,
    get_dependencies,
    set_dependencies,
)
from tests.utils import make_product


@pytest.fixture
def worker_store(store: ProductStore):
    set_dependencies(WorkerDependencies(store=store))
    yield store
    _reset_dependencies()


def _payload(old: str, new: str) -> str:
    return RepairTaskPayload(old_object_id=old, new_object_id=new).model_dump_json(by_alias=True)


class TestUpdateThumbnailActivity:
    @pytest.mark.asyncio
    async def test_rewrites_references(self, worker_store: ProductStore):
        product = await worker_store.create(make_product(thumbnail_id="deleted-obj"))

        updated = await ActivityEnvironment().run(
            update_thumbnail, _payload("deleted-obj", "default-thumb")
        )

        assert updated == 1
        found = await worker_store.find_by_id(product.id)
        assert found is not None
        assert found.thumbnail_id == "default-thumb"

    @pytest.mark.asyncio
    async def test_rerun_is_harmless(self, worker_store: ProductStore):
        await worker_store.create(make_product(thumbnail_id="deleted-obj"))
        env = ActivityEnvironment()

        assert await env.run(update_thumbnail, _payload("deleted-obj", "default-thumb")) == 1
        assert await env.run(update_thumbnail, _payload("deleted-obj", "default-thumb")) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["not json", '{"oldObjectID": "a"}'])
    async def test_undecodable_payload_is_non_retryable(self, worker_store, raw):
        with pytest.raises(ApplicationError) as exc_info:
            await ActivityEnvironment().run(update_thumbnail, raw)

        assert exc_info.value.type == TASK_DECODE_FAILURE
        assert exc_info.value.non_retryable is True


def test_dependencies_must_be_installed():
    _reset_dependencies()
    with pytest.raises(RuntimeError):
        get_dependencies()

"""An object-deleted event carried through the consumer and into the repair activity."""

import json

import pytest
from temporalio.testing import ActivityEnvironment

from src.product_service.core.models.task import UPDATE_THUMBNAIL_TASK
from src.product_service.core.services import ProductStore, ThumbnailRepairConsumer
from src.product_service.core.services.events.event_stream import StreamMessage
from src.product_service.runtime.config.config_data import ConfigData
from src.product_service.worker.activities.thumbnail import update_thumbnail
from src.product_service.worker.dependencies import (
    WorkerDependencies,
    _reset_dependencies,
    set_dependencies,
)
from tests.fixtures.dummies import FakeEventStream, FakeTaskQueue
from tests.utils import make_product


@pytest.fixture
def worker_store(store: ProductStore):
    set_dependencies(WorkerDependencies(store=store))
    yield store
    _reset_dependencies()


@pytest.mark.asyncio
async def test_deleted_thumbnail_is_replaced_everywhere(
    app_config: ConfigData, worker_store: ProductStore
):
    using_t1 = [
        await worker_store.create(make_product(name=f"Uses T1 {i}", thumbnail_id="T1"))
        for i in range(2)
    ]
    other = await worker_store.create(make_product(name="Uses T2", thumbnail_id="T2"))

    queue = FakeTaskQueue()
    consumer = ThumbnailRepairConsumer(
        FakeEventStream(), queue, app_config.events, app_config.product
    )
    await consumer.handle(
        StreamMessage(
            message_id="1-0",
            subject=app_config.events.object_deleted_subject,
            data=json.dumps({"objectID": "T1"}),
        )
    )

    assert len(queue.tasks) == 1
    task = queue.tasks[0]
    assert task["task_type"] == UPDATE_THUMBNAIL_TASK

    updated = await ActivityEnvironment().run(
        update_thumbnail, task["payload"].model_dump_json(by_alias=True)
    )

    assert updated == 2
    for product in using_t1:
        found = await worker_store.find_by_id(product.id)
        assert found is not None
        assert found.thumbnail_id == app_config.product.default_thumbnail_id
    untouched = await worker_store.find_by_id(other.id)
    assert untouched is not None
    assert untouched.thumbnail_id == "T2"

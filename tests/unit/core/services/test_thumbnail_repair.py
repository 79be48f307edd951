import asyncio
import json
from datetime import timedelta

import pytest

from src.product_service.core.models.task import UPDATE_THUMBNAIL_TASK, RepairTaskPayload
from src.product_service.core.services import ThumbnailRepairConsumer
from src.product_service.core.services.events.event_stream import StreamMessage
from src.product_service.runtime.config.config_data import ConfigData
from tests.fixtures.dummies import FakeEventStream, FakeTaskQueue

SUBJECT = "storage.object.deleted"


def _deleted(message_id: str, object_id: str) -> StreamMessage:
    return StreamMessage(
        message_id=message_id,
        subject=SUBJECT,
        data=json.dumps({"objectID": object_id}),
    )


class StoppingEventStream(FakeEventStream):
    """Sets ``stop_event`` once every queued batch has been read."""

    def __init__(self, batches, stop_event: asyncio.Event, log=None):
        super().__init__(batches, log)
        self.stop_event = stop_event

    async def read(self, count: int, block_ms: int) -> list[StreamMessage]:
        if not self.batches:
            self.stop_event.set()
        return await super().read(count, block_ms)


class TestThumbnailRepairConsumer:
    @pytest.fixture(autouse=True)
    def _setup(self, app_config: ConfigData):
        self.config = app_config
        self.log: list = []
        self.stream = FakeEventStream(log=self.log)
        self.queue = FakeTaskQueue(log=self.log)
        self.consumer = ThumbnailRepairConsumer(
            self.stream, self.queue, app_config.events, app_config.product
        )

    @pytest.mark.asyncio
    async def test_deleted_object_enqueues_one_repair(self):
        task_id = await self.consumer.handle(_deleted("1-0", "obj-9"))

        assert task_id is not None
        assert len(self.queue.tasks) == 1
        task = self.queue.tasks[0]
        assert task["task_type"] == UPDATE_THUMBNAIL_TASK
        assert task["payload"] == RepairTaskPayload(
            old_object_id="obj-9", new_object_id="default-thumb"
        )
        assert task["max_retry"] == 5
        assert task["retention"] == timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_ack_happens_before_enqueue(self):
        task_id = await self.consumer.handle(_deleted("1-0", "obj-9"))
        assert self.log == [("ack", "1-0"), ("enqueue", task_id)]

    @pytest.mark.asyncio
    async def test_unknown_subject_acked_without_task(self):
        message = StreamMessage(message_id="2-0", subject="storage.object.created", data="{}")

        assert await self.consumer.handle(message) is None

        assert self.stream.acked == ["2-0"]
        assert self.queue.tasks == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", ["not json", "{}", '{"objectID": ""}'])
    async def test_undecodable_event_dropped(self, data):
        message = StreamMessage(message_id="3-0", subject=SUBJECT, data=data)

        assert await self.consumer.handle(message) is None

        assert self.stream.acked == ["3-0"]
        assert self.queue.tasks == []

    @pytest.mark.asyncio
    async def test_enqueue_failure_is_logged_not_raised(self):
        """The message stays acked; the repair for it is lost."""
        self.queue.error = RuntimeError("temporal unavailable")

        assert await self.consumer.handle(_deleted("4-0", "obj-1")) is None
        assert self.stream.acked == ["4-0"]

    @pytest.mark.asyncio
    async def test_run_consumes_until_stopped(self):
        stop_event = asyncio.Event()
        stream = StoppingEventStream(
            [[_deleted("1-0", "a"), _deleted("1-1", "b")], [_deleted("1-2", "c")]],
            stop_event,
            log=self.log,
        )
        consumer = ThumbnailRepairConsumer(
            stream, self.queue, self.config.events, self.config.product
        )

        await asyncio.wait_for(consumer.run(stop_event), timeout=5)

        assert stream.groups_ensured == 1
        assert stream.acked == ["1-0", "1-1", "1-2"]
        assert [t["payload"].old_object_id for t in self.queue.tasks] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_failed_ack_does_not_stop_consumption(self):
        stop_event = asyncio.Event()
        stream = StoppingEventStream(
            [[_deleted("1-0", "a"), _deleted("1-1", "b")]], stop_event, log=self.log
        )
        stream.failing_acks = {"1-0"}
        consumer = ThumbnailRepairConsumer(
            stream, self.queue, self.config.events, self.config.product
        )

        await asyncio.wait_for(consumer.run(stop_event), timeout=5)

        assert stream.acked == ["1-1"]
        assert [t["payload"].old_object_id for t in self.queue.tasks] == ["b"]

    @pytest.mark.asyncio
    async def test_group_setup_is_retried(self):
        stop_event = asyncio.Event()
        stream = StoppingEventStream([[_deleted("1-0", "a")]], stop_event, log=self.log)
        stream.group_failures = 2
        consumer = ThumbnailRepairConsumer(
            stream, self.queue, self.config.events, self.config.product, retry_delay_s=0
        )

        await asyncio.wait_for(consumer.run(stop_event), timeout=5)

        assert stream.groups_ensured == 1
        assert stream.acked == ["1-0"]

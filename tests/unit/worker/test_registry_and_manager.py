from unittest.mock import MagicMock

import pytest

from src.product_service.core.models.task import UPDATE_THUMBNAIL_TASK
from src.product_service.worker.manager import TemporalWorkerManager
from src.product_service.worker.registry import (
    activity_defn,
    get_activities_by_queue,
    get_workflows_by_queue,
    workflow_defn,
)
from src.product_service.worker.workflows.task_dispatch import TaskDispatchWorkflow


class TestRegistry:
    def test_decorators_require_queue(self):
        with pytest.raises(ValueError):
            activity_defn(queue="")
        with pytest.raises(ValueError):
            workflow_defn(queue="")

    def test_product_handlers_registered(self):
        TemporalWorkerManager()

        activities = get_activities_by_queue()["product"]
        workflows = get_workflows_by_queue()["product"]

        assert TaskDispatchWorkflow in workflows
        names = {getattr(a, "__temporal_activity_definition").name for a in activities}
        assert UPDATE_THUMBNAIL_TASK in names

    def test_returned_maps_are_copies(self):
        get_workflows_by_queue()["bogus"] = set()
        assert "bogus" not in get_workflows_by_queue()


class TestTemporalWorkerManager:
    def test_pools_group_handlers_by_queue(self):
        manager = TemporalWorkerManager()

        pool = manager.pools["product"]

        assert TaskDispatchWorkflow in pool.workflows
        assert any(getattr(a, "__activity_queue__", None) == "product" for a in pool.activities)

    def test_unknown_queue_rejected(self):
        manager = TemporalWorkerManager()

        with pytest.raises(ValueError):
            manager._build_worker(MagicMock(), "no-such-queue")

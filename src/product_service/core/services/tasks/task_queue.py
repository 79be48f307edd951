"""Durable, retry-tracked task queue backed by Temporal workflows."""

import uuid
from datetime import timedelta
from typing import Protocol

from loguru import logger
from pydantic import BaseModel
from temporalio.common import RetryPolicy

from src.product_service.core.models.task import TaskEnvelope
from src.product_service.core.services.temporal.temporal_client import (
    TemporalClientService,
)


class TaskQueue(Protocol):
    async def enqueue(
        self,
        task_type: str,
        payload: BaseModel,
        max_retry: int,
        retention: timedelta,
    ) -> str:
        """Persist a task and return its id."""
        ...


class TemporalTaskQueue:
    """Each task becomes one TaskDispatchWorkflow run.

    The workflow itself runs once; retries of the handler are bounded by
    ``max_retry`` inside it. Temporal keeps closed runs for the namespace
    retention period, so the requested retention is recorded in the memo.
    """

    def __init__(
        self, temporal_service: TemporalClientService, timeout_s: int = 60
    ) -> None:
        self._temporal = temporal_service
        self._timeout_s = timeout_s

    async def enqueue(
        self,
        task_type: str,
        payload: BaseModel,
        max_retry: int,
        retention: timedelta,
    ) -> str:
        from src.product_service.worker.workflows.task_dispatch import (
            TaskDispatchWorkflow,
        )

        envelope = TaskEnvelope(
            task_type=task_type,
            payload=payload.model_dump_json(by_alias=True),
            max_retry=max_retry,
            retention_s=int(retention.total_seconds()),
            timeout_s=self._timeout_s,
        )
        task_id = f"{task_type}-{uuid.uuid4()}"
        client = await self._temporal.get_client()
        await TaskDispatchWorkflow.start_workflow(
            client,
            input=envelope,
            id=task_id,
            retry_policy=RetryPolicy(maximum_attempts=1),
            memo={"task_type": task_type, "retention_s": envelope.retention_s},
        )
        logger.info("Task enqueued", task_id=task_id, task_type=task_type, max_retry=max_retry)
        return task_id

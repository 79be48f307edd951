"""Runs one durable task by dispatching its payload to the activity registered
under the task type.

A payload the handler cannot decode is skipped without retrying. Any other
failure is retried up to ``max_retry`` times with backoff and then abandoned.
Both end states are recorded in the workflow result instead of failing it.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError, ApplicationError

from src.product_service.worker.registry import workflow_defn
from src.product_service.worker.workflows.base import BaseWorkflow

with workflow.unsafe.imports_passed_through():
    from src.product_service.core.models.task import (
        TASK_DECODE_FAILURE,
        TaskEnvelope,
        TaskOutcome,
        TaskStatus,
    )


@workflow_defn(queue="product")
class TaskDispatchWorkflow(BaseWorkflow[TaskEnvelope, TaskOutcome]):
    @workflow.run
    async def run(self, input: TaskEnvelope) -> TaskOutcome:
        self._state["task_type"] = input.task_type
        self._state["status"] = "running"

        retry_policy = RetryPolicy(
            initial_interval=timedelta(seconds=1),
            backoff_coefficient=2.0,
            maximum_interval=timedelta(minutes=5),
            maximum_attempts=input.max_retry + 1,
            non_retryable_error_types=[TASK_DECODE_FAILURE],
        )

        try:
            await self.execute_activity(
                input.task_type,
                input.payload,
                result_type=int,
                start_to_close_timeout=timedelta(seconds=input.timeout_s),
                retry_policy=retry_policy,
            )
        except ActivityError as e:
            cause = e.cause
            if isinstance(cause, ApplicationError) and cause.type == TASK_DECODE_FAILURE:
                workflow.logger.warning(
                    f"Skipping {input.task_type}: payload could not be decoded"
                )
                return self._finish(input, TaskStatus.SKIPPED, str(cause))

            workflow.logger.error(
                f"Abandoning {input.task_type} after {input.max_retry + 1} attempts: {cause}"
            )
            return self._finish(input, TaskStatus.ABANDONED, str(cause or e))

        return self._finish(input, TaskStatus.DONE)

    def _finish(
        self, input: TaskEnvelope, status: TaskStatus, error: str | None = None
    ) -> TaskOutcome:
        self._state["status"] = status.value
        return TaskOutcome(
            task_type=input.task_type,
            status=status,
            error=error,
        )

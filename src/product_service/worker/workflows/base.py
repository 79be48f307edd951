"""Common base for workflows: queue binding, client-side defaults and activity tracking."""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Self

from temporalio import workflow
from temporalio.client import Client, WorkflowHandle
from temporalio.common import RetryPolicy

# Distinguishes "no argument" from an explicit None argument
_NO_ARG = object()


def default_workflow_opts() -> dict[str, Any]:
    """Options for ``Client.start_workflow`` taken from ``temporal.workflows``.

    Only called from client code; workflow code never reads configuration.
    """
    from src.product_service.runtime.context import get_config

    wf = get_config().temporal.workflows
    return {
        "execution_timeout": timedelta(seconds=wf.execution_timeout_s),
        "run_timeout": timedelta(seconds=wf.run_timeout_s),
        "task_timeout": timedelta(seconds=wf.task_timeout_s),
        "retry_policy": RetryPolicy(
            maximum_attempts=wf.retry.maximum_attempts,
            initial_interval=timedelta(seconds=wf.retry.initial_interval_seconds),
            backoff_coefficient=wf.retry.backoff_coefficient,
            maximum_interval=timedelta(seconds=wf.retry.maximum_interval_seconds),
        ),
    }


def _activity_name(activity: Any) -> str:
    if isinstance(activity, str):
        return activity
    return activity.__name__


class BaseWorkflow[TArgs, TReturn](ABC):
    """Workflow with a ``state`` query and a ``cancel`` signal.

    Activities started through :meth:`start_activity` are tracked until they
    finish so that ``cancel`` can reach the ones still running. Subclasses are
    registered with ``@workflow_defn(queue=...)``, which also gives
    :meth:`start_workflow` its task queue.
    """

    def __init__(self) -> None:
        self._state: dict[str, Any] = {}
        self._activity_handles: dict[str, workflow.ActivityHandle[Any]] = {}
        self._activity_counter = 0

    @workflow.run
    @abstractmethod
    async def run(self, input: TArgs) -> TReturn: ...

    @workflow.query
    def state(self) -> dict:
        return self._state

    @workflow.signal
    def cancel(self):
        self._state["cancelled"] = True
        for activity_id, handle in self._activity_handles.items():
            if not handle.done():
                workflow.logger.info(f"Cancelling activity: {activity_id}")
                handle.cancel()

    def start_activity(
        self,
        activity: Any,
        arg: Any = _NO_ARG,
        *,
        result_type: type | None = None,
        start_to_close_timeout: timedelta | None = None,
        heartbeat_timeout: timedelta | None = None,
        retry_policy: RetryPolicy | None = None,
        task_queue: str | None = None,
        cancellation_type: workflow.ActivityCancellationType = workflow.ActivityCancellationType.TRY_CANCEL,
        activity_id: str | None = None,
    ) -> workflow.ActivityHandle[Any]:
        """Start ``activity`` (a function or a registered name) and track its handle.

        ``result_type`` is needed when ``activity`` is given by name, otherwise
        the result is not converted back to its declared type.
        """
        if activity_id is None:
            self._activity_counter += 1
            activity_id = f"{_activity_name(activity)}_{self._activity_counter}"

        kwargs: dict[str, Any] = {}
        if arg is not _NO_ARG:
            kwargs["arg"] = arg

        handle = workflow.start_activity(
            activity,
            result_type=result_type,
            start_to_close_timeout=start_to_close_timeout,
            heartbeat_timeout=heartbeat_timeout,
            retry_policy=retry_policy,
            task_queue=task_queue,
            cancellation_type=cancellation_type,
            activity_id=activity_id,
            **kwargs,
        )
        self._activity_handles[activity_id] = handle
        handle.add_done_callback(lambda _: self._activity_handles.pop(activity_id, None))
        return handle

    async def execute_activity(
        self,
        activity: Any,
        arg: Any = _NO_ARG,
        *,
        result_type: type | None = None,
        start_to_close_timeout: timedelta | None = None,
        heartbeat_timeout: timedelta | None = None,
        retry_policy: RetryPolicy | None = None,
        task_queue: str | None = None,
        cancellation_type: workflow.ActivityCancellationType = workflow.ActivityCancellationType.TRY_CANCEL,
        activity_id: str | None = None,
    ) -> Any:
        """Start an activity through :meth:`start_activity` and wait for its result."""
        return await self.start_activity(
            activity,
            arg,
            result_type=result_type,
            start_to_close_timeout=start_to_close_timeout,
            heartbeat_timeout=heartbeat_timeout,
            retry_policy=retry_policy,
            task_queue=task_queue,
            cancellation_type=cancellation_type,
            activity_id=activity_id,
        )

    @classmethod
    def _queue(cls) -> str:
        queue = getattr(cls, "__workflow_queue__", None)
        if not queue:
            raise ValueError(f"{cls.__name__} has no declared queue")
        return queue

    @classmethod
    async def start_workflow(
        cls: type[Self],
        client: Client,
        input: TArgs,
        id: str,
        **workflow_kwargs,
    ) -> WorkflowHandle[Self, TReturn]:
        """Start a run on the declared queue and return its handle.

        ``workflow_kwargs`` (for example ``retry_policy`` or ``memo``) take
        precedence over :func:`default_workflow_opts`. The workflow id also
        deduplicates: starting an id that is already running fails.

        Raises:
            ValueError: If the class was not registered with a queue
        """
        return await client.start_workflow(
            cls.run,
            input,
            id=id,
            task_queue=cls._queue(),
            **{**default_workflow_opts(), **workflow_kwargs},
        )

    @classmethod
    async def execute_workflow(
        cls,
        client: Client,
        input: TArgs,
        id: str,
        **workflow_kwargs,
    ) -> TReturn:
        """Like :meth:`start_workflow`, but wait for the run's result."""
        return await client.execute_workflow(
            cls.run,
            input,
            id=id,
            task_queue=cls._queue(),
            **{**default_workflow_opts(), **workflow_kwargs},
        )

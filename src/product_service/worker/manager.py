import asyncio
import signal
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from temporalio.client import Client
from temporalio.worker import Worker

from src.product_service.worker.registry import (
    autodiscover_modules,
    get_activities_by_queue,
    get_workflows_by_queue,
)


@dataclass
class Pool:
    """Workflows and activities served by one task queue."""

    queue: str
    workflows: list[type[Any]] = field(default_factory=list)
    activities: list[Callable[..., Any]] = field(default_factory=list)


class TemporalWorkerManager:
    """
    Runs one Temporal worker per task queue.

    Constructing the manager imports the worker packages, so every handler
    decorated with ``@workflow_defn`` or ``@activity_defn`` is registered
    before the pools are built.

    Example:
        manager = TemporalWorkerManager()
        client = await temporal_service.get_client()
        await manager.run_workers(client, ["product"], stop_event=stop_event)
    """

    def __init__(self, packages: list[str] | None = None):
        autodiscover_modules(packages)
        self._pools = self._build_pools()

    @staticmethod
    def _build_pools() -> dict[str, Pool]:
        pools: dict[str, Pool] = {}
        for queue, workflows in get_workflows_by_queue().items():
            pools.setdefault(queue, Pool(queue=queue)).workflows.extend(
                sorted(workflows, key=lambda c: c.__name__)
            )
        for queue, activities in get_activities_by_queue().items():
            pools.setdefault(queue, Pool(queue=queue)).activities.extend(
                sorted(activities, key=lambda fn: fn.__name__)
            )
        return pools

    def _build_worker(self, client: Client, task_queue: str) -> Worker:
        """
        Create the worker polling ``task_queue``.

        Raises:
            ValueError: If nothing is registered on the queue
            RuntimeError: If a pooled handler declares a different queue
        """
        pool = self._pools.get(task_queue)
        if not pool or (not pool.workflows and not pool.activities):
            raise ValueError(f"No handlers registered for queue '{task_queue}'")

        handlers = [(wf, "__workflow_queue__") for wf in pool.workflows] + [
            (fn, "__activity_queue__") for fn in pool.activities
        ]
        for handler, attr in handlers:
            declared = getattr(handler, attr, None)
            if declared != task_queue:
                raise RuntimeError(
                    f"{handler.__name__} declares queue '{declared}', "
                    f"but worker requested '{task_queue}'"
                )

        from src.product_service.runtime.context import get_config

        limits = get_config().temporal.worker
        return Worker(
            client,
            task_queue=task_queue,
            workflows=pool.workflows,
            activities=pool.activities,
            max_concurrent_workflow_tasks=limits.max_concurrent_workflow_tasks,
            max_concurrent_activities=limits.max_concurrent_activities,
        )

    async def run_workers(
        self,
        client: Client,
        task_queues: Sequence[str],
        stop_event: asyncio.Event | None = None,
        drain_timeout: float = 600.0,
    ) -> None:
        """
        Poll ``task_queues`` until ``stop_event`` is set, then drain.

        Draining stops polling and gives in-flight tasks ``drain_timeout``
        seconds to finish; after that the workers are cancelled. Without a
        ``stop_event`` the drain is triggered by SIGINT or SIGTERM.
        """
        workers = [self._build_worker(client, q) for q in task_queues]
        run_tasks = [
            asyncio.create_task(w.run(), name=f"worker:{q}")
            for w, q in zip(workers, task_queues, strict=True)
        ]
        logger.info("Workers started", task_queues=list(task_queues))

        if stop_event is None:
            stop_event = asyncio.Event()
            loop = asyncio.get_running_loop()
            for s in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(s, stop_event.set)
                except NotImplementedError:
                    # Windows / non-main thread
                    pass

        try:
            await stop_event.wait()
            logger.info("Draining workers", drain_timeout_s=drain_timeout)
            # Shielded so that cancelling run_workers does not cut the drain short
            shutdown = asyncio.gather(*(w.shutdown() for w in workers), return_exceptions=True)
            await asyncio.wait_for(asyncio.shield(shutdown), timeout=drain_timeout)
            logger.info("Workers drained")
        except TimeoutError:
            logger.warning("Drain timed out; cancelling workers", drain_timeout_s=drain_timeout)
            for t in run_tasks:
                t.cancel()
        finally:
            await asyncio.gather(*run_tasks, return_exceptions=True)

    @property
    def pools(self) -> dict[str, Pool]:
        """Registered handlers keyed by task queue."""
        return self._pools

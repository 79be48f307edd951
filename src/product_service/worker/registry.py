# worker/registry.py
"""
Temporal handler registry.

Workflows and activities declare the task queue they belong to with the
decorators below. Importing their modules registers them; the worker manager
then builds one worker per queue from what was registered.

Usage:
    @workflow_defn(queue="product")
    class TaskDispatchWorkflow(BaseWorkflow[TaskEnvelope, TaskOutcome]):
        ...

    @activity_defn(queue="product", name="product:updateThumbnail")
    async def update_thumbnail(payload: str) -> int:
        ...
"""

import importlib
import pkgutil
from collections.abc import Callable
from typing import Any, ParamSpec, TypeVar, cast

from temporalio import activity, workflow

from src.product_service.worker.workflows.base import BaseWorkflow

DEFAULT_PACKAGES = (
    "src.product_service.worker.activities",
    "src.product_service.worker.workflows",
)

# queue -> registered handlers
_ACTIVITY_BY_QUEUE: dict[str, set[Callable[..., Any]]] = {}
_WORKFLOW_BY_QUEUE: dict[str, set[type]] = {}


P = ParamSpec("P")
R = TypeVar("R")


def activity_defn(
    *, queue: str, **activity_kwargs: Any
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Register an activity on ``queue``.

    Wraps Temporal's ``@activity.defn``; ``activity_kwargs`` (e.g. ``name``)
    are passed through to it. The original signature is kept for type checkers.

    Raises:
        ValueError: If queue is not provided
    """
    if not queue:
        raise ValueError("activity_defn requires 'queue'")

    def deco(fn: Callable[P, R]) -> Callable[P, R]:
        wrapped = activity.defn(**activity_kwargs)(fn)
        setattr(wrapped, "__temporal_registered__", True)
        setattr(wrapped, "__activity_queue__", queue)
        _ACTIVITY_BY_QUEUE.setdefault(queue, set()).add(wrapped)  # type: ignore[arg-type]
        return cast(Callable[P, R], wrapped)

    return deco


WFClass = TypeVar("WFClass", bound="type[BaseWorkflow[Any, Any]]")


def workflow_defn(
    *, queue: str, **workflow_kwargs: Any
) -> Callable[[WFClass], WFClass]:
    """
    Register a workflow class on ``queue``.

    Wraps Temporal's ``@workflow.defn``; ``workflow_kwargs`` are passed through.

    Raises:
        ValueError: If queue is not provided
    """
    if not queue:
        raise ValueError("workflow_defn requires 'queue'")

    def deco(cls: WFClass) -> WFClass:
        wrapped_cls = workflow.defn(**workflow_kwargs)(cls)
        setattr(wrapped_cls, "__temporal_registered__", True)
        setattr(wrapped_cls, "__workflow_queue__", queue)
        _WORKFLOW_BY_QUEUE.setdefault(queue, set()).add(wrapped_cls)  # type: ignore[arg-type]
        return cast(WFClass, wrapped_cls)

    return deco


def autodiscover_modules(packages: list[str] | None = None) -> None:
    """
    Import every module under ``packages`` so their decorators run.

    Must be called before workers are built. Defaults to ``DEFAULT_PACKAGES``.
    """
    for mod_path in packages or DEFAULT_PACKAGES:
        pkg = importlib.import_module(mod_path)
        for m in pkgutil.walk_packages(pkg.__path__, prefix=f"{mod_path}."):
            importlib.import_module(m.name)


def get_activities_by_queue() -> dict[str, set[Callable[..., Any]]]:
    """Registered activities keyed by task queue."""
    return _ACTIVITY_BY_QUEUE.copy()  # copy to prevent external mutation


def get_workflows_by_queue() -> dict[str, set[type]]:
    """Registered workflow classes keyed by task queue."""
    return _WORKFLOW_BY_QUEUE.copy()  # copy to prevent external mutation

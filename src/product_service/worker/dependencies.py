"""Process-wide services that activities reach for at run time.

Activities are plain functions registered at import time, so the worker
entry point installs their collaborators here before polling starts.
"""

from dataclasses import dataclass

from src.product_service.core.services.product.product_store import ProductStore


@dataclass
class WorkerDependencies:
    store: ProductStore


_dependencies: WorkerDependencies | None = None


def set_dependencies(dependencies: WorkerDependencies) -> None:
    global _dependencies
    _dependencies = dependencies


def get_dependencies() -> WorkerDependencies:
    if _dependencies is None:
        raise RuntimeError("Worker dependencies have not been initialized")
    return _dependencies


def _reset_dependencies() -> None:
    """Forget installed dependencies. Only for tests."""
    global _dependencies
    _dependencies = None

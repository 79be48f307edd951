"""Core data models shared across the service and worker."""

from .events import ObjectDeletedEvent
from .pagination import PaginationRequest, PaginationResult
from .product import CreateProductPayload, UpdateProductPayload
from .request import DataSource, RequestContext
from .task import RepairTaskPayload, TaskEnvelope, TaskOutcome, TaskStatus

__all__ = [
    "CreateProductPayload",
    "DataSource",
    "ObjectDeletedEvent",
    "PaginationRequest",
    "PaginationResult",
    "RepairTaskPayload",
    "RequestContext",
    "TaskEnvelope",
    "TaskOutcome",
    "TaskStatus",
    "UpdateProductPayload",
]

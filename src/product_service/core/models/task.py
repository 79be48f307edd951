"""Durable task models exchanged between the queue, workflow and activities."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.product_service.core.errors import TaskDecodeError

UPDATE_THUMBNAIL_TASK = "product:updateThumbnail"

# ApplicationError type for payloads that can never be handled
TASK_DECODE_FAILURE = "TaskDecodeFailure"


class RepairTaskPayload(BaseModel):
    """Rewrite every reference to ``old_object_id`` into ``new_object_id``."""

    model_config = ConfigDict(populate_by_name=True)

    old_object_id: str = Field(alias="oldObjectID", min_length=1)
    new_object_id: str = Field(alias="newObjectID", min_length=1)

    @classmethod
    def decode(cls, raw: str) -> "RepairTaskPayload":
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise TaskDecodeError(f"invalid repair payload: {e}") from e


class TaskEnvelope(BaseModel):
    """What the task queue persists for one task.

    ``payload`` stays an opaque JSON string so that a malformed payload is only
    discovered by the handler, where it is classified as non-retryable.
    """

    task_type: str
    payload: str
    max_retry: int = Field(default=0, ge=0)
    retention_s: int = Field(default=0, ge=0)
    timeout_s: int = Field(default=60, gt=0)


class TaskStatus(StrEnum):
    DONE = "done"
    SKIPPED = "skipped"
    ABANDONED = "abandoned"


class TaskOutcome(BaseModel):
    task_type: str
    status: TaskStatus
    error: str | None = None

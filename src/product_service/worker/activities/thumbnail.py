from loguru import logger
from temporalio import activity
from temporalio.exceptions import ApplicationError

from src.product_service.core.errors import TaskDecodeError
from src.product_service.core.models.task import (
    TASK_DECODE_FAILURE,
    UPDATE_THUMBNAIL_TASK,
    RepairTaskPayload,
)
from src.product_service.core.permissions import SYSTEM_ID
from src.product_service.worker.dependencies import get_dependencies
from src.product_service.worker.registry import activity_defn


@activity_defn(queue="product", name=UPDATE_THUMBNAIL_TASK)
async def update_thumbnail(payload: str) -> int:
    """Point every product using the deleted thumbnail at the replacement.

    Re-running it is harmless: once rewritten, no product references the old id.
    """
    try:
        task = RepairTaskPayload.decode(payload)
    except TaskDecodeError as e:
        logger.error(
            "Undecodable task payload",
            task_type=UPDATE_THUMBNAIL_TASK,
            error_message=e.message,
        )
        raise ApplicationError(
            e.message, type=TASK_DECODE_FAILURE, non_retryable=True
        ) from e

    store = get_dependencies().store
    updated = await store.update_all_thumbnail(task.old_object_id, task.new_object_id)
    logger.info(
        "Thumbnail repair applied",
        old_object_id=task.old_object_id,
        new_object_id=task.new_object_id,
        updated=updated,
        user_id=SYSTEM_ID,
        attempt=activity.info().attempt,
    )
    return updated

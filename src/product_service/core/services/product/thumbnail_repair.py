"""Turns "object deleted" events into durable thumbnail repair tasks.

A message is acknowledged before its task is enqueued. The repair itself is
idempotent and retried by the task queue, so the stream only has to deliver
each event once. A crash between the ack and the enqueue loses that repair.
"""

import asyncio
from datetime import timedelta

from loguru import logger
from pydantic import ValidationError

from src.product_service.core.models.events import ObjectDeletedEvent
from src.product_service.core.models.task import UPDATE_THUMBNAIL_TASK, RepairTaskPayload
from src.product_service.core.services.events.event_stream import EventStream, StreamMessage
from src.product_service.core.services.tasks.task_queue import TaskQueue
from src.product_service.runtime.config.config_data import EventsConfig, ProductConfig


class ThumbnailRepairConsumer:
    def __init__(
        self,
        stream: EventStream,
        task_queue: TaskQueue,
        events_config: EventsConfig,
        product_config: ProductConfig,
        retry_delay_s: float = 1.0,
    ) -> None:
        self._stream = stream
        self._task_queue = task_queue
        self._events = events_config
        self._product = product_config
        self._retry_delay_s = retry_delay_s

    async def handle(self, message: StreamMessage) -> str | None:
        """Ack ``message`` and enqueue its repair task; returns the task id if any."""
        await self._stream.ack(message.message_id)

        if message.subject != self._events.object_deleted_subject:
            logger.warning(
                "Unhandled event subject",
                subject=message.subject,
                message_id=message.message_id,
            )
            return None

        try:
            event = ObjectDeletedEvent.model_validate_json(message.data)
        except ValidationError as e:
            logger.error(
                "Dropping undecodable event",
                message_id=message.message_id,
                error_message=str(e),
            )
            return None

        payload = RepairTaskPayload(
            old_object_id=event.object_id,
            new_object_id=self._product.default_thumbnail_id,
        )
        try:
            return await self._task_queue.enqueue(
                UPDATE_THUMBNAIL_TASK,
                payload,
                max_retry=self._product.repair_max_retry,
                retention=timedelta(seconds=self._product.repair_retention_s),
            )
        except Exception as e:
            logger.error(
                "Failed to enqueue thumbnail repair",
                object_id=event.object_id,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return None

    async def _ensure_group(self, stop_event: asyncio.Event) -> bool:
        while not stop_event.is_set():
            try:
                await self._stream.ensure_group()
                return True
            except Exception as e:
                logger.error(
                    "Event stream setup failed",
                    stream=self._events.stream,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                await asyncio.sleep(self._retry_delay_s)
        return False

    async def run(self, stop_event: asyncio.Event) -> None:
        """Consume until ``stop_event`` is set.

        Stream errors are logged and retried; a message whose handling fails
        is logged and skipped so the next one is still consumed.
        """
        if not await self._ensure_group(stop_event):
            return
        logger.info(
            "Event consumer started",
            stream=self._events.stream,
            group=self._events.group,
            consumer=self._events.consumer,
        )

        while not stop_event.is_set():
            try:
                messages = await self._stream.read(
                    count=self._events.batch_size, block_ms=self._events.block_ms
                )
            except Exception as e:
                logger.error(
                    "Event stream read failed",
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                await asyncio.sleep(self._retry_delay_s)
                continue

            for message in messages:
                try:
                    await self.handle(message)
                except Exception as e:
                    logger.error(
                        "Failed to handle event",
                        message_id=message.message_id,
                        subject=message.subject,
                        error_type=type(e).__name__,
                        error_message=str(e),
                    )

        logger.info("Event consumer stopped")

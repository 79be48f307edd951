"""Durable event stream on top of a Redis Stream consumer group."""

import json
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger
from redis.exceptions import ResponseError

from src.product_service.runtime.config.config_data import EventsConfig


@dataclass(frozen=True)
class StreamMessage:
    message_id: str
    subject: str
    data: str


class EventStream(Protocol):
    async def ensure_group(self) -> None: ...

    async def read(self, count: int, block_ms: int) -> list[StreamMessage]: ...

    async def ack(self, message_id: str) -> None: ...


def _as_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class RedisEventStream:
    """Reads one stream through a named consumer group with manual acks.

    Each entry has a ``subject`` field naming the event and a ``data`` field
    holding its JSON body.
    """

    def __init__(self, redis_client, config: EventsConfig) -> None:
        self._redis = redis_client
        self._stream = config.stream
        self._group = config.group
        self._consumer = config.consumer

    async def ensure_group(self) -> None:
        """Create the stream and the consumer group if they do not exist yet."""
        try:
            await self._redis.xgroup_create(self._stream, self._group, id="0", mkstream=True)
            logger.info("Created consumer group", stream=self._stream, group=self._group)
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise
            logger.debug("Consumer group already exists", stream=self._stream, group=self._group)

    async def read(self, count: int, block_ms: int) -> list[StreamMessage]:
        response = await self._redis.xreadgroup(
            self._group,
            self._consumer,
            {self._stream: ">"},
            count=count,
            block=block_ms,
        )
        messages = []
        for _stream, entries in response or []:
            for message_id, fields in entries:
                fields = {_as_str(k): _as_str(v) for k, v in (fields or {}).items()}
                messages.append(
                    StreamMessage(
                        message_id=_as_str(message_id),
                        subject=fields.get("subject", ""),
                        data=fields.get("data", ""),
                    )
                )
        return messages

    async def ack(self, message_id: str) -> None:
        await self._redis.xack(self._stream, self._group, message_id)

    async def publish(self, subject: str, data: dict[str, Any]) -> str:
        message_id = await self._redis.xadd(
            self._stream, {"subject": subject, "data": json.dumps(data)}
        )
        return _as_str(message_id)

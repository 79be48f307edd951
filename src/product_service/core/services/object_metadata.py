"""Client for object storage metadata lookups."""

from typing import Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field

from src.product_service.runtime.config.config_data import ObjectStorageConfig
from src.product_service.runtime.context import get_config


class ObjectInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    type: str
    is_public: bool = Field(default=False, alias="isPublic")


class ObjectMetadata(Protocol):
    async def get_by_id(self, user_id: str, object_id: str) -> ObjectInfo:
        """Return metadata of ``object_id`` as seen by ``user_id``.

        Raises an exception when the object cannot be resolved.
        """
        ...


class HttpObjectMetadataClient:
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        config: ObjectStorageConfig | None = None,
    ) -> None:
        config = config or get_config().object_storage
        self._client = client or httpx.AsyncClient(
            base_url=config.url, timeout=config.timeout_s
        )

    async def get_by_id(self, user_id: str, object_id: str) -> ObjectInfo:
        response = await self._client.get(
            f"/v1/objects/{object_id}", params={"user_id": user_id}
        )
        response.raise_for_status()
        return ObjectInfo.model_validate(response.json())

    async def close(self) -> None:
        await self._client.aclose()

"""Domain events published by other services."""

from pydantic import BaseModel, ConfigDict, Field


class ObjectDeletedEvent(BaseModel):
    """Published by object storage when a stored object is removed."""

    model_config = ConfigDict(populate_by_name=True)

    object_id: str = Field(alias="objectID", min_length=1)

####################################
# --- Request/response schemas --- #
####################################

from datetime import datetime
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
)
from pydantic.alias_generators import to_camel


class FileRecord(BaseModel):
    """A stored file as shown in `GET /files`."""
    name: str = Field(
        description="The name of the file.",
        json_schema_extra={"example": "cat.png"},
    )
    size: int = Field(description="The size of the file in bytes.")
    mod_time: datetime = Field(description="The last modified time of the file.")
    thumbnail_url: Optional[str] = Field(
        default=None,
        description="Where the thumbnail can be fetched, if one exists.",
    )

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "name": "cat.png",
                "size": 51200,
                "modTime": "2024-01-01T00:00:00Z",
                "thumbnailUrl": "/thumbnails/cat.png",
            }
        },
    )

    @field_serializer("mod_time")
    def serialize_mod_time(self, mod_time: datetime) -> str:
        return mod_time.replace(microsecond=0).isoformat().replace("+00:00", "Z")


class UploadResponse(BaseModel):
    """Response model for `POST /upload`."""
    name: str = Field(
        description="The name the file was stored under.",
        json_schema_extra={"example": "cat.png"},
    )
    size: int = Field(description="The number of bytes stored.")
    message: str = Field(description="A message about the operation.")
    thumbnail_scheduled: bool = Field(
        default=False,
        description="Whether a thumbnail job was handed to the worker.",
    )

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    """Response model for `GET /health`."""
    status: str
    components: dict
    thumbnail_mode: Optional[str] = None
    ready: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator


class UploadTokenRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    filename: StrictStr = Field(min_length=1)
    content_type: str | None = Field(default=None, alias="contentType")

    @field_validator("content_type", mode="before")
    @classmethod
    def drop_non_string_content_type(cls, value: Any) -> str | None:
        # Advisory only; a bad value must not fail an otherwise valid request.
        return value if isinstance(value, str) else None


class UploadGrant(BaseModel):
    url: str
    storage_key: str
    container_name: str
    expires_at: datetime


class UploadTokenResponse(BaseModel):
    uploadUrl: str
    blobName: str
    containerName: str
    expiresAt: datetime

    @classmethod
    def from_grant(cls, grant: UploadGrant) -> "UploadTokenResponse":
        return cls(
            uploadUrl=grant.url,
            blobName=grant.storage_key,
            containerName=grant.container_name,
            expiresAt=grant.expires_at,
        )


class ErrorResponse(BaseModel):
    error: str
    message: str

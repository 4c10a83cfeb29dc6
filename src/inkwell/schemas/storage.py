"""Presigned upload schemas."""

from typing import Optional

from pydantic import Field

from inkwell.schemas.common import BaseSchema


class PresignedUrlRequest(BaseSchema):
    file_type: str = Field(min_length=1, description="MIME type, e.g. image/jpeg")
    folder: str = Field(min_length=1, description="Key prefix in the bucket")
    key_count: int = Field(default=1, ge=1, le=10)
    old_keys: Optional[list[str]] = None


class PresignedUrlResponse(BaseSchema):
    key: str
    presigned_url: str


class PublicUploadResponse(PresignedUrlResponse):
    public_url: str


class DeleteFilesRequest(BaseSchema):
    keys: list[str] = Field(min_length=1)

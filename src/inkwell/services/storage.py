"""S3 object storage: presigned uploads, deletes and public URLs.

Clients upload directly to the bucket with presigned PUT URLs; the API only
hands out keys and URLs. Keys look like ``{folder}/{epoch_ms}-{uuid8}{ext}``.
"""

import asyncio
import time
import uuid
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

from inkwell.core.config import settings
from inkwell.core.exceptions import BadRequestError
from inkwell.core.logging import get_logger
from inkwell.core.tracing import trace_storage
from inkwell.schemas.storage import PresignedUrlResponse, PublicUploadResponse

logger = get_logger(__name__)

MAX_KEYS_PER_REQUEST = 10

MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "application/pdf": ".pdf",
    "text/plain": ".txt",
}


def extension_for(file_type: str) -> str:
    """File extension for a MIME type; ``.bin`` when unknown."""
    return MIME_EXTENSIONS.get(file_type.lower(), ".bin")


def generate_key(folder: str, file_type: str) -> str:
    folder = folder.strip("/")
    return f"{folder}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{extension_for(file_type)}"


class StorageService:
    """Presigned S3 uploads.

    Credentials fall back to the default boto3 chain (environment, IAM role)
    when none are configured.
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        region: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.bucket = bucket or settings.s3_bucket_name
        self.region = region or settings.aws_region
        self._client = client
        self._logger = get_logger(f"{__name__}.StorageService")

    @property
    def client(self) -> Any:
        """Lazy-loaded S3 client."""
        if self._client is None:
            if settings.aws_access_key_id and settings.aws_secret_access_key:
                self._client = boto3.client(
                    "s3",
                    region_name=self.region,
                    aws_access_key_id=settings.aws_access_key_id,
                    aws_secret_access_key=settings.aws_secret_access_key,
                )
            else:
                self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def get_public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def _presign_put(self, key: str, file_type: str) -> str:
        return self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": file_type},
            ExpiresIn=settings.s3_presign_expires,
        )

    def _keys(self, file_type: str, folder: str, key_count: int) -> list[str]:
        if not 1 <= key_count <= MAX_KEYS_PER_REQUEST:
            raise BadRequestError(f"key_count must be between 1 and {MAX_KEYS_PER_REQUEST}")
        return [generate_key(folder, file_type) for _ in range(key_count)]

    @trace_storage()
    async def generate_public_upload_urls(
        self, file_type: str, folder: str, key_count: int = 1
    ) -> list[PublicUploadResponse]:
        """Presigned PUT URLs plus the public URL each object will have.

        Raises:
            BadRequestError: If ``key_count`` is outside 1..10
        """
        try:
            urls = [
                PublicUploadResponse(
                    key=key,
                    presigned_url=self._presign_put(key, file_type),
                    public_url=self.get_public_url(key),
                )
                for key in self._keys(file_type, folder, key_count)
            ]
        except ClientError as e:
            self._logger.error("Failed to presign upload", folder=folder, error=str(e))
            raise
        self._logger.info("Presigned public uploads", folder=folder, count=len(urls))
        return urls

    @trace_storage()
    async def generate_secure_upload_urls(
        self,
        file_type: str,
        folder: str,
        key_count: int = 1,
        old_keys: Optional[list[str]] = None,
    ) -> list[PresignedUrlResponse]:
        """Presigned PUT URLs for private objects, replacing ``old_keys``.

        The old objects are deleted before the new URLs are issued.

        Raises:
            BadRequestError: If ``key_count`` is outside 1..10
        """
        keys = self._keys(file_type, folder, key_count)
        if old_keys:
            await self.delete_files(old_keys)
        try:
            urls = [
                PresignedUrlResponse(key=key, presigned_url=self._presign_put(key, file_type))
                for key in keys
            ]
        except ClientError as e:
            self._logger.error("Failed to presign upload", folder=folder, error=str(e))
            raise
        self._logger.info("Presigned secure uploads", folder=folder, count=len(urls))
        return urls

    @trace_storage()
    async def delete_files(self, keys: list[str]) -> int:
        """Delete objects one by one; failures are logged and skipped.

        Returns:
            Number of keys deleted
        """
        deleted = 0
        for key in keys:
            try:
                await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
                deleted += 1
            except ClientError as e:
                self._logger.error("Failed to delete object", key=key, error=str(e))
        self._logger.info("Deleted objects", requested=len(keys), deleted=deleted)
        return deleted

    @trace_storage()
    async def file_exists(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError:
            return False

"""S3-compatible blob store (AWS S3, Aliyun OSS, MinIO)."""

import asyncio
import mimetypes
from pathlib import Path
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from reelsmith.adapters.storage.base import BlobStore, UploadResult
from reelsmith.config import settings
from reelsmith.exceptions import PublicationError
from reelsmith.logging import get_logger

logger = get_logger(__name__)


class S3BlobStore(BlobStore):
    """Blob store backed by boto3.

    Blocking boto3 calls run on a worker thread so the event loop keeps
    serving other tasks during large uploads.
    """

    def __init__(
        self,
        bucket: str | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        public_base_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.bucket = bucket or settings.blob_bucket
        self.region = region or settings.blob_region
        self.endpoint_url = endpoint_url or settings.blob_endpoint_url
        self.access_key_id = access_key_id or settings.blob_access_key_id
        self.secret_access_key = secret_access_key or settings.blob_secret_access_key
        self.public_base_url = public_base_url or settings.blob_public_base_url
        self._client = client

    @property
    def name(self) -> str:
        return "s3"

    def is_configured(self) -> bool:
        return bool(self.bucket and self.access_key_id and self.secret_access_key)

    @property
    def client(self) -> Any:
        if self._client is None:
            kwargs: dict[str, Any] = {
                "region_name": self.region,
                "aws_access_key_id": self.access_key_id,
                "aws_secret_access_key": self.secret_access_key,
                "config": Config(signature_version="s3v4"),
            }
            if self.endpoint_url:
                kwargs["endpoint_url"] = self.endpoint_url
            elif self.region:
                # Regional endpoint so presigned URLs are not redirected
                kwargs["endpoint_url"] = f"https://s3.{self.region}.amazonaws.com"
            self._client = boto3.client("s3", **kwargs)
        return self._client

    def public_url(self, object_name: str) -> str:
        """Public URL of an object, preferring the configured base URL."""
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{object_name}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{object_name}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{object_name}"

    async def upload_file(self, object_name: str, local_path: Path) -> UploadResult:
        if not self.is_configured():
            raise PublicationError("Blob storage is not configured")

        content_type = mimetypes.guess_type(local_path.name)[0] or "application/octet-stream"
        logger.info(
            "blob_upload_started",
            bucket=self.bucket,
            object_name=object_name,
            local_path=str(local_path),
        )

        try:
            await asyncio.to_thread(
                self.client.upload_file,
                str(local_path),
                self.bucket,
                object_name,
                ExtraArgs={"ContentType": content_type},
            )
        except (BotoCoreError, ClientError, OSError) as e:
            logger.error("blob_upload_failed", object_name=object_name, error=str(e))
            raise PublicationError(f"Upload of {object_name} failed: {e}") from e

        url = self.public_url(object_name)
        logger.info("blob_upload_completed", object_name=object_name, url=url)
        return UploadResult(
            public_url=url,
            object_name=object_name,
            size_bytes=local_path.stat().st_size,
        )

    async def download_file(self, object_name: str, local_path: Path) -> Path:
        local_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            await asyncio.to_thread(
                self.client.download_file, self.bucket, object_name, str(local_path)
            )
        except (BotoCoreError, ClientError) as e:
            raise PublicationError(f"Download of {object_name} failed: {e}") from e
        return local_path

    async def delete_file(self, object_name: str) -> None:
        try:
            await asyncio.to_thread(
                self.client.delete_object, Bucket=self.bucket, Key=object_name
            )
        except (BotoCoreError, ClientError) as e:
            raise PublicationError(f"Delete of {object_name} failed: {e}") from e
        logger.info("blob_deleted", object_name=object_name)

    async def get_signed_url(self, object_name: str, expires: int | None = None) -> str:
        return await asyncio.to_thread(
            self.client.generate_presigned_url,
            "get_object",
            Params={"Bucket": self.bucket, "Key": object_name},
            ExpiresIn=expires or settings.blob_signed_url_expiry_seconds,
        )

    async def health_check(self) -> bool:
        if not self.is_configured():
            return False
        try:
            await asyncio.to_thread(self.client.head_bucket, Bucket=self.bucket)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error("blob_health_check_failed", error=str(e))
            return False

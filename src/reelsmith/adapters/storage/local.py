"""Unconfigured blob store: composites stay on local disk."""

from pathlib import Path

from reelsmith.adapters.storage.base import BlobStore, UploadResult
from reelsmith.exceptions import PublicationError


class LocalBlobStore(BlobStore):
    """Null store used when no bucket is configured."""

    @property
    def name(self) -> str:
        return "local"

    def is_configured(self) -> bool:
        return False

    async def upload_file(self, object_name: str, local_path: Path) -> UploadResult:
        raise PublicationError("Blob storage is not configured")

    async def download_file(self, object_name: str, local_path: Path) -> Path:
        raise PublicationError("Blob storage is not configured")

    async def delete_file(self, object_name: str) -> None:
        raise PublicationError("Blob storage is not configured")

    async def get_signed_url(self, object_name: str, expires: int | None = None) -> str:
        raise PublicationError("Blob storage is not configured")

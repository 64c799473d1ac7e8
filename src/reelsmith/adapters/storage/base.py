"""Base interface for blob storage of finished composites."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass
class UploadResult:
    """Where an uploaded object ended up."""

    public_url: str
    object_name: str
    size_bytes: int | None = None


class BlobStore(ABC):
    """Abstract base class for blob stores.

    A store that is not configured is a supported mode: the pipeline checks
    ``is_configured()`` and keeps the local composite path instead of
    uploading.

    Implementations:
    - S3BlobStore: Any S3-compatible service (AWS, Aliyun OSS, MinIO) via boto3
    - LocalBlobStore: Unconfigured store, nothing is published
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Store name identifier."""
        ...

    @abstractmethod
    def is_configured(self) -> bool:
        """True if uploads can be attempted."""
        ...

    @abstractmethod
    async def upload_file(self, object_name: str, local_path: Path) -> UploadResult:
        """Upload a local file.

        Raises:
            PublicationError: If the upload fails.
        """
        ...

    @abstractmethod
    async def download_file(self, object_name: str, local_path: Path) -> Path:
        """Download an object to a local path."""
        ...

    @abstractmethod
    async def delete_file(self, object_name: str) -> None:
        """Delete an object."""
        ...

    @abstractmethod
    async def get_signed_url(self, object_name: str, expires: int | None = None) -> str:
        """Time-limited GET URL for a private object."""
        ...

    async def health_check(self) -> bool:
        """Check if the store is reachable."""
        return True

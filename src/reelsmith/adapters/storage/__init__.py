"""Blob storage adapters."""

from reelsmith.adapters.storage.base import BlobStore, UploadResult
from reelsmith.adapters.storage.local import LocalBlobStore
from reelsmith.adapters.storage.s3 import S3BlobStore


def get_blob_store() -> BlobStore:
    """S3 store when credentials and bucket are set, otherwise the local null store."""
    store = S3BlobStore()
    if store.is_configured():
        return store
    return LocalBlobStore()


__all__ = [
    "BlobStore",
    "LocalBlobStore",
    "S3BlobStore",
    "UploadResult",
    "get_blob_store",
]

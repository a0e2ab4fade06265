"""Blob storage backends, selected once from configuration."""

from functools import lru_cache

from actas_api.settings import get_settings
from actas_api.storage.base import BlobNotFound, BlobStore
from actas_api.storage.local import LocalBlobStore


@lru_cache()
def get_blob_store() -> BlobStore:
    """Get the configured blob store instance."""
    settings = get_settings()
    if settings.storage_backend == "s3":
        from actas_api.storage.s3 import S3BlobStore

        return S3BlobStore.from_settings(settings)
    return LocalBlobStore(settings.upload_dir)


__all__ = ["BlobNotFound", "BlobStore", "LocalBlobStore", "get_blob_store"]

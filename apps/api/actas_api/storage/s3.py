"""S3/MinIO blob store.

Objects are addressed by the same relative paths the local store uses, so
switching backends never changes what the database records.
"""

import logging
from datetime import timedelta
from io import BytesIO
from typing import Optional

from minio import Minio
from minio.error import S3Error

from actas_api.storage.base import BlobNotFound, BlobStore

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = ("NoSuchKey", "NoSuchObject", "NotFound")


class S3BlobStore(BlobStore):
    """S3-compatible object storage with presigned direct uploads."""

    supports_direct_upload = True

    def __init__(self, client: Minio, bucket: str):
        """Initialize store with a configured MinIO client."""
        self.client = client
        self.bucket = bucket
        self._ensure_bucket()

    @classmethod
    def from_settings(cls, settings) -> "S3BlobStore":
        client = Minio(
            settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_use_ssl,
        )
        return cls(client, settings.minio_bucket)

    def _ensure_bucket(self):
        """Ensure bucket exists."""
        try:
            if not self.client.bucket_exists(self.bucket):
                self.client.make_bucket(self.bucket)
                logger.info(f"Created bucket: {self.bucket}")
        except S3Error as e:
            logger.error(f"Error ensuring bucket {self.bucket} exists: {e}")

    def put(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        self.validate_path(path)
        try:
            self.client.put_object(
                self.bucket,
                path,
                BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except S3Error as e:
            logger.error(f"Failed to upload object {path}: {e}")
            raise
        logger.debug(f"Uploaded object: {path} ({len(data)} bytes)")
        return path

    def get(self, path: str) -> bytes:
        self.validate_path(path)
        try:
            response = self.client.get_object(self.bucket, path)
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                raise BlobNotFound(f"Object not found: {path}") from e
            logger.error(f"Failed to retrieve object {path}: {e}")
            raise
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    def delete(self, path: str) -> None:
        self.validate_path(path)
        self.client.remove_object(self.bucket, path)

    def exists(self, path: str) -> bool:
        self.validate_path(path)
        try:
            self.client.stat_object(self.bucket, path)
            return True
        except S3Error:
            return False

    def presign_put(self, path: str, content_type: str, expires_in_seconds: int) -> Optional[str]:
        """Generate a presigned PUT URL for a direct browser upload."""
        self.validate_path(path)
        return self.client.presigned_put_object(
            self.bucket,
            path,
            expires=timedelta(seconds=expires_in_seconds),
        )

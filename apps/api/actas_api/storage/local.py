"""Local filesystem blob store."""

import logging
from pathlib import Path

from actas_api.storage.base import BlobNotFound, BlobStore

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    """Blobs stored as files below an upload root directory."""

    supports_direct_upload = False

    def __init__(self, root: str):
        """Initialize store rooted at ``root`` (created if missing)."""
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        self.validate_path(path)
        full_path = (self.root / path).resolve()
        if self.root not in full_path.parents:
            raise ValueError(f"Storage path escapes upload root: {path!r}")
        return full_path

    def put(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        full_path = self._resolve(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(data)
        logger.debug(f"Stored blob: {path} ({len(data)} bytes)")
        return path

    def get(self, path: str) -> bytes:
        full_path = self._resolve(path)
        if not full_path.is_file():
            raise BlobNotFound(f"Blob not found: {path}")
        return full_path.read_bytes()

    def delete(self, path: str) -> None:
        full_path = self._resolve(path)
        try:
            full_path.unlink()
        except FileNotFoundError as e:
            raise BlobNotFound(f"Blob not found: {path}") from e

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

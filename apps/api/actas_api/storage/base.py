"""Blob store capability interface."""

from abc import ABC, abstractmethod
from typing import Optional


class BlobNotFound(FileNotFoundError):
    """Requested blob does not exist."""


class BlobStore(ABC):
    """Persist and retrieve binary attachments by logical relative path.

    Paths always use forward slashes (e.g. ``actas/42/<uuid>.pdf``) and never
    escape the store root.
    """

    #: Whether ``presign_put`` can hand out direct-to-store upload URLs.
    supports_direct_upload: bool = False

    @abstractmethod
    def put(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store bytes under path and return the path."""
        pass

    @abstractmethod
    def get(self, path: str) -> bytes:
        """Return stored bytes or raise BlobNotFound."""
        pass

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the blob at path."""
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check if a blob exists."""
        pass

    def presign_put(self, path: str, content_type: str, expires_in_seconds: int) -> Optional[str]:
        """Return a short-lived URL for a direct PUT, or None if unsupported."""
        return None

    @staticmethod
    def validate_path(path: str) -> str:
        """Reject absolute paths and parent-directory segments."""
        if not path or path.startswith("/") or "\\" in path:
            raise ValueError(f"Invalid storage path: {path!r}")
        segments = path.split("/")
        if any(segment in ("", ".", "..") for segment in segments):
            raise ValueError(f"Invalid storage path: {path!r}")
        return path

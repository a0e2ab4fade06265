"""Attachment service: validation, storage paths and the two upload strategies.

Small files are proxied through the API (``save_upload``). When the blob
store can presign uploads and the file is above the proxy threshold, the
client gets a short-lived PUT URL instead (``request_upload``) and reports
back once the bytes are in the store (``register_upload``); the database row
is only created at that point.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from actas_api.errors import AttachmentValidationError, StorageError
from actas_api.models import ActaDocument, CommitmentHistoryDocument
from actas_api.settings import Settings, get_settings
from actas_api.storage import BlobNotFound, BlobStore
from actas_api.utils import metrics

logger = logging.getLogger(__name__)

DOCUMENT_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.ms-excel",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "text/plain",
        "text/csv",
    }
)

PHOTO_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})

PHOTO_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}

# Leaf name produced by build_storage_path: <uuid4>[.ext]
STORED_NAME_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}(\.[a-z0-9]{1,10})?$")

OWNER_ACTA = "acta"
OWNER_COMMITMENT_HISTORY = "commitment_history"

AttachmentRow = Union[ActaDocument, CommitmentHistoryDocument]


@dataclass(frozen=True)
class AttachmentOwner:
    """Entity that exclusively owns an attachment."""

    kind: str
    id: int

    @property
    def path_prefix(self) -> str:
        if self.kind == OWNER_ACTA:
            return f"actas/{self.id}"
        if self.kind == OWNER_COMMITMENT_HISTORY:
            return f"compromisos/historial/{self.id}"
        raise ValueError(f"Unknown attachment owner kind: {self.kind}")

    @classmethod
    def acta(cls, acta_id: int) -> "AttachmentOwner":
        return cls(OWNER_ACTA, acta_id)

    @classmethod
    def commitment_history(cls, history_entry_id: int) -> "AttachmentOwner":
        return cls(OWNER_COMMITMENT_HISTORY, history_entry_id)


@dataclass
class UploadTicket:
    """Answer to an upload request."""

    storage_path: str
    direct_url: Optional[str] = None
    expires_in: Optional[int] = None

    @property
    def is_direct(self) -> bool:
        return self.direct_url is not None


def normalize_mime(mime_type: Optional[str]) -> str:
    """Lower-case MIME type without parameters."""
    return (mime_type or "").split(";", 1)[0].strip().lower()


def safe_extension(filename: str) -> str:
    """Extension of the original filename reduced to safe characters."""
    if "." not in filename:
        return ""
    ext = re.sub(r"[^a-z0-9]", "", filename.rsplit(".", 1)[1].lower())
    return ext[:10]


class AttachmentService:
    """Attachment custody on top of a blob store."""

    def __init__(self, db: Session, store: BlobStore, settings: Optional[Settings] = None):
        """Initialize service."""
        self.db = db
        self.store = store
        self.settings = settings or get_settings()

    # Validation

    def validate_document(self, filename: str, mime_type: str, size: int, max_bytes: int) -> str:
        """Check name, MIME allow-list and size; return the normalized MIME type."""
        if not filename or not filename.strip():
            raise AttachmentValidationError("File name is required.", field="filename")
        mime = normalize_mime(mime_type)
        if mime not in DOCUMENT_MIME_TYPES:
            raise AttachmentValidationError(
                "File type not allowed. Use PDF, images, Word, Excel or text.", field="mime_type"
            )
        if size is None or size <= 0:
            raise AttachmentValidationError("The file is empty.", field="size")
        if size > max_bytes:
            raise AttachmentValidationError(
                f"The file exceeds the maximum allowed size ({max_bytes // (1024 * 1024)} MB).",
                field="size",
            )
        return mime

    def validate_photo(self, mime_type: str, size: int) -> str:
        """Check an approval photo; return the normalized MIME type."""
        mime = normalize_mime(mime_type)
        max_bytes = self.settings.approval_photo_max_bytes
        if mime not in PHOTO_MIME_TYPES or size is None or size <= 0 or size > max_bytes:
            raise AttachmentValidationError(
                f"A JPEG, PNG or WebP photo up to {max_bytes // (1024 * 1024)} MB is required.",
                field="photo",
            )
        return mime

    # Paths

    @staticmethod
    def build_storage_path(owner: AttachmentOwner, filename: str) -> str:
        """New unique storage path below the owner's prefix."""
        ext = safe_extension(filename)
        stored_name = f"{uuid.uuid4()}.{ext}" if ext else str(uuid.uuid4())
        return f"{owner.path_prefix}/{stored_name}"

    @staticmethod
    def is_owned_upload_path(owner: AttachmentOwner, storage_path: str) -> bool:
        """True only for paths build_storage_path could have issued to this owner."""
        prefix = owner.path_prefix + "/"
        if not storage_path.startswith(prefix):
            return False
        return STORED_NAME_RE.match(storage_path[len(prefix):]) is not None

    # Upload strategies

    def request_upload(self, owner: AttachmentOwner, filename: str, mime_type: str, size: int) -> UploadTicket:
        """Decide how the client should upload a file.

        Returns a ticket with a presigned URL when the file should go straight
        to the store, or without one when it must be proxied via save_upload.
        """
        mime = self.validate_document(filename, mime_type, size, self.settings.direct_upload_max_bytes)
        storage_path = self.build_storage_path(owner, filename)

        if self.store.supports_direct_upload and size > self.settings.proxy_upload_threshold_bytes:
            ttl = self.settings.upload_url_ttl_seconds
            try:
                url = self.store.presign_put(storage_path, mime, ttl)
            except Exception as e:
                logger.error(f"Failed to presign upload for {storage_path}: {e}")
                raise StorageError("Could not prepare the upload URL.") from e
            if url:
                metrics.uploads.labels(strategy="direct_ticket").inc()
                return UploadTicket(storage_path=storage_path, direct_url=url, expires_in=ttl)

        if size > self.settings.proxy_upload_max_bytes:
            raise AttachmentValidationError(
                "The file exceeds the maximum allowed size "
                f"({self.settings.proxy_upload_max_bytes // (1024 * 1024)} MB).",
                field="size",
            )
        return UploadTicket(storage_path=storage_path)

    def register_upload(
        self,
        owner: AttachmentOwner,
        storage_path: str,
        filename: str,
        mime_type: str,
        size: int,
    ) -> AttachmentRow:
        """Persist the row for a file the client already uploaded directly."""
        mime = self.validate_document(filename, mime_type, size, self.settings.direct_upload_max_bytes)
        try:
            self.store.validate_path(storage_path)
        except ValueError as e:
            raise AttachmentValidationError("Invalid storage path.", field="storage_path") from e
        if not self.is_owned_upload_path(owner, storage_path):
            raise AttachmentValidationError("Invalid storage path.", field="storage_path")
        if not self.store.exists(storage_path):
            raise AttachmentValidationError("The uploaded file was not found.", field="storage_path")

        row = self._new_row(owner, storage_path, filename, mime, size)
        if self.db.query(type(row)).filter(type(row).storage_path == storage_path).first():
            raise AttachmentValidationError("This file is already registered.", field="storage_path")
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Concurrent register of the same path
            self.db.rollback()
            raise AttachmentValidationError("This file is already registered.", field="storage_path") from e
        self.db.refresh(row)
        metrics.uploads.labels(strategy="direct_registered").inc()
        return row

    def save_upload(self, owner: AttachmentOwner, data: bytes, filename: str, mime_type: str) -> AttachmentRow:
        """Proxied upload: write the blob, then the row."""
        mime = self.validate_document(filename, mime_type, len(data), self.settings.proxy_upload_max_bytes)
        row = self._store_and_add(owner, data, filename, mime)
        self.db.commit()
        self.db.refresh(row)
        metrics.uploads.labels(strategy="proxied").inc()
        return row

    def add_upload(self, owner: AttachmentOwner, data: bytes, filename: str, mime_type: str) -> AttachmentRow:
        """Like save_upload but leaves the commit to the caller's transaction."""
        mime = self.validate_document(filename, mime_type, len(data), self.settings.proxy_upload_max_bytes)
        row = self._store_and_add(owner, data, filename, mime)
        metrics.uploads.labels(strategy="proxied").inc()
        return row

    def attach_history_evidence(self, history_entry_id: int, files: list[tuple[str, str, bytes]]) -> list[AttachmentRow]:
        """Store evidence files for a commitment history entry (caller commits).

        Every file is validated before the first write. If a later write
        fails the blobs already written are discarded.
        """
        for filename, mime_type, data in files:
            self.validate_document(filename, mime_type, len(data), self.settings.proxy_upload_max_bytes)

        owner = AttachmentOwner.commitment_history(history_entry_id)
        rows = []
        try:
            for filename, mime_type, data in files:
                rows.append(self.add_upload(owner, data, filename, mime_type))
        except Exception:
            for row in rows:
                self.discard(row.storage_path)
            raise
        return rows

    def save_approval_photo(self, acta_id: int, data: bytes, mime_type: str) -> str:
        """Store an approval photo and return its storage path."""
        mime = self.validate_photo(mime_type, len(data))
        storage_path = f"actas/{acta_id}/aprobaciones/{uuid.uuid4()}.{PHOTO_EXTENSIONS[mime]}"
        self._put(storage_path, data, mime)
        return storage_path

    # Symmetric blob operations

    def read(self, storage_path: str) -> bytes:
        try:
            return self.store.get(storage_path)
        except BlobNotFound:
            raise
        except Exception as e:
            logger.error(f"Failed to read blob {storage_path}: {e}")
            raise StorageError("Could not read the file.") from e

    def delete(self, storage_path: str) -> None:
        self.store.delete(storage_path)

    def discard(self, storage_path: Optional[str]) -> bool:
        """Best-effort delete; the database is the source of truth."""
        if not storage_path:
            return False
        try:
            self.store.delete(storage_path)
            return True
        except Exception as e:
            metrics.blob_cleanup_failures.inc()
            logger.warning(f"Could not delete blob {storage_path}: {e}")
            return False

    def delete_document(self, document: AttachmentRow) -> None:
        """Delete the row, then the blob (best effort)."""
        storage_path = document.storage_path
        self.db.delete(document)
        self.db.commit()
        self.discard(storage_path)

    # Internals

    def _put(self, storage_path: str, data: bytes, mime: str) -> None:
        try:
            self.store.put(storage_path, data, content_type=mime)
        except Exception as e:
            logger.error(f"Failed to store blob {storage_path}: {e}")
            raise StorageError("Could not store the file.") from e

    def _store_and_add(self, owner: AttachmentOwner, data: bytes, filename: str, mime: str) -> AttachmentRow:
        storage_path = self.build_storage_path(owner, filename)
        self._put(storage_path, data, mime)
        row = self._new_row(owner, storage_path, filename, mime, len(data))
        try:
            self.db.add(row)
            self.db.flush()
        except SQLAlchemyError:
            self.db.rollback()
            self.discard(storage_path)
            raise
        return row

    @staticmethod
    def _new_row(owner: AttachmentOwner, storage_path: str, filename: str, mime: str, size: int) -> AttachmentRow:
        common = {
            "original_filename": filename.strip(),
            "storage_path": storage_path,
            "mime_type": mime,
            "size_bytes": size,
        }
        if owner.kind == OWNER_ACTA:
            return ActaDocument(acta_id=owner.id, **common)
        if owner.kind == OWNER_COMMITMENT_HISTORY:
            return CommitmentHistoryDocument(history_entry_id=owner.id, **common)
        raise ValueError(f"Unknown attachment owner kind: {owner.kind}")

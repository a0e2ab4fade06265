"""Attachment custody."""

from actas_api.attachments.service import (
    DOCUMENT_MIME_TYPES,
    PHOTO_MIME_TYPES,
    AttachmentOwner,
    AttachmentService,
    UploadTicket,
)

__all__ = [
    "DOCUMENT_MIME_TYPES",
    "PHOTO_MIME_TYPES",
    "AttachmentOwner",
    "AttachmentService",
    "UploadTicket",
]

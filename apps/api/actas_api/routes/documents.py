"""Internal endpoints for acta documents (both upload strategies)."""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from pydantic import BaseModel, Field

from actas_api.actas import ActaService, ActaState
from actas_api.attachments import AttachmentOwner, AttachmentService
from actas_api.auth.session import SessionUser, require_session
from actas_api.dependencies import get_acta_service, get_attachment_service
from actas_api.errors import NotFound, StateError
from actas_api.models import Acta, ActaDocument
from actas_api.routes.actas import DocumentResponse
from actas_api.storage import BlobNotFound

router = APIRouter(prefix="/v1", tags=["documents"])


class UploadRequest(BaseModel):
    """Declared file before upload."""

    filename: str = Field(..., min_length=1, max_length=255)
    mime_type: str = Field(..., description="MIME type reported by the browser")
    size: int = Field(..., gt=0, description="Size in bytes")


class UploadTicketResponse(BaseModel):
    """How to upload: directly to storage (direct_url) or proxied through the API."""

    strategy: str  # direct, proxied
    storage_path: str
    direct_url: Optional[str] = None
    expires_in: Optional[int] = None


class RegisterUploadRequest(UploadRequest):
    storage_path: str = Field(..., min_length=1)


def content_disposition(disposition: str, filename: str) -> str:
    return f'{disposition}; filename="{quote(filename)}"'


def _editable_acta(service: ActaService, acta_id: int, session: SessionUser) -> Acta:
    """Documents can change until the acta is distributed."""
    acta = service.get(acta_id)
    service.ensure_can_manage(acta, session)
    if acta.state == ActaState.SENT.value:
        raise StateError("Documents of a distributed acta cannot change.", current_state=acta.state)
    return acta


def _document_of(acta: Acta, document_id: int) -> ActaDocument:
    for document in acta.documents:
        if document.id == document_id:
            return document
    raise NotFound(f"Document {document_id} not found.")


@router.post("/actas/{acta_id}/documents/upload-request", response_model=UploadTicketResponse)
async def request_document_upload(
    acta_id: int,
    payload: UploadRequest,
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
    attachments: AttachmentService = Depends(get_attachment_service),
):
    """Step one of an upload: pick the strategy and reserve a storage path."""
    acta = _editable_acta(service, acta_id, session)
    ticket = attachments.request_upload(AttachmentOwner.acta(acta.id), payload.filename, payload.mime_type, payload.size)
    return UploadTicketResponse(
        strategy="direct" if ticket.is_direct else "proxied",
        storage_path=ticket.storage_path,
        direct_url=ticket.direct_url,
        expires_in=ticket.expires_in,
    )


@router.post(
    "/actas/{acta_id}/documents/register",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_document_upload(
    acta_id: int,
    payload: RegisterUploadRequest,
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
    attachments: AttachmentService = Depends(get_attachment_service),
):
    """Step two of a direct upload: record the file the client put in storage."""
    acta = _editable_acta(service, acta_id, session)
    return attachments.register_upload(
        AttachmentOwner.acta(acta.id), payload.storage_path, payload.filename, payload.mime_type, payload.size
    )


@router.post("/actas/{acta_id}/documents", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    acta_id: int,
    file: UploadFile = File(...),
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
    attachments: AttachmentService = Depends(get_attachment_service),
):
    """Proxied upload."""
    acta = _editable_acta(service, acta_id, session)
    data = await file.read()
    return attachments.save_upload(
        AttachmentOwner.acta(acta.id), data, file.filename or "", file.content_type or ""
    )


@router.delete("/actas/{acta_id}/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    acta_id: int,
    document_id: int,
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
    attachments: AttachmentService = Depends(get_attachment_service),
):
    acta = _editable_acta(service, acta_id, session)
    attachments.delete_document(_document_of(acta, document_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/actas/{acta_id}/documents/{document_id}")
async def view_document(
    acta_id: int,
    document_id: int,
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
    attachments: AttachmentService = Depends(get_attachment_service),
):
    """Inline view for signed-in users."""
    document = _document_of(service.get(acta_id), document_id)
    try:
        data = attachments.read(document.storage_path)
    except BlobNotFound:
        raise NotFound(f"Document {document_id} not found.")
    return Response(
        content=data,
        media_type=document.mime_type,
        headers={"Content-Disposition": content_disposition("inline", document.original_filename)},
    )

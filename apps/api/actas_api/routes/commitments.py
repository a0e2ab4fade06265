"""Commitment follow-up endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from pydantic import BaseModel

from actas_api.actas import ActaService
from actas_api.attachments import AttachmentService
from actas_api.auth.session import SessionUser, require_session
from actas_api.dependencies import get_acta_service, get_attachment_service
from actas_api.errors import NotFound
from actas_api.models import CommitmentHistory
from actas_api.routes.actas import DocumentResponse
from actas_api.routes.documents import content_disposition
from actas_api.storage import BlobNotFound

router = APIRouter(prefix="/v1", tags=["commitments"])


class HistoryEntryResponse(BaseModel):
    """One status change of a commitment."""

    id: int
    commitment_id: int
    previous_state: Optional[str] = None
    new_state: str
    detail: Optional[str] = None
    created_by_id: Optional[int] = None
    created_at: datetime
    documents: list[DocumentResponse]

    class Config:
        from_attributes = True


@router.post("/commitments/{commitment_id}/status", response_model=HistoryEntryResponse)
async def update_commitment_status(
    commitment_id: int,
    state: str = Form(...),
    detail: Optional[str] = Form(None),
    files: list[UploadFile] = File(default=[]),
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
):
    """Change a commitment's status, optionally with evidence files."""
    evidence = []
    for upload in files:
        evidence.append((upload.filename or "", upload.content_type or "", await upload.read()))
    return service.update_commitment_status(commitment_id, state, session, detail=detail, files=evidence)


@router.get("/commitments/{commitment_id}/history", response_model=list[HistoryEntryResponse])
async def get_commitment_history(
    commitment_id: int,
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
):
    """Status history, newest first."""
    return service.commitment_history(commitment_id)


@router.get("/commitments/{commitment_id}/history/{entry_id}/documents/{document_id}")
async def view_evidence(
    commitment_id: int,
    entry_id: int,
    document_id: int,
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
    attachments: AttachmentService = Depends(get_attachment_service),
):
    entry = (
        service.db.query(CommitmentHistory)
        .filter(CommitmentHistory.id == entry_id, CommitmentHistory.commitment_id == commitment_id)
        .first()
    )
    document = next((d for d in entry.documents if d.id == document_id), None) if entry else None
    if document is None:
        raise NotFound(f"Document {document_id} not found.")
    try:
        data = attachments.read(document.storage_path)
    except BlobNotFound:
        raise NotFound(f"Document {document_id} not found.")
    return Response(
        content=data,
        media_type=document.mime_type,
        headers={"Content-Disposition": content_disposition("inline", document.original_filename)},
    )

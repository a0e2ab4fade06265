"""Public endpoints reached through signed links (no session).

Any failure to resolve a link answers with the same generic message so a
probe cannot tell a bad signature from a missing acta or a draft.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from pydantic import BaseModel

from actas_api.attachments import AttachmentService
from actas_api.dependencies import get_attachment_service, get_workflow
from actas_api.errors import InvalidLink, NotFound, StateError, ValidationError
from actas_api.routes.documents import content_disposition
from actas_api.storage import BlobNotFound
from actas_api.workflow import ApprovalWorkflow
from actas_api.workflow.service import ResponseResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["public"])


class ParticipantResponseResult(BaseModel):
    """Outcome of an approval or rejection."""

    status: str  # approved, already_approved, rejected
    acta_state: str
    acta_approved: bool = False


def _link_id(value: Optional[str]) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise InvalidLink()
    if parsed <= 0:
        raise InvalidLink()
    return parsed


def _serialize(result: ResponseResult) -> ParticipantResponseResult:
    return ParticipantResponseResult(
        status=result.outcome.value,
        acta_state=result.acta_state,
        acta_approved=result.acta_approved,
    )


@router.get("/approve")
async def preview_acta(
    acta: Optional[str] = Query(None),
    participant: Optional[str] = Query(None),
    signature: Optional[str] = Query(None),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """Read-only, sanitized view of the acta for the link holder."""
    try:
        return workflow.preview(_link_id(acta), _link_id(participant), signature or "")
    except StateError:
        raise InvalidLink()


@router.post("/approve", response_model=ParticipantResponseResult)
async def approve_acta(
    acta: Optional[str] = Form(None),
    participant: Optional[str] = Form(None),
    signature: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """Approve as a participant; a photo is required."""
    acta_id, participant_id = _link_id(acta), _link_id(participant)
    # A missing photo is reported only after the link itself checks out
    data = await photo.read() if photo is not None else b""
    mime_type = (photo.content_type or "") if photo is not None else ""
    try:
        result = workflow.approve_participant(acta_id, participant_id, signature or "", data, mime_type)
    except StateError:
        raise InvalidLink()
    return _serialize(result)


@router.post("/approve/reject", response_model=ParticipantResponseResult)
async def reject_acta(
    acta: Optional[str] = Form(None),
    participant: Optional[str] = Form(None),
    signature: Optional[str] = Form(None),
    reason: Optional[str] = Form(None),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """Reject as a participant; the acta goes back to draft."""
    try:
        result = workflow.reject_participant(_link_id(acta), _link_id(participant), signature or "", reason or "")
    except StateError:
        raise InvalidLink()
    return _serialize(result)


@router.get("/documents")
async def download_document(
    acta: Optional[str] = Query(None),
    participant: Optional[str] = Query(None),
    doc: Optional[str] = Query(None),
    signature: Optional[str] = Query(None),
    workflow: ApprovalWorkflow = Depends(get_workflow),
    attachments: AttachmentService = Depends(get_attachment_service),
):
    """Download one document of a distributed acta."""
    try:
        acta_id, participant_id, document_id = int(acta), int(participant), int(doc)
    except (TypeError, ValueError):
        raise ValidationError("Missing or invalid link parameters.")
    if not signature:
        raise ValidationError("Missing or invalid link parameters.")

    document = workflow.resolve_download(acta_id, participant_id, document_id, signature)
    try:
        data = attachments.read(document.storage_path)
    except BlobNotFound:
        logger.error(f"Blob missing for document {document.id}", extra={"acta_id": acta_id})
        raise NotFound("Document not found.")
    return Response(
        content=data,
        media_type=document.mime_type,
        headers={
            "Content-Disposition": content_disposition("attachment", document.original_filename),
            "Cache-Control": "private, no-store",
        },
    )

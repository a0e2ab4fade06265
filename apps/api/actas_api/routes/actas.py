"""Internal acta endpoints (session required)."""

import mimetypes
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from actas_api.actas import ActaInput, ActaService, ActaState
from actas_api.attachments import AttachmentService
from actas_api.audit import AuditTrail
from actas_api.auth.session import SessionUser, require_session
from actas_api.dependencies import get_acta_service, get_attachment_service, get_audit_trail, get_workflow
from actas_api.errors import NotFound, ValidationError
from actas_api.models import Acta
from actas_api.storage import BlobNotFound
from actas_api.workflow import ApprovalWorkflow
from actas_api.workflow.service import DispatchReport

router = APIRouter(prefix="/v1", tags=["actas"])


class ParticipantResponse(BaseModel):
    id: int
    position: int
    kind: str
    name: str
    email: str
    title: Optional[str] = None
    user_id: Optional[int] = None
    requires_approval: bool

    class Config:
        from_attributes = True


class CommitmentResponse(BaseModel):
    id: int
    description: str
    due_date: Optional[date] = None
    participant_id: Optional[int] = None
    client_member_id: Optional[int] = None
    state: str
    status_detail: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentResponse(BaseModel):
    id: int
    original_filename: str
    mime_type: str
    size_bytes: int
    created_at: datetime

    class Config:
        from_attributes = True


class ActaSummaryResponse(BaseModel):
    """Acta list item."""

    id: int
    date: date
    objective: str
    state: str
    created_by_id: int
    approved_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ActaResponse(ActaSummaryResponse):
    """Acta with its collections."""

    body: Optional[str] = None
    commitments_summary: Optional[str] = None
    submitted_by_id: Optional[int] = None
    approval_cycle: int
    participants: list[ParticipantResponse]
    commitments: list[CommitmentResponse]
    documents: list[DocumentResponse]
    client_ids: list[int]
    activity_ids: list[int]


class DispatchResponse(BaseModel):
    """State after a transition that notifies participants."""

    acta_id: int
    state: str
    notifications_sent: int
    notifications_failed: list[int]


class ApprovalStatusResponse(BaseModel):
    participant_id: int
    name: str
    email: str
    requires_approval: bool
    status: str
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    has_photo: bool


class AuditEntryResponse(BaseModel):
    id: int
    event_kind: str
    actor_id: Optional[int] = None
    correlation_id: Optional[str] = None
    metadata: Optional[dict] = None
    created_at: datetime


def serialize_acta(acta: Acta) -> ActaResponse:
    return ActaResponse(
        id=acta.id,
        date=acta.date,
        objective=acta.objective,
        body=acta.body,
        commitments_summary=acta.commitments_summary,
        state=acta.state,
        created_by_id=acta.created_by_id,
        approved_by_id=acta.approved_by_id,
        submitted_by_id=acta.submitted_by_id,
        approval_cycle=acta.approval_cycle,
        created_at=acta.created_at,
        updated_at=acta.updated_at,
        participants=[ParticipantResponse.model_validate(p) for p in acta.participants],
        commitments=[CommitmentResponse.model_validate(c) for c in acta.commitments],
        documents=[DocumentResponse.model_validate(d) for d in acta.documents],
        client_ids=sorted(c.client_id for c in acta.clients),
        activity_ids=sorted(a.activity_id for a in acta.activities),
    )


def serialize_dispatch(report: DispatchReport) -> DispatchResponse:
    return DispatchResponse(
        acta_id=report.acta.id,
        state=report.acta.state,
        notifications_sent=report.sent,
        notifications_failed=report.failed,
    )


@router.post("/actas", response_model=ActaResponse, status_code=status.HTTP_201_CREATED)
async def create_acta(
    payload: ActaInput,
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
):
    """Create a draft acta."""
    return serialize_acta(service.create(payload, session))


@router.get("/actas", response_model=list[ActaSummaryResponse])
async def list_actas(
    state: Optional[str] = Query(None, description="Filter by state"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
):
    """List actas, newest meeting first."""
    if state is not None and state not in {s.value for s in ActaState}:
        raise ValidationError("Unknown state filter.", field="state")
    return service.list_actas(state=state, limit=limit, offset=offset)


@router.get("/actas/{acta_id}", response_model=ActaResponse)
async def get_acta(
    acta_id: int,
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
):
    return serialize_acta(service.get(acta_id))


@router.put("/actas/{acta_id}", response_model=ActaResponse)
async def update_acta(
    acta_id: int,
    payload: ActaInput,
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
):
    """Replace the content of a draft acta."""
    return serialize_acta(service.update(acta_id, payload, session))


@router.delete("/actas/{acta_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_acta(
    acta_id: int,
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
):
    service.delete(acta_id, session)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/actas/{acta_id}/submit", response_model=DispatchResponse)
async def submit_acta(
    acta_id: int,
    session: SessionUser = Depends(require_session),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """Send a draft to its participants for approval."""
    return serialize_dispatch(workflow.submit_for_approval(acta_id, session))


@router.post("/actas/{acta_id}/distribute", response_model=DispatchResponse)
async def distribute_acta(
    acta_id: int,
    session: SessionUser = Depends(require_session),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """Send an approved acta to every participant."""
    return serialize_dispatch(workflow.distribute(acta_id, session))


@router.post("/actas/{acta_id}/return-to-draft", response_model=ActaResponse)
async def return_acta_to_draft(
    acta_id: int,
    session: SessionUser = Depends(require_session),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    return serialize_acta(workflow.return_to_draft(acta_id, session))


@router.get("/actas/{acta_id}/approvals", response_model=list[ApprovalStatusResponse])
async def get_approval_status(
    acta_id: int,
    session: SessionUser = Depends(require_session),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """Participant responses for the current approval cycle."""
    return workflow.approval_status(acta_id)


@router.get("/actas/{acta_id}/approvals/{participant_id}/photo")
async def get_approval_photo(
    acta_id: int,
    participant_id: int,
    session: SessionUser = Depends(require_session),
    workflow: ApprovalWorkflow = Depends(get_workflow),
    attachments: AttachmentService = Depends(get_attachment_service),
):
    path = workflow.approval_photo(acta_id, participant_id, session)
    try:
        data = attachments.read(path)
    except BlobNotFound:
        raise NotFound("Approval photo not found.")
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type, headers={"Cache-Control": "private, no-store"})


@router.get("/actas/{acta_id}/history", response_model=list[AuditEntryResponse])
async def get_acta_history(
    acta_id: int,
    session: SessionUser = Depends(require_session),
    service: ActaService = Depends(get_acta_service),
    audit: AuditTrail = Depends(get_audit_trail),
):
    """Audit trail of an acta, oldest first."""
    service.get(acta_id)
    return [
        AuditEntryResponse(
            id=entry.id,
            event_kind=entry.event_kind,
            actor_id=entry.actor_id,
            correlation_id=entry.correlation_id,
            metadata=entry.metadata_json,
            created_at=entry.created_at,
        )
        for entry in audit.history(acta_id)
    ]

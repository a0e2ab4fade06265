"""FastAPI dependency wiring for the services."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from actas_api.actas import ActaService
from actas_api.attachments import AttachmentService
from actas_api.audit import AuditTrail
from actas_api.db.session import get_db
from actas_api.notifications import Notifier, get_notifier
from actas_api.security.link_signer import LinkSigner, get_link_signer
from actas_api.storage import BlobStore, get_blob_store
from actas_api.workflow import ApprovalWorkflow


def get_audit_trail(request: Request, db: Session = Depends(get_db)) -> AuditTrail:
    return AuditTrail(db, correlation_id=getattr(request.state, "correlation_id", None))


def get_attachment_service(
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
) -> AttachmentService:
    return AttachmentService(db, store)


def get_acta_service(
    db: Session = Depends(get_db),
    audit: AuditTrail = Depends(get_audit_trail),
    attachments: AttachmentService = Depends(get_attachment_service),
) -> ActaService:
    return ActaService(db, audit, attachments)


def get_workflow(
    db: Session = Depends(get_db),
    signer: LinkSigner = Depends(get_link_signer),
    notifier: Notifier = Depends(get_notifier),
    attachments: AttachmentService = Depends(get_attachment_service),
    audit: AuditTrail = Depends(get_audit_trail),
) -> ApprovalWorkflow:
    return ApprovalWorkflow(db, signer, notifier, attachments, audit)

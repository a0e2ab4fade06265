"""Approval workflow: submission, participant responses over signed links, distribution.

Every state change is a conditional UPDATE that only succeeds from the
expected state, and is committed before any e-mail or blob clean-up happens.
Completeness is always re-read from the database after a response commits,
so two final approvals arriving together still produce a single transition.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from actas_api.actas.snapshot import acta_snapshot
from actas_api.actas.state import ActaState, ensure_state, transition
from actas_api.attachments import AttachmentService
from actas_api.audit import AuditTrail
from actas_api.auth.session import SessionUser
from actas_api.errors import InvalidLink, NotFound, PermissionDenied, StateError, ValidationError
from actas_api.models import Acta, ActaDocument, Participant, ParticipantApproval, User
from actas_api.models.audit import (
    EVENT_APPROVAL,
    EVENT_EDIT,
    EVENT_EMAIL_SENT,
    EVENT_PARTICIPANT_REJECTION,
    EVENT_SUBMIT_FOR_APPROVAL,
)
from actas_api.models.user import ROLE_ADMIN
from actas_api.notifications import (
    NOTICE_APPROVAL_REQUEST,
    NOTICE_DISTRIBUTION,
    Notifier,
    ParticipantNotice,
)
from actas_api.security.link_signer import LinkPurpose, LinkSigner
from actas_api.security.sanitize import sanitize_rich_text
from actas_api.settings import Settings, get_settings
from actas_api.utils import metrics

logger = logging.getLogger(__name__)

POLICY_LAST_APPROVER = "last_approver"
POLICY_ADMINISTRATOR = "administrator"

MAX_REJECTION_REASON = 2000

PREVIEW_STATES = (ActaState.PENDING_APPROVAL, ActaState.APPROVED, ActaState.SENT)


class ResponseOutcome(str, Enum):
    APPROVED = "approved"
    ALREADY_APPROVED = "already_approved"
    REJECTED = "rejected"


@dataclass
class ResponseResult:
    """Outcome of a participant response."""

    outcome: ResponseOutcome
    acta_state: str
    acta_approved: bool = False


@dataclass
class DispatchReport:
    """Transition plus the notifications that followed it."""

    acta: Acta
    sent: int = 0
    failed: list[int] = field(default_factory=list)


class ApprovalWorkflow:
    """Drive an acta from draft to sent."""

    def __init__(
        self,
        db: Session,
        signer: LinkSigner,
        notifier: Notifier,
        attachments: AttachmentService,
        audit: AuditTrail,
        settings: Optional[Settings] = None,
    ):
        """Initialize workflow."""
        self.db = db
        self.signer = signer
        self.notifier = notifier
        self.attachments = attachments
        self.audit = audit
        self.settings = settings or get_settings()

    # Internal (session) operations

    def submit_for_approval(self, acta_id: int, session: SessionUser) -> DispatchReport:
        """Open a new approval cycle and send each required participant a signed link."""
        acta = self._get_acta(acta_id)
        if not (session.is_admin or acta.created_by_id == session.user_id):
            raise PermissionDenied("Only the creator or an administrator can submit this acta.")
        ensure_state(acta, ActaState.DRAFT, message="Only draft actas can be submitted for approval.")

        cycle = acta.approval_cycle + 1
        required = [p for p in acta.participants if p.requires_approval]

        if not transition(
            self.db,
            acta.id,
            ActaState.DRAFT,
            ActaState.PENDING_APPROVAL,
            approval_cycle=cycle,
            submitted_by_id=session.user_id,
            approved_by_id=None,
        ):
            self.db.rollback()
            raise StateError("The acta is no longer a draft.", current_state=self._current_state(acta_id))

        for participant in required:
            self.db.add(ParticipantApproval(acta_id=acta.id, participant_id=participant.id, approval_cycle=cycle))
        self.audit.append(
            acta.id,
            EVENT_SUBMIT_FOR_APPROVAL,
            actor_id=session.user_id,
            metadata={"approval_cycle": cycle, "participant_ids": [p.id for p in required]},
        )
        self.db.commit()
        logger.info(
            f"Acta {acta.id} submitted for approval (cycle {cycle}, {len(required)} approvers)",
            extra={"acta_id": acta.id},
        )

        if not required:
            self.evaluate_completion(acta.id)
            self.db.refresh(acta)
            return DispatchReport(acta=acta)

        report = DispatchReport(acta=acta)
        for participant in required:
            notice = ParticipantNotice(
                acta_id=acta.id,
                participant_id=participant.id,
                recipient_name=participant.name,
                kind=NOTICE_APPROVAL_REQUEST,
                signed_link=self.signer.approval_link(self.settings.public_base_url_clean, acta.id, participant.id),
                acta_date=acta.date,
                objective=acta.objective,
            )
            self._deliver(participant, notice, report)

        self.db.refresh(acta)
        return report

    def distribute(self, acta_id: int, session: SessionUser) -> DispatchReport:
        """Mark an approved acta as sent and mail every participant (administrators only)."""
        if not session.is_admin:
            raise PermissionDenied("Only an administrator can distribute an acta.")
        acta = self._get_acta(acta_id)
        ensure_state(acta, ActaState.APPROVED, message="Only approved actas can be distributed.")
        recipients = list(acta.participants)
        if not recipients:
            raise ValidationError("The acta has no participants to send it to.", field="participants")

        if not transition(self.db, acta.id, ActaState.APPROVED, ActaState.SENT):
            self.db.rollback()
            raise StateError("The acta is no longer approved.", current_state=self._current_state(acta_id))
        self.db.commit()

        base_url = self.settings.public_base_url_clean
        documents = list(acta.documents)
        report = DispatchReport(acta=acta)
        for participant in recipients:
            notice = ParticipantNotice(
                acta_id=acta.id,
                participant_id=participant.id,
                recipient_name=participant.name,
                kind=NOTICE_DISTRIBUTION,
                signed_link=self.signer.approval_link(base_url, acta.id, participant.id),
                acta_date=acta.date,
                objective=acta.objective,
                document_links=[
                    (doc.original_filename, self.signer.download_link(base_url, acta.id, participant.id, doc.id))
                    for doc in documents
                ],
            )
            self._deliver(participant, notice, report)

        self.audit.append(
            acta.id,
            EVENT_EMAIL_SENT,
            actor_id=session.user_id,
            metadata={
                "recipients": len(recipients),
                "sent": report.sent,
                "failed": len(report.failed),
                "failed_participant_ids": report.failed,
                "documents": len(documents),
            },
        )
        self.db.commit()
        self.db.refresh(acta)
        logger.info(
            f"Acta {acta.id} distributed to {report.sent}/{len(recipients)} participants",
            extra={"acta_id": acta.id},
        )
        return report

    def return_to_draft(self, acta_id: int, session: SessionUser) -> Acta:
        """Administrative regression from pending_approval or approved."""
        if not session.is_admin:
            raise PermissionDenied("Only an administrator can return an acta to draft.")
        acta = self._get_acta(acta_id)
        ensure_state(
            acta,
            ActaState.PENDING_APPROVAL,
            ActaState.APPROVED,
            message="Only actas pending approval or approved can return to draft.",
        )
        previous = ActaState(acta.state)
        snapshot = acta_snapshot(acta)

        if not transition(self.db, acta.id, previous, ActaState.DRAFT, approved_by_id=None):
            self.db.rollback()
            raise StateError("The acta changed state meanwhile.", current_state=self._current_state(acta_id))
        self.audit.append(
            acta.id,
            EVENT_EDIT,
            actor_id=session.user_id,
            metadata={
                "before": snapshot,
                "after": snapshot,
                "returned_to_draft": True,
                "previous_state": previous.value,
            },
        )
        self.db.commit()
        self.db.refresh(acta)
        logger.info(f"Acta {acta.id} returned to draft by user {session.user_id}", extra={"acta_id": acta.id})
        return acta

    def approval_status(self, acta_id: int) -> list[dict]:
        """Per-participant status for the current approval cycle."""
        acta = self._get_acta(acta_id)
        rows = {
            row.participant_id: row
            for row in self.db.query(ParticipantApproval)
            .filter(
                ParticipantApproval.acta_id == acta.id,
                ParticipantApproval.approval_cycle == acta.approval_cycle,
            )
            .all()
        }
        status = []
        for participant in acta.participants:
            row = rows.get(participant.id)
            status.append(
                {
                    "participant_id": participant.id,
                    "name": participant.name,
                    "email": participant.email,
                    "requires_approval": participant.requires_approval,
                    "status": row.status if row else ("pending" if participant.requires_approval else "not_required"),
                    "approved_at": row.approved_at if row else None,
                    "rejection_reason": row.rejection_reason if row else None,
                    "has_photo": bool(row and row.photo_path),
                }
            )
        return status

    def approval_photo(self, acta_id: int, participant_id: int, session: SessionUser) -> str:
        """Storage path of a participant's current approval photo (creator or administrator)."""
        acta = self._get_acta(acta_id)
        if not (session.is_admin or acta.created_by_id == session.user_id):
            raise PermissionDenied("Only the creator or an administrator can see approval photos.")
        row = self._cycle_row(acta, participant_id)
        if not row or not row.photo_path:
            raise NotFound("Approval photo not found.")
        return row.photo_path

    def evaluate_completion(self, acta_id: int) -> bool:
        """Approve the acta if every required participant approved in the current cycle.

        Re-reads state instead of trusting anything held in memory. Returns
        True only for the call that performed the transition.
        """
        self.db.expire_all()
        acta = self.db.query(Acta).filter(Acta.id == acta_id).first()
        if not acta or acta.state != ActaState.PENDING_APPROVAL.value:
            return False

        required_ids = {
            pid
            for (pid,) in self.db.query(Participant.id).filter(
                Participant.acta_id == acta.id, Participant.requires_approval.is_(True)
            )
        }
        approved = (
            self.db.query(ParticipantApproval)
            .filter(
                ParticipantApproval.acta_id == acta.id,
                ParticipantApproval.approval_cycle == acta.approval_cycle,
                ParticipantApproval.approved_at.isnot(None),
                ParticipantApproval.rejected.is_(False),
            )
            .order_by(ParticipantApproval.approved_at.desc(), ParticipantApproval.id.desc())
            .all()
        )
        if not required_ids.issubset({row.participant_id for row in approved}):
            return False

        approver_id = self._approver_of_record(acta, approved[0] if approved else None)
        if not transition(
            self.db, acta.id, ActaState.PENDING_APPROVAL, ActaState.APPROVED, approved_by_id=approver_id
        ):
            self.db.rollback()
            return False
        self.audit.append(
            acta.id,
            EVENT_APPROVAL,
            actor_id=None,
            metadata={
                "acta_approved": True,
                "approval_cycle": acta.approval_cycle,
                "approved_by_id": approver_id,
            },
        )
        self.db.commit()
        logger.info(f"Acta {acta.id} approved (cycle {acta.approval_cycle})", extra={"acta_id": acta.id})
        return True

    # Public (signed link) operations

    def preview(self, acta_id: int, participant_id: int, signature: str) -> dict:
        """Read-only view for the holder of an approval link."""
        self._verify_approval_link(acta_id, participant_id, signature)
        acta, participant = self._linked(acta_id, participant_id)
        if ActaState(acta.state) not in PREVIEW_STATES:
            raise InvalidLink()

        row = self._cycle_row(acta, participant_id)
        status = row.status if row else "not_required"
        can_respond = acta.state == ActaState.PENDING_APPROVAL.value and status == "pending"

        documents = []
        if acta.state == ActaState.SENT.value:
            base_url = self.settings.public_base_url_clean
            documents = [
                {
                    "id": doc.id,
                    "filename": doc.original_filename,
                    "mime_type": doc.mime_type,
                    "size_bytes": doc.size_bytes,
                    "url": self.signer.download_link(base_url, acta.id, participant.id, doc.id),
                }
                for doc in acta.documents
            ]

        return {
            "acta": {
                "id": acta.id,
                "date": acta.date.isoformat(),
                "objective": acta.objective,
                "body": sanitize_rich_text(acta.body),
                "commitments_summary": sanitize_rich_text(acta.commitments_summary),
                "state": acta.state,
            },
            "participants": [{"name": p.name, "title": p.title, "kind": p.kind} for p in acta.participants],
            "commitments": [
                {
                    "description": c.description,
                    "due_date": c.due_date.isoformat() if c.due_date else None,
                    "assignee": c.participant.name if c.participant is not None else None,
                }
                for c in acta.commitments
            ],
            "participant": {
                "id": participant.id,
                "name": participant.name,
                "status": status,
                "approved_at": row.approved_at.isoformat() if row and row.approved_at else None,
            },
            "already_approved": status == "approved",
            "can_respond": can_respond,
            "documents": documents,
        }

    def approve_participant(
        self, acta_id: int, participant_id: int, signature: str, photo: bytes, photo_mime: str
    ) -> ResponseResult:
        """Record an approval with its photo; idempotent for repeated approvals."""
        self._verify_approval_link(acta_id, participant_id, signature)
        acta, participant = self._linked(acta_id, participant_id)
        row = self._cycle_row(acta, participant_id)
        if row is None:
            raise InvalidLink()
        if row.approved_at is not None:
            metrics.participant_responses.labels(outcome=ResponseOutcome.ALREADY_APPROVED.value).inc()
            return ResponseResult(ResponseOutcome.ALREADY_APPROVED, acta_state=acta.state)
        if acta.state != ActaState.PENDING_APPROVAL.value or row.rejected:
            raise InvalidLink()

        photo_path = self.attachments.save_approval_photo(acta.id, photo, photo_mime)
        now = datetime.utcnow()
        if not self._respond(row, acta.id, approved_at=now, responded_at=now, photo_path=photo_path):
            self.db.rollback()
            self.attachments.discard(photo_path)
            return self._lost_race(acta_id, participant_id)

        self.audit.append(
            acta.id,
            EVENT_APPROVAL,
            actor_id=None,
            metadata={"participant_id": participant.id, "approval_cycle": acta.approval_cycle},
        )
        self.db.commit()
        metrics.participant_responses.labels(outcome=ResponseOutcome.APPROVED.value).inc()
        logger.info(f"Participant {participant.id} approved acta {acta.id}", extra={"acta_id": acta.id})

        acta_approved = self.evaluate_completion(acta.id)
        return ResponseResult(
            ResponseOutcome.APPROVED, acta_state=self._current_state(acta.id), acta_approved=acta_approved
        )

    def reject_participant(self, acta_id: int, participant_id: int, signature: str, reason: str) -> ResponseResult:
        """Record a rejection and send the acta back to draft."""
        self._verify_approval_link(acta_id, participant_id, signature)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to reject the acta.", field="reason")
        if len(reason) > MAX_REJECTION_REASON:
            raise ValidationError(
                f"The reason cannot exceed {MAX_REJECTION_REASON} characters.", field="reason"
            )

        acta, participant = self._linked(acta_id, participant_id)
        row = self._cycle_row(acta, participant_id)
        if row is None:
            raise InvalidLink()
        if row.approved_at is not None:
            return ResponseResult(ResponseOutcome.ALREADY_APPROVED, acta_state=acta.state)
        if acta.state != ActaState.PENDING_APPROVAL.value or row.rejected:
            raise InvalidLink()

        now = datetime.utcnow()
        if not self._respond(row, acta.id, rejected=True, rejection_reason=reason, responded_at=now):
            self.db.rollback()
            return self._lost_race(acta_id, participant_id)

        returned = transition(self.db, acta.id, ActaState.PENDING_APPROVAL, ActaState.DRAFT, approved_by_id=None)
        self.audit.append(
            acta.id,
            EVENT_PARTICIPANT_REJECTION,
            actor_id=None,
            metadata={
                "participant_id": participant.id,
                "reason": reason,
                "returned_to_draft": returned,
                "previous_state": ActaState.PENDING_APPROVAL.value,
                "approval_cycle": acta.approval_cycle,
            },
        )
        self.db.commit()
        metrics.participant_responses.labels(outcome=ResponseOutcome.REJECTED.value).inc()
        logger.info(f"Participant {participant.id} rejected acta {acta.id}", extra={"acta_id": acta.id})
        return ResponseResult(ResponseOutcome.REJECTED, acta_state=self._current_state(acta.id))

    def resolve_download(self, acta_id: int, participant_id: int, document_id: int, signature: str) -> ActaDocument:
        """Document a participant may download from a distributed acta."""
        if not self.signer.verify(LinkPurpose.DOCUMENT_DOWNLOAD, acta_id, participant_id, document_id, signature):
            raise PermissionDenied("Invalid link.")
        acta = self.db.query(Acta).filter(Acta.id == acta_id).first()
        if not acta or acta.state != ActaState.SENT.value:
            raise NotFound("Document not found.")
        participant = self._participant_of(acta_id, participant_id)
        document = (
            self.db.query(ActaDocument)
            .filter(ActaDocument.id == document_id, ActaDocument.acta_id == acta_id)
            .first()
        )
        if participant is None or document is None:
            raise NotFound("Document not found.")
        return document

    # Internals

    def _get_acta(self, acta_id: int) -> Acta:
        acta = self.db.query(Acta).filter(Acta.id == acta_id).first()
        if not acta:
            raise NotFound(f"Acta {acta_id} not found.")
        return acta

    def _current_state(self, acta_id: int) -> Optional[str]:
        return self.db.execute(select(Acta.state).where(Acta.id == acta_id)).scalar_one_or_none()

    def _participant_of(self, acta_id: int, participant_id: int) -> Optional[Participant]:
        return (
            self.db.query(Participant)
            .filter(Participant.id == participant_id, Participant.acta_id == acta_id)
            .first()
        )

    def _verify_approval_link(self, acta_id: int, participant_id: int, signature: str):
        if not self.signer.verify(LinkPurpose.PARTICIPANT_APPROVAL, acta_id, participant_id, signature):
            metrics.participant_responses.labels(outcome="invalid_link").inc()
            raise InvalidLink()

    def _linked(self, acta_id: int, participant_id: int) -> tuple[Acta, Participant]:
        acta = self.db.query(Acta).filter(Acta.id == acta_id).first()
        participant = self._participant_of(acta_id, participant_id) if acta else None
        if not acta or not participant:
            raise InvalidLink()
        return acta, participant

    def _cycle_row(self, acta: Acta, participant_id: int) -> Optional[ParticipantApproval]:
        return (
            self.db.query(ParticipantApproval)
            .filter(
                ParticipantApproval.participant_id == participant_id,
                ParticipantApproval.approval_cycle == acta.approval_cycle,
            )
            .first()
        )

    def _respond(self, row: ParticipantApproval, acta_id: int, **values) -> bool:
        """Fill in a pending response row only if nobody answered it first."""
        pending_acta = select(Acta.id).where(
            Acta.id == acta_id, Acta.state == ActaState.PENDING_APPROVAL.value
        )
        result = self.db.execute(
            update(ParticipantApproval)
            .where(
                ParticipantApproval.id == row.id,
                ParticipantApproval.approved_at.is_(None),
                ParticipantApproval.rejected.is_(False),
                ParticipantApproval.acta_id.in_(pending_acta),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _lost_race(self, acta_id: int, participant_id: int) -> ResponseResult:
        """A concurrent request answered first; report what it did."""
        self.db.expire_all()
        acta = self.db.query(Acta).filter(Acta.id == acta_id).first()
        row = self._cycle_row(acta, participant_id) if acta else None
        if row is not None and row.approved_at is not None:
            metrics.participant_responses.labels(outcome=ResponseOutcome.ALREADY_APPROVED.value).inc()
            return ResponseResult(ResponseOutcome.ALREADY_APPROVED, acta_state=acta.state)
        raise InvalidLink()

    def _approver_of_record(self, acta: Acta, last_row: Optional[ParticipantApproval]) -> Optional[int]:
        if self.settings.approver_policy == POLICY_ADMINISTRATOR:
            if acta.submitted_by_id is None:
                return None
            submitter = self.db.query(User).filter(User.id == acta.submitted_by_id).first()
            return submitter.id if submitter and submitter.role == ROLE_ADMIN else None
        if last_row is None:
            return None
        participant = self.db.query(Participant).filter(Participant.id == last_row.participant_id).first()
        if participant and participant.kind == "internal" and participant.user_id:
            return participant.user_id
        return None

    def _deliver(self, participant: Participant, notice: ParticipantNotice, report: DispatchReport):
        try:
            result = self.notifier.notify_participant(participant.email, notice)
        except Exception as e:
            logger.error(
                f"Notifier raised for participant {participant.id}: {e}",
                extra={"acta_id": notice.acta_id},
                exc_info=True,
            )
            report.failed.append(participant.id)
            return
        if result.ok:
            report.sent += 1
        else:
            logger.warning(
                f"Notice to participant {participant.id} not delivered: {result.error}",
                extra={"acta_id": notice.acta_id},
            )
            report.failed.append(participant.id)

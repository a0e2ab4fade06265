"""Acta service: draft lifecycle, participants, commitments and their history."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from actas_api.actas.schemas import ActaInput, CommitmentInput, ParticipantInput
from actas_api.actas.snapshot import acta_snapshot, normalize_rich_text
from actas_api.actas.state import ActaState, CommitmentState, ensure_state
from actas_api.attachments import AttachmentService
from actas_api.audit import AuditTrail
from actas_api.auth.session import SessionUser
from actas_api.errors import NotFound, PermissionDenied, ValidationError
from actas_api.models import (
    Acta,
    ActaActivity,
    ActaClient,
    Commitment,
    CommitmentHistory,
    Participant,
    User,
)
from actas_api.models.audit import EVENT_CREATION, EVENT_EDIT

logger = logging.getLogger(__name__)

KIND_INTERNAL = "internal"
KIND_EXTERNAL = "external"


class ActaService:
    """Create, edit and delete actas while they are drafts."""

    def __init__(self, db: Session, audit: AuditTrail, attachments: Optional[AttachmentService] = None):
        """Initialize service."""
        self.db = db
        self.audit = audit
        self.attachments = attachments

    # Queries

    def get(self, acta_id: int) -> Acta:
        acta = self.db.query(Acta).filter(Acta.id == acta_id).first()
        if not acta:
            raise NotFound(f"Acta {acta_id} not found.")
        return acta

    def get_commitment(self, commitment_id: int) -> Commitment:
        commitment = self.db.query(Commitment).filter(Commitment.id == commitment_id).first()
        if not commitment:
            raise NotFound(f"Commitment {commitment_id} not found.")
        return commitment

    def list_actas(self, state: Optional[str] = None, limit: int = 50, offset: int = 0) -> list[Acta]:
        query = self.db.query(Acta)
        if state:
            query = query.filter(Acta.state == ActaState(state).value)
        return query.order_by(Acta.date.desc(), Acta.id.desc()).offset(offset).limit(limit).all()

    @staticmethod
    def ensure_can_manage(acta: Acta, session: SessionUser):
        """Creator or administrator."""
        if not (session.is_admin or acta.created_by_id == session.user_id):
            raise PermissionDenied("Only the creator or an administrator can manage this acta.")

    # Lifecycle

    def create(self, data: ActaInput, session: SessionUser) -> Acta:
        """Create a draft acta and record a creation entry with its snapshot."""
        acta = Acta(
            date=data.date,
            objective=data.objective,
            body=normalize_rich_text(data.body),
            commitments_summary=normalize_rich_text(data.commitments_summary),
            state=ActaState.DRAFT.value,
            created_by_id=session.user_id,
            approval_cycle=0,
        )
        self.db.add(acta)
        self.db.flush()

        self._apply_collections(acta, data)
        self.db.flush()

        self.audit.append(acta.id, EVENT_CREATION, actor_id=session.user_id, metadata={"after": acta_snapshot(acta)})
        self.db.commit()
        self.db.refresh(acta)

        logger.info(f"Acta {acta.id} created by user {session.user_id}", extra={"acta_id": acta.id})
        return acta

    def update(self, acta_id: int, data: ActaInput, session: SessionUser) -> Acta:
        """Replace a draft's content; records before/after snapshots."""
        acta = self.get(acta_id)
        self.ensure_can_manage(acta, session)
        ensure_state(acta, ActaState.DRAFT, message="Only draft actas can be edited.")

        before = acta_snapshot(acta)

        acta.date = data.date
        acta.objective = data.objective
        acta.body = normalize_rich_text(data.body)
        acta.commitments_summary = normalize_rich_text(data.commitments_summary)
        acta.updated_at = datetime.utcnow()
        self._apply_collections(acta, data)
        self.db.flush()

        after = acta_snapshot(acta)
        self.audit.append(
            acta.id,
            EVENT_EDIT,
            actor_id=session.user_id,
            metadata={"before": before, "after": after},
        )
        self.db.commit()
        self.db.refresh(acta)

        logger.info(f"Acta {acta.id} edited by user {session.user_id}", extra={"acta_id": acta.id})
        return acta

    def delete(self, acta_id: int, session: SessionUser):
        """Delete a draft with everything it owns; blobs go last, best effort."""
        acta = self.get(acta_id)
        self.ensure_can_manage(acta, session)
        ensure_state(acta, ActaState.DRAFT, message="Only draft actas can be deleted.")

        blob_paths = [d.storage_path for d in acta.documents]
        blob_paths += [a.photo_path for a in acta.approvals if a.photo_path]
        for commitment in acta.commitments:
            for entry in commitment.history:
                blob_paths += [d.storage_path for d in entry.documents]

        self.db.delete(acta)
        self.db.commit()
        logger.info(f"Acta {acta_id} deleted by user {session.user_id}", extra={"acta_id": acta_id})

        if self.attachments:
            for path in blob_paths:
                self.attachments.discard(path)

    # Commitments

    def update_commitment_status(
        self,
        commitment_id: int,
        new_state: str,
        session: SessionUser,
        detail: Optional[str] = None,
        files: Optional[list[tuple[str, str, bytes]]] = None,
    ) -> CommitmentHistory:
        """Change a commitment's status and append a history entry with optional evidence."""
        try:
            state = CommitmentState(new_state)
        except ValueError:
            raise ValidationError("Invalid commitment status.", field="state")
        commitment = self.get_commitment(commitment_id)
        detail = (detail or "").strip() or None

        entry = CommitmentHistory(
            commitment_id=commitment.id,
            previous_state=commitment.state,
            new_state=state.value,
            detail=detail,
            created_by_id=session.user_id,
            created_at=datetime.utcnow(),
        )
        self.db.add(entry)
        commitment.state = state.value
        commitment.status_detail = detail
        commitment.updated_at = datetime.utcnow()
        commitment.updated_by_id = session.user_id
        self.db.flush()

        if files:
            if not self.attachments:
                raise ValidationError("Evidence files are not accepted here.", field="files")
            try:
                self.attachments.attach_history_evidence(entry.id, files)
            except Exception:
                self.db.rollback()
                raise

        self.db.commit()
        self.db.refresh(entry)
        logger.info(
            f"Commitment {commitment.id} moved to {state.value} by user {session.user_id}",
            extra={"acta_id": commitment.acta_id},
        )
        return entry

    def commitment_history(self, commitment_id: int) -> list[CommitmentHistory]:
        self.get_commitment(commitment_id)
        return (
            self.db.query(CommitmentHistory)
            .filter(CommitmentHistory.commitment_id == commitment_id)
            .order_by(CommitmentHistory.created_at.desc(), CommitmentHistory.id.desc())
            .all()
        )

    # Internals

    def _apply_collections(self, acta: Acta, data: ActaInput):
        participants = self._apply_participants(acta, data.participants)
        self._apply_commitments(acta, data.commitments, participants)
        self._apply_catalog_links(acta, data.client_ids, data.activity_ids)

    def _resolve_participant(self, item: ParticipantInput) -> dict:
        """Fill name/email from the user directory for internal participants."""
        name, email, kind = item.name, item.email, item.kind
        if item.user_id is not None:
            user = self.db.query(User).filter(User.id == item.user_id).first()
            if not user or not user.is_active:
                raise ValidationError(f"User {item.user_id} does not exist or is inactive.", field="participants")
            name = name or user.name
            email = email or user.email.strip().lower()
            kind = kind or KIND_INTERNAL
        if not name or not email:
            raise ValidationError("Each participant needs a name and an email.", field="participants")
        return {
            "name": name,
            "email": email,
            "kind": kind or KIND_EXTERNAL,
            "title": item.title,
            "user_id": item.user_id,
            "requires_approval": item.requires_approval,
        }

    def _apply_participants(self, acta: Acta, items: list[ParticipantInput]) -> list[Participant]:
        """Upsert participants by email, preserving ids (and their approval rows) for kept emails."""
        resolved = [self._resolve_participant(item) for item in items]
        emails = [r["email"] for r in resolved]
        if len(emails) != len(set(emails)):
            raise ValidationError("A participant email appears more than once.", field="participants")

        existing = {p.email: p for p in acta.participants}
        ordered = []
        for position, values in enumerate(resolved):
            participant = existing.pop(values["email"], None) or Participant()
            for key, value in values.items():
                setattr(participant, key, value)
            participant.position = position
            ordered.append(participant)

        # Commitments still pointing at removed participants are reassigned in _apply_commitments
        acta.participants = ordered
        return ordered

    def _apply_commitments(self, acta: Acta, items: list[CommitmentInput], participants: list[Participant]):
        existing = {c.id: c for c in acta.commitments}
        ordered = []
        for item in items:
            commitment = existing.pop(item.id, None) if item.id is not None else None
            if commitment is None:
                commitment = Commitment(state=CommitmentState.PENDING.value)
            commitment.description = item.description.strip()
            commitment.due_date = item.due_date
            commitment.client_member_id = item.client_member_id
            if item.assignee_index is None:
                commitment.participant = None
            elif item.assignee_index < len(participants):
                commitment.participant = participants[item.assignee_index]
            else:
                raise ValidationError("Commitment assignee is not a participant of this acta.", field="commitments")
            ordered.append(commitment)
        acta.commitments = ordered

    @staticmethod
    def _apply_catalog_links(acta: Acta, client_ids: list[int], activity_ids: list[int]):
        keep_clients = [c for c in acta.clients if c.client_id in client_ids]
        present = {c.client_id for c in keep_clients}
        acta.clients = keep_clients + [ActaClient(client_id=cid) for cid in client_ids if cid not in present]

        keep_activities = [a for a in acta.activities if a.activity_id in activity_ids]
        present = {a.activity_id for a in keep_activities}
        acta.activities = keep_activities + [
            ActaActivity(activity_id=aid) for aid in activity_ids if aid not in present
        ]

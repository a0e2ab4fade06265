"""Audit trail models."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, event
from sqlalchemy.orm import relationship

from actas_api.db.base import Base

EVENT_CREATION = "creation"
EVENT_EDIT = "edit"
EVENT_SUBMIT_FOR_APPROVAL = "submit_for_approval"
EVENT_APPROVAL = "approval"
EVENT_PARTICIPANT_REJECTION = "participant_rejection"
EVENT_EMAIL_SENT = "email_sent"

EVENT_KINDS = (
    EVENT_CREATION,
    EVENT_EDIT,
    EVENT_SUBMIT_FOR_APPROVAL,
    EVENT_APPROVAL,
    EVENT_PARTICIPANT_REJECTION,
    EVENT_EMAIL_SENT,
)


class AuditEntry(Base):
    """Append-only record of one acta lifecycle event."""

    __tablename__ = "acta_audit_entries"

    id = Column(Integer, primary_key=True, index=True)
    acta_id = Column(Integer, ForeignKey("actas.id", ondelete="CASCADE"), nullable=False, index=True)
    event_kind = Column(String(50), nullable=False, index=True)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)  # NULL for external events
    correlation_id = Column(String(255), nullable=True, index=True)
    metadata_json = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    acta = relationship("Acta", back_populates="audit_entries")
    actor = relationship("User")


@event.listens_for(AuditEntry, "before_update")
def _refuse_audit_update(mapper, connection, target):
    raise RuntimeError(f"Audit entries are append-only (entry {target.id})")

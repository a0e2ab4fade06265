"""Acta (meeting record) aggregate models."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from actas_api.db.base import Base


class Acta(Base):
    """Meeting record under approval."""

    __tablename__ = "actas"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False)
    objective = Column(Text, nullable=False)
    body = Column(Text, nullable=True)  # Rich text (HTML), untrusted
    commitments_summary = Column(Text, nullable=True)  # Rich text (HTML), untrusted
    state = Column(String(32), default="draft", nullable=False, index=True)  # draft, pending_approval, approved, sent
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    submitted_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approval_cycle = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("state IN ('draft', 'pending_approval', 'approved', 'sent')", name="ck_actas_state"),
    )

    # Relationships
    created_by = relationship("User", foreign_keys=[created_by_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    participants = relationship(
        "Participant",
        back_populates="acta",
        cascade="all, delete-orphan",
        order_by="Participant.position",
    )
    commitments = relationship(
        "Commitment",
        back_populates="acta",
        cascade="all, delete-orphan",
        order_by="Commitment.id",
    )
    approvals = relationship("ParticipantApproval", back_populates="acta", cascade="all, delete-orphan")
    documents = relationship("ActaDocument", back_populates="acta", cascade="all, delete-orphan")
    clients = relationship("ActaClient", cascade="all, delete-orphan")
    activities = relationship("ActaActivity", cascade="all, delete-orphan")
    audit_entries = relationship(
        "AuditEntry",
        back_populates="acta",
        cascade="all, delete-orphan",
        order_by="AuditEntry.id",
    )


class Participant(Base):
    """Person (internal or external) attending an acta."""

    __tablename__ = "acta_participants"

    id = Column(Integer, primary_key=True, index=True)
    acta_id = Column(Integer, ForeignKey("actas.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, default=0, nullable=False)
    kind = Column(String(16), default="external", nullable=False)  # internal, external
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)  # Stored lower-cased
    title = Column(String(200), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    requires_approval = Column(Boolean, default=True, nullable=False)

    __table_args__ = (UniqueConstraint("acta_id", "email", name="uq_acta_participant_email"),)

    # Relationships
    acta = relationship("Acta", back_populates="participants")
    # Responses outlive the participant; removing one detaches its rows
    approvals = relationship("ParticipantApproval", back_populates="participant")


class ParticipantApproval(Base):
    """One participant's response within one approval cycle."""

    __tablename__ = "participant_approvals"

    id = Column(Integer, primary_key=True, index=True)
    acta_id = Column(Integer, ForeignKey("actas.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(
        Integer, ForeignKey("acta_participants.id", ondelete="SET NULL"), nullable=True, index=True
    )
    approval_cycle = Column(Integer, nullable=False)
    approved_at = Column(DateTime, nullable=True)
    photo_path = Column(Text, nullable=True)  # e.g. actas/42/aprobaciones/<uuid>.jpg
    rejected = Column(Boolean, default=False, nullable=False)
    rejection_reason = Column(Text, nullable=True)
    responded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("participant_id", "approval_cycle", name="uq_participant_approval_cycle"),
    )

    # Relationships
    acta = relationship("Acta", back_populates="approvals")
    participant = relationship("Participant", back_populates="approvals")

    @property
    def status(self) -> str:
        if self.rejected:
            return "rejected"
        if self.approved_at is not None:
            return "approved"
        return "pending"


class Commitment(Base):
    """Action item agreed in an acta."""

    __tablename__ = "commitments"

    id = Column(Integer, primary_key=True, index=True)
    acta_id = Column(Integer, ForeignKey("actas.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    due_date = Column(Date, nullable=True)
    # Assignee is either a participant of the acta or a client member, never both
    participant_id = Column(Integer, ForeignKey("acta_participants.id", ondelete="SET NULL"), nullable=True)
    client_member_id = Column(Integer, nullable=True)
    state = Column(String(32), default="pending", nullable=False)  # pending, fulfilled, unfulfilled
    status_detail = Column(Text, nullable=True)
    updated_at = Column(DateTime, nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        CheckConstraint("participant_id IS NULL OR client_member_id IS NULL", name="ck_commitments_single_assignee"),
    )

    # Relationships
    acta = relationship("Acta", back_populates="commitments")
    participant = relationship("Participant")
    history = relationship(
        "CommitmentHistory",
        back_populates="commitment",
        cascade="all, delete-orphan",
        order_by="CommitmentHistory.id",
    )


class CommitmentHistory(Base):
    """Append-only status history of a commitment."""

    __tablename__ = "commitment_history"

    id = Column(Integer, primary_key=True, index=True)
    commitment_id = Column(Integer, ForeignKey("commitments.id", ondelete="CASCADE"), nullable=False, index=True)
    previous_state = Column(String(32), nullable=True)
    new_state = Column(String(32), nullable=False)
    detail = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    commitment = relationship("Commitment", back_populates="history")
    documents = relationship("CommitmentHistoryDocument", back_populates="history_entry", cascade="all, delete-orphan")


class ActaClient(Base):
    """Client (catalog entity) discussed in an acta."""

    __tablename__ = "acta_clients"

    acta_id = Column(Integer, ForeignKey("actas.id", ondelete="CASCADE"), primary_key=True)
    client_id = Column(Integer, primary_key=True)


class ActaActivity(Base):
    """Activity (catalog entity) developed in an acta."""

    __tablename__ = "acta_activities"

    acta_id = Column(Integer, ForeignKey("actas.id", ondelete="CASCADE"), primary_key=True)
    activity_id = Column(Integer, primary_key=True)

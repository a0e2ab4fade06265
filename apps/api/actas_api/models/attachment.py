"""Attachment models (blob metadata; the bytes live in the blob store)."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from actas_api.db.base import Base


class ActaDocument(Base):
    """Document attached to an acta."""

    __tablename__ = "acta_documents"

    id = Column(Integer, primary_key=True, index=True)
    acta_id = Column(Integer, ForeignKey("actas.id", ondelete="CASCADE"), nullable=False, index=True)
    original_filename = Column(Text, nullable=False)
    storage_path = Column(Text, nullable=False, unique=True)
    mime_type = Column(String(255), nullable=False)
    size_bytes = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    acta = relationship("Acta", back_populates="documents")


class CommitmentHistoryDocument(Base):
    """Evidence file attached to a commitment status update."""

    __tablename__ = "commitment_history_documents"

    id = Column(Integer, primary_key=True, index=True)
    history_entry_id = Column(
        Integer, ForeignKey("commitment_history.id", ondelete="CASCADE"), nullable=False, index=True
    )
    original_filename = Column(Text, nullable=False)
    storage_path = Column(Text, nullable=False, unique=True)
    mime_type = Column(String(255), nullable=False)
    size_bytes = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    history_entry = relationship("CommitmentHistory", back_populates="documents")

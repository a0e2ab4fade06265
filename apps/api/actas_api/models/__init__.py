"""Database models - import all models here for Alembic discovery."""

from actas_api.models.acta import (
    Acta,
    ActaActivity,
    ActaClient,
    Commitment,
    CommitmentHistory,
    Participant,
    ParticipantApproval,
)
from actas_api.models.attachment import ActaDocument, CommitmentHistoryDocument
from actas_api.models.audit import AuditEntry
from actas_api.models.user import User

__all__ = [
    "User",
    "Acta",
    "Participant",
    "ParticipantApproval",
    "Commitment",
    "CommitmentHistory",
    "ActaClient",
    "ActaActivity",
    "ActaDocument",
    "CommitmentHistoryDocument",
    "AuditEntry",
]

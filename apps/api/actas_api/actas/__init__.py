"""Acta aggregate."""

from actas_api.actas.schemas import ActaInput, CommitmentInput, ParticipantInput
from actas_api.actas.service import ActaService
from actas_api.actas.state import ActaState, CommitmentState

__all__ = [
    "ActaInput",
    "ActaService",
    "ActaState",
    "CommitmentInput",
    "CommitmentState",
    "ParticipantInput",
]

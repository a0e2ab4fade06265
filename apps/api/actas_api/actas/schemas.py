"""Input models for acta create/edit."""

import re
from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ParticipantInput(BaseModel):
    """Participant as submitted by the acta form.

    Internal participants may give only ``user_id``; name and email are then
    copied from the user directory.
    """

    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    user_id: Optional[int] = Field(None, gt=0)
    kind: Optional[Literal["internal", "external"]] = None
    title: Optional[str] = Field(None, max_length=200)
    requires_approval: bool = True

    @field_validator("name", "title")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        value = value.strip().lower()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email address")
        return value


class CommitmentInput(BaseModel):
    """Commitment as submitted by the acta form."""

    id: Optional[int] = Field(None, description="Existing commitment id when editing")
    description: str = Field(..., min_length=1)
    due_date: Optional[date] = None
    assignee_index: Optional[int] = Field(None, ge=0, description="Position in the participant list")
    client_member_id: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def _single_assignee(self):
        if self.assignee_index is not None and self.client_member_id is not None:
            raise ValueError("A commitment is assigned to a participant or a client member, not both")
        return self


class ActaInput(BaseModel):
    """Acta header and collections."""

    date: date
    objective: str = Field(..., min_length=1, max_length=2000)
    body: Optional[str] = Field(None, max_length=50000)
    commitments_summary: Optional[str] = Field(None, max_length=100000)
    participants: list[ParticipantInput] = Field(default_factory=list)
    client_ids: list[int] = Field(default_factory=list)
    activity_ids: list[int] = Field(default_factory=list)
    commitments: list[CommitmentInput] = Field(default_factory=list)

    @field_validator("objective")
    @classmethod
    def _strip_objective(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("The objective is required")
        return value

    @field_validator("client_ids", "activity_ids")
    @classmethod
    def _positive_unique_ids(cls, values: list[int]) -> list[int]:
        return sorted({v for v in values if v > 0})

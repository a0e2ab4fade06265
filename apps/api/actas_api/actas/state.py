"""Acta lifecycle state machine."""

from datetime import datetime
from enum import Enum

from sqlalchemy import update
from sqlalchemy.orm import Session

from actas_api.errors import StateError
from actas_api.models import Acta
from actas_api.utils import metrics


class ActaState(str, Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    SENT = "sent"


class CommitmentState(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    UNFULFILLED = "unfulfilled"


TRANSITIONS = {
    ActaState.DRAFT: {ActaState.PENDING_APPROVAL},
    # Back to draft on any participant rejection or by an administrator
    ActaState.PENDING_APPROVAL: {ActaState.APPROVED, ActaState.DRAFT},
    ActaState.APPROVED: {ActaState.SENT, ActaState.DRAFT},
    ActaState.SENT: set(),
}


def can_transition(current: str, target: str) -> bool:
    return ActaState(target) in TRANSITIONS[ActaState(current)]


def is_editable(state: str) -> bool:
    return ActaState(state) == ActaState.DRAFT


def ensure_state(acta: Acta, *allowed: ActaState, message: str = None):
    """Raise StateError unless the acta is in one of the allowed states."""
    if ActaState(acta.state) not in allowed:
        names = ", ".join(s.value for s in allowed)
        raise StateError(message or f"Acta {acta.id} must be in state {names}.", current_state=acta.state)


def transition(db: Session, acta_id: int, current: ActaState, target: ActaState, **values) -> bool:
    """Atomically move an acta from ``current`` to ``target``.

    Issues ``UPDATE ... WHERE id = :id AND state = :current`` so concurrent
    requests cannot both win. Returns False when the acta was not in
    ``current`` any more. Does not commit.
    """
    if not can_transition(current, target):
        raise StateError(f"Transition {current.value} -> {target.value} is not allowed.", current_state=current.value)
    result = db.execute(
        update(Acta)
        .where(Acta.id == acta_id, Acta.state == current.value)
        .values(state=target.value, updated_at=datetime.utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    changed = result.rowcount == 1
    if changed:
        metrics.acta_transitions.labels(to_state=target.value).inc()
    return changed

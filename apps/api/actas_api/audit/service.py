"""Append-only audit trail for actas."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from actas_api.models import AuditEntry
from actas_api.models.audit import EVENT_KINDS

logger = logging.getLogger(__name__)


class AuditTrail:
    """Record and read acta lifecycle events.

    Entries are only ever inserted. Snapshots stored in ``metadata_json`` are
    kept verbatim so the history view can diff them client-side.
    """

    def __init__(self, db: Session, correlation_id: Optional[str] = None):
        """Initialize audit trail."""
        self.db = db
        self.correlation_id = correlation_id

    def append(
        self,
        acta_id: int,
        event_kind: str,
        actor_id: Optional[int] = None,
        metadata: Optional[dict] = None,
    ) -> AuditEntry:
        """Append an entry to the current transaction (caller commits)."""
        if event_kind not in EVENT_KINDS:
            raise ValueError(f"Unknown audit event kind: {event_kind}")

        entry = AuditEntry(
            acta_id=acta_id,
            event_kind=event_kind,
            actor_id=actor_id,
            correlation_id=self.correlation_id,
            metadata_json=metadata,
            created_at=datetime.utcnow(),
        )
        self.db.add(entry)
        self.db.flush()

        logger.info(
            f"Audit {event_kind} for acta {acta_id}",
            extra={"acta_id": acta_id, "correlation_id": self.correlation_id},
        )
        return entry

    def history(self, acta_id: int) -> list[AuditEntry]:
        """All entries for an acta, oldest first."""
        return (
            self.db.query(AuditEntry)
            .filter(AuditEntry.acta_id == acta_id)
            .order_by(AuditEntry.created_at.asc(), AuditEntry.id.asc())
            .all()
        )

    def count(self, acta_id: int, event_kind: Optional[str] = None) -> int:
        query = self.db.query(AuditEntry).filter(AuditEntry.acta_id == acta_id)
        if event_kind:
            query = query.filter(AuditEntry.event_kind == event_kind)
        return query.count()

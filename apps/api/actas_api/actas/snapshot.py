"""Structural snapshots of an acta for the audit trail."""

import re
from typing import Optional

from actas_api.models import Acta

EMPTY_EDITOR_HTML = re.compile(r"^(<p>(<br/?>|</br>)*</p>)+$", re.IGNORECASE)


def normalize_rich_text(html: Optional[str]) -> Optional[str]:
    """Return None for editor output that carries no content (``<p></p>``, ``<p><br></p>``...)."""
    if not html:
        return None
    trimmed = html.strip()
    if not trimmed:
        return None
    if EMPTY_EDITOR_HTML.match(re.sub(r"\s+", "", trimmed)):
        return None
    return trimmed


def acta_snapshot(acta: Acta) -> dict:
    """JSON-serializable view of the editable parts of an acta."""
    return {
        "date": acta.date.isoformat() if acta.date else None,
        "objective": acta.objective,
        "body": acta.body,
        "participants": [
            {
                "name": p.name,
                "email": p.email,
                "kind": p.kind,
                "title": p.title,
                "user_id": p.user_id,
                "requires_approval": p.requires_approval,
            }
            for p in acta.participants
        ],
        "client_ids": sorted(c.client_id for c in acta.clients),
        "activity_ids": sorted(a.activity_id for a in acta.activities),
        "commitments": [
            {
                "description": c.description,
                "due_date": c.due_date.isoformat() if c.due_date else None,
                "assignee_email": c.participant.email if c.participant is not None else None,
                "client_member_id": c.client_member_id,
            }
            for c in acta.commitments
        ],
    }

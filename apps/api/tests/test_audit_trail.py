"""Tests for the append-only audit trail."""

import pytest

from actas_api.models import AuditEntry
from actas_api.models.audit import EVENT_CREATION, EVENT_EDIT


def test_append_and_history_order(db, audit, draft_acta):
    audit.append(draft_acta.id, EVENT_EDIT, actor_id=None, metadata={"before": {}, "after": {}})
    db.commit()

    history = audit.history(draft_acta.id)
    assert [e.event_kind for e in history] == [EVENT_CREATION, EVENT_EDIT]
    assert audit.count(draft_acta.id) == 2
    assert audit.count(draft_acta.id, EVENT_EDIT) == 1


def test_unknown_event_kind_is_rejected(audit, draft_acta):
    with pytest.raises(ValueError):
        audit.append(draft_acta.id, "deleted_everything")


def test_entries_cannot_be_updated(db, draft_acta):
    entry = db.query(AuditEntry).filter(AuditEntry.acta_id == draft_acta.id).first()
    entry.metadata_json = {"after": "rewritten"}

    with pytest.raises(RuntimeError):
        db.commit()
    db.rollback()

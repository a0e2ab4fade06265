"""Tests for commitment status follow-up."""

import pytest

from actas_api.actas import ActaState
from actas_api.errors import AttachmentValidationError, NotFound, ValidationError
from actas_api.models import CommitmentHistory, CommitmentHistoryDocument
from conftest import session_for


def test_status_change_records_history(db, acta_service, other_user, draft_acta):
    commitment = draft_acta.commitments[0]

    entry = acta_service.update_commitment_status(
        commitment.id, "fulfilled", session_for(other_user), detail="  Balance enviado  "
    )

    assert entry.previous_state == "pending"
    assert entry.new_state == "fulfilled"
    assert entry.detail == "Balance enviado"
    assert entry.created_by_id == other_user.id
    db.refresh(commitment)
    assert commitment.state == "fulfilled"
    assert commitment.updated_by_id == other_user.id


def test_allowed_in_any_acta_state(db, acta_service, creator_user, draft_acta):
    draft_acta.state = ActaState.SENT.value
    db.commit()

    entry = acta_service.update_commitment_status(draft_acta.commitments[0].id, "unfulfilled", session_for(creator_user))
    assert entry.new_state == "unfulfilled"


def test_evidence_files_are_stored(db, acta_service, blob_store, creator_user, draft_acta):
    files = [
        ("recibo.pdf", "application/pdf", b"%PDF-1.4"),
        ("foto.png", "image/png", b"\x89PNG"),
    ]
    entry = acta_service.update_commitment_status(
        draft_acta.commitments[0].id, "fulfilled", session_for(creator_user), files=files
    )

    documents = db.query(CommitmentHistoryDocument).filter(CommitmentHistoryDocument.history_entry_id == entry.id).all()
    assert sorted(d.original_filename for d in documents) == ["foto.png", "recibo.pdf"]
    assert all(d.storage_path.startswith(f"compromisos/historial/{entry.id}/") for d in documents)
    assert all(blob_store.exists(d.storage_path) for d in documents)


def test_invalid_evidence_is_rejected_before_any_write(db, acta_service, blob_store, creator_user, draft_acta):
    files = [
        ("recibo.pdf", "application/pdf", b"%PDF-1.4"),
        ("script.sh", "application/x-sh", b"rm -rf"),
    ]
    with pytest.raises(AttachmentValidationError):
        acta_service.update_commitment_status(
            draft_acta.commitments[0].id, "fulfilled", session_for(creator_user), files=files
        )
    db.rollback()

    assert db.query(CommitmentHistoryDocument).count() == 0
    assert not (blob_store.root / "compromisos").exists()


def test_history_newest_first(acta_service, creator_user, draft_acta):
    commitment_id = draft_acta.commitments[0].id
    acta_service.update_commitment_status(commitment_id, "unfulfilled", session_for(creator_user))
    acta_service.update_commitment_status(commitment_id, "fulfilled", session_for(creator_user))

    history = acta_service.commitment_history(commitment_id)
    assert [h.new_state for h in history] == ["fulfilled", "unfulfilled"]
    assert history[0].previous_state == "unfulfilled"


def test_unknown_status(acta_service, creator_user, draft_acta):
    with pytest.raises(ValidationError):
        acta_service.update_commitment_status(draft_acta.commitments[0].id, "done-ish", session_for(creator_user))


def test_unknown_commitment(db, acta_service, creator_user):
    with pytest.raises(NotFound):
        acta_service.update_commitment_status(999, "fulfilled", session_for(creator_user))
    assert db.query(CommitmentHistory).count() == 0

"""Tests for the public signed-link endpoints."""

from urllib.parse import unquote

import pytest

from actas_api.attachments import AttachmentOwner
from actas_api.errors import GENERIC_LINK_ERROR
from actas_api.models import Acta
from actas_api.security.link_signer import LinkPurpose
from conftest import PNG_BYTES, session_for


def _link_params(signer, acta, participant):
    return {
        "acta": str(acta.id),
        "participant": str(participant.id),
        "signature": signer.sign(LinkPurpose.PARTICIPANT_APPROVAL, acta.id, participant.id),
    }


@pytest.fixture
def pending_acta(db, workflow, creator_user, draft_acta):
    workflow.submit_for_approval(draft_acta.id, session_for(creator_user))
    db.refresh(draft_acta)
    return draft_acta


def test_preview(client, signer, pending_acta):
    pedro = pending_acta.participants[0]
    response = client.get("/approve", params=_link_params(signer, pending_acta, pedro))

    assert response.status_code == 200
    data = response.json()
    assert data["acta"]["id"] == pending_acta.id
    assert data["participant"]["name"] == "Pedro Externo"
    assert data["can_respond"] is True


@pytest.mark.parametrize(
    "params",
    [
        {},
        {"acta": "abc", "participant": "1", "signature": "x"},
        {"acta": "1", "participant": "-4", "signature": "x"},
    ],
)
def test_preview_malformed_links_are_generic(client, params):
    response = client.get("/approve", params=params)
    assert response.status_code == 404
    assert response.json() == {"detail": GENERIC_LINK_ERROR}


def test_preview_failures_are_indistinguishable(client, signer, pending_acta, draft_acta):
    pedro = pending_acta.participants[0]
    tampered = dict(_link_params(signer, pending_acta, pedro), signature="0" * 64)
    missing = {"acta": "9999", "participant": "1", "signature": signer.sign(LinkPurpose.PARTICIPANT_APPROVAL, 9999, 1)}

    bodies = [client.get("/approve", params=p).json() for p in (tampered, missing)]
    assert bodies[0] == bodies[1] == {"detail": GENERIC_LINK_ERROR}


def test_draft_preview_is_generic(client, signer, acta_service, creator_user):
    from conftest import acta_payload

    acta = acta_service.create(acta_payload(), session_for(creator_user))
    response = client.get("/approve", params=_link_params(signer, acta, acta.participants[0]))
    assert response.status_code == 404
    assert response.json() == {"detail": GENERIC_LINK_ERROR}


def test_approve_with_photo(db, client, signer, pending_acta):
    pedro = pending_acta.participants[0]
    response = client.post(
        "/approve",
        data=_link_params(signer, pending_acta, pedro),
        files={"photo": ("selfie.png", PNG_BYTES, "image/png")},
    )

    assert response.status_code == 200
    assert response.json() == {"status": "approved", "acta_state": "pending_approval", "acta_approved": False}

    again = client.post(
        "/approve",
        data=_link_params(signer, pending_acta, pedro),
        files={"photo": ("selfie.png", PNG_BYTES, "image/png")},
    )
    assert again.json()["status"] == "already_approved"


def test_approve_without_photo(client, signer, pending_acta):
    pedro = pending_acta.participants[0]
    response = client.post("/approve", data=_link_params(signer, pending_acta, pedro))

    assert response.status_code == 400
    assert response.json()["field"] == "photo"


def test_approve_with_wrong_photo_type(client, signer, pending_acta):
    pedro = pending_acta.participants[0]
    response = client.post(
        "/approve",
        data=_link_params(signer, pending_acta, pedro),
        files={"photo": ("doc.pdf", b"%PDF", "application/pdf")},
    )
    assert response.status_code == 400


def test_approve_with_bad_signature_is_generic(client, signer, pending_acta):
    pedro = pending_acta.participants[0]
    params = dict(_link_params(signer, pending_acta, pedro), signature="f" * 64)
    response = client.post("/approve", data=params, files={"photo": ("s.png", PNG_BYTES, "image/png")})

    assert response.status_code == 404
    assert response.json() == {"detail": GENERIC_LINK_ERROR}


def test_reject(db, client, signer, pending_acta):
    lucia = pending_acta.participants[1]
    response = client.post(
        "/approve/reject", data=dict(_link_params(signer, pending_acta, lucia), reason="Faltan cifras")
    )

    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["acta_state"] == "draft"
    assert db.query(Acta).filter(Acta.id == pending_acta.id).one().state == "draft"


def test_reject_without_reason(client, signer, pending_acta):
    lucia = pending_acta.participants[1]
    response = client.post("/approve/reject", data=_link_params(signer, pending_acta, lucia))

    assert response.status_code == 400
    assert response.json()["field"] == "reason"


class TestDocumentDownload:
    @pytest.fixture
    def sent_acta(self, db, workflow, signer, attachments, admin_user, pending_acta):
        attachments.save_upload(
            AttachmentOwner.acta(pending_acta.id), b"%PDF-1.4 informe", "Informe final 2026.pdf", "application/pdf"
        )
        for participant in pending_acta.participants:
            workflow.approve_participant(
                pending_acta.id,
                participant.id,
                signer.sign(LinkPurpose.PARTICIPANT_APPROVAL, pending_acta.id, participant.id),
                PNG_BYTES,
                "image/png",
            )
        workflow.distribute(pending_acta.id, session_for(admin_user))
        db.refresh(pending_acta)
        return pending_acta

    def _params(self, signer, acta, participant, document):
        return {
            "acta": acta.id,
            "participant": participant.id,
            "doc": document.id,
            "signature": signer.sign(LinkPurpose.DOCUMENT_DOWNLOAD, acta.id, participant.id, document.id),
        }

    def test_download(self, client, signer, sent_acta):
        document = sent_acta.documents[0]
        response = client.get("/documents", params=self._params(signer, sent_acta, sent_acta.participants[0], document))

        assert response.status_code == 200
        assert response.content == b"%PDF-1.4 informe"
        disposition = response.headers["content-disposition"]
        assert disposition.startswith("attachment; filename=")
        assert unquote(disposition.split('filename="')[1].rstrip('"')) == "Informe final 2026.pdf"

    def test_preview_lists_signed_documents(self, client, signer, sent_acta):
        pedro = sent_acta.participants[0]
        data = client.get("/approve", params=_link_params(signer, sent_acta, pedro)).json()

        assert data["acta"]["state"] == "sent"
        assert len(data["documents"]) == 1
        assert "/documents?" in data["documents"][0]["url"]

    def test_missing_params(self, client):
        response = client.get("/documents", params={"acta": "1", "participant": "x"})
        assert response.status_code == 400

    def test_bad_signature(self, client, signer, sent_acta):
        params = self._params(signer, sent_acta, sent_acta.participants[0], sent_acta.documents[0])
        params["signature"] = "a" * 64
        assert client.get("/documents", params=params).status_code == 403

    def test_link_for_other_document_fails(self, client, signer, sent_acta):
        """A signature for one document does not open another."""
        document = sent_acta.documents[0]
        params = self._params(signer, sent_acta, sent_acta.participants[0], document)
        params["doc"] = document.id + 1
        assert client.get("/documents", params=params).status_code == 403

    def test_document_of_other_acta_is_not_found(self, client, signer, attachments, acta_service, creator_user, sent_acta):
        from conftest import acta_payload

        other = acta_service.create(acta_payload(), session_for(creator_user))
        foreign = attachments.save_upload(AttachmentOwner.acta(other.id), b"%PDF", "x.pdf", "application/pdf")
        params = self._params(signer, sent_acta, sent_acta.participants[0], foreign)

        assert client.get("/documents", params=params).status_code == 404

    def test_draft_acta_download_is_not_found(self, client, signer, attachments, draft_acta):
        document = attachments.save_upload(AttachmentOwner.acta(draft_acta.id), b"%PDF", "x.pdf", "application/pdf")
        params = self._params(signer, draft_acta, draft_acta.participants[0], document)

        response = client.get("/documents", params=params)

        assert response.status_code == 404
        assert response.content != b"%PDF"

    def test_pending_acta_download_is_not_found(self, client, signer, attachments, pending_acta):
        document = attachments.save_upload(AttachmentOwner.acta(pending_acta.id), b"%PDF", "x.pdf", "application/pdf")
        params = self._params(signer, pending_acta, pending_acta.participants[0], document)

        response = client.get("/documents", params=params)

        assert response.status_code == 404
        assert response.content != b"%PDF"

"""Tests for participant e-mail notifications."""

from datetime import date
from unittest.mock import MagicMock

import httpx

from actas_api.notifications import (
    NOTICE_APPROVAL_REQUEST,
    NOTICE_DISTRIBUTION,
    ParticipantNotice,
    ResendNotifier,
)
from actas_api.notifications.service import render_html, render_subject
from actas_api.settings import Settings


def _notice(kind=NOTICE_APPROVAL_REQUEST, **overrides):
    values = {
        "acta_id": 1,
        "participant_id": 2,
        "recipient_name": "Pedro",
        "kind": kind,
        "signed_link": "https://actas.example.test/approve?acta=1&participant=2&signature=abc",
        "acta_date": date(2026, 3, 14),
        "objective": "Cierre de mes",
    }
    values.update(overrides)
    return ParticipantNotice(**values)


def _settings(**overrides):
    values = {"resend_api_key": "re_test_key", "notification_from_email": "actas@example.test"}
    values.update(overrides)
    return Settings(**values)


def _response(status_code, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    response.text = text
    return response


def test_subjects():
    assert render_subject(_notice()) == "Aprobación requerida: acta de reunión 2026-03-14"
    assert render_subject(_notice(NOTICE_DISTRIBUTION)) == "Acta de reunión 2026-03-14"


def test_html_escapes_values():
    html = render_html(_notice(recipient_name="<script>x</script>", objective="A & B"))
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "A &amp; B" in html
    assert "acta=1&amp;participant=2" in html


def test_document_links_only_on_distribution():
    links = [("informe.pdf", "https://actas.example.test/documents?doc=9")]
    assert "informe.pdf" not in render_html(_notice(document_links=links))
    assert "informe.pdf" in render_html(_notice(NOTICE_DISTRIBUTION, document_links=links))


def test_sends_through_resend():
    client = MagicMock()
    client.post.return_value = _response(200, {"id": "email-123"})
    notifier = ResendNotifier(settings=_settings(), client=client)

    result = notifier.notify_participant("pedro@client.example", _notice())

    assert result.ok
    assert result.message_id == "email-123"
    _, kwargs = client.post.call_args
    assert kwargs["json"]["to"] == ["pedro@client.example"]
    assert kwargs["json"]["from"] == "Gestor de Impuestos <actas@example.test>"
    assert kwargs["headers"]["Authorization"] == "Bearer re_test_key"


def test_missing_api_key_is_a_failure():
    client = MagicMock()
    notifier = ResendNotifier(settings=_settings(resend_api_key=None), client=client)

    result = notifier.notify_participant("pedro@client.example", _notice())

    assert not result.ok
    client.post.assert_not_called()


def test_provider_rejection_is_a_failure():
    client = MagicMock()
    client.post.return_value = _response(422, text="invalid recipient")
    notifier = ResendNotifier(settings=_settings(), client=client)

    result = notifier.notify_participant("pedro@client.example", _notice())

    assert not result.ok
    assert result.error == "invalid recipient"


def test_transport_error_is_a_failure():
    client = MagicMock()
    client.post.side_effect = httpx.ConnectError("connection refused")
    notifier = ResendNotifier(settings=_settings(), client=client)

    result = notifier.notify_participant("pedro@client.example", _notice())

    assert not result.ok
    assert "connection refused" in result.error

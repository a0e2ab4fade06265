"""Participant e-mail notifications through the Resend HTTP API.

Sending is fire-and-forget from the workflow's point of view: a failed
delivery is reported in the result and logged, never raised.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from functools import lru_cache
from typing import Optional

import httpx
from jinja2 import Environment

from actas_api.settings import Settings, get_settings
from actas_api.utils import metrics

logger = logging.getLogger(__name__)

NOTICE_APPROVAL_REQUEST = "approval_request"
NOTICE_DISTRIBUTION = "distribution"


@dataclass
class ParticipantNotice:
    """What a participant is told, and the signed links they get."""

    acta_id: int
    participant_id: int
    recipient_name: str
    kind: str
    signed_link: str
    acta_date: Optional[date] = None
    objective: Optional[str] = None
    document_links: list[tuple[str, str]] = field(default_factory=list)  # (filename, url)


@dataclass
class NotificationResult:
    ok: bool
    error: Optional[str] = None
    message_id: Optional[str] = None


class Notifier(ABC):
    """Outbound channel to participants."""

    @abstractmethod
    def notify_participant(self, email: str, notice: ParticipantNotice) -> NotificationResult:
        """Deliver one notice; never raises for delivery failures."""


_environment = Environment(autoescape=True)

EMAIL_TEMPLATE = _environment.from_string(
    """<p>Hola {{ recipient_name }},</p>
{% if distribution %}<p>El acta de la reunión ha sido aprobada y distribuida.</p>
{% else %}<p>Se requiere su aprobación para el acta de la reunión.</p>
{% endif %}{% if acta_date %}<p><strong>Fecha:</strong> {{ acta_date }}</p>
{% endif %}<p><strong>Objetivo:</strong> {{ objective }}</p>
<p><a href="{{ signed_link }}">{% if distribution %}Ver acta{% else %}Revisar y aprobar{% endif %}</a></p>
{% if document_links %}<p>Documentos adjuntos:</p>
<ul>
{% for filename, url in document_links %}<li><a href="{{ url }}">{{ filename }}</a></li>
{% endfor %}</ul>
{% endif %}"""
)


def render_subject(notice: ParticipantNotice) -> str:
    when = notice.acta_date.isoformat() if notice.acta_date else ""
    if notice.kind == NOTICE_DISTRIBUTION:
        return f"Acta de reunión {when}".strip()
    return f"Aprobación requerida: acta de reunión {when}".strip()


def render_html(notice: ParticipantNotice) -> str:
    """E-mail body; every interpolated value is escaped."""
    return EMAIL_TEMPLATE.render(
        recipient_name=notice.recipient_name or "",
        distribution=notice.kind == NOTICE_DISTRIBUTION,
        acta_date=notice.acta_date.isoformat() if notice.acta_date else None,
        objective=notice.objective or "",
        signed_link=notice.signed_link,
        document_links=notice.document_links if notice.kind == NOTICE_DISTRIBUTION else [],
    )


class ResendNotifier(Notifier):
    """Send notices with the Resend e-mail API."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.Client] = None):
        """Initialize notifier."""
        self.settings = settings or get_settings()
        self._client = client

    def notify_participant(self, email: str, notice: ParticipantNotice) -> NotificationResult:
        if not self.settings.resend_api_key:
            logger.warning(
                f"RESEND_API_KEY is not configured; notice for participant {notice.participant_id} not sent",
                extra={"acta_id": notice.acta_id},
            )
            metrics.notifications.labels(status="failed").inc()
            return NotificationResult(ok=False, error="RESEND_API_KEY is not configured")

        payload = {
            "from": f"{self.settings.notification_from_name} <{self.settings.notification_from_email}>",
            "to": [email],
            "subject": render_subject(notice),
            "html": render_html(notice),
        }
        headers = {"Authorization": f"Bearer {self.settings.resend_api_key}"}

        try:
            if self._client is not None:
                response = self._client.post(self.settings.resend_api_url, json=payload, headers=headers)
            else:
                with httpx.Client(timeout=self.settings.notification_timeout_seconds) as client:
                    response = client.post(self.settings.resend_api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(
                f"Notification to participant {notice.participant_id} failed: {e}",
                extra={"acta_id": notice.acta_id},
            )
            metrics.notifications.labels(status="failed").inc()
            return NotificationResult(ok=False, error=str(e))

        if not 200 <= response.status_code < 300:
            error = response.text[:500]
            logger.error(
                f"Resend rejected notice for participant {notice.participant_id}: "
                f"{response.status_code} {error}",
                extra={"acta_id": notice.acta_id},
            )
            metrics.notifications.labels(status="failed").inc()
            return NotificationResult(ok=False, error=error or f"HTTP {response.status_code}")

        try:
            message_id = response.json().get("id")
        except ValueError:
            message_id = None
        metrics.notifications.labels(status="sent").inc()
        logger.info(
            f"Notice {notice.kind} sent to participant {notice.participant_id}",
            extra={"acta_id": notice.acta_id},
        )
        return NotificationResult(ok=True, message_id=message_id)


@lru_cache()
def get_notifier() -> Notifier:
    """Get the configured notifier instance."""
    return ResendNotifier()

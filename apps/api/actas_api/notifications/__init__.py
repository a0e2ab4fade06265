"""Participant notifications."""

from actas_api.notifications.service import (
    NOTICE_APPROVAL_REQUEST,
    NOTICE_DISTRIBUTION,
    NotificationResult,
    Notifier,
    ParticipantNotice,
    ResendNotifier,
    get_notifier,
)

__all__ = [
    "NOTICE_APPROVAL_REQUEST",
    "NOTICE_DISTRIBUTION",
    "NotificationResult",
    "Notifier",
    "ParticipantNotice",
    "ResendNotifier",
    "get_notifier",
]

"""Prometheus metrics."""

from prometheus_client import Counter

# Workflow metrics
acta_transitions = Counter(
    "actas_state_transitions_total",
    "Acta state transitions",
    ["to_state"],
)

participant_responses = Counter(
    "actas_participant_responses_total",
    "Participant responses received through signed links",
    ["outcome"],  # approved, already_approved, rejected, invalid_link
)

# Attachment metrics
uploads = Counter(
    "actas_uploads_total",
    "Attachment uploads",
    ["strategy"],  # proxied, direct_ticket, direct_registered
)

blob_cleanup_failures = Counter(
    "actas_blob_cleanup_failures_total",
    "Best-effort blob deletions that failed",
)

# Notification metrics
notifications = Counter(
    "actas_notifications_total",
    "Participant notifications",
    ["status"],  # sent, failed
)

"""Acta audit trail."""

from actas_api.audit.service import AuditTrail

__all__ = ["AuditTrail"]

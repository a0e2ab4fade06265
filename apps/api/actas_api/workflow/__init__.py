"""Approval workflow over signed links."""

from actas_api.workflow.service import ApprovalWorkflow, ResponseOutcome

__all__ = ["ApprovalWorkflow", "ResponseOutcome"]

"""Multi-level approval workflow for leave, loan and overtime requests."""

from workforce_payroll.services.approval.builder import (
    build_approval_chain,
    should_auto_approve,
    validate_chain,
)
from workforce_payroll.services.approval.engine import ApprovalEngine
from workforce_payroll.services.approval.escalation import ApprovalEscalator, EscalationReport
from workforce_payroll.services.approval.validation import derive_status

__all__ = [
    "ApprovalEngine",
    "ApprovalEscalator",
    "EscalationReport",
    "build_approval_chain",
    "derive_status",
    "should_auto_approve",
    "validate_chain",
]

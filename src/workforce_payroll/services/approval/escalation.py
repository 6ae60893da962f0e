"""Escalation of approval steps left unanswered past the deadline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Callable

from workforce_payroll.entities import (
    ApprovalAction,
    ApprovalRequest,
    AuditEntityType,
    HistoryEntry,
    RequestStatus,
    StepStatus,
)
from workforce_payroll.repositories.base import ApprovalRepository, ConfigRepository
from workforce_payroll.services.audit_service import AuditService

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"
SYSTEM_ACTOR_NAME = "System"


@dataclass
class EscalationReport:
    processed: int = 0
    escalated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def escalate(request: ApprovalRequest, now: datetime, escalation_days: int) -> ApprovalRequest:
    """Skip the current step; on the last step the request awaits an admin."""
    index = request.current_step
    chain = list(request.approval_chain)
    chain[index] = replace(
        chain[index],
        status=StepStatus.SKIPPED.value,
        action_date=now,
        acted_by=SYSTEM_ACTOR,
        notes=f"Escalated after {escalation_days} days without action",
    )
    is_last_step = index >= len(chain) - 1
    if is_last_step:
        new_status = RequestStatus.ESCALATED.value
        next_step = index
    else:
        new_status = RequestStatus.IN_PROGRESS.value
        next_step = index + 1

    entry = HistoryEntry(
        step=index,
        action=ApprovalAction.ESCALATED.value,
        performed_by=SYSTEM_ACTOR,
        performed_by_name=SYSTEM_ACTOR_NAME,
        timestamp=now,
        previous_status=request.status,
        new_status=new_status,
        notes=chain[index].notes,
    )
    return replace(
        request,
        approval_chain=tuple(chain),
        current_step=next_step,
        status=new_status,
        history=request.history + (entry,),
        updated_at=now,
    )


class ApprovalEscalator:
    """Periodic job escalating requests idle for ``escalation_days``."""

    def __init__(
        self,
        approvals: ApprovalRepository,
        config: ConfigRepository,
        audit: AuditService,
        clock: Callable[[], datetime] | None = None,
    ):
        self.approvals = approvals
        self.config = config
        self.audit = audit
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def process_escalations(self, now: datetime | None = None) -> EscalationReport:
        now = now or self.clock()
        settings = await self.config.get_approval_settings()
        deadline = now - timedelta(days=settings.escalation_days)
        report = EscalationReport()

        for request in await self.approvals.list_open_requests():
            report.processed += 1
            last_activity = request.updated_at or request.created_at
            if last_activity is None or last_activity > deadline:
                continue
            if request.current_step >= len(request.approval_chain):
                continue

            escalated = escalate(request, now, settings.escalation_days)
            stored = await self.approvals.update_request(
                escalated,
                expected_version=request.version,
                expected_step=request.current_step,
            )
            if not stored:
                # Someone acted on the request in the meantime.
                report.skipped.append(request.request_id)
                continue

            skipped_step = request.approval_chain[request.current_step]
            await self.audit.record(
                AuditEntityType.APPROVAL_REQUEST,
                request.request_id,
                ApprovalAction.ESCALATED.value,
                SYSTEM_ACTOR,
                SYSTEM_ACTOR_NAME,
                step=request.current_step,
                request_type=request.request_type,
                employee_id=request.employee_id,
                details={
                    "skipped_approver": skipped_step.approver_employee_id,
                    "new_status": escalated.status,
                    "is_last_step": escalated.status == RequestStatus.ESCALATED.value,
                },
            )
            report.escalated.append(request.request_id)

        if report.escalated:
            logger.info("Escalated %d approval request(s)", len(report.escalated))
        return report

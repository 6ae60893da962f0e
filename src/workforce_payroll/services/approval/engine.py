"""Approval workflow engine.

Requests snapshot their approver chain at creation time. Every transition is
a compare-and-set write on (version, current_step): if another actor moved
the request first, the write is refused and the caller gets ``stale_write``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable

from workforce_payroll.entities import (
    ApprovalAction,
    ApprovalDelegation,
    ApprovalRequest,
    AuditEntityType,
    HistoryEntry,
    RequestStatus,
    RequestType,
    StepStatus,
)
from workforce_payroll.errors import (
    AuthorizationError,
    ConcurrencyConflictError,
    HRError,
    NotFoundError,
    OperationResult,
    ValidationError,
)
from workforce_payroll.repositories.base import (
    ApprovalRepository,
    ConfigRepository,
    EmployeeRepository,
)
from workforce_payroll.services.access import ActorContext
from workforce_payroll.services.approval.builder import (
    build_approval_chain,
    should_auto_approve,
    validate_chain,
)
from workforce_payroll.services.approval.delegation import (
    find_active_delegation,
    stamp_delegations,
)
from workforce_payroll.services.approval.validation import (
    ActionPlan,
    derive_status,
    validate_action,
    validate_cancel,
    validate_create,
)
from workforce_payroll.services.audit_service import AuditService

logger = logging.getLogger(__name__)

DecisionListener = Callable[[ApprovalRequest], Awaitable[None]]

REQUEST_TYPES = frozenset(t.value for t in RequestType)


class ApprovalEngine:
    """Creates requests and applies approve, reject and cancel decisions."""

    def __init__(
        self,
        approvals: ApprovalRepository,
        employees: EmployeeRepository,
        config: ConfigRepository,
        audit: AuditService,
        clock: Callable[[], datetime] | None = None,
        listeners: Iterable[DecisionListener] = (),
    ):
        self.approvals = approvals
        self.employees = employees
        self.config = config
        self.audit = audit
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._listeners: list[DecisionListener] = list(listeners)

    def add_listener(self, listener: DecisionListener) -> None:
        """Register a coroutine called once a request is approved or rejected."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_request(
        self,
        actor: ActorContext,
        request_type: str,
        employee_id: str,
        request_data: dict[str, Any],
    ) -> OperationResult[ApprovalRequest]:
        try:
            return OperationResult.success(
                await self._create(actor, request_type, employee_id, request_data)
            )
        except HRError as exc:
            logger.warning("Approval request for %s rejected: %s", employee_id, exc)
            return OperationResult.failure(exc)

    async def approve(
        self,
        request_id: str,
        actor: ActorContext,
        notes: str | None = None,
        step: int | None = None,
    ) -> OperationResult[ApprovalRequest]:
        return await self._decide(request_id, actor, approve=True, notes=notes, step=step)

    async def reject(
        self,
        request_id: str,
        actor: ActorContext,
        notes: str | None = None,
        step: int | None = None,
    ) -> OperationResult[ApprovalRequest]:
        return await self._decide(request_id, actor, approve=False, notes=notes, step=step)

    async def cancel(
        self, request_id: str, actor: ActorContext, notes: str | None = None
    ) -> OperationResult[ApprovalRequest]:
        try:
            request = await self._get(request_id)
            validate_cancel(request, actor)
            now = self.clock()
            entry = HistoryEntry(
                step=request.current_step,
                action=ApprovalAction.CANCELLED.value,
                performed_by=actor.actor_id,
                performed_by_name=actor.actor_name,
                timestamp=now,
                previous_status=request.status,
                new_status=RequestStatus.CANCELLED.value,
                notes=notes,
            )
            cancelled = replace(
                request,
                status=RequestStatus.CANCELLED.value,
                history=request.history + (entry,),
                updated_at=now,
            )
            stored = await self._store(cancelled, request)
            await self._audit(stored, ApprovalAction.CANCELLED.value, actor, request.status)
            return OperationResult.success(stored)
        except HRError as exc:
            logger.warning("Cancel of request %s rejected: %s", request_id, exc)
            return OperationResult.failure(exc)

    async def add_delegation(
        self, actor: ActorContext, delegation: ApprovalDelegation
    ) -> OperationResult[ApprovalDelegation]:
        """Register a delegation; only the delegator or HR/admin may do so."""
        try:
            settings = await self.config.get_approval_settings()
            if not settings.allow_delegation:
                raise ValidationError("Delegation is disabled", code="delegation_disabled")
            if not actor.is_hr_or_admin and actor.actor_id != delegation.from_employee_id:
                raise AuthorizationError(
                    "Only the delegating approver can create this delegation",
                    code="not_authorized",
                )
            if delegation.end_date < delegation.start_date:
                raise ValidationError("Delegation ends before it starts")
            if delegation.from_employee_id == delegation.to_employee_id:
                raise ValidationError("An approver cannot delegate to themselves")
            await self.approvals.add_delegation(delegation)
            return OperationResult.success(delegation)
        except HRError as exc:
            return OperationResult.failure(exc)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_request(self, request_id: str) -> ApprovalRequest | None:
        return await self.approvals.get_request(request_id)

    async def list_requests(
        self,
        employee_id: str | None = None,
        request_type: str | None = None,
        status: str | None = None,
    ) -> list[ApprovalRequest]:
        return await self.approvals.list_requests(
            employee_id=employee_id, request_type=request_type, status=status
        )

    async def pending_for_approver(self, approver_id: str) -> list[ApprovalRequest]:
        """Open requests whose current step is assigned or delegated to ``approver_id``."""
        today = self.clock().date()
        settings, requests, delegations = await asyncio.gather(
            self.config.get_approval_settings(),
            self.approvals.list_open_requests(),
            self.approvals.list_delegations(),
        )
        if not settings.allow_delegation:
            delegations = []
        pending = []
        for request in requests:
            step = request.current_approver
            if step is None or step.status != StepStatus.PENDING.value:
                continue
            if approver_id == step.approver_employee_id:
                pending.append(request)
            elif find_active_delegation(
                delegations,
                step.approver_employee_id,
                request.request_type,
                today,
                to_employee_id=approver_id,
            ):
                pending.append(request)
        return pending

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _create(
        self,
        actor: ActorContext,
        request_type: str,
        employee_id: str,
        request_data: dict[str, Any],
    ) -> ApprovalRequest:
        if request_type not in REQUEST_TYPES:
            raise ValidationError(
                f"Unknown request type: {request_type}", code="unknown_request_type"
            )
        validate_create(actor, employee_id)

        settings, org_chart, delegations = await asyncio.gather(
            self.config.get_approval_settings(),
            self.employees.get_approval_employees(),
            self.approvals.list_delegations(),
        )
        requester = org_chart.get(employee_id)
        if requester is None:
            raise NotFoundError(f"Employee {employee_id} not found")

        now = self.clock()
        base = ApprovalRequest(
            request_type=request_type,
            employee_id=employee_id,
            employee_name=requester.employee_name,
            request_data=dict(request_data),
            department_id=requester.department_id,
            created_at=now,
            updated_at=now,
        )

        if should_auto_approve(request_type, request_data, settings.auto_approve_thresholds):
            entry = HistoryEntry(
                step=0,
                action=ApprovalAction.AUTO_APPROVED.value,
                performed_by="system",
                performed_by_name="System",
                timestamp=now,
                new_status=RequestStatus.APPROVED.value,
            )
            request = replace(base, status=RequestStatus.APPROVED.value, history=(entry,))
            await self.approvals.add_request(request)
            await self._audit(request, ApprovalAction.AUTO_APPROVED.value, ActorContext.system(), None)
            await self._notify(request)
            return request

        hr_approver = org_chart.get(settings.hr_approver_id) if settings.hr_approver_id else None
        chain = build_approval_chain(requester, org_chart.get, settings, hr_approver)
        errors = validate_chain(chain, settings)
        if errors:
            raise ValidationError("; ".join(errors), code="invalid_chain")
        if settings.allow_delegation:
            chain = stamp_delegations(chain, delegations, request_type, now.date())

        entry = HistoryEntry(
            step=0,
            action=ApprovalAction.CREATED.value,
            performed_by=actor.actor_id,
            performed_by_name=actor.actor_name,
            timestamp=now,
            new_status=RequestStatus.PENDING.value,
        )
        request = replace(base, approval_chain=chain, history=(entry,))
        await self.approvals.add_request(request)
        await self._audit(request, ApprovalAction.CREATED.value, actor, None)
        logger.info(
            "Created %s request %s for %s with %d approval step(s)",
            request_type,
            request.request_id,
            employee_id,
            len(chain),
        )
        return request

    async def _decide(
        self,
        request_id: str,
        actor: ActorContext,
        approve: bool,
        notes: str | None,
        step: int | None,
    ) -> OperationResult[ApprovalRequest]:
        try:
            request = await self._get(request_id)
            delegation = await self._delegation_for(request, actor, step)
            plan = validate_action(request, actor, target_step=step, delegation=delegation)
            decided = self._apply(request, actor, plan, approve, notes)
            stored = await self._store(decided, request)

            action = decided.history[-1].action
            await self._audit(
                stored,
                action,
                actor,
                request.status,
                step=plan.step_index,
                on_behalf_of=plan.on_behalf_of,
            )
            if stored.status in (RequestStatus.APPROVED.value, RequestStatus.REJECTED.value):
                await self._notify(stored)
            return OperationResult.success(stored)
        except HRError as exc:
            logger.warning("Decision on request %s rejected: %s", request_id, exc)
            return OperationResult.failure(exc)

    async def _delegation_for(
        self, request: ApprovalRequest, actor: ActorContext, step: int | None
    ) -> ApprovalDelegation | None:
        index = request.current_step if step is None else step
        if not 0 <= index < len(request.approval_chain):
            return None
        approver_id = request.approval_chain[index].approver_employee_id
        if approver_id == actor.actor_id:
            return None
        settings = await self.config.get_approval_settings()
        if not settings.allow_delegation:
            return None
        delegations = await self.approvals.list_delegations()
        return find_active_delegation(
            delegations,
            approver_id,
            request.request_type,
            self.clock().date(),
            to_employee_id=actor.actor_id,
        )

    def _apply(
        self,
        request: ApprovalRequest,
        actor: ActorContext,
        plan: ActionPlan,
        approve: bool,
        notes: str | None,
    ) -> ApprovalRequest:
        now = self.clock()
        chain = list(request.approval_chain)
        step_status = StepStatus.APPROVED.value if approve else StepStatus.REJECTED.value

        if plan.is_override:
            # Admin decision settles every step still pending.
            indexes = [
                i
                for i in range(request.current_step, len(chain))
                if chain[i].status == StepStatus.PENDING.value
            ]
            if not approve:
                indexes = indexes[:1]
            action = ApprovalAction.ADMIN_OVERRIDE.value
        else:
            indexes = [plan.step_index]
            action = ApprovalAction.APPROVED.value if approve else ApprovalAction.REJECTED.value

        for i in indexes:
            chain[i] = replace(
                chain[i],
                status=step_status,
                action_date=now,
                notes=notes,
                acted_by=actor.actor_id,
            )

        if approve:
            next_step = len(chain) if plan.is_override else plan.step_index + 1
            new_status = derive_status(chain)
        else:
            next_step = request.current_step
            new_status = RequestStatus.REJECTED.value

        entry = HistoryEntry(
            step=plan.step_index,
            action=action,
            performed_by=actor.actor_id,
            performed_by_name=actor.actor_name,
            timestamp=now,
            previous_status=request.status,
            new_status=new_status,
            notes=notes,
            on_behalf_of=plan.on_behalf_of,
        )
        return replace(
            request,
            approval_chain=tuple(chain),
            current_step=next_step,
            status=new_status,
            history=request.history + (entry,),
            updated_at=now,
        )

    async def _get(self, request_id: str) -> ApprovalRequest:
        request = await self.approvals.get_request(request_id)
        if request is None:
            raise NotFoundError(f"Approval request {request_id} not found")
        return request

    async def _store(self, updated: ApprovalRequest, original: ApprovalRequest) -> ApprovalRequest:
        stored = await self.approvals.update_request(
            updated,
            expected_version=original.version,
            expected_step=original.current_step,
        )
        if not stored:
            raise ConcurrencyConflictError(
                f"Approval request {original.request_id} was modified concurrently",
                code="stale_write",
            )
        return replace(updated, version=original.version + 1)

    async def _audit(
        self,
        request: ApprovalRequest,
        action: str,
        actor: ActorContext,
        previous_status: str | None,
        step: int | None = None,
        on_behalf_of: str | None = None,
    ) -> None:
        details: dict[str, Any] = {
            "previous_status": previous_status,
            "new_status": request.status,
        }
        if on_behalf_of:
            details["on_behalf_of"] = on_behalf_of
        await self.audit.record(
            AuditEntityType.APPROVAL_REQUEST,
            request.request_id,
            action,
            actor.actor_id,
            actor.actor_name,
            step=step,
            request_type=request.request_type,
            employee_id=request.employee_id,
            details=details,
        )

    async def _notify(self, request: ApprovalRequest) -> None:
        # Listener failures never undo a stored decision.
        for listener in self._listeners:
            try:
                await listener(request)
            except Exception:
                logger.exception(
                    "Listener %s failed for request %s", listener, request.request_id
                )


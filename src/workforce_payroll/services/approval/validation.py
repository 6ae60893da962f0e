"""Permission and sequencing checks for approval actions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from workforce_payroll.entities import (
    ApprovalDelegation,
    ApprovalRequest,
    ApprovalStep,
    RequestStatus,
    StepStatus,
)
from workforce_payroll.errors import AuthorizationError, StateError
from workforce_payroll.services.access import ActorContext, Role


@dataclass(frozen=True)
class ActionPlan:
    """What a validated approve/reject call is allowed to do."""

    step_index: int
    is_override: bool = False
    on_behalf_of: str | None = None


def derive_status(chain: Iterable[ApprovalStep]) -> str:
    """Request status implied by its chain."""
    steps = list(chain)
    if not steps:
        return RequestStatus.APPROVED.value
    statuses = [s.status for s in steps]
    if StepStatus.REJECTED.value in statuses:
        return RequestStatus.REJECTED.value
    if all(s.is_settled for s in steps):
        return RequestStatus.APPROVED.value
    if any(s == StepStatus.APPROVED.value for s in statuses):
        return RequestStatus.IN_PROGRESS.value
    return RequestStatus.PENDING.value


def validate_create(actor: ActorContext, employee_id: str) -> None:
    """Employees file requests for themselves; HR and admins for anyone."""
    if actor.is_hr_or_admin or actor.actor_id == employee_id:
        return
    raise AuthorizationError(
        "Employees can only create requests for themselves", code="not_authorized"
    )


def _ensure_open(request: ApprovalRequest) -> None:
    if request.is_closed:
        raise StateError(
            f"Request {request.request_id} is already {request.status}",
            code="request_closed",
        )


def validate_action(
    request: ApprovalRequest,
    actor: ActorContext,
    target_step: int | None = None,
    delegation: ApprovalDelegation | None = None,
) -> ActionPlan:
    """Check that ``actor`` may approve or reject ``request`` now.

    A delegate acts only through ``delegation``, the delegation in force at
    decision time. The ``delegated_to`` stamp on a step records who was
    covering when the request was filed and grants nothing by itself.

    Raises StateError (closed, chain complete, step not pending, out of
    order) or AuthorizationError.
    """
    _ensure_open(request)

    if actor.role == Role.ADMIN:
        return ActionPlan(step_index=request.current_step, is_override=True)

    chain = request.approval_chain
    if request.current_step >= len(chain):
        raise StateError("All approval steps are complete", code="chain_complete")

    index = request.current_step if target_step is None else target_step
    if index < 0 or index >= len(chain):
        raise StateError(f"Step {index} does not exist", code="step_not_pending")
    step = chain[index]
    if step.status != StepStatus.PENDING.value:
        raise StateError(
            f"Step {index} was already {step.status}", code="step_not_pending"
        )
    if index > request.current_step:
        raise StateError(
            f"Step {index} cannot be acted on before step {request.current_step}",
            code="step_out_of_order",
        )

    on_behalf_of: str | None = None
    is_final_step = index == len(chain) - 1
    if actor.actor_id == step.approver_employee_id:
        pass
    elif (
        delegation is not None
        and delegation.from_employee_id == step.approver_employee_id
        and delegation.to_employee_id == actor.actor_id
    ):
        on_behalf_of = step.approver_employee_id
    elif actor.role == Role.HR and is_final_step:
        on_behalf_of = step.approver_employee_id
    else:
        raise AuthorizationError(
            f"{actor.actor_id} is not the approver of step {index}", code="not_authorized"
        )

    for earlier_index, earlier in enumerate(chain[:index]):
        if not earlier.is_settled:
            raise StateError(
                f"Step {earlier_index} must be approved before step {index}",
                code="step_out_of_order",
            )

    return ActionPlan(step_index=index, on_behalf_of=on_behalf_of)


def validate_cancel(request: ApprovalRequest, actor: ActorContext) -> None:
    """HR and admins cancel anything open; owners only before any step was actioned."""
    if request.is_closed:
        raise StateError(
            f"Request {request.request_id} is already {request.status}",
            code="request_closed",
        )
    if actor.is_hr_or_admin:
        return
    if actor.actor_id != request.employee_id:
        raise AuthorizationError(
            "Only the requester can cancel this request", code="not_authorized"
        )
    if request.current_step != 0 or any(
        s.status != StepStatus.PENDING.value for s in request.approval_chain
    ):
        raise StateError(
            "Request can no longer be cancelled once an approver has acted",
            code="step_not_pending",
        )

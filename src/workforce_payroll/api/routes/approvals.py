"""Approval workflow API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from workforce_payroll.api.dependencies import (
    Actor,
    Container,
    require_permission,
    unwrap_result,
)
from workforce_payroll.api.schemas import (
    ApprovalCancelRequest,
    ApprovalDecisionRequest,
    ApprovalRequestCreate,
    ApprovalRequestListResponse,
    ApprovalRequestResponse,
    DelegationCreate,
    DelegationResponse,
    ErrorResponse,
    EscalationResponse,
)
from workforce_payroll.entities import ApprovalDelegation
from workforce_payroll.services.access import (
    PERMISSION_APPROVAL_MANAGE,
    PERMISSION_APPROVAL_VIEW,
    ActorContext,
)

router = APIRouter(prefix="/approvals", tags=["approvals"])

RequestId = Annotated[str, Path()]
ApprovalManager = Annotated[ActorContext, Depends(require_permission(PERMISSION_APPROVAL_MANAGE))]

DECISION_ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=ApprovalRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_approval_request(
    container: Container, actor: Actor, payload: ApprovalRequestCreate
) -> ApprovalRequestResponse:
    """File a request; its approver chain is captured now."""
    result = await container.approvals.create_request(
        actor, payload.request_type, payload.employee_id, payload.request_data
    )
    return ApprovalRequestResponse.model_validate(unwrap_result(result))


@router.get("", response_model=ApprovalRequestListResponse)
async def list_approval_requests(
    container: Container,
    actor: Actor,
    employee_id: str | None = None,
    request_type: str | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> ApprovalRequestListResponse:
    """List requests; employees without approval.view only see their own."""
    if not actor.is_hr_or_admin and not actor.has(PERMISSION_APPROVAL_VIEW):
        employee_id = actor.actor_id
    requests = await container.approvals.list_requests(
        employee_id=employee_id, request_type=request_type, status=status_filter
    )
    return ApprovalRequestListResponse(
        items=[ApprovalRequestResponse.model_validate(r) for r in requests],
        total=len(requests),
    )


@router.get("/pending", response_model=ApprovalRequestListResponse)
async def list_pending_for_me(container: Container, actor: Actor) -> ApprovalRequestListResponse:
    """Requests waiting on the caller, directly or by delegation."""
    requests = await container.approvals.pending_for_approver(actor.actor_id)
    return ApprovalRequestListResponse(
        items=[ApprovalRequestResponse.model_validate(r) for r in requests],
        total=len(requests),
    )


@router.get(
    "/{request_id}",
    response_model=ApprovalRequestResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_approval_request(
    container: Container, actor: Actor, request_id: RequestId
) -> ApprovalRequestResponse:
    request = await container.approvals.get_request(request_id)
    if request is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Approval request not found",
        )
    return ApprovalRequestResponse.model_validate(request)


@router.post(
    "/{request_id}/approve",
    response_model=ApprovalRequestResponse,
    responses=DECISION_ERRORS,
)
async def approve_request(
    container: Container,
    actor: Actor,
    request_id: RequestId,
    payload: ApprovalDecisionRequest | None = None,
) -> ApprovalRequestResponse:
    payload = payload or ApprovalDecisionRequest()
    result = await container.approvals.approve(
        request_id, actor, notes=payload.notes, step=payload.step
    )
    return ApprovalRequestResponse.model_validate(unwrap_result(result))


@router.post(
    "/{request_id}/reject",
    response_model=ApprovalRequestResponse,
    responses=DECISION_ERRORS,
)
async def reject_request(
    container: Container,
    actor: Actor,
    request_id: RequestId,
    payload: ApprovalDecisionRequest | None = None,
) -> ApprovalRequestResponse:
    payload = payload or ApprovalDecisionRequest()
    result = await container.approvals.reject(
        request_id, actor, notes=payload.notes, step=payload.step
    )
    return ApprovalRequestResponse.model_validate(unwrap_result(result))


@router.post(
    "/{request_id}/cancel",
    response_model=ApprovalRequestResponse,
    responses=DECISION_ERRORS,
)
async def cancel_request(
    container: Container,
    actor: Actor,
    request_id: RequestId,
    payload: ApprovalCancelRequest | None = None,
) -> ApprovalRequestResponse:
    result = await container.approvals.cancel(
        request_id, actor, notes=payload.notes if payload else None
    )
    return ApprovalRequestResponse.model_validate(unwrap_result(result))


@router.post(
    "/delegations",
    response_model=DelegationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_delegation(
    container: Container, actor: Actor, payload: DelegationCreate
) -> DelegationResponse:
    delegation = ApprovalDelegation(
        from_employee_id=payload.from_employee_id,
        from_employee_name=payload.from_employee_name,
        to_employee_id=payload.to_employee_id,
        to_employee_name=payload.to_employee_name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        request_types=tuple(payload.request_types),
    )
    result = await container.approvals.add_delegation(actor, delegation)
    return DelegationResponse.model_validate(unwrap_result(result))


@router.post("/escalations/run", response_model=EscalationResponse)
async def run_escalations(container: Container, actor: ApprovalManager) -> EscalationResponse:
    """Escalate requests idle past the configured number of days."""
    report = await container.escalator.process_escalations()
    return EscalationResponse.model_validate(report)

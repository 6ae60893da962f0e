"""Payroll month API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status

from workforce_payroll.api.dependencies import Container, require_permission, unwrap_result
from workforce_payroll.api.schemas import (
    AuditEntryResponse,
    CostSummaryResponse,
    ErrorResponse,
    GenerationResponse,
    PayrollGenerateRequest,
    PayrollMonthResponse,
    PayrollRecordListResponse,
    PayrollRecordResponse,
    RecordAdjustmentRequest,
)
from workforce_payroll.services.access import PERMISSION_PAYROLL_MANAGE, ActorContext

router = APIRouter(prefix="/payroll", tags=["payroll"])

Month = Annotated[str, Path(pattern=r"^\d{4}-\d{2}$")]
PayrollManager = Annotated[ActorContext, Depends(require_permission(PERMISSION_PAYROLL_MANAGE))]


# ============================================================================
# Payroll Month Lifecycle
# ============================================================================


@router.post(
    "/{month}/generate",
    response_model=GenerationResponse,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def generate_payroll(
    container: Container,
    actor: PayrollManager,
    month: Month,
    payload: PayrollGenerateRequest | None = None,
) -> GenerationResponse:
    """Generate, or regenerate while draft, the payroll of a month."""
    result = await container.payroll.generate_payroll(
        month, actor.actor_id, batch_size=payload.batch_size if payload else None
    )
    return GenerationResponse.model_validate(unwrap_result(result))


@router.post(
    "/{month}/finalize",
    response_model=PayrollMonthResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def finalize_payroll(
    container: Container, actor: PayrollManager, month: Month
) -> PayrollMonthResponse:
    """Finalize a draft month: snapshot, stamp records and build cost summaries."""
    result = await container.finalizer.finalize(month, actor.actor_id)
    return PayrollMonthResponse.model_validate(unwrap_result(result))


@router.post(
    "/{month}/lock",
    response_model=PayrollMonthResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def lock_payroll(
    container: Container, actor: PayrollManager, month: Month
) -> PayrollMonthResponse:
    """Permanently lock a finalized month."""
    result = await container.locker.lock(month, actor.actor_id)
    return PayrollMonthResponse.model_validate(unwrap_result(result))


# ============================================================================
# Queries
# ============================================================================


@router.get(
    "/{month}",
    response_model=PayrollMonthResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_month(
    container: Container, actor: PayrollManager, month: Month
) -> PayrollMonthResponse:
    payroll_month = await container.payroll.get_month(month)
    if payroll_month is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payroll month not found",
        )
    return PayrollMonthResponse.model_validate(payroll_month)


@router.get("/{month}/records", response_model=PayrollRecordListResponse)
async def list_payroll_records(
    container: Container, actor: PayrollManager, month: Month
) -> PayrollRecordListResponse:
    records = await container.payroll.list_records(month)
    return PayrollRecordListResponse(
        items=[PayrollRecordResponse.model_validate(r) for r in records],
        total=len(records),
    )


@router.get("/{month}/cost-summaries", response_model=list[CostSummaryResponse])
async def list_cost_summaries(
    container: Container, actor: PayrollManager, month: Month
) -> list[CostSummaryResponse]:
    summaries = await container.payroll.list_cost_summaries(month)
    return [CostSummaryResponse.model_validate(s) for s in summaries]


@router.get("/{month}/audit", response_model=list[AuditEntryResponse])
async def payroll_audit_trail(
    container: Container, actor: PayrollManager, month: Month
) -> list[AuditEntryResponse]:
    entries = await container.payroll.audit_trail(month)
    return [AuditEntryResponse.model_validate(e) for e in entries]


# ============================================================================
# Draft Edits
# ============================================================================


@router.patch(
    "/records/{record_id}",
    response_model=PayrollRecordResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def adjust_payroll_record(
    container: Container,
    actor: PayrollManager,
    record_id: Annotated[str, Path()],
    payload: RecordAdjustmentRequest,
) -> PayrollRecordResponse:
    """Adjust penalties or transport on a record of a draft month."""
    result = await container.payroll.adjust_record(
        record_id,
        actor.actor_id,
        other_penalties=payload.other_penalties,
        transport_deduction=payload.transport_deduction,
        reason=payload.reason,
    )
    return PayrollRecordResponse.model_validate(unwrap_result(result))

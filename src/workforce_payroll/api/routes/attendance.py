"""Attendance import API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from workforce_payroll.api.dependencies import Container, require_permission, unwrap_result
from workforce_payroll.api.schemas import (
    AttendanceImportRequest,
    AttendanceImportResponse,
    ErrorResponse,
)
from workforce_payroll.calculators.types import Shift
from workforce_payroll.services.access import PERMISSION_ATTENDANCE_IMPORT, ActorContext

router = APIRouter(prefix="/attendance", tags=["attendance"])

AttendanceImporter = Annotated[
    ActorContext, Depends(require_permission(PERMISSION_ATTENDANCE_IMPORT))
]


@router.post(
    "/import",
    response_model=AttendanceImportResponse,
    responses={422: {"model": ErrorResponse}},
)
async def import_attendance(
    container: Container,
    actor: AttendanceImporter,
    payload: AttendanceImportRequest,
) -> AttendanceImportResponse:
    """Process a biometric device export into daily attendance logs."""
    period = None
    if payload.period_start or payload.period_end:
        if not (payload.period_start and payload.period_end):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="period_start and period_end must be given together",
            )
        period = (payload.period_start, payload.period_end)

    shift = Shift(**payload.shift.model_dump())
    result = await container.attendance.import_csv(payload.csv_text, shift, period=period)
    batch = unwrap_result(result)
    return AttendanceImportResponse(
        batch_id=batch.batch_id,
        processed_at=batch.processed_at,
        total_rows=batch.parse_result.total_rows,
        valid_rows=batch.parse_result.valid_rows,
        skipped_rows=batch.parse_result.skipped_rows,
        records=len(batch.records),
        unmatched_codes=batch.unmatched_codes,
        errors=batch.errors,
    )

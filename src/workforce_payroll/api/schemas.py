"""Pydantic schemas for API request/response models."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Error payload returned for rejected operations."""

    detail: str
    code: str | None = None


# ============================================================================
# Payroll schemas
# ============================================================================


class PayrollGenerateRequest(BaseModel):
    batch_size: int | None = Field(default=None, ge=1)


class PayrollMonthResponse(BaseModel):
    """Schema for payroll month response."""

    model_config = ConfigDict(from_attributes=True)

    month_id: str
    month: str
    status: str
    total_employees: int
    total_gross: Decimal
    total_net: Decimal
    total_deductions: Decimal
    generated_at: datetime | None = None
    generated_by: str | None = None
    finalized_at: datetime | None = None
    finalized_by: str | None = None
    locked_at: datetime | None = None
    locked_by: str | None = None
    snapshot_version: str | None = None


class EmployeeErrorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    employee_name: str
    error: str


class GenerationResponse(BaseModel):
    """Outcome of generating a payroll month."""

    model_config = ConfigDict(from_attributes=True)

    payroll_month_id: str
    month: str
    total_processed: int
    total_gross: Decimal
    total_net: Decimal
    total_deductions: Decimal
    recalculated: bool
    errors: list[EmployeeErrorResponse] = []


class PayrollRecordResponse(BaseModel):
    """Schema for one employee's payroll record."""

    model_config = ConfigDict(from_attributes=True)

    record_id: str
    payroll_month_id: str
    month: str
    employee_id: str
    employee_name: str
    employee_code: str
    employment_type: str
    department_id: str | None = None
    department_name: str | None = None
    cost_center: str | None = None
    production_line: str | None = None
    base_salary: Decimal
    working_days: int
    present_days: int
    absent_days: int
    late_days: int
    total_late_minutes: int
    overtime_hours: Decimal
    overtime_amount: Decimal
    allowances_total: Decimal
    gross_salary: Decimal
    absence_deduction: Decimal
    late_deduction: Decimal
    loan_deduction: Decimal
    unpaid_leave_days: Decimal
    unpaid_leave_deduction: Decimal
    other_penalties: Decimal
    transport_deduction: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    is_locked: bool
    calculation_snapshot_version: str | None = None


class PayrollRecordListResponse(BaseModel):
    items: list[PayrollRecordResponse]
    total: int


class RecordAdjustmentRequest(BaseModel):
    """Manual draft adjustment of penalties or transport."""

    other_penalties: Decimal | None = Field(default=None, ge=0)
    transport_deduction: Decimal | None = Field(default=None, ge=0)
    reason: str | None = None


class CostSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    department_id: str | None = None
    department_name: str | None = None
    cost_center: str | None = None
    production_line: str | None = None
    employee_count: int
    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entry_id: str
    entity_type: str
    entity_id: str
    action: str
    performed_by: str
    performed_by_name: str | None = None
    step: int | None = None
    request_type: str | None = None
    employee_id: str | None = None
    details: dict[str, Any]
    recorded_at: datetime | None = None


# ============================================================================
# Approval schemas
# ============================================================================


class ApprovalRequestCreate(BaseModel):
    """Schema for filing a leave, loan or overtime request."""

    request_type: str
    employee_id: str
    request_data: dict[str, Any] = Field(default_factory=dict)


class ApprovalDecisionRequest(BaseModel):
    notes: str | None = None
    step: int | None = Field(default=None, ge=0)


class ApprovalCancelRequest(BaseModel):
    notes: str | None = None


class ApprovalStepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    approver_employee_id: str
    approver_name: str
    level: int
    approver_job_title: str | None = None
    status: str
    action_date: datetime | None = None
    notes: str | None = None
    delegated_to: str | None = None
    acted_by: str | None = None


class HistoryEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    step: int
    action: str
    performed_by: str
    performed_by_name: str
    timestamp: datetime
    previous_status: str | None = None
    new_status: str | None = None
    notes: str | None = None
    on_behalf_of: str | None = None


class ApprovalRequestResponse(BaseModel):
    """Schema for approval request response."""

    model_config = ConfigDict(from_attributes=True)

    request_id: str
    request_type: str
    employee_id: str
    employee_name: str
    department_id: str | None = None
    request_data: dict[str, Any]
    approval_chain: list[ApprovalStepResponse]
    current_step: int
    status: str
    history: list[HistoryEntryResponse]
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ApprovalRequestListResponse(BaseModel):
    items: list[ApprovalRequestResponse]
    total: int


class DelegationCreate(BaseModel):
    from_employee_id: str
    from_employee_name: str
    to_employee_id: str
    to_employee_name: str
    start_date: date
    end_date: date
    request_types: list[str] = Field(default_factory=list)


class DelegationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    delegation_id: str
    from_employee_id: str
    to_employee_id: str
    start_date: date
    end_date: date
    request_types: list[str]
    is_active: bool


class EscalationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    processed: int
    escalated: list[str]
    skipped: list[str]


# ============================================================================
# Attendance & config schemas
# ============================================================================


class ShiftInput(BaseModel):
    start_time: time
    end_time: time
    break_minutes: int = Field(default=0, ge=0)
    late_grace_minutes: int = Field(default=0, ge=0)
    crosses_midnight: bool = False
    shift_id: str = ""
    name: str = ""


class AttendanceImportRequest(BaseModel):
    """Device export plus the shift it is evaluated against."""

    csv_text: str
    shift: ShiftInput
    period_start: date | None = None
    period_end: date | None = None


class AttendanceImportResponse(BaseModel):
    batch_id: str
    processed_at: datetime
    total_rows: int
    valid_rows: int
    skipped_rows: int
    records: int
    unmatched_codes: list[str]
    errors: list[str]


class ConfigModuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    values: dict[str, Any]
    config_version: int
    updated_at: datetime | None = None
    updated_by: str | None = None


class ConfigModuleUpdate(BaseModel):
    changes: dict[str, Any]
    details: str | None = None

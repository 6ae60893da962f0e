"""Attendance logs, leave, loans, employees and HR config modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from workforce_payroll.calculators.money import round_to_cents, to_decimal
from workforce_payroll.calculators.types import (
    EmploymentType,
    PayrollEmployee,
    ProcessedAttendanceRecord,
)
from workforce_payroll.errors import ValidationError


def new_id() -> str:
    return uuid4().hex


class AttendanceSource(str, Enum):
    ZK_CSV = "zk_csv"
    MANUAL = "manual"


@dataclass
class AttendanceLog:
    """Persisted attendance record of one employee on one work date."""

    employee_id: str
    date: date
    check_in: datetime | None
    check_out: datetime | None
    shift_id: str
    late_minutes: int
    early_leave_minutes: int
    total_minutes: int
    total_hours: Decimal
    is_absent: bool
    is_incomplete: bool
    is_weekly_off: bool
    source: str = AttendanceSource.ZK_CSV.value
    processed_batch_id: str | None = None
    log_id: str = field(default_factory=new_id)

    @classmethod
    def from_record(
        cls,
        record: ProcessedAttendanceRecord,
        batch_id: str | None,
        source: AttendanceSource = AttendanceSource.ZK_CSV,
    ) -> AttendanceLog:
        return cls(
            employee_id=record.employee_id,
            date=record.date,
            check_in=record.check_in,
            check_out=record.check_out,
            shift_id=record.shift_id,
            late_minutes=record.late_minutes,
            early_leave_minutes=record.early_leave_minutes,
            total_minutes=record.total_minutes,
            total_hours=record.total_hours,
            is_absent=record.is_absent,
            is_incomplete=record.is_incomplete,
            is_weekly_off=record.is_weekly_off,
            source=source.value,
            processed_batch_id=batch_id,
        )


@dataclass(frozen=True)
class StoredPunch:
    """Raw punch kept for traceability of an import batch."""

    employee_code: str
    punched_at: datetime
    device_id: str
    batch_id: str
    source: str = AttendanceSource.ZK_CSV.value
    employee_id: str | None = None


class LeaveType(str, Enum):
    ANNUAL = "annual"
    SICK = "sick"
    UNPAID = "unpaid"
    EMERGENCY = "emergency"


@dataclass(frozen=True)
class LeaveRequest:
    """Leave taken by an employee; only approved leave reaches payroll."""

    employee_id: str
    leave_type: str
    start_date: date
    end_date: date
    total_days: Decimal
    affects_salary: bool = False
    status: str = "approved"
    leave_id: str = field(default_factory=new_id)

    @property
    def deducts_salary(self) -> bool:
        return self.status == "approved" and (
            self.leave_type == LeaveType.UNPAID.value or self.affects_salary
        )


class LoanType(str, Enum):
    MONTHLY_ADVANCE = "monthly_advance"
    INSTALLMENT = "installment"


class LoanStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class Loan:
    """Employee loan repaid by fixed monthly installments."""

    employee_id: str
    loan_type: str
    loan_amount: Decimal
    installment_amount: Decimal
    total_installments: int
    remaining_installments: int
    start_month: str
    status: str = LoanStatus.PENDING.value
    approval_request_id: str | None = None
    loan_id: str = field(default_factory=new_id)

    @classmethod
    def open(
        cls,
        employee_id: str,
        loan_amount: Decimal,
        total_installments: int,
        start_month: str,
        loan_type: LoanType = LoanType.INSTALLMENT,
    ) -> Loan:
        """Create a pending loan; installment = amount / count, rounded to cents."""
        if total_installments <= 0:
            raise ValidationError("Loan must have at least one installment")
        amount = to_decimal(loan_amount)
        return cls(
            employee_id=employee_id,
            loan_type=loan_type.value,
            loan_amount=amount,
            installment_amount=round_to_cents(amount / total_installments),
            total_installments=total_installments,
            remaining_installments=total_installments,
            start_month=start_month,
        )


@dataclass(frozen=True)
class LoanInstallment:
    loan_id: str
    employee_id: str
    installment_amount: Decimal
    remaining_installments: int


@dataclass(frozen=True)
class Employee:
    """Employee master record (payroll and org-chart attributes)."""

    employee_id: str
    employee_name: str
    base_salary: Decimal
    employment_type: str = EmploymentType.MONTHLY.value
    employee_code: str = ""
    device_code: str | None = None
    manager_id: str | None = None
    department_id: str | None = None
    department_name: str | None = None
    cost_center: str | None = None
    production_line: str | None = None
    job_position_id: str | None = None
    job_title: str | None = None
    job_level: int = 1
    daily_rate: Decimal | None = None
    hourly_rate: Decimal | None = None
    transport_deduction: Decimal = Decimal("0")
    is_active: bool = True

    def to_payroll_employee(self) -> PayrollEmployee:
        return PayrollEmployee(
            employee_id=self.employee_id,
            employee_name=self.employee_name,
            base_salary=self.base_salary,
            employment_type=self.employment_type,
            employee_code=self.employee_code,
            daily_rate=self.daily_rate,
            hourly_rate=self.hourly_rate,
            transport_deduction=self.transport_deduction,
            department_id=self.department_id,
            department_name=self.department_name,
            cost_center=self.cost_center,
            production_line=self.production_line,
        )


class ConfigModuleName(str, Enum):
    GENERAL = "general"
    ATTENDANCE = "attendance"
    OVERTIME = "overtime"
    LEAVE = "leave"
    LOAN = "loan"
    PAYROLL = "payroll"
    APPROVAL = "approval"
    TRANSPORT = "transport"


@dataclass
class ConfigModule:
    """A versioned group of HR configuration values."""

    name: str
    values: dict[str, Any]
    config_version: int = 0
    updated_at: datetime | None = None
    updated_by: str | None = None

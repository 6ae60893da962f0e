"""Payroll month, record, snapshot and cost summary entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from workforce_payroll.calculators.money import ZERO, round_to_cents
from workforce_payroll.calculators.types import EmployeePayrollResult
from workforce_payroll.entities.hr import new_id


@dataclass(frozen=True)
class ConfigVersionSnapshot:
    """Version of every HR config module at a point in time."""

    captured_at: datetime
    versions: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {"captured_at": self.captured_at.isoformat(), "versions": dict(self.versions)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigVersionSnapshot:
        return cls(
            captured_at=datetime.fromisoformat(data["captured_at"]),
            versions={k: int(v) for k, v in data.get("versions", {}).items()},
        )


@dataclass(frozen=True)
class PayrollSnapshot:
    """Calculation parameters frozen when a month is finalized."""

    version: str
    captured_at: datetime
    overtime_multiplier: Decimal
    late_rules: tuple[dict[str, Any], ...]
    penalty_rules: tuple[dict[str, Any], ...]
    allowance_types: tuple[dict[str, Any], ...]
    working_days_per_week: int
    working_hours_per_day: int
    weekly_off_days: tuple[str, ...]
    allow_negative_salary: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "captured_at": self.captured_at.isoformat(),
            "overtime_multiplier": str(self.overtime_multiplier),
            "late_rules": list(self.late_rules),
            "penalty_rules": list(self.penalty_rules),
            "allowance_types": list(self.allowance_types),
            "working_days_per_week": self.working_days_per_week,
            "working_hours_per_day": self.working_hours_per_day,
            "weekly_off_days": list(self.weekly_off_days),
            "allow_negative_salary": self.allow_negative_salary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PayrollSnapshot:
        return cls(
            version=data["version"],
            captured_at=datetime.fromisoformat(data["captured_at"]),
            overtime_multiplier=Decimal(data["overtime_multiplier"]),
            late_rules=tuple(data.get("late_rules", ())),
            penalty_rules=tuple(data.get("penalty_rules", ())),
            allowance_types=tuple(data.get("allowance_types", ())),
            working_days_per_week=int(data["working_days_per_week"]),
            working_hours_per_day=int(data["working_hours_per_day"]),
            weekly_off_days=tuple(data.get("weekly_off_days", ())),
            allow_negative_salary=bool(data["allow_negative_salary"]),
        )


@dataclass
class PayrollMonth:
    """Payroll cycle for one calendar month: draft -> finalized -> locked."""

    month: str
    status: str = "draft"
    total_employees: int = 0
    total_gross: Decimal = ZERO
    total_net: Decimal = ZERO
    total_deductions: Decimal = ZERO
    generated_at: datetime | None = None
    generated_by: str | None = None
    finalized_at: datetime | None = None
    finalized_by: str | None = None
    locked_at: datetime | None = None
    locked_by: str | None = None
    snapshot_version: str | None = None
    snapshot: PayrollSnapshot | None = None
    config_version_snapshot: ConfigVersionSnapshot | None = None
    month_id: str = field(default_factory=new_id)


@dataclass
class PayrollRecord:
    """Computed salary of one employee for one payroll month."""

    payroll_month_id: str
    month: str
    employee_id: str
    employee_name: str
    employment_type: str
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
    employee_code: str = ""
    department_id: str | None = None
    department_name: str | None = None
    cost_center: str | None = None
    production_line: str | None = None
    is_locked: bool = False
    calculation_snapshot_version: str | None = None
    record_id: str = field(default_factory=new_id)

    @classmethod
    def from_result(
        cls, result: EmployeePayrollResult, payroll_month_id: str, month: str
    ) -> PayrollRecord:
        employee = result.employee
        summary = result.summary
        return cls(
            payroll_month_id=payroll_month_id,
            month=month,
            employee_id=employee.employee_id,
            employee_name=employee.employee_name,
            employee_code=employee.employee_code,
            employment_type=employee.employment_type,
            department_id=employee.department_id,
            department_name=employee.department_name,
            cost_center=employee.cost_center,
            production_line=employee.production_line,
            base_salary=result.base_amount,
            working_days=summary.working_days,
            present_days=summary.present_days,
            absent_days=summary.absent_days,
            late_days=summary.late_days,
            total_late_minutes=summary.total_late_minutes,
            overtime_hours=round_to_cents(summary.overtime_hours),
            overtime_amount=result.overtime_amount,
            allowances_total=result.allowances_total,
            gross_salary=result.gross_salary,
            absence_deduction=result.absence_deduction,
            late_deduction=result.late_deduction,
            loan_deduction=result.loan_deduction,
            unpaid_leave_days=result.unpaid_leave_days,
            unpaid_leave_deduction=result.unpaid_leave_deduction,
            other_penalties=result.other_penalties,
            transport_deduction=result.transport_deduction,
            total_deductions=result.total_deductions,
            net_salary=result.net_salary,
        )


@dataclass(frozen=True)
class CostSummary:
    """Payroll cost per department, cost center and production line."""

    payroll_month_id: str
    month: str
    department_id: str | None
    department_name: str | None
    cost_center: str | None
    production_line: str | None
    employee_count: int
    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal

    @property
    def key(self) -> str:
        return "|".join(
            [self.department_id or "", self.cost_center or "", self.production_line or ""]
        )


@dataclass(frozen=True)
class EmployeeCalculationError:
    employee_id: str
    employee_name: str
    error: str


@dataclass(frozen=True)
class GenerationSummary:
    """Outcome of generating (or regenerating) a payroll month."""

    payroll_month_id: str
    month: str
    total_processed: int
    total_gross: Decimal
    total_net: Decimal
    total_deductions: Decimal
    recalculated: bool = False
    errors: tuple[EmployeeCalculationError, ...] = ()

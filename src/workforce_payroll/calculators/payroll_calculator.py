"""Pure per-employee payroll math for one month."""

from __future__ import annotations

import calendar
import re
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from workforce_payroll.calculators.money import ZERO, round_half_up, round_to_cents, to_decimal
from workforce_payroll.calculators.salary_strategies import get_strategy
from workforce_payroll.calculators.time_rules import (
    apply_allowances,
    calculate_penalty,
    find_late_rule,
)
from workforce_payroll.calculators.types import (
    AttendanceSummary,
    EmployeePayrollResult,
    HRSettings,
    LateRule,
    PayrollEmployee,
    PayrollInputs,
    PenaltyCategory,
    ValueType,
)
from workforce_payroll.errors import ValidationError

if TYPE_CHECKING:
    from workforce_payroll.entities.hr import AttendanceLog, LeaveRequest

MONTH_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def month_range(month: str) -> tuple[date, date]:
    """First and last calendar day of a ``YYYY-MM`` month."""
    match = MONTH_PATTERN.match(month or "")
    if not match:
        raise ValidationError(f"Invalid month '{month}', expected YYYY-MM", code="invalid_month")
    year, mon = int(match.group(1)), int(match.group(2))
    last_day = calendar.monthrange(year, mon)[1]
    return date(year, mon, 1), date(year, mon, last_day)


def default_working_days(month: str, settings: HRSettings) -> int:
    """Working days assumed for an employee with no attendance in the month."""
    start, end = month_range(month)
    calendar_days = (end - start).days + 1
    off_days = len(settings.weekly_off_days)
    return round_half_up(Decimal(calendar_days * (7 - off_days)) / 7)


def build_attendance_summaries(
    logs: Iterable[AttendanceLog],
    settings: HRSettings,
) -> dict[str, AttendanceSummary]:
    """Aggregate daily logs per employee, ignoring weekly-off days."""
    summaries: dict[str, AttendanceSummary] = {}
    standard_minutes = settings.working_hours_per_day * 60

    for log in logs:
        if log.is_weekly_off:
            continue
        summary = summaries.setdefault(log.employee_id, AttendanceSummary())
        summary.working_days += 1
        if log.is_absent:
            summary.absent_days += 1
        else:
            summary.present_days += 1
            extra = log.total_minutes - standard_minutes
            if extra > 0:
                summary.overtime_hours += to_decimal(extra) / 60
        if log.late_minutes > 0:
            summary.late_days += 1
            summary.total_late_minutes += log.late_minutes

    return summaries


def default_summary(working_days: int) -> AttendanceSummary:
    return AttendanceSummary(
        working_days=working_days,
        present_days=working_days,
        absent_days=0,
    )


def unpaid_leave_days(
    employee_id: str,
    leaves: Iterable[LeaveRequest],
    month_start: date,
    month_end: date,
) -> Decimal:
    """Approved salary-affecting leave days falling inside the month."""
    total = Decimal("0")
    for leave in leaves:
        if leave.employee_id != employee_id or not leave.deducts_salary:
            continue
        overlap_start = max(leave.start_date, month_start)
        overlap_end = min(leave.end_date, month_end)
        if overlap_end < overlap_start:
            continue
        overlap = Decimal((overlap_end - overlap_start).days + 1)
        total += min(to_decimal(leave.total_days), overlap)
    return total


def calculate_late_penalty(
    summary: AttendanceSummary,
    late_rules: Iterable[LateRule],
    base_salary: Decimal,
) -> Decimal:
    """Penalty for the month's late arrivals.

    The band is chosen from the average late minutes per late day and then
    applied once per late day.
    """
    if summary.late_days <= 0:
        return ZERO
    average = round_half_up(Decimal(summary.total_late_minutes) / summary.late_days)
    rule = find_late_rule(average, late_rules)
    if rule is None:
        return ZERO
    if rule.penalty_type == ValueType.PERCENTAGE:
        per_day = to_decimal(base_salary) * to_decimal(rule.penalty_value) / 100
    else:
        per_day = to_decimal(rule.penalty_value)
    return round_to_cents(per_day * summary.late_days)


def calculate_employee_payroll(
    employee: PayrollEmployee,
    summary: AttendanceSummary,
    inputs: PayrollInputs,
    leave_days: Decimal = Decimal("0"),
    loan_installments: Decimal = Decimal("0"),
) -> EmployeePayrollResult:
    """Compute every earning and deduction of one employee's monthly record."""
    strategy = get_strategy(employee.employment_type)
    settings = inputs.settings
    base_salary = to_decimal(employee.base_salary)

    base_amount = strategy.calculate_base(employee, summary)
    absence = strategy.calculate_absence_deduction(employee, summary)
    overtime = strategy.calculate_overtime(
        employee, summary.overtime_hours, settings.overtime_multiplier
    )

    daily_rate = base_salary / (summary.working_days or 30)
    unpaid_deduction = round_to_cents(daily_rate * leave_days) if leave_days > 0 else ZERO

    late_deduction = calculate_late_penalty(summary, inputs.late_rules, base_salary)
    other_penalties = round_to_cents(
        sum(
            (
                calculate_penalty(rule, base_salary)
                for rule in inputs.penalty_rules
                if rule.is_active and rule.category == PenaltyCategory.DISCIPLINARY
            ),
            ZERO,
        )
    )
    allowances = apply_allowances(base_salary, inputs.allowance_types).total
    loan_deduction = round_to_cents(loan_installments)
    transport = round_to_cents(employee.transport_deduction)

    gross = round_to_cents(base_amount + overtime + allowances)
    total_deductions = round_to_cents(
        absence + late_deduction + loan_deduction + other_penalties + transport + unpaid_deduction
    )
    net = round_to_cents(gross - total_deductions)
    if not settings.allow_negative_salary and net < 0:
        net = ZERO

    return EmployeePayrollResult(
        employee=employee,
        summary=summary,
        base_amount=base_amount,
        overtime_amount=overtime,
        allowances_total=allowances,
        gross_salary=gross,
        absence_deduction=absence,
        late_deduction=late_deduction,
        loan_deduction=loan_deduction,
        unpaid_leave_days=leave_days,
        unpaid_leave_deduction=unpaid_deduction,
        other_penalties=other_penalties,
        transport_deduction=transport,
        total_deductions=total_deductions,
        net_salary=net,
    )

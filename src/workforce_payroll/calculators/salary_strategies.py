"""Base pay, absence deduction and overtime per employment type."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from workforce_payroll.calculators.money import ZERO, round_to_cents, to_decimal
from workforce_payroll.calculators.types import (
    AttendanceSummary,
    EmploymentType,
    PayrollEmployee,
)
from workforce_payroll.errors import ValidationError

DAYS_PER_MONTH = Decimal("30")
HOURS_PER_DAY = Decimal("8")


class SalaryStrategy(Protocol):
    """Protocol for employment-type specific pay rules."""

    employment_type: EmploymentType

    def calculate_base(self, employee: PayrollEmployee, summary: AttendanceSummary) -> Decimal:
        ...

    def calculate_absence_deduction(
        self, employee: PayrollEmployee, summary: AttendanceSummary
    ) -> Decimal:
        ...

    def calculate_overtime(
        self, employee: PayrollEmployee, overtime_hours: Decimal, multiplier: Decimal
    ) -> Decimal:
        ...


class MonthlySalaryStrategy:
    """Fixed monthly salary; absences are deducted pro rata."""

    employment_type = EmploymentType.MONTHLY

    def calculate_base(self, employee: PayrollEmployee, summary: AttendanceSummary) -> Decimal:
        return round_to_cents(employee.base_salary)

    def calculate_absence_deduction(
        self, employee: PayrollEmployee, summary: AttendanceSummary
    ) -> Decimal:
        if summary.absent_days <= 0 or summary.working_days <= 0:
            return ZERO
        salary = to_decimal(employee.base_salary)
        return round_to_cents(salary / summary.working_days * summary.absent_days)

    def calculate_overtime(
        self, employee: PayrollEmployee, overtime_hours: Decimal, multiplier: Decimal
    ) -> Decimal:
        if overtime_hours <= 0:
            return ZERO
        hourly = to_decimal(employee.base_salary) / (DAYS_PER_MONTH * HOURS_PER_DAY)
        return round_to_cents(hourly * to_decimal(overtime_hours) * to_decimal(multiplier))


class DailyWageStrategy:
    """Paid per present day; absent days are simply unpaid."""

    employment_type = EmploymentType.DAILY

    @staticmethod
    def daily_rate(employee: PayrollEmployee) -> Decimal:
        if employee.daily_rate is not None:
            return to_decimal(employee.daily_rate)
        return to_decimal(employee.base_salary) / DAYS_PER_MONTH

    def calculate_base(self, employee: PayrollEmployee, summary: AttendanceSummary) -> Decimal:
        return round_to_cents(self.daily_rate(employee) * summary.present_days)

    def calculate_absence_deduction(
        self, employee: PayrollEmployee, summary: AttendanceSummary
    ) -> Decimal:
        return ZERO

    def calculate_overtime(
        self, employee: PayrollEmployee, overtime_hours: Decimal, multiplier: Decimal
    ) -> Decimal:
        if overtime_hours <= 0:
            return ZERO
        hourly = self.daily_rate(employee) / HOURS_PER_DAY
        return round_to_cents(hourly * to_decimal(overtime_hours) * to_decimal(multiplier))


class HourlyWageStrategy:
    """Paid per hour, assuming an 8 hour day for each present day."""

    employment_type = EmploymentType.HOURLY

    @staticmethod
    def hourly_rate(employee: PayrollEmployee) -> Decimal:
        if employee.hourly_rate is not None:
            return to_decimal(employee.hourly_rate)
        return to_decimal(employee.base_salary) / (DAYS_PER_MONTH * HOURS_PER_DAY)

    def calculate_base(self, employee: PayrollEmployee, summary: AttendanceSummary) -> Decimal:
        return round_to_cents(self.hourly_rate(employee) * summary.present_days * HOURS_PER_DAY)

    def calculate_absence_deduction(
        self, employee: PayrollEmployee, summary: AttendanceSummary
    ) -> Decimal:
        return ZERO

    def calculate_overtime(
        self, employee: PayrollEmployee, overtime_hours: Decimal, multiplier: Decimal
    ) -> Decimal:
        if overtime_hours <= 0:
            return ZERO
        return round_to_cents(
            self.hourly_rate(employee) * to_decimal(overtime_hours) * to_decimal(multiplier)
        )


STRATEGIES: dict[str, SalaryStrategy] = {
    EmploymentType.MONTHLY.value: MonthlySalaryStrategy(),
    EmploymentType.DAILY.value: DailyWageStrategy(),
    EmploymentType.HOURLY.value: HourlyWageStrategy(),
}


def get_strategy(employment_type: str | EmploymentType) -> SalaryStrategy:
    """Look up the strategy for an employment type."""
    key = employment_type.value if isinstance(employment_type, EmploymentType) else employment_type
    try:
        return STRATEGIES[key]
    except KeyError:
        raise ValidationError(
            f"Unknown employment type '{employment_type}'",
            code="unknown_employment_type",
        ) from None

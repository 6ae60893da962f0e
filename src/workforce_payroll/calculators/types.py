"""Type definitions for the attendance and payroll calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

MINUTES_PER_DAY = 1440


class EmploymentType(str, Enum):
    """How an employee's base pay is computed."""

    MONTHLY = "monthly"
    DAILY = "daily"
    HOURLY = "hourly"


class ValueType(str, Enum):
    """Penalty and allowance value interpretation."""

    FIXED = "fixed"
    PERCENTAGE = "percentage"


class PenaltyCategory(str, Enum):
    """Penalty rule categories."""

    LATE = "late"
    ABSENCE = "absence"
    DISCIPLINARY = "disciplinary"


WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


# ===== Reference data =====


@dataclass(frozen=True)
class Shift:
    """A work shift. Times are local wall-clock times."""

    start_time: time
    end_time: time
    break_minutes: int = 0
    late_grace_minutes: int = 0
    crosses_midnight: bool = False
    shift_id: str = ""
    name: str = ""

    @property
    def start_minutes(self) -> int:
        return self.start_time.hour * 60 + self.start_time.minute

    @property
    def end_minutes(self) -> int:
        return self.end_time.hour * 60 + self.end_time.minute


@dataclass(frozen=True)
class WorkingMinutes:
    """Gross/break/net minutes of a shift."""

    gross_minutes: int
    break_minutes: int
    net_minutes: int


@dataclass(frozen=True)
class LateRule:
    """Late-arrival penalty band; both bounds inclusive."""

    minutes_from: int
    minutes_to: int
    penalty_type: ValueType
    penalty_value: Decimal
    rule_id: str = ""

    def matches(self, late_minutes: int) -> bool:
        return self.minutes_from <= late_minutes <= self.minutes_to

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "minutes_from": self.minutes_from,
            "minutes_to": self.minutes_to,
            "penalty_type": self.penalty_type.value,
            "penalty_value": str(self.penalty_value),
        }


@dataclass(frozen=True)
class PenaltyRule:
    """Configured penalty (late, absence or disciplinary)."""

    name: str
    category: PenaltyCategory
    value_type: ValueType
    value: Decimal
    is_active: bool = True
    rule_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "name": self.name,
            "category": self.category.value,
            "value_type": self.value_type.value,
            "value": str(self.value),
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class AllowanceType:
    """Configured allowance paid on top of base salary."""

    name: str
    calculation_type: ValueType
    value: Decimal
    is_active: bool = True
    allowance_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowance_id": self.allowance_id,
            "name": self.name,
            "calculation_type": self.calculation_type.value,
            "value": str(self.value),
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class HRSettings:
    """Company-wide HR settings used by attendance and payroll."""

    working_days_per_week: int = 6
    working_hours_per_day: int = 8
    weekly_off_days: tuple[str, ...] = ("friday",)
    overtime_multiplier: Decimal = Decimal("1.5")
    allow_negative_salary: bool = False
    auto_close_payroll_month: bool = False
    minimum_rest_hours_between_shifts: int = 10
    use_multiple_shifts: bool = False

    def is_weekly_off(self, day: date) -> bool:
        return WEEKDAY_NAMES[day.weekday()] in self.weekly_off_days

    def to_dict(self) -> dict[str, Any]:
        return {
            "working_days_per_week": self.working_days_per_week,
            "working_hours_per_day": self.working_hours_per_day,
            "weekly_off_days": list(self.weekly_off_days),
            "overtime_multiplier": str(self.overtime_multiplier),
            "allow_negative_salary": self.allow_negative_salary,
            "auto_close_payroll_month": self.auto_close_payroll_month,
            "minimum_rest_hours_between_shifts": self.minimum_rest_hours_between_shifts,
            "use_multiple_shifts": self.use_multiple_shifts,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HRSettings:
        return cls(
            working_days_per_week=int(data.get("working_days_per_week", 6)),
            working_hours_per_day=int(data.get("working_hours_per_day", 8)),
            weekly_off_days=tuple(data.get("weekly_off_days", ("friday",))),
            overtime_multiplier=Decimal(str(data.get("overtime_multiplier", "1.5"))),
            allow_negative_salary=bool(data.get("allow_negative_salary", False)),
            auto_close_payroll_month=bool(data.get("auto_close_payroll_month", False)),
            minimum_rest_hours_between_shifts=int(
                data.get("minimum_rest_hours_between_shifts", 10)
            ),
            use_multiple_shifts=bool(data.get("use_multiple_shifts", False)),
        )


# ===== Attendance =====


@dataclass(frozen=True)
class LateDetection:
    """Result of comparing a check-in against a shift start."""

    is_late: bool
    late_minutes: int
    within_grace: bool
    matched_rule: LateRule | None = None


@dataclass(frozen=True)
class AbsenceResult:
    is_absent: bool
    deduction_minutes: int


@dataclass(frozen=True)
class RawPunch:
    """One biometric device punch as read from the export file."""

    employee_code: str
    punched_at: datetime
    device_id: str
    row_number: int = 0


@dataclass
class CSVParseResult:
    """Outcome of parsing a device export."""

    punches: list[RawPunch] = field(default_factory=list)
    total_rows: int = 0
    valid_rows: int = 0
    skipped_rows: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class EmployeeDayGroup:
    """Punches of one employee attributed to one work date."""

    employee_id: str
    work_date: date
    punches: list[RawPunch] = field(default_factory=list)


@dataclass
class PunchGrouping:
    groups: list[EmployeeDayGroup] = field(default_factory=list)
    unmatched_codes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProcessedAttendanceRecord:
    """Normalized attendance of one employee on one work date."""

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
    punch_count: int = 0


@dataclass
class AttendanceBatchOptions:
    """Inputs for processing one device export."""

    csv_text: str
    employee_code_map: dict[str, str]
    shift: Shift
    late_rules: list[LateRule] = field(default_factory=list)
    weekly_off_days: tuple[str, ...] = ("friday",)
    # Inclusive date range; days without punches become absence/off records.
    period: tuple[date, date] | None = None


@dataclass
class AttendanceBatchResult:
    batch_id: str
    processed_at: datetime
    records: list[ProcessedAttendanceRecord]
    parse_result: CSVParseResult
    unmatched_codes: list[str]
    errors: list[str]

    @property
    def raw_punches(self) -> list[RawPunch]:
        return self.parse_result.punches


# ===== Payroll =====


@dataclass(frozen=True)
class PayrollEmployee:
    """Employee master data needed to compute a payroll record."""

    employee_id: str
    employee_name: str
    base_salary: Decimal
    employment_type: str = EmploymentType.MONTHLY.value
    employee_code: str = ""
    daily_rate: Decimal | None = None
    hourly_rate: Decimal | None = None
    transport_deduction: Decimal = Decimal("0")
    department_id: str | None = None
    department_name: str | None = None
    cost_center: str | None = None
    production_line: str | None = None


@dataclass
class AttendanceSummary:
    """Monthly attendance counters for one employee."""

    working_days: int = 0
    present_days: int = 0
    absent_days: int = 0
    late_days: int = 0
    total_late_minutes: int = 0
    overtime_hours: Decimal = Decimal("0")


@dataclass(frozen=True)
class AllowanceLine:
    name: str
    amount: Decimal


@dataclass(frozen=True)
class AllowanceBreakdown:
    total: Decimal
    items: tuple[AllowanceLine, ...] = ()


@dataclass(frozen=True)
class PayrollInputs:
    """Reference data shared by every employee in one generation run."""

    settings: HRSettings
    late_rules: tuple[LateRule, ...] = ()
    penalty_rules: tuple[PenaltyRule, ...] = ()
    allowance_types: tuple[AllowanceType, ...] = ()


@dataclass(frozen=True)
class EmployeePayrollResult:
    """Computed earnings and deductions for one employee and month."""

    employee: PayrollEmployee
    summary: AttendanceSummary
    base_amount: Decimal
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

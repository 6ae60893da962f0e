"""Pure attendance and payroll calculations."""

from workforce_payroll.calculators.attendance_processor import (
    group_punches_by_day,
    parse_csv,
    process_batch,
    process_day,
)
from workforce_payroll.calculators.payroll_calculator import (
    build_attendance_summaries,
    calculate_employee_payroll,
    month_range,
)
from workforce_payroll.calculators.salary_strategies import get_strategy
from workforce_payroll.calculators.time_rules import (
    apply_allowances,
    calculate_absence,
    calculate_early_leave,
    calculate_net_salary,
    calculate_penalty,
    calculate_working_minutes,
    detect_late,
)

__all__ = [
    "apply_allowances",
    "build_attendance_summaries",
    "calculate_absence",
    "calculate_early_leave",
    "calculate_employee_payroll",
    "calculate_net_salary",
    "calculate_penalty",
    "calculate_working_minutes",
    "detect_late",
    "get_strategy",
    "group_punches_by_day",
    "month_range",
    "parse_csv",
    "process_batch",
    "process_day",
]

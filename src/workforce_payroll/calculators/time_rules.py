"""Shift-time arithmetic, late/early detection and money rules.

All functions here are pure. Times are compared as minutes since midnight;
shifts that cross midnight wrap around 1440.
"""

from __future__ import annotations

from datetime import datetime, time
from decimal import Decimal
from typing import Iterable, Sequence

from workforce_payroll.calculators.money import ZERO, round_to_cents, to_decimal
from workforce_payroll.calculators.types import (
    MINUTES_PER_DAY,
    AbsenceResult,
    AllowanceBreakdown,
    AllowanceLine,
    AllowanceType,
    LateDetection,
    LateRule,
    PenaltyRule,
    Shift,
    ValueType,
    WorkingMinutes,
)


def time_to_minutes(value: time | datetime | str) -> int:
    """Minutes since midnight for a time, datetime or ``HH:MM`` string."""
    if isinstance(value, str):
        hours, _, minutes = value.strip().partition(":")
        return int(hours) * 60 + int(minutes[:2] or 0)
    return value.hour * 60 + value.minute


def calculate_working_minutes(shift: Shift) -> WorkingMinutes:
    """Gross, break and net minutes of a shift.

    A 22:00-06:00 crossing shift with a 30 minute break is 480 gross / 450 net.
    """
    start = shift.start_minutes
    end = shift.end_minutes
    if shift.crosses_midnight:
        gross = (MINUTES_PER_DAY - start) + end
    else:
        gross = end - start
    return WorkingMinutes(
        gross_minutes=gross,
        break_minutes=shift.break_minutes,
        net_minutes=max(0, gross - shift.break_minutes),
    )


def find_late_rule(late_minutes: int, late_rules: Iterable[LateRule]) -> LateRule | None:
    """First rule, by ascending ``minutes_from``, whose band contains the value."""
    for rule in sorted(late_rules, key=lambda r: r.minutes_from):
        if rule.matches(late_minutes):
            return rule
    return None


def minutes_late(check_in: time | datetime, shift: Shift) -> int:
    checked_in = time_to_minutes(check_in)
    start = shift.start_minutes
    if not shift.crosses_midnight:
        return max(0, checked_in - start)
    if checked_in >= start:
        return checked_in - start
    if checked_in <= shift.end_minutes:
        # Arrived after midnight, inside the shift window.
        return (MINUTES_PER_DAY - start) + checked_in
    # Arrived in the gap before the shift starts.
    return 0


def detect_late(
    check_in: time | datetime,
    shift: Shift,
    late_rules: Sequence[LateRule] = (),
) -> LateDetection:
    """Compare a check-in with the shift start, honouring the grace period."""
    late = minutes_late(check_in, shift)
    if late <= 0:
        return LateDetection(is_late=False, late_minutes=0, within_grace=False)

    if late <= shift.late_grace_minutes:
        return LateDetection(is_late=False, late_minutes=late, within_grace=True)

    return LateDetection(
        is_late=True,
        late_minutes=late,
        within_grace=False,
        matched_rule=find_late_rule(late, late_rules),
    )


def calculate_early_leave(check_out: time | datetime, shift: Shift) -> int:
    """Minutes between the check-out and the shift end, zero if not early."""
    checked_out = time_to_minutes(check_out)
    end = shift.end_minutes
    if not shift.crosses_midnight:
        return max(0, end - checked_out)
    if checked_out <= end:
        return end - checked_out
    if checked_out >= shift.start_minutes:
        # Left before midnight.
        return (MINUTES_PER_DAY - checked_out) + end
    return 0


def calculate_absence(attended: bool, net_minutes: int) -> AbsenceResult:
    """An absent day deducts the full net shift minutes."""
    if attended:
        return AbsenceResult(is_absent=False, deduction_minutes=0)
    return AbsenceResult(is_absent=True, deduction_minutes=net_minutes)


def _apply_value(value_type: ValueType, value: Decimal, base: Decimal) -> Decimal:
    if value_type == ValueType.PERCENTAGE:
        return round_to_cents(base * to_decimal(value) / Decimal("100"))
    return round_to_cents(value)


def calculate_penalty(rule: PenaltyRule, base_salary: Decimal) -> Decimal:
    """Fixed amount or percentage of base salary, rounded to cents."""
    return _apply_value(rule.value_type, rule.value, to_decimal(base_salary))


def apply_allowances(
    base_salary: Decimal,
    allowance_types: Iterable[AllowanceType],
) -> AllowanceBreakdown:
    """Sum active allowances; each line and the total are rounded to cents."""
    base = to_decimal(base_salary)
    items = tuple(
        AllowanceLine(name=a.name, amount=_apply_value(a.calculation_type, a.value, base))
        for a in allowance_types
        if a.is_active
    )
    total = round_to_cents(sum((i.amount for i in items), ZERO))
    return AllowanceBreakdown(total=total, items=items)


def calculate_net_salary(
    base_salary: Decimal,
    allowances: Decimal,
    deductions: Decimal,
    penalties: Decimal,
    allow_negative: bool = False,
) -> Decimal:
    """Net pay; clamped at zero unless negative salaries are allowed."""
    net = round_to_cents(
        to_decimal(base_salary) + to_decimal(allowances)
        - to_decimal(deductions) - to_decimal(penalties)
    )
    if not allow_negative and net < 0:
        return ZERO
    return net

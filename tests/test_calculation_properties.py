"""Property-based tests for the attendance and pay calculators.

hypothesis generates check-in times, money amounts and device exports and
checks that the calculators keep their guarantees for all of them.
"""

from datetime import datetime, time, timedelta
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from workforce_payroll.calculators.attendance_processor import process_batch
from workforce_payroll.calculators.money import ZERO, round_to_cents
from workforce_payroll.calculators.time_rules import calculate_net_salary, detect_late
from workforce_payroll.calculators.types import (
    AttendanceBatchOptions,
    LateRule,
    Shift,
    ValueType,
)

# Same shape as the ``day_shift`` fixture; hypothesis runs many examples
# per test, so these are module constants instead of fixtures.
DAY_SHIFT = Shift(
    start_time=time(8, 0),
    end_time=time(17, 0),
    break_minutes=60,
    late_grace_minutes=10,
    shift_id="day",
    name="Day",
)
LATE_RULES = [
    LateRule(1, 15, ValueType.FIXED, Decimal("10"), rule_id="late-1"),
    LateRule(16, 30, ValueType.FIXED, Decimal("25"), rule_id="late-2"),
    LateRule(31, 60, ValueType.PERCENTAGE, Decimal("1"), rule_id="late-3"),
]
CODE_MAP = {"101": "emp-a", "102": "emp-b"}
WEEK_START = datetime(2024, 3, 3)

minute_of_day = st.integers(min_value=0, max_value=1439)
amounts = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
punch_rows = st.lists(
    st.tuples(
        st.sampled_from(["101", "102", "999"]),
        st.integers(min_value=0, max_value=7 * 1440 - 1),
    ),
    max_size=40,
)


def _clock(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def _export(rows: list[tuple[str, int]]) -> str:
    return "\n".join(
        f"{code},{WEEK_START + timedelta(minutes=offset):%Y-%m-%d %H:%M},D1"
        for code, offset in rows
    )


class TestLateDetectionProperties:
    """Test late detection over every minute of the day."""

    @given(minute_of_day, minute_of_day)
    def test_later_check_in_is_never_less_late(self, a: int, b: int):
        earlier, later = sorted((a, b))

        first = detect_late(_clock(earlier), DAY_SHIFT, LATE_RULES)
        second = detect_late(_clock(later), DAY_SHIFT, LATE_RULES)

        assert second.late_minutes >= first.late_minutes
        assert not (first.is_late and not second.is_late)

    @given(minute_of_day)
    def test_grace_and_late_are_exclusive(self, minutes: int):
        result = detect_late(_clock(minutes), DAY_SHIFT, LATE_RULES)

        assert result.late_minutes >= 0
        assert not (result.is_late and result.within_grace)
        assert result.is_late == (result.late_minutes > DAY_SHIFT.late_grace_minutes)
        if result.matched_rule is not None:
            assert result.matched_rule.minutes_from <= result.late_minutes
            assert result.late_minutes <= result.matched_rule.minutes_to


class TestNetSalaryProperties:
    """Test the zero clamp on net salary."""

    @given(amounts, amounts, amounts, amounts)
    def test_net_is_never_negative_by_default(self, base, allowances, deductions, penalties):
        net = calculate_net_salary(base, allowances, deductions, penalties)

        assert net >= ZERO
        assert net == max(round_to_cents(base + allowances - deductions - penalties), ZERO)

    @given(amounts, amounts, amounts, amounts)
    def test_negative_allowed_keeps_exact_difference(
        self, base, allowances, deductions, penalties
    ):
        net = calculate_net_salary(base, allowances, deductions, penalties, allow_negative=True)

        assert net == round_to_cents(base + allowances - deductions - penalties)


class TestProcessBatchProperties:
    """Test that batch processing depends only on the export contents."""

    @settings(max_examples=50)
    @given(punch_rows)
    def test_same_export_same_records(self, rows):
        options = AttendanceBatchOptions(
            csv_text=_export(rows),
            employee_code_map=CODE_MAP,
            shift=DAY_SHIFT,
            late_rules=LATE_RULES,
        )

        first = process_batch(options)
        second = process_batch(options)

        assert first.records == second.records
        assert first.unmatched_codes == second.unmatched_codes

    @settings(max_examples=50)
    @given(punch_rows)
    def test_row_order_does_not_change_records(self, rows):
        forward = process_batch(
            AttendanceBatchOptions(
                csv_text=_export(rows), employee_code_map=CODE_MAP, shift=DAY_SHIFT
            )
        )
        backward = process_batch(
            AttendanceBatchOptions(
                csv_text=_export(list(reversed(rows))),
                employee_code_map=CODE_MAP,
                shift=DAY_SHIFT,
            )
        )

        assert forward.records == backward.records
        assert sorted(forward.unmatched_codes) == sorted(backward.unmatched_codes)
        assert [(r.employee_id, r.date) for r in forward.records] == sorted(
            (r.employee_id, r.date) for r in forward.records
        )

"""Tests for device export parsing and daily attendance processing."""

from datetime import date, datetime
from decimal import Decimal

from workforce_payroll.calculators.attendance_processor import (
    group_punches_by_day,
    parse_csv,
    process_batch,
    process_day,
)
from workforce_payroll.calculators.types import (
    AttendanceBatchOptions,
    EmployeeDayGroup,
    RawPunch,
)

MONDAY = date(2024, 3, 4)
FRIDAY = date(2024, 3, 8)


def punch(code: str, moment: str) -> RawPunch:
    return RawPunch(
        employee_code=code,
        punched_at=datetime.strptime(moment, "%Y-%m-%d %H:%M"),
        device_id="D1",
    )


class TestParseCsv:
    """Test parsing of biometric device exports."""

    def test_header_and_invalid_rows(self):
        text = "\n".join(
            [
                "User ID,DateTime,Device",
                "101,2024-03-04 08:05:00,D1",
                "101,2024-03-04 17:02:00,D1",
                "bad row",
                "102,not-a-date,D1",
                ",2024-03-04 08:00,D1",
            ]
        )
        result = parse_csv(text)

        assert result.total_rows == 5
        assert result.valid_rows == 2
        assert result.skipped_rows == 3
        assert result.errors == [
            "Row 4: expected at least 3 columns",
            "Row 5: invalid date/time 'not-a-date'",
            "Row 6: missing employee code",
        ]
        assert result.punches[0].punched_at == datetime(2024, 3, 4, 8, 5)
        assert result.punches[0].row_number == 2

    def test_without_header_and_tabs(self):
        result = parse_csv("101\t2024/03/04 08:00\tD1\r\n101\t03/04/2024 17:00\tD1\r\n")
        assert result.total_rows == 2
        assert result.valid_rows == 2
        assert result.errors == []

    def test_empty_input(self):
        result = parse_csv("")
        assert result.total_rows == 0
        assert result.punches == []


class TestGrouping:
    """Test attribution of punches to work dates."""

    def test_unmatched_codes_reported_once(self, day_shift):
        grouping = group_punches_by_day(
            [
                punch("101", "2024-03-04 08:00"),
                punch("999", "2024-03-04 08:01"),
                punch("999", "2024-03-04 17:01"),
            ],
            {"101": "emp-a"},
            day_shift,
        )
        assert grouping.unmatched_codes == ["999"]
        assert len(grouping.groups) == 1

    def test_crossing_shift_morning_punch_belongs_to_previous_day(self, night_shift):
        grouping = group_punches_by_day(
            [punch("101", "2024-03-05 05:55"), punch("101", "2024-03-04 22:10")],
            {"101": "emp-a"},
            night_shift,
        )
        assert len(grouping.groups) == 1
        group = grouping.groups[0]
        assert group.work_date == MONDAY
        assert [p.punched_at.hour for p in group.punches] == [22, 5]


class TestProcessDay:
    """Test per-day attendance records."""

    def test_late_arrival_full_day(self, day_shift, late_rules):
        group = EmployeeDayGroup(
            "emp-a",
            MONDAY,
            [punch("101", "2024-03-04 08:25"), punch("101", "2024-03-04 17:00")],
        )
        record = process_day(group, day_shift, late_rules, ("friday",))

        assert record.late_minutes == 25
        assert record.early_leave_minutes == 0
        # Worked time is capped at the shift's net minutes.
        assert record.total_minutes == 480
        assert record.total_hours == Decimal("8.00")
        assert record.is_incomplete is False
        assert record.punch_count == 2

    def test_grace_period_is_not_late(self, day_shift):
        group = EmployeeDayGroup(
            "emp-a",
            MONDAY,
            [punch("101", "2024-03-04 08:05"), punch("101", "2024-03-04 16:30")],
        )
        record = process_day(group, day_shift, [], ("friday",))
        assert record.late_minutes == 0
        assert record.early_leave_minutes == 30

    def test_single_punch_is_incomplete(self, day_shift):
        group = EmployeeDayGroup("emp-a", MONDAY, [punch("101", "2024-03-04 08:00")])
        record = process_day(group, day_shift, [], ("friday",))
        assert record.is_incomplete is True
        assert record.check_out is None
        assert record.total_minutes == 0

    def test_no_punches(self, day_shift):
        absent = process_day(EmployeeDayGroup("emp-a", MONDAY), day_shift, [], ("friday",))
        off = process_day(EmployeeDayGroup("emp-a", FRIDAY), day_shift, [], ("friday",))
        assert absent.is_absent is True
        assert off.is_absent is False
        assert off.is_weekly_off is True

    def test_night_shift(self, night_shift):
        group = EmployeeDayGroup(
            "emp-a",
            MONDAY,
            [punch("101", "2024-03-04 22:10"), punch("101", "2024-03-05 06:00")],
        )
        record = process_day(group, night_shift, [], ("friday",))
        assert record.late_minutes == 10
        assert record.early_leave_minutes == 0
        assert record.total_minutes == 450


class TestProcessBatch:
    """Test the full import pipeline."""

    CSV = "\n".join(
        [
            "101,2024-03-04 08:00,D1",
            "101,2024-03-04 17:00,D1",
            "555,2024-03-04 08:00,D1",
        ]
    )

    def test_period_fills_absent_and_off_days(self, day_shift):
        result = process_batch(
            AttendanceBatchOptions(
                csv_text=self.CSV,
                employee_code_map={"101": "emp-a"},
                shift=day_shift,
                period=(MONDAY, FRIDAY),
            ),
            now=datetime(2024, 3, 10, 9, 0),
        )

        assert result.batch_id.startswith("BATCH-20240310090000-")
        assert len(result.records) == 5
        by_day = {r.date: r for r in result.records}
        assert by_day[MONDAY].is_absent is False
        assert by_day[date(2024, 3, 5)].is_absent is True
        assert by_day[FRIDAY].is_weekly_off is True
        assert result.unmatched_codes == ["555"]
        assert len(result.raw_punches) == 3

    def test_deterministic_records(self, day_shift):
        options = AttendanceBatchOptions(
            csv_text=self.CSV, employee_code_map={"101": "emp-a"}, shift=day_shift
        )
        first = process_batch(options)
        second = process_batch(options)
        assert first.records == second.records

"""Turn biometric device exports into per-employee, per-day attendance records.

Pipeline: ``parse_csv`` -> ``group_punches_by_day`` -> ``process_day``.
``process_batch`` runs all three and never touches storage.
"""

from __future__ import annotations

import logging
import re
from collections import OrderedDict
from datetime import date, datetime, timedelta
from uuid import uuid4

from workforce_payroll.calculators.money import round_to_cents, to_decimal
from workforce_payroll.calculators.time_rules import (
    calculate_early_leave,
    calculate_working_minutes,
    detect_late,
    time_to_minutes,
)
from workforce_payroll.calculators.types import (
    WEEKDAY_NAMES,
    AttendanceBatchOptions,
    AttendanceBatchResult,
    CSVParseResult,
    EmployeeDayGroup,
    LateRule,
    ProcessedAttendanceRecord,
    PunchGrouping,
    RawPunch,
    Shift,
)

logger = logging.getLogger(__name__)

HEADER_PATTERN = re.compile(r"user\s*id", re.IGNORECASE)
COLUMN_SPLIT = re.compile(r"[,\t]")
LINE_SPLIT = re.compile(r"\r?\n")

DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
)


def parse_punch_datetime(value: str) -> datetime | None:
    """Parse a device timestamp in any supported layout, or return None."""
    text = " ".join(value.split())
    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _is_header(line: str) -> bool:
    return bool(HEADER_PATTERN.search(line)) or not any(ch.isdigit() for ch in line)


def parse_csv(text: str) -> CSVParseResult:
    """Parse a comma or tab separated export of ``code, datetime, device`` rows.

    Invalid rows are skipped and reported as ``"Row N: ..."`` strings, where N
    counts non-empty lines including the header.
    """
    result = CSVParseResult()
    lines = [line.strip() for line in LINE_SPLIT.split(text or "")]
    lines = [line for line in lines if line]
    if not lines:
        return result

    start = 1 if _is_header(lines[0]) else 0

    for index in range(start, len(lines)):
        row_number = index + 1
        result.total_rows += 1
        columns = [c.strip() for c in COLUMN_SPLIT.split(lines[index])]

        if len(columns) < 3:
            result.errors.append(f"Row {row_number}: expected at least 3 columns")
            result.skipped_rows += 1
            continue

        code, timestamp, device = columns[0], columns[1], columns[2]
        if not code:
            result.errors.append(f"Row {row_number}: missing employee code")
            result.skipped_rows += 1
            continue
        if not timestamp:
            result.errors.append(f"Row {row_number}: missing punch time")
            result.skipped_rows += 1
            continue

        punched_at = parse_punch_datetime(timestamp)
        if punched_at is None:
            result.errors.append(f"Row {row_number}: invalid date/time '{timestamp}'")
            result.skipped_rows += 1
            continue

        result.punches.append(
            RawPunch(
                employee_code=code,
                punched_at=punched_at,
                device_id=device,
                row_number=row_number,
            )
        )
        result.valid_rows += 1

    return result


def resolve_work_date(punched_at: datetime, shift: Shift) -> date:
    """Calendar day a punch is attributed to.

    On a crossing shift, punches at or before the shift end belong to the
    shift that started the previous evening.
    """
    if shift.crosses_midnight and time_to_minutes(punched_at) <= shift.end_minutes:
        return punched_at.date() - timedelta(days=1)
    return punched_at.date()


def group_punches_by_day(
    punches: list[RawPunch],
    employee_code_map: dict[str, str],
    shift: Shift,
) -> PunchGrouping:
    """Group punches per (employee, work date); unknown device codes are reported."""
    groups: dict[tuple[str, date], EmployeeDayGroup] = {}
    unmatched: OrderedDict[str, None] = OrderedDict()

    for punch in punches:
        employee_id = employee_code_map.get(punch.employee_code)
        if employee_id is None:
            unmatched.setdefault(punch.employee_code, None)
            continue
        work_date = resolve_work_date(punch.punched_at, shift)
        key = (employee_id, work_date)
        if key not in groups:
            groups[key] = EmployeeDayGroup(employee_id=employee_id, work_date=work_date)
        groups[key].punches.append(punch)

    for group in groups.values():
        group.punches.sort(key=lambda p: p.punched_at)

    ordered = [groups[key] for key in sorted(groups)]
    return PunchGrouping(groups=ordered, unmatched_codes=list(unmatched))


def process_day(
    group: EmployeeDayGroup,
    shift: Shift,
    late_rules: list[LateRule],
    weekly_off_days: tuple[str, ...] | list[str],
) -> ProcessedAttendanceRecord:
    """Build the attendance record for one employee day."""
    day_name = WEEKDAY_NAMES[group.work_date.weekday()]
    is_weekly_off = day_name in weekly_off_days
    punches = group.punches

    if not punches:
        return ProcessedAttendanceRecord(
            employee_id=group.employee_id,
            date=group.work_date,
            check_in=None,
            check_out=None,
            shift_id=shift.shift_id,
            late_minutes=0,
            early_leave_minutes=0,
            total_minutes=0,
            total_hours=to_decimal("0.00"),
            is_absent=not is_weekly_off,
            is_incomplete=False,
            is_weekly_off=is_weekly_off,
            punch_count=0,
        )

    check_in = punches[0].punched_at
    check_out = punches[-1].punched_at if len(punches) >= 2 else None

    late = detect_late(check_in, shift, late_rules)
    late_minutes = late.late_minutes if late.is_late else 0

    early_leave = 0
    total_minutes = 0
    if check_out is not None:
        early_leave = calculate_early_leave(check_out, shift)
        net = calculate_working_minutes(shift).net_minutes
        worked = round((check_out - check_in).total_seconds() / 60)
        total_minutes = min(max(worked, 0), net)

    return ProcessedAttendanceRecord(
        employee_id=group.employee_id,
        date=group.work_date,
        check_in=check_in,
        check_out=check_out,
        shift_id=shift.shift_id,
        late_minutes=late_minutes,
        early_leave_minutes=early_leave,
        total_minutes=total_minutes,
        total_hours=round_to_cents(to_decimal(total_minutes) / 60),
        is_absent=False,
        is_incomplete=check_out is None,
        is_weekly_off=is_weekly_off,
        punch_count=len(punches),
    )


def generate_batch_id(now: datetime) -> str:
    return f"BATCH-{now:%Y%m%d%H%M%S}-{uuid4().hex[:6].upper()}"


def _period_days(period: tuple[date, date]) -> list[date]:
    start, end = period
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def process_batch(
    options: AttendanceBatchOptions,
    now: datetime | None = None,
) -> AttendanceBatchResult:
    """Parse, group and process one device export.

    Identical input yields identical records; only the batch id and
    timestamp differ between runs.
    """
    processed_at = now or datetime.now()
    batch_id = generate_batch_id(processed_at)

    parsed = parse_csv(options.csv_text)
    grouping = group_punches_by_day(parsed.punches, options.employee_code_map, options.shift)
    errors = list(parsed.errors)
    records: dict[tuple[str, date], ProcessedAttendanceRecord] = {}

    groups = list(grouping.groups)
    if options.period is not None:
        seen = {(g.employee_id, g.work_date) for g in groups}
        for employee_id in sorted(set(options.employee_code_map.values())):
            for day in _period_days(options.period):
                if (employee_id, day) not in seen:
                    groups.append(EmployeeDayGroup(employee_id=employee_id, work_date=day))

    for group in groups:
        try:
            record = process_day(
                group, options.shift, options.late_rules, options.weekly_off_days
            )
        except Exception as exc:
            logger.exception(
                "Failed to process attendance for %s on %s",
                group.employee_id,
                group.work_date,
            )
            errors.append(f"{group.employee_id} {group.work_date.isoformat()}: {exc}")
            continue
        records[(record.employee_id, record.date)] = record

    if grouping.unmatched_codes:
        logger.info(
            "Batch %s: %d unmatched device codes", batch_id, len(grouping.unmatched_codes)
        )

    return AttendanceBatchResult(
        batch_id=batch_id,
        processed_at=processed_at,
        records=[records[key] for key in sorted(records)],
        parse_result=parsed,
        unmatched_codes=grouping.unmatched_codes,
        errors=errors,
    )

"""Attendance import: run the processing pipeline and persist its output."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime

from workforce_payroll.calculators.attendance_processor import process_batch, process_day
from workforce_payroll.calculators.types import (
    AttendanceBatchOptions,
    AttendanceBatchResult,
    EmployeeDayGroup,
    HRSettings,
    RawPunch,
    Shift,
)
from workforce_payroll.entities import AttendanceLog, AttendanceSource, StoredPunch
from workforce_payroll.errors import HRError, NotFoundError, OperationResult, ValidationError
from workforce_payroll.repositories.base import (
    AttendanceRepository,
    ConfigRepository,
    EmployeeRepository,
    MAX_WRITE_CHUNK,
    chunked,
)

logger = logging.getLogger(__name__)


class AttendanceImportService:
    """Imports biometric device exports and manual entries."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        config: ConfigRepository,
        employees: EmployeeRepository,
        chunk_size: int = MAX_WRITE_CHUNK,
    ):
        self.attendance = attendance
        self.config = config
        self.employees = employees
        self.chunk_size = chunk_size

    async def import_csv(
        self,
        csv_text: str,
        shift: Shift,
        period: tuple[date, date] | None = None,
    ) -> OperationResult[AttendanceBatchResult]:
        """Process a device export and store punches and daily logs."""
        code_map, late_rules, settings = await asyncio.gather(
            self.employees.get_device_code_map(),
            self.config.list_late_rules(),
            self.config.get_hr_settings(),
        )
        settings = settings or HRSettings()

        result = process_batch(
            AttendanceBatchOptions(
                csv_text=csv_text,
                employee_code_map=code_map,
                shift=shift,
                late_rules=late_rules,
                weekly_off_days=settings.weekly_off_days,
                period=period,
            )
        )

        punches = [
            StoredPunch(
                employee_code=p.employee_code,
                punched_at=p.punched_at,
                device_id=p.device_id,
                batch_id=result.batch_id,
                source=AttendanceSource.ZK_CSV.value,
                employee_id=code_map.get(p.employee_code),
            )
            for p in result.raw_punches
        ]
        logs = [
            AttendanceLog.from_record(r, result.batch_id, AttendanceSource.ZK_CSV)
            for r in result.records
        ]
        for chunk in chunked(punches, self.chunk_size):
            await self.attendance.save_raw_punches(chunk)
        for chunk in chunked(logs, self.chunk_size):
            await self.attendance.save_logs(chunk)

        logger.info(
            "Attendance batch %s: %d punches, %d records, %d errors, %d unmatched codes",
            result.batch_id,
            len(punches),
            len(logs),
            len(result.errors),
            len(result.unmatched_codes),
        )
        return OperationResult.success(result, warnings=list(result.errors))

    async def record_manual(
        self,
        employee_id: str,
        work_date: date,
        shift: Shift,
        check_in: datetime | None,
        check_out: datetime | None = None,
    ) -> OperationResult[AttendanceLog]:
        """Enter or correct one day by hand; replaces any stored log for that day."""
        try:
            employee = await self.employees.get_employee(employee_id)
            if employee is None:
                raise NotFoundError(f"Employee {employee_id} not found")
            if check_in and check_out and check_out < check_in:
                raise ValidationError("Check-out precedes check-in", code="invalid_punch_order")

            code = employee.device_code or employee.employee_code or employee_id
            group = EmployeeDayGroup(
                employee_id=employee_id,
                work_date=work_date,
                punches=[
                    RawPunch(employee_code=code, punched_at=moment, device_id="manual")
                    for moment in (check_in, check_out)
                    if moment is not None
                ],
            )
            late_rules, settings = await asyncio.gather(
                self.config.list_late_rules(), self.config.get_hr_settings()
            )
            settings = settings or HRSettings()
            record = process_day(group, shift, late_rules, settings.weekly_off_days)
            log = AttendanceLog.from_record(record, None, AttendanceSource.MANUAL)
            await self.attendance.save_logs([log])
            return OperationResult.success(log)
        except HRError as exc:
            return OperationResult.failure(exc)

"""Payroll generation, record adjustment and payroll queries."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable

from workforce_payroll.calculators.money import ZERO, round_to_cents, to_decimal
from workforce_payroll.calculators.payroll_calculator import (
    build_attendance_summaries,
    calculate_employee_payroll,
    default_summary,
    default_working_days,
    month_range,
    unpaid_leave_days,
)
from workforce_payroll.calculators.types import PayrollEmployee, PayrollInputs
from workforce_payroll.entities import (
    AuditEntityType,
    AuditLogEntry,
    CostSummary,
    EmployeeCalculationError,
    GenerationSummary,
    PayrollAuditAction,
    PayrollMonth,
    PayrollRecord,
)
from workforce_payroll.errors import (
    ConcurrencyConflictError,
    HRError,
    NotFoundError,
    OperationResult,
    StateError,
    ValidationError,
)
from workforce_payroll.repositories.base import MAX_WRITE_CHUNK, RepositoryBundle, chunked
from workforce_payroll.services.audit_service import AuditService
from workforce_payroll.services.config_service import HRConfigService
from workforce_payroll.services.locking_service import hold_month_lock
from workforce_payroll.services.state_machine import (
    PayrollMonthStateMachine,
    PayrollMonthStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


def month_totals(records: Iterable[PayrollRecord]) -> tuple[int, Decimal, Decimal, Decimal]:
    """(employee count, gross, net, deductions) of a set of records."""
    count = 0
    gross = net = deductions = ZERO
    for record in records:
        count += 1
        gross += record.gross_salary
        net += record.net_salary
        deductions += record.total_deductions
    return count, round_to_cents(gross), round_to_cents(net), round_to_cents(deductions)


def with_totals(payroll_month: PayrollMonth, records: list[PayrollRecord]) -> PayrollMonth:
    count, gross, net, deductions = month_totals(records)
    return replace(
        payroll_month,
        total_employees=count,
        total_gross=gross,
        total_net=net,
        total_deductions=deductions,
    )


class PayrollService:
    """Generates draft payroll records for a month and manages draft edits.

    Generation is a pure function of the month's attendance, approved leave,
    active loans and the HR rule tables; regenerating a draft month replaces
    all of its records.
    """

    def __init__(
        self,
        repositories: RepositoryBundle,
        audit: AuditService,
        config_service: HRConfigService,
        batch_size: int = DEFAULT_BATCH_SIZE,
        chunk_size: int = MAX_WRITE_CHUNK,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repos = repositories
        self.audit = audit
        self.config_service = config_service
        self.batch_size = batch_size
        self.chunk_size = chunk_size
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_payroll(
        self,
        month: str,
        generated_by: str,
        employees: list[PayrollEmployee] | None = None,
        batch_size: int | None = None,
    ) -> OperationResult[GenerationSummary]:
        """Generate, or regenerate while still draft, the payroll of a month."""
        try:
            month_range(month)
            async with hold_month_lock(self.repos.payroll, month):
                summary = await self._generate(
                    month, generated_by, employees, batch_size or self.batch_size
                )
        except HRError as exc:
            logger.warning("Payroll generation for %s rejected: %s", month, exc)
            return OperationResult.failure(exc)

        warnings = [f"{e.employee_id}: {e.error}" for e in summary.errors]
        return OperationResult.success(summary, warnings=warnings)

    async def _generate(
        self,
        month: str,
        generated_by: str,
        employees: list[PayrollEmployee] | None,
        batch_size: int,
    ) -> GenerationSummary:
        start, end = month_range(month)
        payroll = self.repos.payroll
        existing = await payroll.get_month(month)
        if existing is not None:
            PayrollMonthStateMachine.ensure_records_mutable(existing)

        (
            settings,
            late_rules,
            penalty_rules,
            allowance_types,
            logs,
            leaves,
            loans,
            config_snapshot,
        ) = await asyncio.gather(
            self.repos.config.get_hr_settings(),
            self.repos.config.list_late_rules(),
            self.repos.config.list_penalty_rules(active_only=True),
            self.repos.config.list_allowance_types(active_only=True),
            self.repos.attendance.list_logs(start, end),
            self.repos.leaves.list_approved_leaves(start, end),
            self.repos.loans.list_active_loans(),
            self.config_service.capture_version_snapshot(),
        )
        if settings is None:
            raise ValidationError("HR settings are not configured", code="missing_hr_settings")

        if employees is None:
            employees = [
                e.to_payroll_employee() for e in await self.repos.employees.list_active_employees()
            ]

        inputs = PayrollInputs(
            settings=settings,
            late_rules=tuple(late_rules),
            penalty_rules=tuple(penalty_rules),
            allowance_types=tuple(allowance_types),
        )
        summaries = build_attendance_summaries(logs, settings)
        fallback_days = default_working_days(month, settings)
        installments: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for loan in loans:
            installments[loan.employee_id] += to_decimal(loan.installment_amount)

        results = []
        errors: list[EmployeeCalculationError] = []
        for batch in chunked(list(employees), batch_size):
            for employee in batch:
                try:
                    result = calculate_employee_payroll(
                        employee,
                        summaries.get(employee.employee_id) or default_summary(fallback_days),
                        inputs,
                        leave_days=unpaid_leave_days(employee.employee_id, leaves, start, end),
                        loan_installments=installments[employee.employee_id],
                    )
                except Exception as exc:
                    logger.exception(
                        "Payroll calculation failed for employee %s", employee.employee_id
                    )
                    errors.append(
                        EmployeeCalculationError(
                            employee_id=employee.employee_id,
                            employee_name=employee.employee_name,
                            error=str(exc),
                        )
                    )
                    continue
                results.append(result)

        now = self.clock()
        if existing is not None:
            payroll_month = existing
            deleted = await payroll.delete_records(existing.month_id)
            logger.info("Regenerating payroll %s: removed %d draft records", month, deleted)
        else:
            payroll_month = PayrollMonth(month=month, status=PayrollMonthStatus.DRAFT.value)
            await payroll.create_month(payroll_month)

        records = [PayrollRecord.from_result(r, payroll_month.month_id, month) for r in results]
        for chunk in chunked(records, self.chunk_size):
            await payroll.insert_records(chunk)

        updated = replace(
            with_totals(payroll_month, records),
            generated_at=now,
            generated_by=generated_by,
            config_version_snapshot=config_snapshot,
        )
        if not await payroll.update_month(updated, expected_status=PayrollMonthStatus.DRAFT.value):
            raise ConcurrencyConflictError(
                f"Payroll {month} changed during generation", code="stale_write"
            )

        action = PayrollAuditAction.RECALCULATE if existing else PayrollAuditAction.GENERATE
        await self.audit.record(
            AuditEntityType.PAYROLL_MONTH,
            payroll_month.month_id,
            action.value,
            generated_by,
            details={
                "month": month,
                "total_employees": updated.total_employees,
                "total_gross": str(updated.total_gross),
                "total_net": str(updated.total_net),
                "total_deductions": str(updated.total_deductions),
                "failed_employees": [e.employee_id for e in errors],
                "config_versions": config_snapshot.versions,
            },
        )
        logger.info(
            "Payroll %s %s: %d records, net %s",
            month,
            action.value,
            len(records),
            updated.total_net,
        )

        return GenerationSummary(
            payroll_month_id=payroll_month.month_id,
            month=month,
            total_processed=len(records),
            total_gross=updated.total_gross,
            total_net=updated.total_net,
            total_deductions=updated.total_deductions,
            recalculated=existing is not None,
            errors=tuple(errors),
        )

    # ------------------------------------------------------------------
    # Draft edits
    # ------------------------------------------------------------------

    async def adjust_record(
        self,
        record_id: str,
        performed_by: str,
        other_penalties: Decimal | None = None,
        transport_deduction: Decimal | None = None,
        reason: str | None = None,
    ) -> OperationResult[PayrollRecord]:
        """Manually adjust penalties or transport on a draft record."""
        try:
            record = await self.repos.payroll.get_record(record_id)
            if record is None:
                raise NotFoundError(f"Payroll record {record_id} not found")
            async with hold_month_lock(self.repos.payroll, record.month):
                return OperationResult.success(
                    await self._adjust(
                        record_id, performed_by, other_penalties, transport_deduction, reason
                    )
                )
        except HRError as exc:
            logger.warning("Adjustment of record %s rejected: %s", record_id, exc)
            return OperationResult.failure(exc)

    async def _adjust(
        self,
        record_id: str,
        performed_by: str,
        other_penalties: Decimal | None,
        transport_deduction: Decimal | None,
        reason: str | None,
    ) -> PayrollRecord:
        payroll = self.repos.payroll
        record = await payroll.get_record(record_id)
        if record is None:
            raise NotFoundError(f"Payroll record {record_id} not found")
        payroll_month = await payroll.get_month(record.month)
        if payroll_month is None:
            raise NotFoundError(f"Payroll month {record.month} not found")
        PayrollMonthStateMachine.ensure_records_mutable(payroll_month)
        PayrollMonthStateMachine.ensure_record_mutable(record)

        changes: dict[str, list[str]] = {}
        updated = record
        for field_name, value in (
            ("other_penalties", other_penalties),
            ("transport_deduction", transport_deduction),
        ):
            if value is None:
                continue
            amount = round_to_cents(value)
            if amount < 0:
                raise ValidationError(f"{field_name} cannot be negative")
            old = getattr(record, field_name)
            if amount != old:
                changes[field_name] = [str(old), str(amount)]
                updated = replace(updated, **{field_name: amount})
        if not changes:
            return record

        settings = await self.repos.config.get_hr_settings()
        allow_negative = settings.allow_negative_salary if settings else False
        total_deductions = round_to_cents(
            updated.absence_deduction
            + updated.late_deduction
            + updated.loan_deduction
            + updated.other_penalties
            + updated.transport_deduction
            + updated.unpaid_leave_deduction
        )
        net = round_to_cents(updated.gross_salary - total_deductions)
        if net < 0 and not allow_negative:
            net = ZERO
        updated = replace(updated, total_deductions=total_deductions, net_salary=net)

        if not await payroll.update_record(updated):
            raise StateError(f"Payroll record {record_id} is locked", code="record_locked")

        records = await payroll.list_records(payroll_month.month_id)
        if not await payroll.update_month(
            with_totals(payroll_month, records), expected_status=PayrollMonthStatus.DRAFT.value
        ):
            raise ConcurrencyConflictError(
                f"Payroll {record.month} changed during adjustment", code="stale_write"
            )

        await self.audit.record(
            AuditEntityType.PAYROLL_MONTH,
            payroll_month.month_id,
            PayrollAuditAction.EDIT.value,
            performed_by,
            employee_id=record.employee_id,
            details={"record_id": record_id, "changes": changes, "reason": reason},
        )
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_month(self, month: str) -> PayrollMonth | None:
        return await self.repos.payroll.get_month(month)

    async def list_records(self, month: str) -> list[PayrollRecord]:
        payroll_month = await self.repos.payroll.get_month(month)
        if payroll_month is None:
            return []
        return await self.repos.payroll.list_records(payroll_month.month_id)

    async def list_cost_summaries(self, month: str) -> list[CostSummary]:
        payroll_month = await self.repos.payroll.get_month(month)
        if payroll_month is None:
            return []
        return await self.repos.payroll.list_cost_summaries(payroll_month.month_id)

    async def audit_trail(self, month: str) -> list[AuditLogEntry]:
        payroll_month = await self.repos.payroll.get_month(month)
        if payroll_month is None:
            return []
        return await self.audit.payroll_trail(payroll_month.month_id)

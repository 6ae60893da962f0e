"""Payroll finalization (draft → finalized) with calculation snapshot."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable
from uuid import uuid4

from workforce_payroll.calculators.money import ZERO, round_to_cents
from workforce_payroll.calculators.payroll_calculator import month_range
from workforce_payroll.calculators.types import HRSettings
from workforce_payroll.entities import (
    AuditEntityType,
    CostSummary,
    PayrollAuditAction,
    PayrollMonth,
    PayrollRecord,
    PayrollSnapshot,
)
from workforce_payroll.errors import (
    ConcurrencyConflictError,
    HRError,
    NotFoundError,
    OperationResult,
    ValidationError,
)
from workforce_payroll.repositories.base import MAX_WRITE_CHUNK, RepositoryBundle, chunked
from workforce_payroll.services.audit_service import AuditService
from workforce_payroll.services.config_service import HRConfigService
from workforce_payroll.services.locking_service import hold_month_lock
from workforce_payroll.services.payroll_service import with_totals
from workforce_payroll.services.state_machine import (
    PayrollMonthStateMachine,
    PayrollMonthStatus,
)

logger = logging.getLogger(__name__)


def snapshot_version(now: datetime) -> str:
    return f"v{int(now.timestamp() * 1000)}-{uuid4().hex[:6]}"


def build_cost_summaries(
    records: Iterable[PayrollRecord], payroll_month_id: str, month: str
) -> list[CostSummary]:
    """Aggregate records per department × cost center × production line."""
    groups: dict[tuple[str, str, str], list[PayrollRecord]] = {}
    for record in records:
        key = (
            record.department_id or "",
            record.cost_center or "",
            record.production_line or "",
        )
        groups.setdefault(key, []).append(record)

    summaries = []
    for key in sorted(groups):
        members = groups[key]
        first = members[0]
        summaries.append(
            CostSummary(
                payroll_month_id=payroll_month_id,
                month=month,
                department_id=first.department_id,
                department_name=first.department_name,
                cost_center=first.cost_center,
                production_line=first.production_line,
                employee_count=len(members),
                total_gross=round_to_cents(sum((r.gross_salary for r in members), ZERO)),
                total_deductions=round_to_cents(
                    sum((r.total_deductions for r in members), ZERO)
                ),
                total_net=round_to_cents(sum((r.net_salary for r in members), ZERO)),
            )
        )
    return summaries


class PayrollFinalizer:
    """Freezes a draft payroll month against later configuration changes.

    Finalizing:
    1. Captures the calculation parameters into a versioned snapshot
    2. Stamps every record with the snapshot version and marks it locked
    3. Rewrites the month's cost summaries
    4. Moves the month draft → finalized with a compare-and-set write

    Steps 2 and 3 overwrite the same fields on every run, so a run that
    crashed midway is recovered by finalizing again.
    """

    def __init__(
        self,
        repositories: RepositoryBundle,
        audit: AuditService,
        config_service: HRConfigService,
        chunk_size: int = MAX_WRITE_CHUNK,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repos = repositories
        self.audit = audit
        self.config_service = config_service
        self.chunk_size = chunk_size
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def finalize(self, month: str, finalized_by: str) -> OperationResult[PayrollMonth]:
        try:
            month_range(month)
            async with hold_month_lock(self.repos.payroll, month):
                return OperationResult.success(await self._finalize(month, finalized_by))
        except HRError as exc:
            logger.warning("Finalization of payroll %s rejected: %s", month, exc)
            return OperationResult.failure(exc)

    async def _finalize(self, month: str, finalized_by: str) -> PayrollMonth:
        payroll = self.repos.payroll
        payroll_month = await payroll.get_month(month)
        if payroll_month is None:
            raise NotFoundError(f"Payroll month {month} not found")

        PayrollMonthStateMachine.validate_transition(
            payroll_month.status, PayrollMonthStatus.FINALIZED
        )

        records = await payroll.list_records(payroll_month.month_id)
        if not records:
            raise ValidationError(
                f"Payroll {month} has no records to finalize", code="no_records"
            )

        settings, late_rules, penalty_rules, allowance_types, config_snapshot = (
            await asyncio.gather(
                self.repos.config.get_hr_settings(),
                self.repos.config.list_late_rules(),
                self.repos.config.list_penalty_rules(active_only=False),
                self.repos.config.list_allowance_types(active_only=False),
                self.config_service.capture_version_snapshot(),
            )
        )
        settings = settings or HRSettings()
        now = self.clock()
        snapshot = PayrollSnapshot(
            version=snapshot_version(now),
            captured_at=now,
            overtime_multiplier=settings.overtime_multiplier,
            late_rules=tuple(r.to_dict() for r in late_rules),
            penalty_rules=tuple(r.to_dict() for r in penalty_rules),
            allowance_types=tuple(a.to_dict() for a in allowance_types),
            working_days_per_week=settings.working_days_per_week,
            working_hours_per_day=settings.working_hours_per_day,
            weekly_off_days=tuple(settings.weekly_off_days),
            allow_negative_salary=settings.allow_negative_salary,
        )

        for chunk in chunked([r.record_id for r in records], self.chunk_size):
            await payroll.stamp_records(chunk, snapshot.version, lock=True)

        summaries = build_cost_summaries(records, payroll_month.month_id, month)
        await payroll.replace_cost_summaries(payroll_month.month_id, summaries)

        finalized = replace(
            with_totals(payroll_month, records),
            status=PayrollMonthStatus.FINALIZED.value,
            finalized_at=now,
            finalized_by=finalized_by,
            snapshot_version=snapshot.version,
            snapshot=snapshot,
            config_version_snapshot=config_snapshot,
        )
        if not await payroll.update_month(
            finalized, expected_status=PayrollMonthStatus.DRAFT.value
        ):
            raise ConcurrencyConflictError(
                f"Payroll {month} changed during finalization", code="stale_write"
            )

        await self.audit.record(
            AuditEntityType.PAYROLL_MONTH,
            payroll_month.month_id,
            PayrollAuditAction.FINALIZE.value,
            finalized_by,
            details={
                "month": month,
                "snapshot_version": snapshot.version,
                "total_employees": finalized.total_employees,
                "total_net": str(finalized.total_net),
                "cost_summaries": len(summaries),
                "config_versions": config_snapshot.versions,
            },
        )
        logger.info("Payroll %s finalized as %s", month, snapshot.version)
        return finalized

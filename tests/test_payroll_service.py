"""Tests for payroll generation, finalization and locking."""

from datetime import date
from decimal import Decimal

import pytest

from workforce_payroll.calculators.types import HRSettings, PayrollEmployee
from workforce_payroll.entities import LeaveRequest, Loan, LoanStatus
from workforce_payroll.repositories import create_memory_repositories
from workforce_payroll.repositories.memory import InMemoryConfigRepository
from workforce_payroll.services.audit_service import AuditService
from workforce_payroll.services.config_service import HRConfigService
from workforce_payroll.services.finalizer import PayrollFinalizer, build_cost_summaries
from workforce_payroll.services.payroll_service import PayrollService

pytestmark = pytest.mark.asyncio

MONTH = "2024-03"


async def records_by_employee(container):
    return {r.employee_id: r for r in await container.payroll.list_records(MONTH)}


class TestGeneratePayroll:
    """Test draft payroll generation."""

    async def test_generate_creates_draft_month(self, container):
        result = await container.payroll.generate_payroll(MONTH, "emp-hr")

        assert result.ok
        summary = result.value
        assert summary.total_processed == 6
        assert summary.recalculated is False
        assert summary.errors == ()

        payroll_month = await container.payroll.get_month(MONTH)
        assert payroll_month.status == "draft"
        assert payroll_month.total_employees == 6
        assert payroll_month.generated_by == "emp-hr"
        assert payroll_month.config_version_snapshot is not None

        records = await records_by_employee(container)
        # No attendance: 31 days * 6/7 working days, all present.
        assert records["emp-worker"].working_days == 27
        assert records["emp-worker"].net_salary == Decimal("3000.00")
        assert records["emp-daily"].gross_salary == Decimal("3240.00")
        assert payroll_month.total_gross == Decimal("43240.00")

        trail = await container.payroll.audit_trail(MONTH)
        assert [e.action for e in trail] == ["generate"]

    async def test_regenerate_replaces_records(self, container, repositories, make_log):
        await container.payroll.generate_payroll(MONTH, "emp-hr")
        await repositories.attendance.save_logs(
            [make_log("emp-worker", date(2024, 3, day)) for day in range(4, 8)]
            + [make_log("emp-worker", date(2024, 3, 9), total_minutes=0, is_absent=True)]
        )

        result = await container.payroll.generate_payroll(MONTH, "emp-hr")

        assert result.ok
        assert result.value.recalculated is True
        records = await records_by_employee(container)
        assert len(records) == 6
        worker = records["emp-worker"]
        assert worker.working_days == 5
        assert worker.absent_days == 1
        assert worker.absence_deduction == Decimal("600.00")

        trail = await container.payroll.audit_trail(MONTH)
        assert [e.action for e in trail] == ["recalculate", "generate"]

    async def test_loans_and_unpaid_leave_are_deducted(self, container, repositories):
        loan = Loan.open("emp-worker", Decimal("1500"), 6, MONTH)
        loan.status = LoanStatus.ACTIVE.value
        await repositories.loans.add_loan(loan)
        await repositories.leaves.add_leave(
            LeaveRequest("emp-worker", "unpaid", date(2024, 3, 11), date(2024, 3, 12), Decimal("2"))
        )

        await container.payroll.generate_payroll(MONTH, "emp-hr")

        worker = (await records_by_employee(container))["emp-worker"]
        assert worker.loan_deduction == Decimal("250.00")
        assert worker.unpaid_leave_days == Decimal("2")
        # 3000 / 27 * 2
        assert worker.unpaid_leave_deduction == Decimal("222.22")
        assert worker.net_salary == Decimal("2527.78")

    async def test_invalid_month(self, container):
        result = await container.payroll.generate_payroll("2024-3", "emp-hr")
        assert not result.ok
        assert result.error_code == "invalid_month"

    async def test_missing_hr_settings(self, employees):
        repositories = create_memory_repositories(
            config=InMemoryConfigRepository(hr_settings=None), employees=employees
        )
        audit = AuditService(repositories.audit)
        service = PayrollService(repositories, audit, HRConfigService(repositories.config, audit))

        result = await service.generate_payroll(MONTH, "emp-hr")

        assert result.error_code == "missing_hr_settings"
        assert await repositories.payroll.get_month(MONTH) is None

    async def test_month_busy(self, container, repositories):
        await repositories.payroll.try_acquire_month_lock(MONTH, "someone-else")

        result = await container.payroll.generate_payroll(MONTH, "emp-hr")

        assert result.error_code == "month_busy"
        assert await repositories.payroll.get_month(MONTH) is None

    async def test_lock_released_after_failure(self, container, repositories):
        await container.payroll.generate_payroll(MONTH, "emp-hr")
        await container.finalizer.finalize(MONTH, "emp-hr")

        failed = await container.payroll.generate_payroll(MONTH, "emp-hr")

        assert failed.error_code == "month_finalized"
        assert repositories.payroll.month_locks == {}

    async def test_writes_are_chunked(self, repositories, clock):
        audit = AuditService(repositories.audit)
        service = PayrollService(
            repositories,
            audit,
            HRConfigService(repositories.config, audit),
            batch_size=4,
            chunk_size=2,
            clock=clock,
        )

        await service.generate_payroll(MONTH, "emp-hr")

        assert repositories.payroll.insert_batches == [2, 2, 2]

    async def test_failed_employee_is_reported(self, container):
        employees = [
            PayrollEmployee("emp-a", "Valid", Decimal("3000")),
            PayrollEmployee("emp-b", "Broken", Decimal("3000"), employment_type="contract"),
        ]

        result = await container.payroll.generate_payroll(MONTH, "emp-hr", employees=employees)

        assert result.ok
        assert result.value.total_processed == 1
        assert [e.employee_id for e in result.value.errors] == ["emp-b"]
        assert result.warnings and result.warnings[0].startswith("emp-b:")


class TestAdjustRecord:
    """Test manual edits on draft records."""

    async def test_adjust_recomputes_net_and_totals(self, container):
        await container.payroll.generate_payroll(MONTH, "emp-hr")
        worker = (await records_by_employee(container))["emp-worker"]

        result = await container.payroll.adjust_record(
            worker.record_id, "emp-hr", other_penalties=Decimal("100"), reason="damage"
        )

        assert result.ok
        assert result.value.other_penalties == Decimal("100.00")
        assert result.value.net_salary == Decimal("2900.00")
        payroll_month = await container.payroll.get_month(MONTH)
        assert payroll_month.total_net == Decimal("43140.00")

        trail = await container.payroll.audit_trail(MONTH)
        assert trail[0].action == "edit"
        assert trail[0].details["changes"] == {"other_penalties": ["0.00", "100.00"]}

    async def test_adjust_rejected_after_finalize(self, container):
        await container.payroll.generate_payroll(MONTH, "emp-hr")
        await container.finalizer.finalize(MONTH, "emp-hr")
        worker = (await records_by_employee(container))["emp-worker"]

        result = await container.payroll.adjust_record(
            worker.record_id, "emp-hr", transport_deduction=Decimal("50")
        )

        assert result.error_code == "month_finalized"

    async def test_adjust_unknown_record(self, container):
        result = await container.payroll.adjust_record("missing", "emp-hr")
        assert result.error_code == "not_found"


class TestFinalizeAndLock:
    """Test draft → finalized → locked."""

    async def test_finalize_snapshots_and_locks_records(self, container):
        await container.payroll.generate_payroll(MONTH, "emp-hr")

        result = await container.finalizer.finalize(MONTH, "emp-hr")

        assert result.ok
        finalized = result.value
        assert finalized.status == "finalized"
        assert finalized.snapshot.version == finalized.snapshot_version
        assert finalized.snapshot.overtime_multiplier == Decimal("1.5")
        assert len(finalized.snapshot.late_rules) == 3

        records = await container.payroll.list_records(MONTH)
        assert all(r.is_locked for r in records)
        assert {r.calculation_snapshot_version for r in records} == {finalized.snapshot_version}

        summaries = await container.payroll.list_cost_summaries(MONTH)
        keys = [(s.department_id, s.cost_center, s.production_line) for s in summaries]
        assert keys == [
            ("dep-admin", "CC-900", None),
            ("dep-hr", "CC-200", None),
            ("dep-prod", "CC-100", None),
            ("dep-prod", "CC-100", "L1"),
            ("dep-prod", "CC-100", "L2"),
        ]
        line_one = summaries[3]
        assert line_one.employee_count == 2
        assert line_one.total_net == Decimal("9000.00")

    async def test_finalize_without_month(self, container):
        result = await container.finalizer.finalize(MONTH, "emp-hr")
        assert result.error_code == "not_found"

    async def test_finalize_twice_rejected(self, container):
        await container.payroll.generate_payroll(MONTH, "emp-hr")
        await container.finalizer.finalize(MONTH, "emp-hr")

        result = await container.finalizer.finalize(MONTH, "emp-hr")

        assert result.error_code == "invalid_transition"

    async def test_finalize_empty_month(self, repositories, clock):
        audit = AuditService(repositories.audit)
        config = HRConfigService(repositories.config, audit)
        service = PayrollService(repositories, audit, config, clock=clock)
        await service.generate_payroll(MONTH, "emp-hr", employees=[])

        result = await PayrollFinalizer(repositories, audit, config, clock=clock).finalize(
            MONTH, "emp-hr"
        )

        assert result.error_code == "no_records"

    async def test_lock_requires_finalized(self, container):
        await container.payroll.generate_payroll(MONTH, "emp-hr")

        result = await container.locker.lock(MONTH, "emp-hr")

        assert result.error_code == "invalid_transition"

    async def test_lock_is_terminal(self, container):
        await container.payroll.generate_payroll(MONTH, "emp-hr")
        await container.finalizer.finalize(MONTH, "emp-hr")

        locked = await container.locker.lock(MONTH, "emp-exec")
        regenerate = await container.payroll.generate_payroll(MONTH, "emp-hr")

        assert locked.ok
        assert locked.value.status == "locked"
        assert locked.value.locked_by == "emp-exec"
        assert regenerate.error_code == "month_locked"

        trail = await container.payroll.audit_trail(MONTH)
        assert [e.action for e in trail] == ["lock", "finalize", "generate"]

    async def test_cost_summaries_of_no_records(self):
        assert build_cost_summaries([], "m-1", MONTH) == []


class TestSettingsSnapshotIsolation:
    """Test that finalized months keep their calculation parameters."""

    async def test_later_settings_change_does_not_touch_snapshot(self, container, repositories):
        await container.payroll.generate_payroll(MONTH, "emp-hr")
        await container.finalizer.finalize(MONTH, "emp-hr")

        await repositories.config.save_hr_settings(HRSettings(overtime_multiplier=Decimal("2")))

        payroll_month = await container.payroll.get_month(MONTH)
        assert payroll_month.snapshot.overtime_multiplier == Decimal("1.5")

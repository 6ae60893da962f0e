"""In-memory repositories.

Used by the test-suite and for local demos. Objects are copied on the way in
and out so callers never share state with the store.
"""

from __future__ import annotations

import copy
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Iterable, TypeVar

from workforce_payroll.calculators.types import (
    AllowanceType,
    HRSettings,
    LateRule,
    PenaltyRule,
)
from workforce_payroll.entities import (
    ApprovalDelegation,
    ApprovalEmployee,
    ApprovalRequest,
    ApprovalSettings,
    AttendanceLog,
    AuditLogEntry,
    ConfigModule,
    CostSummary,
    Employee,
    LeaveRequest,
    Loan,
    LoanStatus,
    PayrollMonth,
    PayrollRecord,
    StoredPunch,
)
from workforce_payroll.repositories.base import RepositoryBundle, approval_view

T = TypeVar("T")


def _copy(value: T) -> T:
    return copy.deepcopy(value)


class InMemoryConfigRepository:
    def __init__(
        self,
        hr_settings: HRSettings | None = None,
        late_rules: Iterable[LateRule] = (),
        penalty_rules: Iterable[PenaltyRule] = (),
        allowance_types: Iterable[AllowanceType] = (),
        approval_settings: ApprovalSettings | None = None,
    ):
        self.hr_settings = hr_settings
        self.late_rules = list(late_rules)
        self.penalty_rules = list(penalty_rules)
        self.allowance_types = list(allowance_types)
        self.approval_settings = approval_settings or ApprovalSettings()
        self.modules: dict[str, ConfigModule] = {}

    async def get_hr_settings(self) -> HRSettings | None:
        return self.hr_settings

    async def save_hr_settings(self, settings: HRSettings) -> None:
        self.hr_settings = settings

    async def list_late_rules(self) -> list[LateRule]:
        return sorted(self.late_rules, key=lambda r: r.minutes_from)

    async def list_penalty_rules(self, active_only: bool = True) -> list[PenaltyRule]:
        return [r for r in self.penalty_rules if r.is_active or not active_only]

    async def list_allowance_types(self, active_only: bool = True) -> list[AllowanceType]:
        return [a for a in self.allowance_types if a.is_active or not active_only]

    async def get_approval_settings(self) -> ApprovalSettings:
        return self.approval_settings

    async def get_config_module(self, name: str) -> ConfigModule | None:
        module = self.modules.get(name)
        return _copy(module) if module else None

    async def list_config_modules(self) -> list[ConfigModule]:
        return [_copy(m) for m in self.modules.values()]

    async def save_config_module(self, module: ConfigModule, expected_version: int) -> bool:
        stored = self.modules.get(module.name)
        stored_version = stored.config_version if stored else 0
        if stored_version != expected_version:
            return False
        self.modules[module.name] = _copy(module)
        return True


class InMemoryEmployeeRepository:
    def __init__(self, employees: Iterable[Employee] = ()):
        self.employees: dict[str, Employee] = {e.employee_id: e for e in employees}

    def add(self, employee: Employee) -> None:
        self.employees[employee.employee_id] = employee

    async def get_employee(self, employee_id: str) -> Employee | None:
        return self.employees.get(employee_id)

    async def list_active_employees(self) -> list[Employee]:
        return sorted(
            (e for e in self.employees.values() if e.is_active),
            key=lambda e: e.employee_name,
        )

    async def get_device_code_map(self) -> dict[str, str]:
        return {
            e.device_code: e.employee_id
            for e in self.employees.values()
            if e.device_code and e.is_active
        }

    async def get_approval_employees(self) -> dict[str, ApprovalEmployee]:
        return {e.employee_id: approval_view(e) for e in self.employees.values()}


class InMemoryAttendanceRepository:
    def __init__(self) -> None:
        self.punches: list[StoredPunch] = []
        self.logs: dict[tuple[str, date], AttendanceLog] = {}

    async def save_raw_punches(self, punches: list[StoredPunch]) -> int:
        self.punches.extend(punches)
        return len(punches)

    async def save_logs(self, logs: list[AttendanceLog]) -> int:
        for log in logs:
            self.logs[(log.employee_id, log.date)] = _copy(log)
        return len(logs)

    async def list_logs(self, start: date, end: date) -> list[AttendanceLog]:
        return [
            _copy(log)
            for key, log in sorted(self.logs.items())
            if start <= key[1] <= end
        ]


class InMemoryLeaveRepository:
    def __init__(self, leaves: Iterable[LeaveRequest] = ()):
        self.leaves = list(leaves)

    async def add_leave(self, leave: LeaveRequest) -> None:
        self.leaves.append(leave)

    async def list_approved_leaves(self, start: date, end: date) -> list[LeaveRequest]:
        return [
            leave
            for leave in self.leaves
            if leave.status == "approved" and leave.start_date <= end and leave.end_date >= start
        ]


class InMemoryLoanRepository:
    def __init__(self, loans: Iterable[Loan] = ()):
        self.loans: dict[str, Loan] = {loan.loan_id: _copy(loan) for loan in loans}

    async def add_loan(self, loan: Loan) -> None:
        self.loans[loan.loan_id] = _copy(loan)

    async def get_loan(self, loan_id: str) -> Loan | None:
        loan = self.loans.get(loan_id)
        return _copy(loan) if loan else None

    async def update_loan(self, loan: Loan, expected_status: str) -> bool:
        stored = self.loans.get(loan.loan_id)
        if stored is None or stored.status != expected_status:
            return False
        self.loans[loan.loan_id] = _copy(loan)
        return True

    async def list_active_loans(self, employee_id: str | None = None) -> list[Loan]:
        return [
            _copy(loan)
            for loan in self.loans.values()
            if loan.status == LoanStatus.ACTIVE.value
            and (employee_id is None or loan.employee_id == employee_id)
        ]


class InMemoryPayrollRepository:
    def __init__(self) -> None:
        self.months: dict[str, PayrollMonth] = {}
        self.records: dict[str, PayrollRecord] = {}
        self.cost_summaries: dict[str, list[CostSummary]] = {}
        self.month_locks: dict[str, str] = {}
        # Sizes of every insert_records call, for chunking assertions.
        self.insert_batches: list[int] = []

    async def try_acquire_month_lock(self, month: str, holder: str) -> bool:
        if month in self.month_locks:
            return False
        self.month_locks[month] = holder
        return True

    async def release_month_lock(self, month: str, holder: str) -> None:
        if self.month_locks.get(month) == holder:
            del self.month_locks[month]

    async def get_month(self, month: str) -> PayrollMonth | None:
        stored = self.months.get(month)
        return _copy(stored) if stored else None

    async def create_month(self, payroll_month: PayrollMonth) -> None:
        if payroll_month.month in self.months:
            raise ValueError(f"Payroll month {payroll_month.month} already exists")
        self.months[payroll_month.month] = _copy(payroll_month)

    async def update_month(self, payroll_month: PayrollMonth, expected_status: str) -> bool:
        stored = self.months.get(payroll_month.month)
        if stored is None or stored.status != expected_status:
            return False
        self.months[payroll_month.month] = _copy(payroll_month)
        return True

    async def delete_records(self, payroll_month_id: str) -> int:
        doomed = [
            rid for rid, r in self.records.items() if r.payroll_month_id == payroll_month_id
        ]
        for rid in doomed:
            del self.records[rid]
        return len(doomed)

    async def insert_records(self, records: list[PayrollRecord]) -> None:
        self.insert_batches.append(len(records))
        for record in records:
            self.records[record.record_id] = _copy(record)

    async def list_records(self, payroll_month_id: str) -> list[PayrollRecord]:
        return sorted(
            (_copy(r) for r in self.records.values() if r.payroll_month_id == payroll_month_id),
            key=lambda r: (r.employee_name, r.employee_id),
        )

    async def get_record(self, record_id: str) -> PayrollRecord | None:
        record = self.records.get(record_id)
        return _copy(record) if record else None

    async def update_record(self, record: PayrollRecord) -> bool:
        stored = self.records.get(record.record_id)
        if stored is None or stored.is_locked:
            return False
        self.records[record.record_id] = _copy(record)
        return True

    async def stamp_records(
        self, record_ids: list[str], snapshot_version: str | None, lock: bool
    ) -> int:
        count = 0
        for rid in record_ids:
            stored = self.records.get(rid)
            if stored is None:
                continue
            version = snapshot_version or stored.calculation_snapshot_version
            self.records[rid] = replace(
                stored,
                calculation_snapshot_version=version,
                is_locked=stored.is_locked or lock,
            )
            count += 1
        return count

    async def replace_cost_summaries(
        self, payroll_month_id: str, summaries: list[CostSummary]
    ) -> None:
        self.cost_summaries[payroll_month_id] = list(summaries)

    async def list_cost_summaries(self, payroll_month_id: str) -> list[CostSummary]:
        return list(self.cost_summaries.get(payroll_month_id, []))


class InMemoryApprovalRepository:
    def __init__(self) -> None:
        self.requests: dict[str, ApprovalRequest] = {}
        self.delegations: list[ApprovalDelegation] = []

    async def add_request(self, request: ApprovalRequest) -> None:
        self.requests[request.request_id] = _copy(request)

    async def get_request(self, request_id: str) -> ApprovalRequest | None:
        request = self.requests.get(request_id)
        return _copy(request) if request else None

    async def update_request(
        self,
        request: ApprovalRequest,
        expected_version: int,
        expected_step: int,
    ) -> bool:
        stored = self.requests.get(request.request_id)
        if (
            stored is None
            or stored.version != expected_version
            or stored.current_step != expected_step
        ):
            return False
        self.requests[request.request_id] = _copy(
            replace(request, version=expected_version + 1)
        )
        return True

    async def list_requests(
        self,
        employee_id: str | None = None,
        request_type: str | None = None,
        status: str | None = None,
    ) -> list[ApprovalRequest]:
        matches = [
            r
            for r in self.requests.values()
            if (employee_id is None or r.employee_id == employee_id)
            and (request_type is None or r.request_type == request_type)
            and (status is None or r.status == status)
        ]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        matches.sort(key=lambda r: r.created_at or epoch, reverse=True)
        return [_copy(r) for r in matches]

    async def list_open_requests(self) -> list[ApprovalRequest]:
        return [
            _copy(r)
            for r in self.requests.values()
            if r.status in ("pending", "in_progress")
        ]

    async def add_delegation(self, delegation: ApprovalDelegation) -> None:
        self.delegations.append(delegation)

    async def list_delegations(self, active_only: bool = True) -> list[ApprovalDelegation]:
        return [d for d in self.delegations if d.is_active or not active_only]


class InMemoryAuditRepository:
    def __init__(self) -> None:
        self.entries: list[AuditLogEntry] = []

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        stored = replace(entry, recorded_at=datetime.now(timezone.utc))
        self.entries.append(stored)
        return stored

    async def list_entries(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
        employee_id: str | None = None,
        performed_by: str | None = None,
        action: str | None = None,
    ) -> list[AuditLogEntry]:
        return [
            e
            for e in reversed(self.entries)
            if (entity_type is None or e.entity_type == entity_type)
            and (entity_id is None or e.entity_id == entity_id)
            and (employee_id is None or e.employee_id == employee_id)
            and (performed_by is None or e.performed_by == performed_by)
            and (action is None or e.action == action)
        ]


def create_memory_repositories(
    config: InMemoryConfigRepository | None = None,
    employees: Iterable[Employee] = (),
) -> RepositoryBundle:
    """Fresh, empty in-memory backend."""
    return RepositoryBundle(
        config=config or InMemoryConfigRepository(hr_settings=HRSettings()),
        employees=InMemoryEmployeeRepository(employees),
        attendance=InMemoryAttendanceRepository(),
        leaves=InMemoryLeaveRepository(),
        loans=InMemoryLoanRepository(),
        payroll=InMemoryPayrollRepository(),
        approvals=InMemoryApprovalRepository(),
        audit=InMemoryAuditRepository(),
    )

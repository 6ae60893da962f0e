"""Storage contracts used by the services.

Every service receives its repositories explicitly. The in-memory and
SQLAlchemy implementations honour the same contract, including the
compare-and-set semantics of the ``update_*`` methods.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Protocol, TypeVar

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
    PayrollMonth,
    PayrollRecord,
    StoredPunch,
)

T = TypeVar("T")

MAX_WRITE_CHUNK = 500
DEFAULT_MONTH_LOCK_TTL_SECONDS = 900


def chunked(items: list[T], size: int = MAX_WRITE_CHUNK) -> list[list[T]]:
    """Split a list into consecutive chunks of at most ``size`` items (never above 500)."""
    size = max(1, min(size, MAX_WRITE_CHUNK))
    return [items[i:i + size] for i in range(0, len(items), size)]


def approval_view(employee: Employee) -> ApprovalEmployee:
    """Org-chart projection of an employee used for approval chains."""
    return ApprovalEmployee(
        employee_id=employee.employee_id,
        employee_name=employee.employee_name,
        job_level=employee.job_level,
        manager_id=employee.manager_id,
        department_id=employee.department_id,
        department_name=employee.department_name,
        job_position_id=employee.job_position_id,
        job_title=employee.job_title,
    )


class ConfigRepository(Protocol):
    """HR settings, rule tables and versioned config modules."""

    async def get_hr_settings(self) -> HRSettings | None:
        ...

    async def save_hr_settings(self, settings: HRSettings) -> None:
        ...

    async def list_late_rules(self) -> list[LateRule]:
        """Late rules ordered by ``minutes_from``."""
        ...

    async def list_penalty_rules(self, active_only: bool = True) -> list[PenaltyRule]:
        ...

    async def list_allowance_types(self, active_only: bool = True) -> list[AllowanceType]:
        ...

    async def get_approval_settings(self) -> ApprovalSettings:
        ...

    async def get_config_module(self, name: str) -> ConfigModule | None:
        ...

    async def list_config_modules(self) -> list[ConfigModule]:
        ...

    async def save_config_module(
        self, module: ConfigModule, expected_version: int
    ) -> bool:
        """Write the module if the stored version still equals ``expected_version``."""
        ...


class EmployeeRepository(Protocol):
    async def get_employee(self, employee_id: str) -> Employee | None:
        ...

    async def list_active_employees(self) -> list[Employee]:
        ...

    async def get_device_code_map(self) -> dict[str, str]:
        """Device user code -> employee id."""
        ...

    async def get_approval_employees(self) -> dict[str, ApprovalEmployee]:
        ...


class AttendanceRepository(Protocol):
    async def save_raw_punches(self, punches: list[StoredPunch]) -> int:
        ...

    async def save_logs(self, logs: list[AttendanceLog]) -> int:
        """Upsert logs keyed by (employee_id, date)."""
        ...

    async def list_logs(self, start: date, end: date) -> list[AttendanceLog]:
        ...


class LeaveRepository(Protocol):
    async def add_leave(self, leave: LeaveRequest) -> None:
        ...

    async def list_approved_leaves(self, start: date, end: date) -> list[LeaveRequest]:
        """Approved leaves overlapping the inclusive date range."""
        ...


class LoanRepository(Protocol):
    async def add_loan(self, loan: Loan) -> None:
        ...

    async def get_loan(self, loan_id: str) -> Loan | None:
        ...

    async def update_loan(self, loan: Loan, expected_status: str) -> bool:
        ...

    async def list_active_loans(self, employee_id: str | None = None) -> list[Loan]:
        ...


class PayrollRepository(Protocol):
    """Payroll months, records and cost summaries."""

    async def try_acquire_month_lock(self, month: str, holder: str) -> bool:
        """Single-writer lock for one month; False when already held."""
        ...

    async def release_month_lock(self, month: str, holder: str) -> None:
        ...

    async def get_month(self, month: str) -> PayrollMonth | None:
        ...

    async def create_month(self, payroll_month: PayrollMonth) -> None:
        ...

    async def update_month(self, payroll_month: PayrollMonth, expected_status: str) -> bool:
        """Compare-and-set on the stored status."""
        ...

    async def delete_records(self, payroll_month_id: str) -> int:
        ...

    async def insert_records(self, records: list[PayrollRecord]) -> None:
        ...

    async def list_records(self, payroll_month_id: str) -> list[PayrollRecord]:
        ...

    async def get_record(self, record_id: str) -> PayrollRecord | None:
        ...

    async def update_record(self, record: PayrollRecord) -> bool:
        """Update an unlocked record; False if it is locked or missing."""
        ...

    async def stamp_records(
        self, record_ids: list[str], snapshot_version: str | None, lock: bool
    ) -> int:
        ...

    async def replace_cost_summaries(
        self, payroll_month_id: str, summaries: list[CostSummary]
    ) -> None:
        ...

    async def list_cost_summaries(self, payroll_month_id: str) -> list[CostSummary]:
        ...


class ApprovalRepository(Protocol):
    async def add_request(self, request: ApprovalRequest) -> None:
        ...

    async def get_request(self, request_id: str) -> ApprovalRequest | None:
        ...

    async def update_request(
        self,
        request: ApprovalRequest,
        expected_version: int,
        expected_step: int,
    ) -> bool:
        """Persist a transition if nobody else moved the request meanwhile.

        On success the stored version becomes ``expected_version + 1``.
        """
        ...

    async def list_requests(
        self,
        employee_id: str | None = None,
        request_type: str | None = None,
        status: str | None = None,
    ) -> list[ApprovalRequest]:
        ...

    async def list_open_requests(self) -> list[ApprovalRequest]:
        ...

    async def add_delegation(self, delegation: ApprovalDelegation) -> None:
        ...

    async def list_delegations(self, active_only: bool = True) -> list[ApprovalDelegation]:
        ...


class AuditRepository(Protocol):
    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Store the entry and return it with ``recorded_at`` set."""
        ...

    async def list_entries(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
        employee_id: str | None = None,
        performed_by: str | None = None,
        action: str | None = None,
    ) -> list[AuditLogEntry]:
        """Entries matching every given filter, newest first."""
        ...


@dataclass
class RepositoryBundle:
    """All repositories of one storage backend."""

    config: ConfigRepository
    employees: EmployeeRepository
    attendance: AttendanceRepository
    leaves: LeaveRepository
    loans: LoanRepository
    payroll: PayrollRepository
    approvals: ApprovalRepository
    audit: AuditRepository

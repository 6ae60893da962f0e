"""SQLAlchemy repositories.

Each method runs in its own short transaction. Conditional writes are plain
``UPDATE ... WHERE <expected state>`` statements whose rowcount tells the
service whether it won the race.
"""

from __future__ import annotations

import dataclasses
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from workforce_payroll import models
from workforce_payroll.calculators.types import (
    AllowanceType,
    HRSettings,
    LateRule,
    PenaltyCategory,
    PenaltyRule,
    ValueType,
)
from workforce_payroll.entities import (
    ApprovalDelegation,
    ApprovalEmployee,
    ApprovalRequest,
    ApprovalSettings,
    ApprovalStep,
    AttendanceLog,
    AuditLogEntry,
    AutoApproveThreshold,
    ConfigModule,
    ConfigVersionSnapshot,
    CostSummary,
    Employee,
    HistoryEntry,
    LeaveRequest,
    Loan,
    LoanStatus,
    PayrollMonth,
    PayrollRecord,
    PayrollSnapshot,
    RequestStatus,
    StoredPunch,
    new_id,
)
from workforce_payroll.repositories.base import (
    DEFAULT_MONTH_LOCK_TTL_SECONDS,
    RepositoryBundle,
    approval_view,
)

logger = logging.getLogger(__name__)

DEFAULT_MONTH_LOCK_TTL = timedelta(seconds=DEFAULT_MONTH_LOCK_TTL_SECONDS)
HR_SETTINGS_KEY = "hr"
APPROVAL_SETTINGS_KEY = "approval"


def _aware(value: datetime | None) -> datetime | None:
    """Attach UTC to timestamps read back from backends that drop the zone."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _field_values(entity: Any) -> dict[str, Any]:
    return {f.name: getattr(entity, f.name) for f in dataclasses.fields(entity)}


def _from_row(cls: type, row: Any, **overrides: Any) -> Any:
    values = {
        f.name: getattr(row, f.name)
        for f in dataclasses.fields(cls)
        if f.name not in overrides and hasattr(row, f.name)
    }
    values.update(overrides)
    return cls(**values)


class _SqlRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


# ===== Settings & Config =====


def approval_settings_to_dict(settings: ApprovalSettings) -> dict[str, Any]:
    return {
        "max_approval_levels": settings.max_approval_levels,
        "hr_always_final_level": settings.hr_always_final_level,
        "escalation_days": settings.escalation_days,
        "allow_delegation": settings.allow_delegation,
        "hr_approver_id": settings.hr_approver_id,
        "auto_approve_thresholds": [
            {"request_type": t.request_type, "field": t.field, "max_value": str(t.max_value)}
            for t in settings.auto_approve_thresholds
        ],
    }


def approval_settings_from_dict(data: dict[str, Any]) -> ApprovalSettings:
    return ApprovalSettings(
        max_approval_levels=int(data.get("max_approval_levels", 4)),
        hr_always_final_level=bool(data.get("hr_always_final_level", True)),
        escalation_days=int(data.get("escalation_days", 3)),
        allow_delegation=bool(data.get("allow_delegation", True)),
        hr_approver_id=data.get("hr_approver_id"),
        auto_approve_thresholds=tuple(
            AutoApproveThreshold(
                request_type=t["request_type"],
                field=t["field"],
                max_value=Decimal(str(t["max_value"])),
            )
            for t in data.get("auto_approve_thresholds", [])
        ),
    )


class SqlConfigRepository(_SqlRepository):
    async def _get_document(self, key: str) -> dict[str, Any] | None:
        async with self._session() as session:
            row = await session.get(models.SettingsDocument, key)
            return dict(row.payload) if row else None

    async def _put_document(self, key: str, payload: dict[str, Any]) -> None:
        async with self._session() as session:
            row = await session.get(models.SettingsDocument, key)
            now = datetime.now(timezone.utc)
            if row is None:
                session.add(models.SettingsDocument(settings_key=key, payload=payload, updated_at=now))
            else:
                row.payload = payload
                row.updated_at = now

    async def get_hr_settings(self) -> HRSettings | None:
        payload = await self._get_document(HR_SETTINGS_KEY)
        return HRSettings.from_dict(payload) if payload is not None else None

    async def save_hr_settings(self, settings: HRSettings) -> None:
        await self._put_document(HR_SETTINGS_KEY, settings.to_dict())

    async def get_approval_settings(self) -> ApprovalSettings:
        payload = await self._get_document(APPROVAL_SETTINGS_KEY)
        return approval_settings_from_dict(payload) if payload is not None else ApprovalSettings()

    async def save_approval_settings(self, settings: ApprovalSettings) -> None:
        await self._put_document(APPROVAL_SETTINGS_KEY, approval_settings_to_dict(settings))

    async def list_late_rules(self) -> list[LateRule]:
        async with self._session() as session:
            result = await session.execute(
                select(models.LateRule).order_by(models.LateRule.minutes_from)
            )
            return [
                LateRule(
                    minutes_from=row.minutes_from,
                    minutes_to=row.minutes_to,
                    penalty_type=ValueType(row.penalty_type),
                    penalty_value=row.penalty_value,
                    rule_id=row.rule_id,
                )
                for row in result.scalars()
            ]

    async def add_late_rule(self, rule: LateRule) -> None:
        async with self._session() as session:
            session.add(
                models.LateRule(
                    rule_id=rule.rule_id or new_id(),
                    minutes_from=rule.minutes_from,
                    minutes_to=rule.minutes_to,
                    penalty_type=rule.penalty_type.value,
                    penalty_value=rule.penalty_value,
                )
            )

    async def list_penalty_rules(self, active_only: bool = True) -> list[PenaltyRule]:
        stmt = select(models.PenaltyRule).order_by(models.PenaltyRule.name)
        if active_only:
            stmt = stmt.where(models.PenaltyRule.is_active.is_(True))
        async with self._session() as session:
            result = await session.execute(stmt)
            return [
                PenaltyRule(
                    name=row.name,
                    category=PenaltyCategory(row.category),
                    value_type=ValueType(row.value_type),
                    value=row.value,
                    is_active=row.is_active,
                    rule_id=row.rule_id,
                )
                for row in result.scalars()
            ]

    async def add_penalty_rule(self, rule: PenaltyRule) -> None:
        async with self._session() as session:
            session.add(
                models.PenaltyRule(
                    rule_id=rule.rule_id or new_id(),
                    name=rule.name,
                    category=rule.category.value,
                    value_type=rule.value_type.value,
                    value=rule.value,
                    is_active=rule.is_active,
                )
            )

    async def list_allowance_types(self, active_only: bool = True) -> list[AllowanceType]:
        stmt = select(models.AllowanceType).order_by(models.AllowanceType.name)
        if active_only:
            stmt = stmt.where(models.AllowanceType.is_active.is_(True))
        async with self._session() as session:
            result = await session.execute(stmt)
            return [
                AllowanceType(
                    name=row.name,
                    calculation_type=ValueType(row.calculation_type),
                    value=row.value,
                    is_active=row.is_active,
                    allowance_id=row.allowance_id,
                )
                for row in result.scalars()
            ]

    async def add_allowance_type(self, allowance: AllowanceType) -> None:
        async with self._session() as session:
            session.add(
                models.AllowanceType(
                    allowance_id=allowance.allowance_id or new_id(),
                    name=allowance.name,
                    calculation_type=allowance.calculation_type.value,
                    value=allowance.value,
                    is_active=allowance.is_active,
                )
            )

    async def get_config_module(self, name: str) -> ConfigModule | None:
        async with self._session() as session:
            row = await session.get(models.HRConfigModule, name)
            return self._to_module(row) if row else None

    async def list_config_modules(self) -> list[ConfigModule]:
        async with self._session() as session:
            result = await session.execute(
                select(models.HRConfigModule).order_by(models.HRConfigModule.name)
            )
            return [self._to_module(row) for row in result.scalars()]

    async def save_config_module(self, module: ConfigModule, expected_version: int) -> bool:
        values = _jsonable(module.values)
        try:
            async with self._session() as session:
                if expected_version == 0:
                    existing = await session.get(models.HRConfigModule, module.name)
                    if existing is not None:
                        return existing.config_version == 0 and await self._overwrite(
                            session, module, values, 0
                        )
                    session.add(
                        models.HRConfigModule(
                            name=module.name,
                            values=values,
                            config_version=module.config_version,
                            updated_at=module.updated_at,
                            updated_by=module.updated_by,
                        )
                    )
                    return True
                return await self._overwrite(session, module, values, expected_version)
        except IntegrityError:
            # Another writer created the module first.
            return False

    @staticmethod
    async def _overwrite(
        session: AsyncSession,
        module: ConfigModule,
        values: dict[str, Any],
        expected_version: int,
    ) -> bool:
        result = await session.execute(
            update(models.HRConfigModule)
            .where(
                models.HRConfigModule.name == module.name,
                models.HRConfigModule.config_version == expected_version,
            )
            .values(
                values=values,
                config_version=module.config_version,
                updated_at=module.updated_at,
                updated_by=module.updated_by,
            )
        )
        return result.rowcount == 1

    @staticmethod
    def _to_module(row: models.HRConfigModule) -> ConfigModule:
        return ConfigModule(
            name=row.name,
            values=dict(row.values),
            config_version=row.config_version,
            updated_at=_aware(row.updated_at),
            updated_by=row.updated_by,
        )


# ===== Employees =====


class SqlEmployeeRepository(_SqlRepository):
    async def add(self, employee: Employee) -> None:
        async with self._session() as session:
            session.add(models.Employee(**_field_values(employee)))

    async def get_employee(self, employee_id: str) -> Employee | None:
        async with self._session() as session:
            row = await session.get(models.Employee, employee_id)
            return _from_row(Employee, row) if row else None

    async def list_active_employees(self) -> list[Employee]:
        async with self._session() as session:
            result = await session.execute(
                select(models.Employee)
                .where(models.Employee.is_active.is_(True))
                .order_by(models.Employee.employee_name)
            )
            return [_from_row(Employee, row) for row in result.scalars()]

    async def get_device_code_map(self) -> dict[str, str]:
        async with self._session() as session:
            result = await session.execute(
                select(models.Employee.device_code, models.Employee.employee_id).where(
                    models.Employee.is_active.is_(True),
                    models.Employee.device_code.is_not(None),
                )
            )
            return {code: employee_id for code, employee_id in result.all()}

    async def get_approval_employees(self) -> dict[str, ApprovalEmployee]:
        async with self._session() as session:
            result = await session.execute(select(models.Employee))
            employees = [_from_row(Employee, row) for row in result.scalars()]
        return {e.employee_id: approval_view(e) for e in employees}


# ===== Attendance, Leave, Loans =====


class SqlAttendanceRepository(_SqlRepository):
    async def save_raw_punches(self, punches: list[StoredPunch]) -> int:
        if not punches:
            return 0
        async with self._session() as session:
            await session.execute(
                insert(models.RawPunch), [_field_values(p) for p in punches]
            )
        return len(punches)

    async def save_logs(self, logs: list[AttendanceLog]) -> int:
        """Insert or replace the log of each (employee, work date)."""
        if not logs:
            return 0
        async with self._session() as session:
            for log in logs:
                await session.execute(
                    delete(models.AttendanceLog).where(
                        models.AttendanceLog.employee_id == log.employee_id,
                        models.AttendanceLog.work_date == log.date,
                    )
                )
            rows = []
            for log in logs:
                values = _field_values(log)
                values["work_date"] = values.pop("date")
                rows.append(values)
            await session.execute(insert(models.AttendanceLog), rows)
        return len(logs)

    async def list_logs(self, start: date, end: date) -> list[AttendanceLog]:
        async with self._session() as session:
            result = await session.execute(
                select(models.AttendanceLog)
                .where(models.AttendanceLog.work_date.between(start, end))
                .order_by(models.AttendanceLog.employee_id, models.AttendanceLog.work_date)
            )
            return [
                _from_row(
                    AttendanceLog,
                    row,
                    date=row.work_date,
                    check_in=_aware(row.check_in),
                    check_out=_aware(row.check_out),
                )
                for row in result.scalars()
            ]


class SqlLeaveRepository(_SqlRepository):
    async def add_leave(self, leave: LeaveRequest) -> None:
        async with self._session() as session:
            session.add(models.LeaveRequest(**_field_values(leave)))

    async def list_approved_leaves(self, start: date, end: date) -> list[LeaveRequest]:
        async with self._session() as session:
            result = await session.execute(
                select(models.LeaveRequest).where(
                    models.LeaveRequest.status == "approved",
                    models.LeaveRequest.start_date <= end,
                    models.LeaveRequest.end_date >= start,
                )
            )
            return [_from_row(LeaveRequest, row) for row in result.scalars()]


class SqlLoanRepository(_SqlRepository):
    async def add_loan(self, loan: Loan) -> None:
        async with self._session() as session:
            session.add(models.Loan(**_field_values(loan)))

    async def get_loan(self, loan_id: str) -> Loan | None:
        async with self._session() as session:
            row = await session.get(models.Loan, loan_id)
            return _from_row(Loan, row) if row else None

    async def update_loan(self, loan: Loan, expected_status: str) -> bool:
        values = _field_values(loan)
        values.pop("loan_id")
        async with self._session() as session:
            result = await session.execute(
                update(models.Loan)
                .where(models.Loan.loan_id == loan.loan_id, models.Loan.status == expected_status)
                .values(**values)
            )
            return result.rowcount == 1

    async def list_active_loans(self, employee_id: str | None = None) -> list[Loan]:
        stmt = select(models.Loan).where(models.Loan.status == LoanStatus.ACTIVE.value)
        if employee_id is not None:
            stmt = stmt.where(models.Loan.employee_id == employee_id)
        async with self._session() as session:
            result = await session.execute(stmt)
            return [_from_row(Loan, row) for row in result.scalars()]


# ===== Payroll =====


def _month_values(payroll_month: PayrollMonth) -> dict[str, Any]:
    values = _field_values(payroll_month)
    snapshot = values.pop("snapshot")
    config_versions = values.pop("config_version_snapshot")
    values["snapshot_json"] = snapshot.to_dict() if snapshot else None
    values["config_versions_json"] = config_versions.to_dict() if config_versions else None
    return values


def _to_month(row: models.PayrollMonth) -> PayrollMonth:
    return _from_row(
        PayrollMonth,
        row,
        generated_at=_aware(row.generated_at),
        finalized_at=_aware(row.finalized_at),
        locked_at=_aware(row.locked_at),
        snapshot=PayrollSnapshot.from_dict(row.snapshot_json) if row.snapshot_json else None,
        config_version_snapshot=(
            ConfigVersionSnapshot.from_dict(row.config_versions_json)
            if row.config_versions_json
            else None
        ),
    )


class SqlPayrollRepository(_SqlRepository):
    """Payroll months, records and the per-month generation lock.

    A lock row older than ``lock_ttl`` is treated as left behind by a
    crashed holder and may be taken over by the next caller.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lock_ttl: timedelta = DEFAULT_MONTH_LOCK_TTL,
    ):
        super().__init__(session_factory)
        self.lock_ttl = lock_ttl

    async def try_acquire_month_lock(self, month: str, holder: str) -> bool:
        now = datetime.now(timezone.utc)
        try:
            async with self._session() as session:
                session.add(models.PayrollMonthLock(month=month, holder=holder, acquired_at=now))
        except IntegrityError:
            return await self._take_over_stale_lock(month, holder, now)
        return True

    async def _take_over_stale_lock(self, month: str, holder: str, now: datetime) -> bool:
        async with self._session() as session:
            result = await session.execute(
                update(models.PayrollMonthLock)
                .where(
                    models.PayrollMonthLock.month == month,
                    models.PayrollMonthLock.acquired_at < now - self.lock_ttl,
                )
                .values(holder=holder, acquired_at=now)
            )
        if result.rowcount != 1:
            return False
        logger.warning("Took over stale generation lock for %s (ttl %s)", month, self.lock_ttl)
        return True

    async def release_month_lock(self, month: str, holder: str) -> None:
        async with self._session() as session:
            await session.execute(
                delete(models.PayrollMonthLock).where(
                    models.PayrollMonthLock.month == month,
                    models.PayrollMonthLock.holder == holder,
                )
            )

    async def get_month(self, month: str) -> PayrollMonth | None:
        async with self._session() as session:
            result = await session.execute(
                select(models.PayrollMonth).where(models.PayrollMonth.month == month)
            )
            row = result.scalar_one_or_none()
            return _to_month(row) if row else None

    async def create_month(self, payroll_month: PayrollMonth) -> None:
        async with self._session() as session:
            session.add(models.PayrollMonth(**_month_values(payroll_month)))

    async def update_month(self, payroll_month: PayrollMonth, expected_status: str) -> bool:
        values = _month_values(payroll_month)
        values.pop("month_id")
        async with self._session() as session:
            result = await session.execute(
                update(models.PayrollMonth)
                .where(
                    models.PayrollMonth.month_id == payroll_month.month_id,
                    models.PayrollMonth.status == expected_status,
                )
                .values(**values)
            )
            return result.rowcount == 1

    async def delete_records(self, payroll_month_id: str) -> int:
        async with self._session() as session:
            result = await session.execute(
                delete(models.PayrollRecord).where(
                    models.PayrollRecord.payroll_month_id == payroll_month_id
                )
            )
            return result.rowcount or 0

    async def insert_records(self, records: list[PayrollRecord]) -> None:
        if not records:
            return
        async with self._session() as session:
            await session.execute(
                insert(models.PayrollRecord), [_field_values(r) for r in records]
            )

    async def list_records(self, payroll_month_id: str) -> list[PayrollRecord]:
        async with self._session() as session:
            result = await session.execute(
                select(models.PayrollRecord)
                .where(models.PayrollRecord.payroll_month_id == payroll_month_id)
                .order_by(models.PayrollRecord.employee_name, models.PayrollRecord.employee_id)
            )
            return [_from_row(PayrollRecord, row) for row in result.scalars()]

    async def get_record(self, record_id: str) -> PayrollRecord | None:
        async with self._session() as session:
            row = await session.get(models.PayrollRecord, record_id)
            return _from_row(PayrollRecord, row) if row else None

    async def update_record(self, record: PayrollRecord) -> bool:
        values = _field_values(record)
        values.pop("record_id")
        async with self._session() as session:
            result = await session.execute(
                update(models.PayrollRecord)
                .where(
                    models.PayrollRecord.record_id == record.record_id,
                    models.PayrollRecord.is_locked.is_(False),
                )
                .values(**values)
            )
            return result.rowcount == 1

    async def stamp_records(
        self, record_ids: list[str], snapshot_version: str | None, lock: bool
    ) -> int:
        values: dict[str, Any] = {}
        if snapshot_version is not None:
            values["calculation_snapshot_version"] = snapshot_version
        if lock:
            values["is_locked"] = True
        if not record_ids or not values:
            return 0
        async with self._session() as session:
            result = await session.execute(
                update(models.PayrollRecord)
                .where(models.PayrollRecord.record_id.in_(record_ids))
                .values(**values)
            )
            return result.rowcount or 0

    async def replace_cost_summaries(
        self, payroll_month_id: str, summaries: list[CostSummary]
    ) -> None:
        async with self._session() as session:
            await session.execute(
                delete(models.CostSummary).where(
                    models.CostSummary.payroll_month_id == payroll_month_id
                )
            )
            if summaries:
                await session.execute(
                    insert(models.CostSummary), [_field_values(s) for s in summaries]
                )

    async def list_cost_summaries(self, payroll_month_id: str) -> list[CostSummary]:
        async with self._session() as session:
            result = await session.execute(
                select(models.CostSummary)
                .where(models.CostSummary.payroll_month_id == payroll_month_id)
                .order_by(models.CostSummary.summary_id)
            )
            return [_from_row(CostSummary, row) for row in result.scalars()]


# ===== Approvals & Audit =====


def _request_values(request: ApprovalRequest) -> dict[str, Any]:
    return {
        "request_id": request.request_id,
        "request_type": request.request_type,
        "employee_id": request.employee_id,
        "employee_name": request.employee_name,
        "department_id": request.department_id,
        "request_data": _jsonable(request.request_data),
        "approval_chain": [s.to_dict() for s in request.approval_chain],
        "history": [h.to_dict() for h in request.history],
        "current_step": request.current_step,
        "status": request.status,
        "version": request.version,
        "created_at": request.created_at,
        "updated_at": request.updated_at,
    }


def _to_request(row: models.ApprovalRequest) -> ApprovalRequest:
    return ApprovalRequest(
        request_id=row.request_id,
        request_type=row.request_type,
        employee_id=row.employee_id,
        employee_name=row.employee_name,
        department_id=row.department_id,
        request_data=dict(row.request_data),
        approval_chain=tuple(ApprovalStep.from_dict(s) for s in row.approval_chain),
        history=tuple(HistoryEntry.from_dict(h) for h in row.history),
        current_step=row.current_step,
        status=row.status,
        version=row.version,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


class SqlApprovalRepository(_SqlRepository):
    async def add_request(self, request: ApprovalRequest) -> None:
        async with self._session() as session:
            session.add(models.ApprovalRequest(**_request_values(request)))

    async def get_request(self, request_id: str) -> ApprovalRequest | None:
        async with self._session() as session:
            row = await session.get(models.ApprovalRequest, request_id)
            return _to_request(row) if row else None

    async def update_request(
        self,
        request: ApprovalRequest,
        expected_version: int,
        expected_step: int,
    ) -> bool:
        values = _request_values(request)
        values.pop("request_id")
        values["version"] = expected_version + 1
        async with self._session() as session:
            result = await session.execute(
                update(models.ApprovalRequest)
                .where(
                    models.ApprovalRequest.request_id == request.request_id,
                    models.ApprovalRequest.version == expected_version,
                    models.ApprovalRequest.current_step == expected_step,
                )
                .values(**values)
            )
            return result.rowcount == 1

    async def list_requests(
        self,
        employee_id: str | None = None,
        request_type: str | None = None,
        status: str | None = None,
    ) -> list[ApprovalRequest]:
        stmt = select(models.ApprovalRequest).order_by(models.ApprovalRequest.created_at.desc())
        if employee_id is not None:
            stmt = stmt.where(models.ApprovalRequest.employee_id == employee_id)
        if request_type is not None:
            stmt = stmt.where(models.ApprovalRequest.request_type == request_type)
        if status is not None:
            stmt = stmt.where(models.ApprovalRequest.status == status)
        async with self._session() as session:
            result = await session.execute(stmt)
            return [_to_request(row) for row in result.scalars()]

    async def list_open_requests(self) -> list[ApprovalRequest]:
        async with self._session() as session:
            result = await session.execute(
                select(models.ApprovalRequest).where(
                    models.ApprovalRequest.status.in_(
                        [RequestStatus.PENDING.value, RequestStatus.IN_PROGRESS.value]
                    )
                )
            )
            return [_to_request(row) for row in result.scalars()]

    async def add_delegation(self, delegation: ApprovalDelegation) -> None:
        values = _field_values(delegation)
        values["request_types"] = list(delegation.request_types)
        async with self._session() as session:
            session.add(models.ApprovalDelegation(**values))

    async def list_delegations(self, active_only: bool = True) -> list[ApprovalDelegation]:
        stmt = select(models.ApprovalDelegation)
        if active_only:
            stmt = stmt.where(models.ApprovalDelegation.is_active.is_(True))
        async with self._session() as session:
            result = await session.execute(stmt)
            return [
                _from_row(ApprovalDelegation, row, request_types=tuple(row.request_types))
                for row in result.scalars()
            ]


class SqlAuditRepository(_SqlRepository):
    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        stored = dataclasses.replace(entry, recorded_at=datetime.now(timezone.utc))
        values = _field_values(stored)
        values["details"] = _jsonable(stored.details)
        async with self._session() as session:
            session.add(models.AuditLogEntry(**values))
        return stored

    async def list_entries(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
        employee_id: str | None = None,
        performed_by: str | None = None,
        action: str | None = None,
    ) -> list[AuditLogEntry]:
        table = models.AuditLogEntry
        stmt = select(table).order_by(table.recorded_at.desc())
        filters = (
            (table.entity_type, entity_type),
            (table.entity_id, entity_id),
            (table.employee_id, employee_id),
            (table.performed_by, performed_by),
            (table.action, action),
        )
        for column, value in filters:
            if value is not None:
                stmt = stmt.where(column == value)
        async with self._session() as session:
            result = await session.execute(stmt)
            return [
                _from_row(
                    AuditLogEntry,
                    row,
                    details=dict(row.details),
                    recorded_at=_aware(row.recorded_at),
                )
                for row in result.scalars()
            ]


def create_sql_repositories(
    session_factory: async_sessionmaker[AsyncSession],
    month_lock_ttl: timedelta = DEFAULT_MONTH_LOCK_TTL,
) -> RepositoryBundle:
    return RepositoryBundle(
        config=SqlConfigRepository(session_factory),
        employees=SqlEmployeeRepository(session_factory),
        attendance=SqlAttendanceRepository(session_factory),
        leaves=SqlLeaveRepository(session_factory),
        loans=SqlLoanRepository(session_factory),
        payroll=SqlPayrollRepository(session_factory, lock_ttl=month_lock_ttl),
        approvals=SqlApprovalRepository(session_factory),
        audit=SqlAuditRepository(session_factory),
    )

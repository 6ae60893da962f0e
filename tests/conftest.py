"""Pytest fixtures for workforce payroll tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from workforce_payroll.calculators.types import (
    HRSettings,
    LateRule,
    Shift,
    ValueType,
)
from workforce_payroll.config import Settings
from workforce_payroll.container import ServiceContainer
from workforce_payroll.entities import ApprovalSettings, AttendanceLog, Employee
from workforce_payroll.repositories import create_memory_repositories
from workforce_payroll.repositories.memory import InMemoryConfigRepository
from workforce_payroll.services.access import ActorContext

FIXED_NOW = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)


class MutableClock:
    """Test clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _make_log(
    employee_id: str,
    day: date,
    total_minutes: int = 480,
    late_minutes: int = 0,
    is_absent: bool = False,
    is_weekly_off: bool = False,
) -> AttendanceLog:
    """Build a stored attendance log for payroll tests."""
    return AttendanceLog(
        employee_id=employee_id,
        date=day,
        check_in=None,
        check_out=None,
        shift_id="day",
        late_minutes=late_minutes,
        early_leave_minutes=0,
        total_minutes=total_minutes,
        total_hours=Decimal(total_minutes) / 60,
        is_absent=is_absent,
        is_incomplete=False,
        is_weekly_off=is_weekly_off,
    )


@pytest.fixture
def make_log():
    """Factory for stored attendance logs."""
    return _make_log


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        host="127.0.0.1",
        port=8000,
        reload=False,
        log_level="INFO",
        write_chunk_size=500,
        payroll_batch_size=50,
    )


@pytest.fixture
def day_shift() -> Shift:
    """08:00-17:00 shift with a one hour break and 10 minutes grace."""
    return Shift(
        start_time=datetime(2024, 1, 1, 8, 0).time(),
        end_time=datetime(2024, 1, 1, 17, 0).time(),
        break_minutes=60,
        late_grace_minutes=10,
        shift_id="day",
        name="Day",
    )


@pytest.fixture
def night_shift() -> Shift:
    """22:00-06:00 shift crossing midnight."""
    return Shift(
        start_time=datetime(2024, 1, 1, 22, 0).time(),
        end_time=datetime(2024, 1, 1, 6, 0).time(),
        break_minutes=30,
        late_grace_minutes=5,
        crosses_midnight=True,
        shift_id="night",
        name="Night",
    )


@pytest.fixture
def late_rules() -> list[LateRule]:
    return [
        LateRule(31, 60, ValueType.PERCENTAGE, Decimal("1"), rule_id="late-3"),
        LateRule(1, 15, ValueType.FIXED, Decimal("10"), rule_id="late-1"),
        LateRule(16, 30, ValueType.FIXED, Decimal("25"), rule_id="late-2"),
    ]


@pytest.fixture
def employees() -> list[Employee]:
    """Small factory org chart.

    worker -> supervisor -> manager -> executive; HR reports to the executive.
    """
    production = {
        "department_id": "dep-prod",
        "department_name": "Production",
        "cost_center": "CC-100",
    }
    return [
        Employee(
            employee_id="emp-worker",
            employee_name="Ahmed Worker",
            base_salary=Decimal("3000"),
            employee_code="E001",
            device_code="101",
            manager_id="emp-super",
            production_line="L1",
            job_title="Operator",
            job_level=1,
            **production,
        ),
        Employee(
            employee_id="emp-super",
            employee_name="Sara Supervisor",
            base_salary=Decimal("6000"),
            employee_code="E002",
            device_code="102",
            manager_id="emp-manager",
            production_line="L1",
            job_title="Line Supervisor",
            job_level=2,
            **production,
        ),
        Employee(
            employee_id="emp-manager",
            employee_name="Omar Manager",
            base_salary=Decimal("9000"),
            employee_code="E003",
            device_code="103",
            manager_id="emp-exec",
            job_title="Plant Manager",
            job_level=3,
            **production,
        ),
        Employee(
            employee_id="emp-exec",
            employee_name="Laila Executive",
            base_salary=Decimal("15000"),
            employee_code="E004",
            device_code="104",
            department_id="dep-admin",
            department_name="Administration",
            cost_center="CC-900",
            job_title="General Manager",
            job_level=4,
        ),
        Employee(
            employee_id="emp-hr",
            employee_name="Huda HR",
            base_salary=Decimal("7000"),
            employee_code="E005",
            device_code="105",
            manager_id="emp-exec",
            department_id="dep-hr",
            department_name="Human Resources",
            cost_center="CC-200",
            job_title="HR Manager",
            job_level=3,
        ),
        Employee(
            employee_id="emp-daily",
            employee_name="Karim Daily",
            base_salary=Decimal("3000"),
            employment_type="daily",
            daily_rate=Decimal("120"),
            employee_code="E006",
            device_code="106",
            manager_id="emp-super",
            production_line="L2",
            job_title="Packer",
            job_level=1,
            **production,
        ),
    ]


@pytest.fixture
def approval_settings() -> ApprovalSettings:
    return ApprovalSettings(
        max_approval_levels=3,
        hr_always_final_level=True,
        escalation_days=3,
        allow_delegation=True,
        hr_approver_id="emp-hr",
    )


@pytest.fixture
def config_repository(late_rules, approval_settings) -> InMemoryConfigRepository:
    return InMemoryConfigRepository(
        hr_settings=HRSettings(),
        late_rules=late_rules,
        approval_settings=approval_settings,
    )


@pytest.fixture
def repositories(config_repository, employees):
    return create_memory_repositories(config=config_repository, employees=employees)


@pytest.fixture
def container(repositories, app_settings, clock) -> ServiceContainer:
    return ServiceContainer.build(repositories, settings=app_settings, clock=clock)


@pytest.fixture
def worker() -> ActorContext:
    return ActorContext.from_claims("emp-worker", "Ahmed Worker", [])


@pytest.fixture
def supervisor() -> ActorContext:
    return ActorContext.from_claims("emp-super", "Sara Supervisor", ["approval.view"])


@pytest.fixture
def manager() -> ActorContext:
    return ActorContext.from_claims("emp-manager", "Omar Manager", ["approval.view"])


@pytest.fixture
def hr_officer() -> ActorContext:
    return ActorContext.from_claims(
        "emp-hr", "Huda HR", ["approval.manage", "approval.view", "payroll.manage"]
    )


@pytest.fixture
def admin() -> ActorContext:
    return ActorContext.from_claims("admin-1", "Admin", {"approval.override": True})

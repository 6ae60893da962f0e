"""Approval request, chain step, history and delegation entities."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any

from workforce_payroll.entities.hr import new_id


class RequestType(str, Enum):
    OVERTIME = "overtime"
    LEAVE = "leave"
    LOAN = "loan"


class RequestStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    ESCALATED = "escalated"


class ApprovalAction(str, Enum):
    CREATED = "created"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    ESCALATED = "escalated"
    DELEGATED = "delegated"
    AUTO_APPROVED = "auto_approved"
    ADMIN_OVERRIDE = "admin_override"


class StepStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SKIPPED = "skipped"


class JobLevel(IntEnum):
    WORKER = 1
    SUPERVISOR = 2
    MANAGER = 3
    EXECUTIVE = 4


CLOSED_STATUSES = frozenset(
    {RequestStatus.APPROVED.value, RequestStatus.REJECTED.value, RequestStatus.CANCELLED.value}
)


def _dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class ApprovalStep:
    """Snapshot of one approver taken when the request was created."""

    approver_employee_id: str
    approver_name: str
    level: int
    approver_job_title: str | None = None
    department_id: str | None = None
    department_name: str | None = None
    status: str = StepStatus.PENDING.value
    action_date: datetime | None = None
    notes: str | None = None
    delegated_to: str | None = None
    delegated_to_name: str | None = None
    acted_by: str | None = None

    @property
    def is_settled(self) -> bool:
        return self.status in (StepStatus.APPROVED.value, StepStatus.SKIPPED.value)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["action_date"] = _dt(self.action_date)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ApprovalStep:
        values = dict(data)
        values["action_date"] = _parse_dt(values.get("action_date"))
        return cls(**values)


@dataclass(frozen=True)
class HistoryEntry:
    """One entry of a request's append-only action history."""

    step: int
    action: str
    performed_by: str
    performed_by_name: str
    timestamp: datetime
    previous_status: str | None = None
    new_status: str | None = None
    notes: str | None = None
    on_behalf_of: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryEntry:
        values = dict(data)
        values["timestamp"] = datetime.fromisoformat(values["timestamp"])
        return cls(**values)


@dataclass
class ApprovalRequest:
    """Leave, loan or overtime request moving through its approval chain."""

    request_type: str
    employee_id: str
    employee_name: str
    request_data: dict[str, Any]
    approval_chain: tuple[ApprovalStep, ...] = ()
    current_step: int = 0
    status: str = RequestStatus.PENDING.value
    history: tuple[HistoryEntry, ...] = ()
    department_id: str | None = None
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    request_id: str = field(default_factory=new_id)

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES

    @property
    def current_approver(self) -> ApprovalStep | None:
        if self.current_step < len(self.approval_chain):
            return self.approval_chain[self.current_step]
        return None


@dataclass(frozen=True)
class ApprovalDelegation:
    """Temporary hand-over of approval authority between employees."""

    from_employee_id: str
    from_employee_name: str
    to_employee_id: str
    to_employee_name: str
    start_date: date
    end_date: date
    # Empty tuple means every request type.
    request_types: tuple[str, ...] = ()
    is_active: bool = True
    delegation_id: str = field(default_factory=new_id)

    def applies_to(self, request_type: str) -> bool:
        return not self.request_types or request_type in self.request_types

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class AutoApproveThreshold:
    request_type: str
    field: str
    max_value: Decimal


@dataclass(frozen=True)
class ApprovalSettings:
    max_approval_levels: int = 4
    hr_always_final_level: bool = True
    escalation_days: int = 3
    allow_delegation: bool = True
    auto_approve_thresholds: tuple[AutoApproveThreshold, ...] = ()
    hr_approver_id: str | None = None


@dataclass(frozen=True)
class ApprovalEmployee:
    """Org-chart view of an employee used to build approval chains."""

    employee_id: str
    employee_name: str
    job_level: int = JobLevel.WORKER
    manager_id: str | None = None
    department_id: str | None = None
    department_name: str | None = None
    job_position_id: str | None = None
    job_title: str | None = None

"""Append-only audit log entry."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from workforce_payroll.entities.hr import new_id


class AuditEntityType(str, Enum):
    PAYROLL_MONTH = "payroll_month"
    APPROVAL_REQUEST = "approval_request"
    HR_CONFIG = "hr_config"
    LOAN = "loan"


class PayrollAuditAction(str, Enum):
    GENERATE = "generate"
    RECALCULATE = "recalculate"
    FINALIZE = "finalize"
    LOCK = "lock"
    EDIT = "edit"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit fact. ``recorded_at`` is assigned by the store."""

    entity_type: str
    entity_id: str
    action: str
    performed_by: str
    performed_by_name: str | None = None
    step: int | None = None
    request_type: str | None = None
    employee_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    recorded_at: datetime | None = None
    entry_id: str = field(default_factory=new_id)

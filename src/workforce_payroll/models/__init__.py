"""SQLAlchemy ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from workforce_payroll.models.approval import ApprovalDelegation, ApprovalRequest
from workforce_payroll.models.attendance import AttendanceLog, LeaveRequest, Loan, RawPunch
from workforce_payroll.models.audit import AuditLogEntry
from workforce_payroll.models.base import Base, TimestampMixin
from workforce_payroll.models.hr import (
    AllowanceType,
    Employee,
    HRConfigModule,
    LateRule,
    PenaltyRule,
    SettingsDocument,
)
from workforce_payroll.models.payroll import (
    CostSummary,
    PayrollMonth,
    PayrollMonthLock,
    PayrollRecord,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Employee",
    "SettingsDocument",
    "LateRule",
    "PenaltyRule",
    "AllowanceType",
    "HRConfigModule",
    "RawPunch",
    "AttendanceLog",
    "LeaveRequest",
    "Loan",
    "PayrollMonth",
    "PayrollRecord",
    "CostSummary",
    "PayrollMonthLock",
    "ApprovalRequest",
    "ApprovalDelegation",
    "AuditLogEntry",
]

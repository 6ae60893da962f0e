"""Domain entities shared by services and repositories."""

from workforce_payroll.entities.approval import (
    CLOSED_STATUSES,
    ApprovalAction,
    ApprovalDelegation,
    ApprovalEmployee,
    ApprovalRequest,
    ApprovalSettings,
    ApprovalStep,
    AutoApproveThreshold,
    HistoryEntry,
    JobLevel,
    RequestStatus,
    RequestType,
    StepStatus,
)
from workforce_payroll.entities.audit import (
    AuditEntityType,
    AuditLogEntry,
    PayrollAuditAction,
)
from workforce_payroll.entities.hr import (
    AttendanceLog,
    AttendanceSource,
    ConfigModule,
    ConfigModuleName,
    Employee,
    LeaveRequest,
    LeaveType,
    Loan,
    LoanInstallment,
    LoanStatus,
    LoanType,
    StoredPunch,
    new_id,
)
from workforce_payroll.entities.payroll import (
    ConfigVersionSnapshot,
    CostSummary,
    EmployeeCalculationError,
    GenerationSummary,
    PayrollMonth,
    PayrollRecord,
    PayrollSnapshot,
)

__all__ = [
    "CLOSED_STATUSES",
    "ApprovalAction",
    "ApprovalDelegation",
    "ApprovalEmployee",
    "ApprovalRequest",
    "ApprovalSettings",
    "ApprovalStep",
    "AttendanceLog",
    "AttendanceSource",
    "AuditEntityType",
    "AuditLogEntry",
    "AutoApproveThreshold",
    "ConfigModule",
    "ConfigModuleName",
    "ConfigVersionSnapshot",
    "CostSummary",
    "Employee",
    "EmployeeCalculationError",
    "GenerationSummary",
    "HistoryEntry",
    "JobLevel",
    "LeaveRequest",
    "LeaveType",
    "Loan",
    "LoanInstallment",
    "LoanStatus",
    "LoanType",
    "PayrollAuditAction",
    "PayrollMonth",
    "PayrollRecord",
    "PayrollSnapshot",
    "RequestStatus",
    "RequestType",
    "StepStatus",
    "StoredPunch",
    "new_id",
]

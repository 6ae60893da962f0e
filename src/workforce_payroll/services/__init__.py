"""Workforce payroll services."""

from workforce_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollMonthStateMachine,
    PayrollMonthStatus,
)
from workforce_payroll.services.payroll_service import PayrollService
from workforce_payroll.services.finalizer import PayrollFinalizer
from workforce_payroll.services.locking_service import PayrollLocker, hold_month_lock

__all__ = [
    "PayrollMonthStateMachine",
    "PayrollMonthStatus",
    "InvalidTransitionError",
    "PayrollService",
    "PayrollFinalizer",
    "PayrollLocker",
    "hold_month_lock",
]

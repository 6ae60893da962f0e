"""Payroll month state machine with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from workforce_payroll.errors import StateError

if TYPE_CHECKING:
    from workforce_payroll.entities import PayrollMonth, PayrollRecord


class PayrollMonthStatus(str, Enum):
    """Payroll month status values."""

    DRAFT = "draft"
    FINALIZED = "finalized"
    LOCKED = "locked"


class InvalidTransitionError(StateError):
    """Raised when an invalid state transition is attempted."""

    code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, details={"from": from_status, "to": to_status})


class PayrollMonthStateMachine:
    """State machine for payroll month status transitions.

    Allowed transitions:
    - draft → finalized
    - finalized → locked

    There is no way back; locked is terminal.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollMonthStatus.DRAFT: [PayrollMonthStatus.FINALIZED],
        PayrollMonthStatus.FINALIZED: [PayrollMonthStatus.LOCKED],
        PayrollMonthStatus.LOCKED: [],  # Terminal state
    }

    # Statuses where records may be (re)generated or edited
    RECORDS_MUTABLE = {PayrollMonthStatus.DRAFT}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if cls.can_transition(from_status, to_status):
            return
        reason = None
        if from_status == PayrollMonthStatus.DRAFT and to_status == PayrollMonthStatus.LOCKED:
            reason = "payroll must be finalized before locking"
        elif from_status == to_status:
            reason = f"payroll month is already {from_status}"
        elif from_status == PayrollMonthStatus.LOCKED:
            reason = "payroll month is locked"
        raise InvalidTransitionError(from_status, to_status, reason)

    @classmethod
    def can_modify_records(cls, status: str) -> bool:
        """Check if records can be regenerated or edited in this status."""
        return status in cls.RECORDS_MUTABLE

    @classmethod
    def ensure_records_mutable(cls, payroll_month: PayrollMonth) -> None:
        """Raise StateError unless the month still accepts record changes."""
        if cls.can_modify_records(payroll_month.status):
            return
        if payroll_month.status == PayrollMonthStatus.FINALIZED:
            raise StateError(
                f"Payroll {payroll_month.month} is finalized: cannot recalculate",
                code="month_finalized",
            )
        raise StateError(
            f"Payroll {payroll_month.month} is locked: cannot modify",
            code="month_locked",
        )

    @classmethod
    def ensure_record_mutable(cls, record: PayrollRecord) -> None:
        if record.is_locked:
            raise StateError(
                f"Payroll record {record.record_id} is locked", code="record_locked"
            )

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

"""Punch, attendance log, leave and loan models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from workforce_payroll.models.base import ID_LENGTH, Base, TimestampMixin


class RawPunch(Base, TimestampMixin):
    """Device punch as imported, kept per batch for traceability."""

    __tablename__ = "raw_punch"

    punch_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    batch_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    employee_code: Mapped[str] = mapped_column(String, nullable=False)
    employee_id: Mapped[str | None] = mapped_column(String(ID_LENGTH), nullable=True)
    punched_at: Mapped[datetime] = mapped_column(nullable=False)
    device_id: Mapped[str] = mapped_column(String, nullable=False, default="")
    source: Mapped[str] = mapped_column(String, nullable=False)


class AttendanceLog(Base):
    """Processed attendance of one employee on one work date."""

    __tablename__ = "attendance_log"

    log_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    employee_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    check_in: Mapped[datetime | None] = mapped_column(nullable=True)
    check_out: Mapped[datetime | None] = mapped_column(nullable=True)
    shift_id: Mapped[str] = mapped_column(String, nullable=False, default="")
    late_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    early_leave_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    is_absent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_incomplete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_weekly_off: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source: Mapped[str] = mapped_column(String, nullable=False)
    processed_batch_id: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="attendance_log_employee_date_unique"),
    )


class LeaveRequest(Base, TimestampMixin):
    __tablename__ = "leave_request"

    leave_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    employee_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False, index=True)
    leave_type: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    affects_salary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="approved")

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
    )


class Loan(Base, TimestampMixin):
    __tablename__ = "loan"

    loan_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    employee_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False, index=True)
    loan_type: Mapped[str] = mapped_column(String, nullable=False)
    loan_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    installment_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_installments: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_installments: Mapped[int] = mapped_column(Integer, nullable=False)
    start_month: Mapped[str] = mapped_column(String(7), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    approval_request_id: Mapped[str | None] = mapped_column(String(ID_LENGTH), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'active', 'closed')",
            name="loan_status_check",
        ),
        CheckConstraint("remaining_installments >= 0", name="loan_remaining_check"),
    )

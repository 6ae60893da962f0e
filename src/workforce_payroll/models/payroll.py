"""Payroll month, record, cost summary and month lock models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from workforce_payroll.models.base import ID_LENGTH, Base, JSONType, TimestampMixin


class PayrollMonth(Base, TimestampMixin):
    """Payroll cycle of one calendar month."""

    __tablename__ = "payroll_month"

    month_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    month: Mapped[str] = mapped_column(String(7), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    total_employees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_gross: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_net: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    generated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    generated_by: Mapped[str | None] = mapped_column(String, nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(nullable=True)
    finalized_by: Mapped[str | None] = mapped_column(String, nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    locked_by: Mapped[str | None] = mapped_column(String, nullable=True)
    snapshot_version: Mapped[str | None] = mapped_column(String, nullable=True)
    snapshot_json: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    config_versions_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType, nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'finalized', 'locked')",
            name="payroll_month_status_check",
        ),
    )


class PayrollRecord(Base):
    """Computed salary of one employee for one payroll month."""

    __tablename__ = "payroll_record"

    record_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    payroll_month_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("payroll_month.month_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    employee_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    employee_code: Mapped[str] = mapped_column(String, nullable=False, default="")
    employment_type: Mapped[str] = mapped_column(String, nullable=False)
    department_id: Mapped[str | None] = mapped_column(String, nullable=True)
    department_name: Mapped[str | None] = mapped_column(String, nullable=True)
    cost_center: Mapped[str | None] = mapped_column(String, nullable=True)
    production_line: Mapped[str | None] = mapped_column(String, nullable=True)
    base_salary: Mapped[Decimal] = mapped_column(nullable=False)
    working_days: Mapped[int] = mapped_column(Integer, nullable=False)
    present_days: Mapped[int] = mapped_column(Integer, nullable=False)
    absent_days: Mapped[int] = mapped_column(Integer, nullable=False)
    late_days: Mapped[int] = mapped_column(Integer, nullable=False)
    total_late_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_amount: Mapped[Decimal] = mapped_column(nullable=False)
    allowances_total: Mapped[Decimal] = mapped_column(nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(nullable=False)
    absence_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    late_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    loan_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    unpaid_leave_days: Mapped[Decimal] = mapped_column(nullable=False)
    unpaid_leave_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    other_penalties: Mapped[Decimal] = mapped_column(nullable=False)
    transport_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(nullable=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    calculation_snapshot_version: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "payroll_month_id", "employee_id", name="payroll_record_month_employee_unique"
        ),
    )


class CostSummary(Base):
    """Payroll cost per department, cost center and production line."""

    __tablename__ = "payroll_cost_summary"

    summary_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payroll_month_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("payroll_month.month_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    department_id: Mapped[str | None] = mapped_column(String, nullable=True)
    department_name: Mapped[str | None] = mapped_column(String, nullable=True)
    cost_center: Mapped[str | None] = mapped_column(String, nullable=True)
    production_line: Mapped[str | None] = mapped_column(String, nullable=True)
    employee_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_gross: Mapped[Decimal] = mapped_column(nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False)
    total_net: Mapped[Decimal] = mapped_column(nullable=False)


class PayrollMonthLock(Base):
    """Single-writer lock row; present while an operation owns the month.

    ``acquired_at`` lets a later caller take over a row left by a crashed holder.
    """

    __tablename__ = "payroll_month_lock"

    month: Mapped[str] = mapped_column(String(7), primary_key=True)
    holder: Mapped[str] = mapped_column(String, nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(nullable=False)

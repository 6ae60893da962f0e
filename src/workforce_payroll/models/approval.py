"""Approval request and delegation models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from workforce_payroll.models.base import ID_LENGTH, Base, JSONType


class ApprovalRequest(Base):
    """Request with its approver chain and history stored as JSON documents."""

    __tablename__ = "approval_request"

    request_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    request_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
    employee_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False, index=True)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    department_id: Mapped[str | None] = mapped_column(String, nullable=True)
    request_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    approval_chain: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False)
    history: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False)
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'approved', 'rejected', 'cancelled', 'escalated')",
            name="approval_request_status_check",
        ),
    )


class ApprovalDelegation(Base):
    __tablename__ = "approval_delegation"

    delegation_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    from_employee_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False, index=True)
    from_employee_name: Mapped[str] = mapped_column(String, nullable=False)
    to_employee_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    to_employee_name: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    request_types: Mapped[list[str]] = mapped_column(JSONType, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="approval_delegation_dates_check"),
    )

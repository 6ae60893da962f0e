"""Employee, HR settings, rules and config module models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from workforce_payroll.models.base import ID_LENGTH, Base, JSONType, TimestampMixin


class Employee(Base, TimestampMixin):
    """Employee master record with payroll and org-chart attributes."""

    __tablename__ = "employee"

    employee_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    employee_code: Mapped[str] = mapped_column(String, nullable=False, default="")
    device_code: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    employment_type: Mapped[str] = mapped_column(String, nullable=False, default="monthly")
    base_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    daily_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    transport_deduction: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    manager_id: Mapped[str | None] = mapped_column(String(ID_LENGTH), nullable=True)
    department_id: Mapped[str | None] = mapped_column(String, nullable=True)
    department_name: Mapped[str | None] = mapped_column(String, nullable=True)
    cost_center: Mapped[str | None] = mapped_column(String, nullable=True)
    production_line: Mapped[str | None] = mapped_column(String, nullable=True)
    job_position_id: Mapped[str | None] = mapped_column(String, nullable=True)
    job_title: Mapped[str | None] = mapped_column(String, nullable=True)
    job_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class SettingsDocument(Base):
    """Singleton settings payloads keyed by name (``hr``, ``approval``)."""

    __tablename__ = "settings_document"

    settings_key: Mapped[str] = mapped_column(String, primary_key=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)


class LateRule(Base):
    __tablename__ = "late_rule"

    rule_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    minutes_from: Mapped[int] = mapped_column(Integer, nullable=False)
    minutes_to: Mapped[int] = mapped_column(Integer, nullable=False)
    penalty_type: Mapped[str] = mapped_column(String, nullable=False)
    penalty_value: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)


class PenaltyRule(Base):
    __tablename__ = "penalty_rule"

    rule_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    value_type: Mapped[str] = mapped_column(String, nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AllowanceType(Base):
    __tablename__ = "allowance_type"

    allowance_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    calculation_type: Mapped[str] = mapped_column(String, nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("name", name="allowance_type_name_unique"),)


class HRConfigModule(Base):
    """One versioned HR configuration module."""

    __tablename__ = "hr_config_module"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    values: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    config_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String, nullable=True)

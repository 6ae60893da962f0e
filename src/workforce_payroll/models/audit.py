"""Audit log model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from workforce_payroll.models.base import ID_LENGTH, Base, JSONType


class AuditLogEntry(Base):
    """Append-only audit fact; rows are never updated."""

    __tablename__ = "audit_log_entry"

    entry_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    action: Mapped[str] = mapped_column(String, nullable=False)
    performed_by: Mapped[str] = mapped_column(String, nullable=False, index=True)
    performed_by_name: Mapped[str | None] = mapped_column(String, nullable=True)
    step: Mapped[int | None] = mapped_column(Integer, nullable=True)
    request_type: Mapped[str | None] = mapped_column(String, nullable=True)
    employee_id: Mapped[str | None] = mapped_column(String(ID_LENGTH), nullable=True, index=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(nullable=False, index=True)
